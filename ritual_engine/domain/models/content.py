"""
Domain models for ritual content.

Scripts are read-only text looked up by (bond type, approach, phase).
Approach changes wording only; every combination walks the same phases.
"""

from typing import List, NamedTuple, Optional

from pydantic import BaseModel, Field

from ritual_engine.domain.models.ritual import Approach, BondType, RitualPhase
from ritual_engine.domain.models.session import BehavioralVow


class ScriptKey(NamedTuple):
    """Composite lookup key. bond_type None means the approach-wide default."""

    bond_type: Optional[BondType]
    approach: Approach
    phase: RitualPhase


class Script(BaseModel):
    """Content shown to the user during one phase."""

    title: str
    body_text: str = ""
    required_voice_phrases: List[str] = Field(
        default_factory=list,
        description="Voice anchors the user is expected to read aloud",
    )
    suggested_vows: List[BehavioralVow] = Field(default_factory=list)
