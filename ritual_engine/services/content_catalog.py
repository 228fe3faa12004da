"""Content catalog - read-only script lookup for the ritual UI.

Lookup order for (bond_type, approach, phase):
1. Bond-specific script for the approach
2. Approach-wide default script
3. Secular default script
4. Bare fallback titled after the phase

A miss at step 4 is a content-authoring defect; it is logged, never raised.
"""

from pathlib import Path
from typing import Dict, List, Optional

import structlog

from ritual_engine.core.content_loader import load_content_catalog
from ritual_engine.domain.models.content import Script, ScriptKey
from ritual_engine.domain.models.ritual import Approach, BondType, RitualPhase
from ritual_engine.domain.models.session import BehavioralVow

log = structlog.get_logger(__name__)


class ContentCatalog:
    """Two-level script lookup keyed by composite ScriptKey."""

    def __init__(self, scripts: Dict[ScriptKey, Script]):
        self._scripts = dict(scripts)

    @classmethod
    def from_file(cls, path: Optional[Path] = None) -> "ContentCatalog":
        """Build a catalog from the YAML content file (default location if None)."""
        return cls(load_content_catalog(path))

    def __len__(self) -> int:
        return len(self._scripts)

    def get_script(
        self, bond_type: BondType, approach: Approach, phase: RitualPhase
    ) -> Script:
        """Script for a phase, falling back to defaults when not authored."""
        for key in (
            ScriptKey(bond_type, approach, phase),
            ScriptKey(None, approach, phase),
            ScriptKey(None, Approach.SECULAR, phase),
        ):
            script = self._scripts.get(key)
            if script is not None:
                return script

        log.warning(
            "script_missing",
            bond_type=bond_type.value,
            approach=approach.value,
            phase=phase.value,
        )
        return Script(title=phase.display_name)

    def required_phrases(
        self, bond_type: BondType, approach: Approach, phase: RitualPhase
    ) -> List[str]:
        return list(self.get_script(bond_type, approach, phase).required_voice_phrases)

    def suggested_vows(
        self, bond_type: BondType, approach: Approach
    ) -> List[BehavioralVow]:
        """Vows offered during renewal."""
        script = self.get_script(bond_type, approach, RitualPhase.RENEWAL)
        return [v.model_copy() for v in script.suggested_vows]
