"""Content loader for the ritual script catalog.

Reads content/catalog.yaml under settings.config_dir into a flat table
keyed by ScriptKey(bond_type, approach, phase). Approach-wide defaults are stored
under bond_type None. The table is cached after first load.

File layout:

    defaults:
      <approach>:
        <phase>: {title, body, voice_phrases, suggested_vows}
    bonds:
      <bond_type>:
        <approach>:
          <phase>: {...}
"""

from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

from ritual_engine.core.config import settings
from ritual_engine.core.exceptions import ContentError
from ritual_engine.domain.models.content import Script, ScriptKey
from ritual_engine.domain.models.ritual import Approach, BondType, RitualPhase
from ritual_engine.domain.models.session import BehavioralVow

log = structlog.get_logger(__name__)

# Module-level cache (content doesn't change at runtime)
_cache: Dict[Path, Dict[ScriptKey, Script]] = {}


def default_catalog_path() -> Path:
    return settings.config_dir / "content" / "catalog.yaml"


def load_content_catalog(path: Optional[Path] = None) -> Dict[ScriptKey, Script]:
    """Load the script table from YAML. Cached after first load.

    Args:
        path: Override config/content/catalog.yaml (mainly for testing)

    Returns:
        Mapping of composite key to Script

    Raises:
        FileNotFoundError: Catalog file missing
        ContentError: Unknown approach, bond type or phase, or malformed entry
    """
    path = Path(path or default_catalog_path()).resolve()
    if path in _cache:
        return _cache[path]

    if not path.exists():
        raise FileNotFoundError(f"Content catalog not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    table = parse_catalog(data)
    _cache[path] = table
    log.info("content_catalog_loaded", path=str(path), script_count=len(table))
    return table


def parse_catalog(data: Dict[str, Any]) -> Dict[ScriptKey, Script]:
    """Build the lookup table from already-parsed YAML data."""
    table: Dict[ScriptKey, Script] = {}

    for approach_name, phases in (data.get("defaults") or {}).items():
        approach = _enum(Approach, approach_name, "approach")
        _add_phases(table, None, approach, phases)

    for bond_name, approaches in (data.get("bonds") or {}).items():
        bond_type = _enum(BondType, bond_name, "bond type")
        for approach_name, phases in (approaches or {}).items():
            approach = _enum(Approach, approach_name, "approach")
            _add_phases(table, bond_type, approach, phases)

    return table


def clear_cache() -> None:
    _cache.clear()


def _add_phases(
    table: Dict[ScriptKey, Script],
    bond_type: Optional[BondType],
    approach: Approach,
    phases: Optional[Dict[str, Any]],
) -> None:
    for phase_name, entry in (phases or {}).items():
        phase = _enum(RitualPhase, phase_name, "phase")
        if phase.is_terminal or phase == RitualPhase.IDLE:
            raise ContentError(f"Phase '{phase_name}' cannot carry content")
        table[ScriptKey(bond_type, approach, phase)] = _parse_script(phase, entry or {})


def _parse_script(phase: RitualPhase, entry: Dict[str, Any]) -> Script:
    try:
        vows = [BehavioralVow(**v) for v in entry.get("suggested_vows", [])]
        return Script(
            title=entry.get("title") or phase.display_name,
            body_text=(entry.get("body") or "").strip(),
            required_voice_phrases=list(entry.get("voice_phrases", [])),
            suggested_vows=vows,
        )
    except (TypeError, ValueError) as e:
        raise ContentError(f"Invalid script for phase '{phase.value}': {e}") from e


def _enum(enum_cls, value: str, kind: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ContentError(f"Unknown {kind} in content catalog: {value!r}") from None
