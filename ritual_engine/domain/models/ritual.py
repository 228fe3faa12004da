"""
Closed vocabularies of the ritual domain.

- RitualPhase: ordered phases of a session, plus the two terminal states
- BondType: the bond/emotion category a session works on
- Approach: content variant (changes wording, never structure)
- SessionStatus: lifecycle flag of a session entry
- VowCategory / VowDuration: behavioural vow classification
"""

from enum import Enum
from typing import List


class RitualPhase(str, Enum):
    """Phase of a ritual session.

    Linear order from IDLE to RENEWAL, then the absorbing COMPLETED state.
    ABANDONED is reachable from any non-terminal phase.
    """

    IDLE = "idle"
    PREPARATION = "preparation"
    BREATHING = "breathing"
    EVOCATION = "evocation"
    RECOGNITION = "recognition"
    LIBERATION = "liberation"
    RETURNING = "returning"
    CUTTING = "cutting"
    SEALING = "sealing"
    RENEWAL = "renewal"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def order(self) -> int:
        """Position in the fixed phase order."""
        return _PHASE_ORDER.index(self)

    @property
    def is_terminal(self) -> bool:
        return self in (RitualPhase.COMPLETED, RitualPhase.ABANDONED)

    @property
    def requires_reading(self) -> bool:
        """Phases where the user reads voice anchors aloud."""
        return self in READING_PHASES

    @property
    def display_name(self) -> str:
        return _PHASE_NAMES[self]


_PHASE_ORDER: List[RitualPhase] = list(RitualPhase)

# idle .. renewal
ORDINAL_PHASES: List[RitualPhase] = [p for p in _PHASE_ORDER if not p.is_terminal]

# preparation .. renewal, the phases that have content and a timer
CONTENT_PHASES: List[RitualPhase] = ORDINAL_PHASES[1:]

LAST_PHASE = ORDINAL_PHASES[-1]

READING_PHASES = frozenset(
    {RitualPhase.RECOGNITION, RitualPhase.LIBERATION, RitualPhase.RETURNING}
)

_PHASE_NAMES = {
    RitualPhase.IDLE: "Start",
    RitualPhase.PREPARATION: "Preparation",
    RitualPhase.BREATHING: "Breathing",
    RitualPhase.EVOCATION: "Evocation",
    RitualPhase.RECOGNITION: "I Recognize",
    RitualPhase.LIBERATION: "I Release",
    RitualPhase.RETURNING: "I Return",
    RitualPhase.CUTTING: "Symbolic Cut",
    RitualPhase.SEALING: "Sealing",
    RitualPhase.RENEWAL: "Renewal",
    RitualPhase.COMPLETED: "Completed",
    RitualPhase.ABANDONED: "Abandoned",
}


def next_phase(phase: RitualPhase) -> RitualPhase:
    """Successor of a phase in the fixed order.

    RENEWAL is followed by COMPLETED; terminal states wrap back to IDLE so
    the machine is ready for a fresh session.
    """
    if phase.is_terminal:
        return RitualPhase.IDLE
    if phase == LAST_PHASE:
        return RitualPhase.COMPLETED
    return ORDINAL_PHASES[phase.order + 1]


class BondType(str, Enum):
    """Bond or emotion category a session works on."""

    EX_PARTNER = "ex_partner"
    ANCESTRAL_LOYALTY = "ancestral_loyalty"
    EMOTIONAL_DEBT = "emotional_debt"
    SOUL_BOND = "soul_bond"
    BETRAYAL_RUMINATION = "betrayal_rumination"
    BROKEN_PROMISES = "broken_promises"
    EMOTIONAL_DEPENDENCY = "emotional_dependency"
    PROJECTION_BURDEN = "projection_burden"
    CONTROL_STRUGGLE = "control_struggle"
    UNREQUITED_SOUL = "unrequited_soul"
    DESCENDANTS_PAST = "descendants_past"
    DESCENDANTS_FUTURE = "descendants_future"
    KARMIC_LINEAGE = "karmic_lineage"


class Approach(str, Enum):
    """Content variant selector."""

    SECULAR = "secular"
    SPIRITUAL = "spiritual"
    TRADITIONAL = "traditional"


class SessionStatus(str, Enum):
    """Terminal flag of a session entry."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class VowCategory(str, Enum):
    """Area of life a behavioural vow addresses."""

    NO_CONTACT = "no_contact"
    DIGITAL_HYGIENE = "digital_hygiene"
    SELF_CARE = "self_care"
    COPARENTING = "coparenting"
    MINDFULNESS = "mindfulness"
    PHYSICAL_ACTIVITY = "physical_activity"


class VowDuration(str, Enum):
    """How long a vow is meant to hold."""

    HOURS_24 = "24h"
    HOURS_48 = "48h"
    HOURS_72 = "72h"

    @property
    def hours(self) -> int:
        return int(self.value.rstrip("h"))
