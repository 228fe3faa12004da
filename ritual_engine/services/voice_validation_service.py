"""Voice validation scorer - checks a spoken reading against its anchors.

Matching is deliberately simple: both sides are normalized (lowercase,
accents and punctuation removed, whitespace collapsed) and an expected
phrase counts as read when its normalized form is a substring of the
normalized transcript. There is no language understanding involved.
"""

import re
import unicodedata
from datetime import datetime
from typing import List, Optional, Sequence

import structlog

from ritual_engine.core.config import VoiceConfig
from ritual_engine.domain.models.ritual import RitualPhase
from ritual_engine.domain.models.session import VoiceValidation

log = structlog.get_logger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase, strip diacritics and punctuation, collapse whitespace."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    stripped = _NON_WORD.sub(" ", stripped).replace("_", " ")
    return _WHITESPACE.sub(" ", stripped).strip()


class VoiceValidationScorer:
    """
    Score a captured transcript against the phrases a phase expects.

    Algorithm:
    1. Normalize the transcript and every expected phrase
    2. A phrase matches if it is a substring of the transcript
    3. passed = matched / expected >= pass_threshold

    Edge cases:
    - No expected phrases: passes trivially
    - Empty transcript: fails unless nothing was expected
    """

    def __init__(self, config: Optional[VoiceConfig] = None):
        self.config = config or VoiceConfig()

    @property
    def pass_threshold(self) -> float:
        return self.config.pass_threshold

    def match_phrases(self, transcript: str, expected: Sequence[str]) -> List[str]:
        """Expected phrases (original spelling) found in the transcript."""
        normalized_transcript = normalize_text(transcript or "")
        if not normalized_transcript:
            return []

        matched = []
        for phrase in expected:
            normalized_phrase = normalize_text(phrase)
            if normalized_phrase and normalized_phrase in normalized_transcript:
                matched.append(phrase)
        return matched

    def score(
        self,
        phase: RitualPhase,
        expected_phrases: Sequence[str],
        transcript: str,
        validated_at: Optional[datetime] = None,
    ) -> VoiceValidation:
        """
        Score a transcript for one phase.

        Args:
            phase: Phase the reading belongs to
            expected_phrases: Voice anchors the user should have said
            transcript: Text produced by the capture service
            validated_at: Timestamp to stamp on the result

        Returns:
            VoiceValidation with matched phrases and pass/fail
        """
        expected = list(expected_phrases)
        matched = self.match_phrases(transcript, expected)

        if not expected:
            passed = True
        else:
            passed = len(matched) / len(expected) >= self.pass_threshold

        log.debug(
            "voice_reading_scored",
            phase=phase.value,
            matched=len(matched),
            expected=len(expected),
            passed=passed,
        )

        return VoiceValidation(
            phase=phase,
            expected_phrases=expected,
            matched_phrases=matched,
            passed=passed,
            validated_at=validated_at,
        )

    def missing_phrases(self, validation: VoiceValidation) -> List[str]:
        """Phrases the user still has to read to cover the whole block."""
        return validation.missing_phrases
