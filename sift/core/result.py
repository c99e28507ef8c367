"""
Score results and confidence thresholds for Sift.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

NEUTRAL_CONFIDENCE = 50

# Thresholds applied to every scorer's output
AUTO_FLAG_ABOVE = 80
AUTO_DELETE_BELOW = 5
AUTO_JUNK_AT_OR_BELOW = 20


def to_confidence(fraction: float) -> int:
    """
    Convert a fraction in [0, 1] to an integer percentage, rounding halves up.
    """
    return int(math.floor(100 * fraction + 0.5))


class ScorerKind(Enum):
    """Which scorer produced a result."""
    NETWORK = "network"
    KEYWORDS = "keywords"
    NEUTRAL = "neutral"


SCORER_LABELS = {
    ScorerKind.NETWORK: "[Neural Network]",
    ScorerKind.KEYWORDS: "[Keyword Fallback]",
    ScorerKind.NEUTRAL: "[Neutral]",
}


class ConfidenceBand(Enum):
    """
    Coarse reading of a confidence value. Exactly one band applies to any
    integer confidence in [0, 100].
    """
    STRONG_APPROVE = "strong-approve"
    LIKELY = "likely"
    MIXED = "mixed"
    LIKELY_JUNK = "likely-junk"
    STRONG_JUNK = "strong-junk"

    @classmethod
    def from_confidence(cls, confidence: int) -> "ConfidenceBand":
        if confidence > 80:
            return cls.STRONG_APPROVE
        if confidence > 60:
            return cls.LIKELY
        if confidence > 40:
            return cls.MIXED
        if confidence > 20:
            return cls.LIKELY_JUNK
        return cls.STRONG_JUNK

    @property
    def description(self) -> str:
        return BAND_DESCRIPTIONS[self]


BAND_DESCRIPTIONS = {
    ConfidenceBand.STRONG_APPROVE: "Strong match with approved articles",
    ConfidenceBand.LIKELY: "Likely relevant article",
    ConfidenceBand.MIXED: "Mixed signals, needs review",
    ConfidenceBand.LIKELY_JUNK: "Likely junk article",
    ConfidenceBand.STRONG_JUNK: "Strong match with junk articles",
}


class TriageAction(Enum):
    """What the workflow layer should do with a scored article."""
    DELETE = "delete"
    FLAG = "flag"
    JUNK = "junk"
    REVIEW = "review"


@dataclass(frozen=True)
class ScoreResult:
    """
    Confidence that the user would approve an article, with reasoning and
    the automatic actions it implies.
    """
    confidence: int
    reasoning: str
    should_auto_flag: bool
    should_auto_delete: bool
    scorer: ScorerKind = ScorerKind.NEUTRAL

    @classmethod
    def from_confidence(
        cls,
        confidence: int,
        scorer: ScorerKind,
        detail: Optional[str] = None,
        force_delete: bool = False,
    ) -> "ScoreResult":
        """
        Apply the shared thresholds and build the reasoning string.

        Args:
            confidence: Integer confidence in [0, 100]
            scorer: Scorer that produced the value
            detail: Extra scorer-specific explanation
            force_delete: Mark for deletion regardless of the threshold

        Returns:
            ScoreResult
        """
        confidence = max(0, min(100, int(confidence)))
        should_delete = force_delete or confidence < AUTO_DELETE_BELOW
        band = ConfidenceBand.from_confidence(confidence)

        reasoning = f"{SCORER_LABELS[scorer]} Confidence: {confidence}% - {band.description}"
        if detail:
            reasoning += f" ({detail})"
        if should_delete:
            reasoning += " [AUTO-DELETE]"

        return cls(
            confidence=confidence,
            reasoning=reasoning,
            should_auto_flag=confidence > AUTO_FLAG_ABOVE,
            should_auto_delete=should_delete,
            scorer=scorer,
        )

    @classmethod
    def neutral(cls, reason: str) -> "ScoreResult":
        """Neutral result used when no scorer can give an opinion."""
        return cls(
            confidence=NEUTRAL_CONFIDENCE,
            reasoning=f"{SCORER_LABELS[ScorerKind.NEUTRAL]} {reason}",
            should_auto_flag=False,
            should_auto_delete=False,
            scorer=ScorerKind.NEUTRAL,
        )

    @property
    def band(self) -> ConfidenceBand:
        return ConfidenceBand.from_confidence(self.confidence)

    @property
    def should_auto_junk(self) -> bool:
        return self.confidence <= AUTO_JUNK_AT_OR_BELOW

    @property
    def action(self) -> TriageAction:
        """Deletion wins over flagging, flagging over junking."""
        if self.should_auto_delete:
            return TriageAction.DELETE
        if self.should_auto_flag:
            return TriageAction.FLAG
        if self.should_auto_junk:
            return TriageAction.JUNK
        return TriageAction.REVIEW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "should_auto_flag": self.should_auto_flag,
            "should_auto_delete": self.should_auto_delete,
            "should_auto_junk": self.should_auto_junk,
            "band": self.band.value,
            "action": self.action.value,
            "scorer": self.scorer.value,
        }
