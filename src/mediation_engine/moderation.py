"""
Confidence Moderation

The less certain the mapping from intent to output, the less confidence may
be claimed. Moderation withholds a share of the raw confidence in proportion
to the gap; it is a calibration, symmetric regardless of whether the output
later proves right.

    withheld  = 0.95                                   (ontological)
              = clamp(distance*0.7 + 0.2*unbridgeable + type_increment)
    retained  = 1 - withheld
    moderated = raw_confidence * retained

Type increments: LOGICAL +0.1, FACTUAL +0.05, SEMANTIC +0.0.

Invariants:
    moderated <= raw_confidence
    withheld + retained == 1.0
"""

from dataclasses import dataclass
from typing import Any, Dict

from mediation_engine.errors import InvalidInputError
from mediation_engine.gap.detector import GapSummary, GapType


ONTOLOGICAL_WITHHOLDING = 0.95
DISTANCE_FACTOR = 0.7
UNBRIDGEABLE_INCREMENT = 0.2

TYPE_INCREMENT = {
    GapType.LOGICAL: 0.1,
    GapType.FACTUAL: 0.05,
    GapType.SEMANTIC: 0.0,
    GapType.NONE: 0.0,
}

_TYPE_RATIONALE = {
    GapType.ONTOLOGICAL: (
        "An ontological impossibility marks a categorical boundary that cannot be "
        "crossed by assertion, so nearly all confidence is withheld."
    ),
    GapType.LOGICAL: (
        "Logical gaps indicate inference failures. Confidence is restrained until "
        "the reasoning can be corrected."
    ),
    GapType.FACTUAL: (
        "Factual gaps call for evidence-based restraint. Claims are held back until "
        "they can be verified."
    ),
    GapType.SEMANTIC: (
        "Semantic gaps indicate meaning drift between intent and expression. "
        "Confidence is limited to avoid over-claiming equivalence."
    ),
    GapType.NONE: (
        "No gap was detected, so no confidence is withheld."
    ),
}


@dataclass(frozen=True)
class ModerationResult:
    raw_confidence: float
    withheld: float
    retained: float
    moderated: float
    rationale: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rawConfidence": self.raw_confidence,
            "withheld": self.withheld,
            "retained": self.retained,
            "moderated": self.moderated,
            "rationale": self.rationale,
        }


def withholding(gap: GapSummary) -> float:
    """Share of confidence withheld for this gap, in [0, 1]."""
    if gap.type is GapType.ONTOLOGICAL:
        return ONTOLOGICAL_WITHHOLDING

    withheld = gap.distance * DISTANCE_FACTOR
    if not gap.bridgeable:
        withheld += UNBRIDGEABLE_INCREMENT
    withheld += TYPE_INCREMENT[gap.type]
    return min(max(withheld, 0.0), 1.0)


def _rationale(gap: GapSummary) -> str:
    status = "bridgeable" if gap.bridgeable else "unbridgeable"
    text = (
        f"Confidence moderated for {gap.type.value.lower()} gap "
        f"(distance: {gap.distance:.2f}, {status}). {_TYPE_RATIONALE[gap.type]}"
    )
    if not gap.bridgeable and gap.type is not GapType.ONTOLOGICAL:
        text += " The gap cannot be bridged by mediation alone, so restraint increases."
    return text


def moderate(raw_confidence: float, gap: GapSummary) -> ModerationResult:
    """Moderate raw_confidence by the gap. Raises InvalidInputError outside [0, 1]."""
    if not 0.0 <= raw_confidence <= 1.0:
        raise InvalidInputError("raw_confidence", raw_confidence, "in [0, 1]")

    withheld = withholding(gap)
    retained = 1 - withheld
    return ModerationResult(
        raw_confidence=raw_confidence,
        withheld=withheld,
        retained=retained,
        moderated=raw_confidence * retained,
        rationale=_rationale(gap),
    )


def moderation_permits(result: ModerationResult, threshold: float = 0.1) -> bool:
    """Whether enough confidence survives moderation to mediate at all."""
    return result.moderated >= threshold
