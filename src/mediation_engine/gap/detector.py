"""
Gap Detector - four-dimensional discrepancy between intent and expression.

    detect_gap(intent, expression, premises=None, ground_truth=None) -> GapResult

Order of evaluation:
    1. ontological  (short-circuits: distance 1.0, unbridgeable)
    2. semantic     (always)
    3. factual      (only with ground_truth)
    4. logical      (only with premises)

overall_distance is the mean over the dimensions actually evaluated.
bridgeable is the AND of their bridgeability.
The dominant type is the single highest distance, ties going to the
earlier dimension; a gap with no positive distance is NONE.

This is a total function: no hidden state, no randomness, no exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from mediation_engine.gap.factual import FactualGap, detect_factual_gap
from mediation_engine.gap.logical import LogicalGap, detect_logical_gap
from mediation_engine.gap.ontological import OntologicalGap, detect_ontological_gap
from mediation_engine.gap.semantic import SemanticGap, detect_semantic_gap


class GapType(Enum):
    SEMANTIC = "SEMANTIC"
    FACTUAL = "FACTUAL"
    LOGICAL = "LOGICAL"
    ONTOLOGICAL = "ONTOLOGICAL"
    NONE = "NONE"


GapDetail = Union[SemanticGap, FactualGap, LogicalGap, OntologicalGap]

NO_GAP_REASON = "No significant gaps detected"


@dataclass
class GapResult:
    overall_distance: float
    bridgeable: bool
    dominant_type: GapType
    reason: str
    semantic: Optional[SemanticGap] = None
    factual: Optional[FactualGap] = None
    logical: Optional[LogicalGap] = None
    ontological: Optional[OntologicalGap] = None

    @property
    def detail(self) -> Optional[GapDetail]:
        """The sub-result of the dominant dimension (None for NONE)."""
        return {
            GapType.SEMANTIC: self.semantic,
            GapType.FACTUAL: self.factual,
            GapType.LOGICAL: self.logical,
            GapType.ONTOLOGICAL: self.ontological,
            GapType.NONE: None,
        }[self.dominant_type]

    @property
    def is_ontological(self) -> bool:
        return self.dominant_type is GapType.ONTOLOGICAL

    def summary(self) -> "GapSummary":
        return GapSummary(
            distance=self.overall_distance,
            type=self.dominant_type,
            bridgeable=self.bridgeable,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "semantic": self.semantic.to_dict() if self.semantic else None,
            "factual": self.factual.to_dict() if self.factual else None,
            "logical": self.logical.to_dict() if self.logical else None,
            "ontological": self.ontological.to_dict() if self.ontological else None,
            "overallDistance": self.overall_distance,
            "bridgeable": self.bridgeable,
            "dominantType": self.dominant_type.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class GapSummary:
    """The three numbers Moderation and Correction consume."""
    distance: float
    type: GapType
    bridgeable: bool


def describe_gap(dominant_type: GapType, distance: float, bridgeable: bool) -> str:
    if dominant_type is GapType.NONE:
        return NO_GAP_REASON
    if distance < 0.3:
        severity = "small"
    elif distance < 0.7:
        severity = "moderate"
    else:
        severity = "large"
    status = "bridgeable" if bridgeable else "unbridgeable"
    return f"{severity} {dominant_type.value.lower()} gap (distance: {distance:.2f}, {status})"


def detect_gap(
    intent: str,
    expression: str,
    premises: Optional[Sequence[str]] = None,
    ground_truth: Optional[Mapping[str, Any]] = None,
) -> GapResult:
    """Measure the gap between intent and expression."""
    ontological = detect_ontological_gap(intent, expression)
    if ontological is not None:
        return GapResult(
            overall_distance=1.0,
            bridgeable=False,
            dominant_type=GapType.ONTOLOGICAL,
            reason=ontological.reason,
            ontological=ontological,
        )

    semantic = detect_semantic_gap(intent, expression)
    factual = (
        detect_factual_gap(ground_truth, expression, question=intent)
        if ground_truth is not None else None
    )
    logical = detect_logical_gap(premises, expression) if premises is not None else None

    evaluated: List[tuple] = [
        (GapType.SEMANTIC, semantic),
        (GapType.FACTUAL, factual),
        (GapType.LOGICAL, logical),
    ]
    evaluated = [(kind, gap) for kind, gap in evaluated if gap is not None]

    overall = sum(gap.distance for _, gap in evaluated) / len(evaluated)

    dominant = GapType.NONE
    highest = 0.0
    for kind, gap in evaluated:
        if gap.distance > highest:
            highest = gap.distance
            dominant = kind

    bridgeable = all(gap.bridgeable for _, gap in evaluated)

    return GapResult(
        overall_distance=overall,
        bridgeable=bridgeable,
        dominant_type=dominant,
        reason=describe_gap(dominant, highest, bridgeable),
        semantic=semantic,
        factual=factual,
        logical=logical,
    )
