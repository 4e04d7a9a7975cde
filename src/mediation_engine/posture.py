"""
Adaptive Posture

The verifier's learned stance: how much each dimension weighs, and where the
allow/block thresholds sit. Each mediated gap nudges the weight of its
dimension upward in proportion to the distance; escalations to a human relax
the allow threshold so fewer future cases escalate.

Rules:
    ONTOLOGICAL gaps (and NONE) never adjust anything and leave no history
    weight[dim] = min(1, weight[dim] + distance * learning_rate)
    if any weight > 1: scale all weights so the maximum is exactly 1
    STEP_UP: thresholds.allow -= learning_rate * 0.5 (floor 0.5), own history record
    REDEMPTIVE never touches thresholds

All functions return a new VerifierPosture; the input is never mutated.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from mediation_engine.gap.detector import GapResult, GapType
from mediation_engine.modes import MediationMode


DIMENSION_FOR_GAP = {
    GapType.SEMANTIC: "semantic_coherence",
    GapType.FACTUAL: "grounding_factual",
    GapType.LOGICAL: "logical_consistency",
}

ALLOW_THRESHOLD_FLOOR = 0.5
THRESHOLD_DIMENSION = "threshold"


@dataclass
class PostureWeights:
    grounding_factual: float = 1.0
    semantic_coherence: float = 0.8
    logical_consistency: float = 0.7
    completeness: float = 0.6

    def as_dict(self) -> Dict[str, float]:
        return {
            "grounding_factual": self.grounding_factual,
            "semantic_coherence": self.semantic_coherence,
            "logical_consistency": self.logical_consistency,
            "completeness": self.completeness,
        }

    def max(self) -> float:
        return max(self.as_dict().values())


@dataclass
class PostureThresholds:
    allow: float = 0.7
    block: float = 0.3


@dataclass
class PostureAdjustment:
    cycle_number: int
    dimension: str
    old_value: float
    new_value: float
    delta: float
    reason: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycleNumber": self.cycle_number,
            "dimension": self.dimension,
            "oldValue": self.old_value,
            "newValue": self.new_value,
            "delta": self.delta,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class VerifierPosture:
    weights: PostureWeights = field(default_factory=PostureWeights)
    thresholds: PostureThresholds = field(default_factory=PostureThresholds)
    learning_rate: float = 0.1
    history: List[PostureAdjustment] = field(default_factory=list)


def default_posture() -> VerifierPosture:
    return VerifierPosture()


def normalize_weights(weights: PostureWeights) -> None:
    """Scale all weights down proportionally when any exceeds 1.0 (in place)."""
    highest = weights.max()
    if highest > 1.0:
        scale = 1.0 / highest
        weights.grounding_factual *= scale
        weights.semantic_coherence *= scale
        weights.logical_consistency *= scale
        weights.completeness *= scale


def adjust_posture(
    posture: VerifierPosture,
    gap: GapResult,
    mode: MediationMode,
    cycle_number: int,
) -> VerifierPosture:
    """Learn from one decided gap. Returns a new posture."""
    dimension = DIMENSION_FOR_GAP.get(gap.dominant_type)
    if dimension is None:
        return posture

    updated = copy.deepcopy(posture)
    severity = gap.overall_distance

    old_value = getattr(updated.weights, dimension)
    new_value = min(1.0, old_value + severity * posture.learning_rate)
    setattr(updated.weights, dimension, new_value)
    updated.history.append(PostureAdjustment(
        cycle_number=cycle_number,
        dimension=dimension,
        old_value=old_value,
        new_value=new_value,
        delta=new_value - old_value,
        reason=(
            f"{gap.dominant_type.value} gap detected (distance: {severity:.2f}). "
            f"Increasing {dimension} weight."
        ),
    ))

    normalize_weights(updated.weights)

    if mode is MediationMode.STEP_UP:
        old_allow = updated.thresholds.allow
        new_allow = max(ALLOW_THRESHOLD_FLOOR, old_allow - posture.learning_rate * 0.5)
        if new_allow != old_allow:
            updated.thresholds.allow = new_allow
            updated.history.append(PostureAdjustment(
                cycle_number=cycle_number,
                dimension=THRESHOLD_DIMENSION,
                old_value=old_allow,
                new_value=new_allow,
                delta=new_allow - old_allow,
                reason="Escalation to a human. Relaxing the allow threshold to reduce future escalations.",
            ))

    return updated


def weight_for_signal(name: str, posture: VerifierPosture) -> float:
    """Posture weight for a named confidence signal (0.5 when unrecognised)."""
    lower = name.lower()
    if "grounding" in lower or "factual" in lower:
        return posture.weights.grounding_factual
    if "semantic" in lower or "coherence" in lower:
        return posture.weights.semantic_coherence
    if "logical" in lower or "consistency" in lower:
        return posture.weights.logical_consistency
    if "complete" in lower:
        return posture.weights.completeness
    return 0.5


def summarize_posture_history(posture: VerifierPosture) -> str:
    if not posture.history:
        return "No adjustments yet. Posture remains at default."

    lines = [f"Posture History ({len(posture.history)} adjustments):", ""]
    for adj in posture.history:
        sign = "+" if adj.delta > 0 else ""
        lines.append(
            f"Cycle {adj.cycle_number}: {adj.dimension} "
            f"{adj.old_value:.3f} → {adj.new_value:.3f} (Δ {sign}{adj.delta:.3f})"
        )
        lines.append(f"  Reason: {adj.reason}")
        lines.append("")

    lines.append("Current Weights:")
    for name, value in posture.weights.as_dict().items():
        lines.append(f"  {name}: {value:.3f}")
    lines.append(
        f"Thresholds: allow {posture.thresholds.allow:.3f}, block {posture.thresholds.block:.3f}"
    )
    return "\n".join(lines)
