"""
Experiential Memory

Distilled experience, not a log. Each mediated gap is reduced to a short
wisdom string and a fingerprint of characteristics; repeated fingerprints
collapse into one consolidated entry once more than three have been seen.

    integrate(memory, succeeded, gap, mode) -> memory'

    NONE gaps        only cycles_completed moves
    otherwise        distill -> append -> consolidate -> update receptivity

Receptivity:
    semantic/factual/logical: +0.05 on success, +0.02 on failure (cap 1.0)
    ontological: +0.1 whenever a boundary is recognized
    overall = 0.2*semantic + 0.2*factual + 0.2*logical + 0.4*ontological (cap 1.0)

Entries are never deleted; consolidation only merges.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from mediation_engine.gap.detector import GapResult, GapType
from mediation_engine.gap.factual import FactualCategory
from mediation_engine.gap.ontological import OntologicalCategory
from mediation_engine.modes import MediationMode


CONSOLIDATION_THRESHOLD = 3
MATURITY_THRESHOLD = 0.7

_RECEPTIVITY_WEIGHTS = {
    "semantic": 0.2,
    "factual": 0.2,
    "logical": 0.2,
    "ontological": 0.4,
}


# =============================================================================
# State
# =============================================================================

@dataclass
class GapPattern:
    type: GapType
    characteristics: List[str] = field(default_factory=list)

    def key(self) -> Tuple[str, Tuple[str, ...]]:
        return self.type.value, tuple(sorted(self.characteristics[:3]))


@dataclass
class DistilledExperience:
    pattern: GapPattern
    succeeded: bool
    wisdom: str
    mode: MediationMode
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    observations: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gapPattern": {
                "type": self.pattern.type.value,
                "characteristics": list(self.pattern.characteristics),
            },
            "succeeded": self.succeeded,
            "wisdom": self.wisdom,
            "timestamp": self.timestamp.isoformat(),
            "mode": self.mode.value,
            "observations": self.observations,
        }


@dataclass
class Receptivity:
    semantic: float = 0.5
    factual: float = 0.5
    logical: float = 0.5
    ontological: float = 0.5
    overall: float = 0.5

    def to_dict(self) -> Dict[str, float]:
        return {
            "semantic": self.semantic,
            "factual": self.factual,
            "logical": self.logical,
            "ontological": self.ontological,
            "overall": self.overall,
        }


@dataclass
class ExperientialMemory:
    distilled: List[DistilledExperience] = field(default_factory=list)
    receptivity: Receptivity = field(default_factory=Receptivity)
    cycles_completed: int = 0


def create_memory() -> ExperientialMemory:
    return ExperientialMemory()


# =============================================================================
# Distillation
# =============================================================================

def distill_wisdom(gap: GapResult, succeeded: bool, mode: MediationMode) -> str:
    kind = gap.dominant_type
    if kind is GapType.ONTOLOGICAL:
        return (
            f"Ontological boundary recognized: {gap.reason}. This gap cannot be mediated; "
            "it is a categorical impossibility for computational systems. Humility required."
        )
    if kind is GapType.SEMANTIC:
        if succeeded:
            return (
                f"Semantic gap bridged through {mode.value}: {gap.reason}. "
                "Meaning can be preserved through transformation."
            )
        return (
            f"Semantic gap persisted despite {mode.value}: {gap.reason}. "
            "Deeper reframing needed beyond current capacity."
        )
    if kind is GapType.FACTUAL:
        if succeeded:
            return f"Factual alignment achieved via {mode.value}: {gap.reason}. Truth can be restored through evidence."
        return f"Factual gap remained: {gap.reason}. Some claims cannot be verified without correction."
    if kind is GapType.LOGICAL:
        if succeeded:
            return f"Logical gap handled via {mode.value}: {gap.reason}. The inference pattern holds."
        return f"Logical gap persists: {gap.reason}. Some reasoning patterns resist transformation."
    return "Experience recorded, wisdom unclear. Further discernment needed."


def identify_characteristics(gap: GapResult) -> List[str]:
    """Fingerprint of a gap, drawn from the dominant dimension's sub-result."""
    characteristics: List[str] = []
    kind = gap.dominant_type

    if kind is GapType.SEMANTIC and gap.semantic is not None:
        drift = gap.semantic.conceptual.drift
        if drift:
            characteristics.append("conceptual_drift")
            characteristics.append("drift:" + drift.replace(" → ", "_to_"))
        for transformation in gap.semantic.transformations:
            characteristics.append(f"transformation:{transformation.kind}")

    elif kind is GapType.FACTUAL and gap.factual is not None:
        characteristics.append(f"factual:{gap.factual.category.value}")
        if gap.factual.category is FactualCategory.CONTRADICTORY:
            characteristics.append("contradiction_detected")

    elif kind is GapType.LOGICAL and gap.logical is not None:
        characteristics.append(f"logical:{gap.logical.category.value}")
        for fallacy in gap.logical.fallacies:
            characteristics.append(f"fallacy:{fallacy.type}")

    elif kind is GapType.ONTOLOGICAL and gap.ontological is not None:
        characteristics.append(f"ontological:{gap.ontological.category.value}")
        if gap.ontological.category is OntologicalCategory.CATEGORICAL:
            characteristics.append("category_error")

    return characteristics


# =============================================================================
# Consolidation
# =============================================================================

def _integrated_wisdom(group: List[DistilledExperience], observations: int) -> str:
    first = group[0]
    kind = first.pattern.type.value
    chars = ", ".join(first.pattern.characteristics)
    successes = sum(e.observations for e in group if e.succeeded)
    rate = successes / observations

    if rate > 0.7:
        return (
            f"{kind} gaps with pattern [{chars}] are consistently mediable through "
            f"{first.mode.value}. Pattern observed {observations} times."
        )
    if rate < 0.3:
        return (
            f"{kind} gaps with pattern [{chars}] consistently resist mediation via "
            f"{first.mode.value}. Observed {observations} times. Alternative approaches required."
        )
    return (
        f"{kind} gaps with pattern [{chars}] show context-dependent mediation "
        f"({round(rate * 100)}% success). Observed {observations} times."
    )


def consolidate(experiences: List[DistilledExperience]) -> List[DistilledExperience]:
    """
    Merge groups sharing (type, sorted first three characteristics).

    Groups of at most three observations stay verbatim. Larger groups collapse
    into one entry carrying the total observation count, the majority outcome,
    and the most recent timestamp and mode.
    """
    groups: Dict[Tuple[str, Tuple[str, ...]], List[DistilledExperience]] = {}
    for exp in experiences:
        groups.setdefault(exp.pattern.key(), []).append(exp)

    result: List[DistilledExperience] = []
    for group in groups.values():
        observations = sum(e.observations for e in group)
        if observations <= CONSOLIDATION_THRESHOLD or len(group) == 1:
            result.extend(group)
            continue

        successes = sum(e.observations for e in group if e.succeeded)
        latest = max(group, key=lambda e: e.timestamp)
        result.append(DistilledExperience(
            pattern=GapPattern(group[0].pattern.type, list(group[0].pattern.characteristics)),
            succeeded=successes > observations / 2,
            wisdom=_integrated_wisdom(group, observations),
            mode=latest.mode,
            timestamp=latest.timestamp,
            observations=observations,
        ))
    return result


def _update_receptivity(current: Receptivity, gap_type: GapType, succeeded: bool) -> Receptivity:
    updated = copy.copy(current)
    if gap_type is GapType.ONTOLOGICAL:
        updated.ontological = min(1.0, current.ontological + 0.1)
    elif gap_type is not GapType.NONE:
        name = gap_type.value.lower()
        step = 0.05 if succeeded else 0.02
        setattr(updated, name, min(1.0, getattr(current, name) + step))

    updated.overall = min(1.0, sum(
        getattr(updated, name) * weight for name, weight in _RECEPTIVITY_WEIGHTS.items()
    ))
    return updated


# =============================================================================
# Operations
# =============================================================================

def integrate(
    memory: ExperientialMemory,
    succeeded: bool,
    gap: GapResult,
    mode: MediationMode,
    now: Optional[datetime] = None,
) -> ExperientialMemory:
    """Fold one decided cycle into memory. Returns a new memory."""
    if gap.dominant_type is GapType.NONE:
        return ExperientialMemory(
            distilled=list(memory.distilled),
            receptivity=copy.copy(memory.receptivity),
            cycles_completed=memory.cycles_completed + 1,
        )

    experience = DistilledExperience(
        pattern=GapPattern(gap.dominant_type, identify_characteristics(gap)),
        succeeded=succeeded,
        wisdom=distill_wisdom(gap, succeeded, mode),
        mode=mode,
        timestamp=now or datetime.now(timezone.utc),
    )

    return ExperientialMemory(
        distilled=consolidate(memory.distilled + [experience]),
        receptivity=_update_receptivity(memory.receptivity, gap.dominant_type, succeeded),
        cycles_completed=memory.cycles_completed + 1,
    )


def recall_wisdom(memory: ExperientialMemory, gap: GapResult) -> List[DistilledExperience]:
    """Experiences of the same type sharing at least one characteristic with gap."""
    wanted = set(identify_characteristics(gap))
    return [
        exp for exp in memory.distilled
        if exp.pattern.type is gap.dominant_type
        and wanted.intersection(exp.pattern.characteristics)
    ]


def receptivity_for(memory: ExperientialMemory, gap_type: GapType) -> float:
    if gap_type is GapType.NONE:
        return memory.receptivity.overall
    return getattr(memory.receptivity, gap_type.value.lower())


def is_mature(memory: ExperientialMemory, threshold: float = MATURITY_THRESHOLD) -> bool:
    return memory.receptivity.overall >= threshold
