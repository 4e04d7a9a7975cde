"""
Confidence Signals

External confidence arrives as named signals in [-1, 1], each with a weight.
They are folded into one raw confidence in [0, 1] before moderation.

    aggregate_signals       weighted mean in [-1, 1] (0 when empty)
    signals_to_confidence   (aggregate + 1) / 2, or 0.5 with no signals
    adaptive_confidence     same, weighted by the verifier's posture instead

ConfidenceSmoother is the historical EWMA. It belongs to whoever owns it
(a service instance, a test); there is no module-level smoothing state.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Union

from mediation_engine.errors import InvalidInputError
from mediation_engine.posture import VerifierPosture, weight_for_signal


NEUTRAL_CONFIDENCE = 0.5


@dataclass(frozen=True)
class Signal:
    name: str
    value: float
    weight: float = 1.0

    def __post_init__(self):
        if not -1.0 <= self.value <= 1.0:
            raise InvalidInputError(f"signal {self.name!r} value", self.value, "in [-1, 1]")
        if self.weight < 0:
            raise InvalidInputError(f"signal {self.name!r} weight", self.weight, "non-negative")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Signal":
        return cls(
            name=str(data.get("name", "signal")),
            value=float(data["value"]),
            weight=float(data.get("weight", 1.0)),
        )


SignalInput = Union[Signal, Mapping[str, Any]]


def coerce_signals(signals: Iterable[SignalInput]) -> List[Signal]:
    return [s if isinstance(s, Signal) else Signal.from_dict(s) for s in signals]


def aggregate_signals(signals: Sequence[Signal]) -> float:
    total_weight = sum(s.weight for s in signals)
    if not signals or total_weight == 0:
        return 0.0
    return sum(s.value * s.weight for s in signals) / total_weight


def signals_to_confidence(signals: Sequence[Signal]) -> float:
    if not signals:
        return NEUTRAL_CONFIDENCE
    return (aggregate_signals(signals) + 1.0) / 2.0


def adaptive_confidence(signals: Sequence[Signal], posture: VerifierPosture) -> float:
    """Confidence with each signal weighted by the posture weight its name maps to."""
    if not signals:
        return NEUTRAL_CONFIDENCE
    weights = [weight_for_signal(s.name, posture) for s in signals]
    total = sum(weights)
    if total == 0:
        return NEUTRAL_CONFIDENCE
    mean = sum(s.value * w for s, w in zip(signals, weights)) / total
    return (mean + 1.0) / 2.0


@dataclass
class ConfidenceSmoother:
    """Exponentially weighted moving average of past confidences."""
    alpha: float = 0.3
    value: float = NEUTRAL_CONFIDENCE
    initial: float = NEUTRAL_CONFIDENCE
    updates: int = 0

    def update(self, confidence: float) -> float:
        self.value = self.alpha * confidence + (1 - self.alpha) * self.value
        self.updates += 1
        return self.value

    def reset(self) -> None:
        self.value = self.initial
        self.updates = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"alpha": self.alpha, "value": self.value, "updates": self.updates}
