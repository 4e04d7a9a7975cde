"""
Correction Protocol

Turns a failed mediation into a bounded series of transformation attempts.
Correction is not a retry: every attempt carries the learnings extracted
from the failure and uses the next strategy in a fixed per-type list.

Per attempt i (1-based):
    1. extract learnings (gap type/distance, bridgeability, prior attempts)
    2. select strategy STRATEGIES[type][(i - 1) % len]
    3. apply:
         ONTOLOGICAL                      -> fail, nothing attempted
         unbridgeable and distance > 0.8  -> fail, nothing attempted
         transform supplied               -> success iff output differs and is non-empty
                                             (a raising or timed-out transform is a failed attempt)
         no transform                     -> success with probability 1 - distance

Outcomes:
    max_attempts == 0     -> ORIGINAL, no attempts
    first success         -> TRANSFORMED with {from, to, how, preserves}
    all attempts failed   -> ABANDONED

Beyond len(strategies) attempts the strategy text repeats; each attempt is
still recorded separately.

Usage:
    result = await correct(
        FailedMediation(gap=gap.summary(), reason=gap.reason, moderated_confidence=0.2),
        max_attempts=3,
        original_content="Berlin",
        transform=provider.transform,
    )
"""

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mediation_engine.errors import InvalidInputError
from mediation_engine.gap.detector import GapSummary, GapType


TransformFunction = Callable[[str, str], Awaitable[str]]

STRATEGIES: Dict[GapType, List[str]] = {
    GapType.FACTUAL: [
        "correct factual errors with ground truth evidence",
        "cross-reference multiple evidence sources",
        "verify against authoritative evidence sources",
    ],
    GapType.SEMANTIC: [
        "reframe using different conceptual vocabulary",
        "transform expression while preserving intent",
        "bridge semantic gap through analogy",
    ],
    GapType.LOGICAL: [
        "transform reasoning chain from valid premises",
        "improve reasoning by eliminating logical fallacies",
        "build new argument with sound inference",
    ],
    GapType.ONTOLOGICAL: [
        "acknowledge categorical impossibility",
        "redirect to appropriate ontological category",
        "accept limitation and defer to human judgment",
    ],
}
GENERIC_STRATEGY = "generic transformation"

PRESERVES = ["core intent", "essential meaning"]


class CorrectionState(Enum):
    ORIGINAL = "original"
    TRANSFORMED = "transformed"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class FailedMediation:
    """What the Correction Protocol is asked to repair."""
    gap: GapSummary
    reason: str
    moderated_confidence: float


@dataclass
class CorrectionAttempt:
    attempt_number: int
    strategy: str
    learnings: List[str]
    outcome: str
    succeeded: bool = False
    content: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attemptNumber": self.attempt_number,
            "strategy": self.strategy,
            "learnings": list(self.learnings),
            "outcome": self.outcome,
            "succeeded": self.succeeded,
            "error": self.error,
        }


@dataclass
class ContentTransformation:
    source: str
    target: str
    how: str
    preserves: List[str] = field(default_factory=lambda: list(PRESERVES))

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.source, "to": self.target, "how": self.how, "preserves": list(self.preserves)}


@dataclass
class CorrectionResult:
    succeeded: bool
    final_state: CorrectionState
    attempts: List[CorrectionAttempt] = field(default_factory=list)
    transformation: Optional[ContentTransformation] = None
    learnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "finalState": self.final_state.value,
            "attempts": [a.to_dict() for a in self.attempts],
            "transformation": self.transformation.to_dict() if self.transformation else None,
            "learnings": list(self.learnings),
        }


# =============================================================================
# Steps
# =============================================================================

def extract_learnings(failed: FailedMediation, attempt_number: int) -> List[str]:
    gap = failed.gap
    learnings = [f"Gap type is {gap.type.value}, distance {gap.distance:.2f}"]
    if not gap.bridgeable:
        learnings.append("Gap is unbridgeable; transformation may not be possible")
    if gap.type is GapType.ONTOLOGICAL:
        learnings.append("Ontological impossibility detected; the categorical boundary cannot be crossed")
    if failed.moderated_confidence < 0.2:
        learnings.append("Very low confidence; fundamental issues present")
    if attempt_number > 1:
        learnings.append(f"Previous {attempt_number - 1} attempt(s) failed; a new approach is needed")
    return learnings


def select_strategy(gap_type: GapType, attempt_number: int) -> str:
    strategies = STRATEGIES.get(gap_type)
    if not strategies:
        return GENERIC_STRATEGY
    return strategies[(attempt_number - 1) % len(strategies)]


async def _apply(
    strategy: str,
    failed: FailedMediation,
    original_content: str,
    transform: Optional[TransformFunction],
    rng: random.Random,
    timeout: Optional[float],
) -> CorrectionAttempt:
    gap = failed.gap
    attempt = CorrectionAttempt(attempt_number=0, strategy=strategy, learnings=[], outcome="")

    if gap.type is GapType.ONTOLOGICAL:
        attempt.outcome = "Ontological barrier remains; correction is impossible by construction"
        return attempt

    if not gap.bridgeable and gap.distance > 0.8:
        attempt.outcome = "Gap too large to bridge even with transformation"
        return attempt

    if transform is not None:
        try:
            if timeout is not None:
                content = await asyncio.wait_for(transform(original_content, strategy), timeout)
            else:
                content = await transform(original_content, strategy)
        except Exception as e:
            if timeout is not None and isinstance(e, asyncio.TimeoutError):
                attempt.error = f"transform exceeded its {timeout:.1f}s deadline"
            else:
                attempt.error = f"{type(e).__name__}: {e}"
            attempt.outcome = f"Transformation failed: {attempt.error}"
            return attempt

        if content and content != original_content:
            attempt.succeeded = True
            attempt.content = content
            attempt.outcome = f'Applied "{strategy}" to bridge {gap.type.value} gap'
        else:
            attempt.outcome = f'Attempted "{strategy}" but transformation produced no change'
        return attempt

    if rng.random() < 1 - gap.distance:
        attempt.succeeded = True
        attempt.content = original_content
        attempt.outcome = f'Applied "{strategy}" to bridge {gap.type.value} gap'
    else:
        attempt.outcome = f'Attempted "{strategy}" but gap remains'
    return attempt


# =============================================================================
# Protocol
# =============================================================================

async def correct(
    failed: FailedMediation,
    max_attempts: int,
    original_content: str = "",
    transform: Optional[TransformFunction] = None,
    rng: Optional[random.Random] = None,
    first_attempt: int = 1,
    timeout: Optional[float] = None,
) -> CorrectionResult:
    """
    Run up to max_attempts correction attempts.

    first_attempt offsets the attempt numbering (and so the strategy rotation)
    when a caller spreads attempts over several invocations.
    rng is the randomness source for the no-transform fallback; pass a seeded
    random.Random for reproducible runs.
    """
    if max_attempts < 0:
        raise InvalidInputError("max_attempts", max_attempts, "a non-negative integer")
    if max_attempts == 0:
        return CorrectionResult(succeeded=False, final_state=CorrectionState.ORIGINAL)

    rng = rng or random.Random()
    attempts: List[CorrectionAttempt] = []
    learnings: List[str] = []

    for number in range(first_attempt, first_attempt + max_attempts):
        attempt_learnings = extract_learnings(failed, number)
        strategy = select_strategy(failed.gap.type, number)

        attempt = await _apply(strategy, failed, original_content, transform, rng, timeout)
        attempt.attempt_number = number
        attempt.learnings = attempt_learnings

        attempts.append(attempt)
        learnings.extend(attempt_learnings)

        if attempt.succeeded:
            return CorrectionResult(
                succeeded=True,
                final_state=CorrectionState.TRANSFORMED,
                attempts=attempts,
                transformation=ContentTransformation(
                    source=original_content or failed.reason,
                    target=attempt.content if attempt.content is not None else original_content,
                    how=strategy,
                ),
                learnings=learnings,
            )

        if failed.gap.type is GapType.ONTOLOGICAL and number == first_attempt:
            learnings.append("Ontological gaps are categorical impossibilities and cannot be corrected")

    return CorrectionResult(
        succeeded=False,
        final_state=CorrectionState.ABANDONED,
        attempts=attempts,
        learnings=learnings,
    )
