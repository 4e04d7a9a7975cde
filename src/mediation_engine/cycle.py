"""
Mediation Cycle

The orchestrator. One invocation drives a CycleState through an explicit
phase loop until it terminates:

    GENERATE -> ANALYZE -> DECIDE -> INTEGRATE -> ROUTE
        ^                                           |
        +---------------- CORRECT <-----------------+   (REDEMPTIVE with budget left)

GENERATE   call the generator only when no manifestation exists
ANALYZE    detect the gap when none is stored, moderate confidence when no
           moderation is stored; increments the cycle counter
DECIDE     classify into one of five modes; adjust the caller's posture for
           REDEMPTIVE and STEP_UP
INTEGRATE  fold the outcome into experiential memory, always
ROUTE      ONTOLOGICAL_BLOCK terminates; REDEMPTIVE corrects while attempts
           remain, otherwise terminates with exhaustion (or "correction
           disabled" when the budget is zero); everything else terminates.
           max_cycles is a backstop regardless of mode.
CORRECT    one correction attempt; the stored gap is cleared and any new
           content replaces the manifestation, then back to GENERATE

Failure semantics:
    - no generator and no manifestation: MissingCollaboratorError
    - generator raises or misses its deadline: CollaboratorFailureError /
      CollaboratorTimeoutError, the cycle aborts
    - transform raises or misses its deadline: recorded as a failed attempt
    - exhaustion is a terminal state, never an exception

Usage:
    state = CycleState(
        source=Source("What is the capital of France?", ground_truth={"capital": "Paris"}),
        manifestation=Manifestation("Berlin"),
        config=CycleConfig(max_correction_attempts=3),
    )
    state = await run_cycle(state, transform=provider.transform)
    print(state.decision.mode, state.termination_reason)
"""

import asyncio
import inspect
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union,
)

from mediation_engine.correction import (
    CorrectionResult,
    FailedMediation,
    TransformFunction,
    correct,
)
from mediation_engine.errors import (
    CollaboratorFailureError,
    CollaboratorTimeoutError,
    InvalidInputError,
    MediationError,
    MissingCollaboratorError,
)
from mediation_engine.events import (
    BaseEvent,
    CorrectionEvent,
    CycleEvent,
    DecisionEvent,
    EventLogger,
)
from mediation_engine.gap.detector import GapResult, GapType, detect_gap
from mediation_engine.memory import ExperientialMemory, create_memory, integrate
from mediation_engine.moderation import ModerationResult, moderate
from mediation_engine.modes import MediationDecision, MediationMode
from mediation_engine.policy import Classifier, decide, to_policy
from mediation_engine.posture import VerifierPosture, adjust_posture


DEFAULT_CONFIDENCE = 1.0
DEFAULT_COLLABORATOR_TIMEOUT = 30.0  # seconds per generator/transform call


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Phase(Enum):
    GENERATE = "generate"
    ANALYZE = "analyze"
    DECIDE = "decide"
    INTEGRATE = "integrate"
    ROUTE = "route"
    CORRECT = "correct"
    DONE = "done"


# =============================================================================
# State
# =============================================================================

@dataclass(frozen=True)
class Source:
    intent: str
    ground_truth: Optional[Dict[str, Any]] = None
    premises: Optional[List[str]] = None
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class Manifestation:
    content: str
    timestamp: datetime = field(default_factory=_now)


GeneratorFunction = Callable[[Source], Awaitable[str]]


@dataclass
class CycleConfig:
    max_cycles: int = 5
    max_correction_attempts: int = 3
    classifier: Classifier = Classifier.GAP_FIRST
    collaborator_timeout: Optional[float] = DEFAULT_COLLABORATOR_TIMEOUT

    def __post_init__(self):
        if self.max_cycles < 1:
            raise InvalidInputError("max_cycles", self.max_cycles, "at least 1")
        if self.max_correction_attempts < 0:
            raise InvalidInputError("max_correction_attempts", self.max_correction_attempts, "non-negative")
        if self.collaborator_timeout is not None and self.collaborator_timeout <= 0:
            raise InvalidInputError("collaborator_timeout", self.collaborator_timeout, "positive")


@dataclass
class CycleState:
    """
    The full mutable workflow record of one invocation.

    memory and posture are caller-owned: read them back after the run and
    persist them if the run should be remembered.
    """
    source: Source
    manifestation: Optional[Manifestation] = None
    config: CycleConfig = field(default_factory=CycleConfig)
    memory: ExperientialMemory = field(default_factory=create_memory)
    posture: Optional[VerifierPosture] = None

    cycle_number: int = 0
    gap: Optional[GapResult] = None
    moderation: Optional[ModerationResult] = None
    decision: Optional[MediationDecision] = None
    correction_attempts: int = 0
    terminated: bool = False
    termination_reason: Optional[str] = None

    decisions: List[MediationDecision] = field(default_factory=list)
    corrections: List[CorrectionResult] = field(default_factory=list)
    events: List[BaseEvent] = field(default_factory=list)

    @property
    def max_cycles(self) -> int:
        return self.config.max_cycles

    @property
    def max_correction_attempts(self) -> int:
        return self.config.max_correction_attempts

    @property
    def moderated_confidence(self) -> Optional[float]:
        return self.moderation.moderated if self.moderation else None

    @property
    def succeeded(self) -> bool:
        return (
            self.terminated
            and self.decision is not None
            and self.decision.mode in (MediationMode.DIRECT_ALLOW, MediationMode.KENOTIC)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycleNumber": self.cycle_number,
            "maxCycles": self.max_cycles,
            "intent": self.source.intent,
            "manifestation": self.manifestation.content if self.manifestation else None,
            "gap": self.gap.to_dict() if self.gap else None,
            "moderation": self.moderation.to_dict() if self.moderation else None,
            "decision": self.decision.to_dict() if self.decision else None,
            "policy": to_policy(self.decision.mode).value if self.decision else None,
            "correctionAttempts": self.correction_attempts,
            "maxCorrectionAttempts": self.max_correction_attempts,
            "terminated": self.terminated,
            "terminationReason": self.termination_reason,
            "decisionHistory": [d.mode.value for d in self.decisions],
            "corrections": [c.to_dict() for c in self.corrections],
        }


# =============================================================================
# Collaborators
# =============================================================================

async def call_collaborator(awaitable: Awaitable[Any], role: str, timeout: Optional[float]) -> Any:
    """Await an external call, translating its failures into mediation errors."""
    if timeout is None:
        try:
            return await awaitable
        except MediationError:
            raise
        except Exception as e:
            raise CollaboratorFailureError(role, e) from e

    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise CollaboratorTimeoutError(role, timeout) from e
    except MediationError:
        raise
    except Exception as e:
        raise CollaboratorFailureError(role, e) from e


# =============================================================================
# Phases
# =============================================================================

def _record(state: CycleState, logger: Optional[EventLogger], event: BaseEvent) -> None:
    state.events.append(event)
    if logger is not None:
        logger.emit(event)


async def _generate(state: CycleState, generator: Optional[GeneratorFunction]) -> None:
    if state.manifestation is not None:
        return
    if generator is None:
        raise MissingCollaboratorError("generator", "no manifestation was supplied")
    content = await call_collaborator(
        generator(state.source), "generator", state.config.collaborator_timeout
    )
    state.manifestation = Manifestation(content)


def _analyze(state: CycleState, confidence: float) -> None:
    if state.gap is None:
        source = state.source
        state.gap = detect_gap(
            source.intent,
            state.manifestation.content,
            premises=source.premises,
            ground_truth=source.ground_truth,
        )
        state.moderation = None
    # a caller may supply the gap alone
    if state.moderation is None:
        state.moderation = moderate(confidence, state.gap.summary())
    state.cycle_number += 1


def _decide(state: CycleState) -> MediationDecision:
    thresholds = state.posture.thresholds if state.posture is not None else None
    decision = decide(state.gap, state.moderation.moderated, state.config.classifier, thresholds)
    state.decision = decision
    state.decisions.append(decision)

    if state.posture is not None and decision.mode in (MediationMode.REDEMPTIVE, MediationMode.STEP_UP):
        state.posture = adjust_posture(state.posture, state.gap, decision.mode, state.cycle_number)
    return decision


def _integrate(state: CycleState) -> None:
    succeeded = state.decision.mode is not MediationMode.REDEMPTIVE
    state.memory = integrate(state.memory, succeeded, state.gap, state.decision.mode)


def _route(state: CycleState) -> Phase:
    """Pick the next phase, setting the termination fields when the run ends."""
    mode = state.decision.mode

    if mode is MediationMode.ONTOLOGICAL_BLOCK:
        if state.gap.dominant_type is GapType.ONTOLOGICAL:
            reason = (
                "Ontological boundary: categorical impossibility cannot be mediated. "
                "Correction was not attempted."
            )
        else:
            reason = "Blocked: unbridgeable gap at low confidence. Correction was not attempted."
        return _terminate(state, reason)

    if mode is MediationMode.REDEMPTIVE:
        if state.max_correction_attempts == 0:
            return _terminate(
                state,
                "Correction disabled: no correction was attempted. Deferring to a human.",
            )
        if state.correction_attempts >= state.max_correction_attempts:
            return _terminate(
                state,
                f"Correction exhausted: {state.correction_attempts} of "
                f"{state.max_correction_attempts} attempts failed. Deferring to a human.",
            )
        if state.cycle_number >= state.max_cycles:
            return _terminate(
                state,
                f"Maximum cycles reached: {state.max_cycles}. Correction stopped at the cycle "
                f"ceiling after {state.correction_attempts} of {state.max_correction_attempts} "
                f"attempts, gap unresolved.",
            )
        return Phase.CORRECT

    if mode is MediationMode.STEP_UP:
        return _terminate(state, f"Deferred to human: {state.decision.reason}")

    if state.correction_attempts:
        return _terminate(
            state,
            f"Successful mediation after {state.correction_attempts} correction attempt(s): gap bridged",
        )
    return _terminate(state, "Successful mediation: gap bridged")


def _terminate(state: CycleState, reason: str) -> Phase:
    state.terminated = True
    state.termination_reason = reason
    return Phase.DONE


async def _correct(
    state: CycleState,
    transform: Optional[TransformFunction],
    rng: random.Random,
    logger: Optional[EventLogger],
) -> None:
    failed = FailedMediation(
        gap=state.gap.summary(),
        reason=state.gap.reason,
        moderated_confidence=state.moderation.moderated,
    )
    result = await correct(
        failed,
        max_attempts=1,
        original_content=state.manifestation.content,
        transform=transform,
        rng=rng,
        first_attempt=state.correction_attempts + 1,
        timeout=state.config.collaborator_timeout,
    )
    state.correction_attempts += 1
    state.corrections.append(result)

    attempt = result.attempts[-1] if result.attempts else None
    _record(state, logger, CorrectionEvent(
        cycle_number=state.cycle_number,
        attempt_number=state.correction_attempts,
        strategy=attempt.strategy if attempt else "",
        succeeded=result.succeeded,
        final_state=result.final_state.value,
        error=attempt.error if attempt else None,
    ))

    if result.succeeded and result.transformation is not None:
        state.manifestation = Manifestation(result.transformation.target)
    state.gap = None
    state.moderation = None


# =============================================================================
# Entry points
# =============================================================================

async def run_cycle(
    state: CycleState,
    confidence: Optional[float] = None,
    generator: Optional[GeneratorFunction] = None,
    transform: Optional[TransformFunction] = None,
    rng: Optional[random.Random] = None,
    logger: Optional[EventLogger] = None,
) -> CycleState:
    """
    Drive state to termination and return it.

    confidence is the aggregate external signal in [0, 1] (1.0 when absent).
    rng seeds the correction fallback used when no transform is supplied.
    """
    confidence = DEFAULT_CONFIDENCE if confidence is None else confidence
    if not 0.0 <= confidence <= 1.0:
        raise InvalidInputError("confidence", confidence, "in [0, 1]")

    rng = rng or random.Random()
    phase = Phase.GENERATE

    while phase is not Phase.DONE:
        if phase is Phase.GENERATE:
            await _generate(state, generator)
            phase = Phase.ANALYZE

        elif phase is Phase.ANALYZE:
            _analyze(state, confidence)
            phase = Phase.DECIDE

        elif phase is Phase.DECIDE:
            decision = _decide(state)
            _record(state, logger, DecisionEvent(
                cycle_number=state.cycle_number,
                mode=decision.mode.value,
                policy=to_policy(decision.mode).value,
                confidence=state.moderation.moderated,
                human_required=decision.human_required,
                correctable=decision.correctable,
                reason=decision.reason,
            ))
            phase = Phase.INTEGRATE

        elif phase is Phase.INTEGRATE:
            _integrate(state)
            phase = Phase.ROUTE

        elif phase is Phase.ROUTE:
            phase = _route(state)
            _record(state, logger, CycleEvent(
                cycle_number=state.cycle_number,
                intent=state.source.intent,
                manifestation=state.manifestation.content,
                gap_type=state.gap.dominant_type.value,
                distance=state.gap.overall_distance,
                bridgeable=state.gap.bridgeable,
                raw_confidence=state.moderation.raw_confidence,
                moderated_confidence=state.moderation.moderated,
                terminated=state.terminated,
                termination_reason=state.termination_reason,
            ))

        elif phase is Phase.CORRECT:
            await _correct(state, transform, rng, logger)
            phase = Phase.GENERATE

    return state


CycleInput = Union[Source, Tuple[Source, Optional[str]]]
CycleCallback = Callable[[CycleState, int], Any]


async def circulate(
    inputs: Iterable[CycleInput],
    config: Optional[CycleConfig] = None,
    memory: Optional[ExperientialMemory] = None,
    posture: Optional[VerifierPosture] = None,
    confidence: Optional[float] = None,
    generator: Optional[GeneratorFunction] = None,
    transform: Optional[TransformFunction] = None,
    on_cycle: Optional[CycleCallback] = None,
    rng: Optional[random.Random] = None,
    logger: Optional[EventLogger] = None,
) -> List[CycleState]:
    """
    Run successive sources through cycles, threading memory and posture
    from one run into the next.

    Each input is a Source or a (Source, manifestation) pair. on_cycle may be
    sync or async and receives the finished state and its index. Circulation
    stops after the first run that hits an ontological boundary.
    """
    config = config or CycleConfig()
    memory = memory or create_memory()
    rng = rng or random.Random()
    states: List[CycleState] = []

    for index, item in enumerate(inputs):
        if isinstance(item, Source):
            source, content = item, None
        else:
            source, content = item

        state = CycleState(
            source=source,
            manifestation=Manifestation(content) if content is not None else None,
            config=config,
            memory=memory,
            posture=posture,
        )
        state = await run_cycle(state, confidence, generator, transform, rng, logger)
        states.append(state)
        memory = state.memory
        posture = state.posture

        if on_cycle is not None:
            outcome = on_cycle(state, index)
            if inspect.isawaitable(outcome):
                await outcome

        if state.gap is not None and state.gap.is_ontological:
            break

    return states
