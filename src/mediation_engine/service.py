"""
Mediation Service - single-shot evaluation facade.

Evaluates one (source, manifestation) pair and returns a plain dict in the
shape an HTTP boundary would serve:

    {
      "decision": "ALLOW" | "BLOCK" | "STEP_UP",
      "confidence": 0.62,
      "gap": {"semantic", "factual", "logical", "ontological",
              "dominantType", "bridgeable", "overallDistance"},
      "mediation": {"type", "moderationApplied", "correctionAttempted"},
      "finalState": "original" | "redeemed" | "blocked",
      "timestamp": "..."
    }

Flow:
    signals -> raw confidence -> gap -> moderation -> smoothing (EWMA)
    unbridgeable with distance > 0.8       -> BLOCK, no correction
    otherwise classify against thresholds  -> mode -> policy decision
    BLOCK from a REDEMPTIVE mode           -> correction (when redemptive_mode)

The smoother belongs to the service instance; reset_history() restarts it.
"""

import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from mediation_engine.correction import (
    CorrectionResult,
    FailedMediation,
    TransformFunction,
    correct,
)
from mediation_engine.cycle import DEFAULT_COLLABORATOR_TIMEOUT, Manifestation, Source
from mediation_engine.errors import InvalidInputError
from mediation_engine.events import EvaluationEvent, EventLogger
from mediation_engine.gap.detector import GapResult, detect_gap
from mediation_engine.moderation import moderate
from mediation_engine.modes import MediationMode, PolicyDecision
from mediation_engine.policy import decide_threshold, to_policy
from mediation_engine.posture import PostureThresholds
from mediation_engine.signals import (
    ConfidenceSmoother,
    Signal,
    SignalInput,
    coerce_signals,
    signals_to_confidence,
)


DEFAULT_SIGNAL = Signal(name="submission", value=0.8, weight=1.0)
BLOCK_DISTANCE = 0.8


def _as_source(source: Union[Source, Mapping[str, Any], str]) -> Source:
    if isinstance(source, Source):
        return source
    if isinstance(source, str):
        return Source(intent=source)
    intent = source.get("intent")
    if not intent:
        raise InvalidInputError("source.intent", intent, "a non-empty string")
    return Source(
        intent=intent,
        ground_truth=source.get("groundTruth", source.get("ground_truth")),
        premises=source.get("premises"),
    )


def _as_manifestation(manifestation: Union[Manifestation, Mapping[str, Any], str]) -> Manifestation:
    if isinstance(manifestation, Manifestation):
        return manifestation
    if isinstance(manifestation, str):
        return Manifestation(content=manifestation)
    content = manifestation.get("content")
    if not content:
        raise InvalidInputError("manifestation.content", content, "a non-empty string")
    return Manifestation(content=content)


def gap_distances(gap: GapResult) -> Dict[str, Any]:
    """Per-dimension distances; dimensions that were not evaluated report 0.0."""
    return {
        "semantic": gap.semantic.distance if gap.semantic else 0.0,
        "factual": gap.factual.distance if gap.factual else 0.0,
        "logical": gap.logical.distance if gap.logical else 0.0,
        "ontological": 1.0 if gap.is_ontological else 0.0,
        "dominantType": gap.dominant_type.value,
        "bridgeable": gap.bridgeable,
        "overallDistance": gap.overall_distance,
    }


class MediationService:
    """
    Stateful evaluation facade.

    Holds policy defaults, the confidence smoother, an optional transform
    collaborator for corrections (bounded by collaborator_timeout), and an
    event logger.
    """

    def __init__(
        self,
        allow_threshold: float = 0.7,
        block_threshold: float = 0.3,
        redemptive_mode: bool = True,
        max_correction_attempts: int = 3,
        smoothing_factor: float = 0.3,
        collaborator_timeout: Optional[float] = DEFAULT_COLLABORATOR_TIMEOUT,
        transform: Optional[TransformFunction] = None,
        rng: Optional[random.Random] = None,
        logger: Optional[EventLogger] = None,
    ):
        self.policy = {
            "allowThreshold": allow_threshold,
            "blockThreshold": block_threshold,
            "redemptiveMode": redemptive_mode,
            "maxResurrectionAttempts": max_correction_attempts,
        }
        self.smoother = ConfidenceSmoother(alpha=smoothing_factor)
        if collaborator_timeout is not None and collaborator_timeout <= 0:
            raise InvalidInputError("collaborator_timeout", collaborator_timeout, "positive")
        self.transform = transform
        self.collaborator_timeout = collaborator_timeout
        self.rng = rng or random.Random()
        self.logger = logger or EventLogger()

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], **kwargs) -> "MediationService":
        return cls(
            redemptive_mode=settings.get("redemptive_mode", True),
            max_correction_attempts=settings.get("max_correction_attempts", 3),
            smoothing_factor=settings.get("smoothing_factor", 0.3),
            collaborator_timeout=settings.get("collaborator_timeout", DEFAULT_COLLABORATOR_TIMEOUT),
            **kwargs,
        )

    def _effective_policy(self, override: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        policy = {**self.policy, **(override or {})}
        for key in ("allowThreshold", "blockThreshold"):
            if not 0.0 <= policy[key] <= 1.0:
                raise InvalidInputError(f"policy.{key}", policy[key], "in [0, 1]")
        if policy["maxResurrectionAttempts"] < 0:
            raise InvalidInputError(
                "policy.maxResurrectionAttempts", policy["maxResurrectionAttempts"], "non-negative"
            )
        return policy

    async def evaluate(
        self,
        source: Union[Source, Mapping[str, Any], str],
        manifestation: Union[Manifestation, Mapping[str, Any], str],
        signals: Optional[Sequence[SignalInput]] = None,
        policy: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        src = _as_source(source)
        man = _as_manifestation(manifestation)
        effective = self._effective_policy(policy)
        signal_list: List[Signal] = coerce_signals(signals) if signals else [DEFAULT_SIGNAL]

        raw = signals_to_confidence(signal_list)
        gap = detect_gap(src.intent, man.content, premises=src.premises, ground_truth=src.ground_truth)
        moderation = moderate(raw, gap.summary())
        smoothed = self.smoother.update(moderation.moderated)

        correction: Optional[CorrectionResult] = None
        if not gap.bridgeable and gap.overall_distance > BLOCK_DISTANCE:
            mode = MediationMode.ONTOLOGICAL_BLOCK
            decision = PolicyDecision.BLOCK
            state = "blocked"
        else:
            thresholds = PostureThresholds(
                allow=effective["allowThreshold"], block=effective["blockThreshold"]
            )
            mode = decide_threshold(gap, smoothed, thresholds).mode
            decision = to_policy(mode)
            state = "original"

            if mode is MediationMode.ONTOLOGICAL_BLOCK:
                state = "blocked"
            elif mode is MediationMode.REDEMPTIVE and not effective["redemptiveMode"]:
                state = "blocked"
            elif mode is MediationMode.REDEMPTIVE:
                correction = await correct(
                    FailedMediation(gap=gap.summary(), reason=gap.reason, moderated_confidence=smoothed),
                    max_attempts=effective["maxResurrectionAttempts"],
                    original_content=man.content,
                    transform=self.transform,
                    rng=self.rng,
                    timeout=self.collaborator_timeout,
                )
                state = "redeemed" if correction.succeeded else "blocked"

        result = {
            "decision": decision.value,
            "confidence": smoothed,
            "gap": gap_distances(gap),
            "mediation": {
                "type": mode.value,
                "moderationApplied": moderation.withheld,
                "correctionAttempted": correction is not None,
            },
            "finalState": state,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if correction is not None and correction.transformation is not None:
            result["mediation"]["transformation"] = correction.transformation.to_dict()

        self.logger.emit(EvaluationEvent(
            decision=result["decision"],
            confidence=smoothed,
            gap_type=gap.dominant_type.value,
            distance=gap.overall_distance,
            correction_attempted=correction is not None,
            final_state=state,
        ))
        return result

    def reset_history(self) -> None:
        """Start a new session: forget the smoothed confidence."""
        self.smoother.reset()
