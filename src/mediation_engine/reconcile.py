"""
Reconciliation of two independent verifiers.

When a signal-based verifier and a gap-based verifier evaluate the same
content they may disagree. The disagreement is classified and resolved:

    PHILOSOPHICAL   either side saw an ontological gap     -> STEP_UP
    THRESHOLD       confidences within 0.1 of each other   -> most cautious decision
    TECHNICAL       otherwise                              -> the gap-bearing verifier's
                                                              decision, else most cautious

Caution order: BLOCK > STEP_UP > ALLOW.

Confidences are never averaged; both verdicts and their rationales are kept.
run_parallel() runs the two verifiers concurrently and reconciles them.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from mediation_engine.cycle import DEFAULT_COLLABORATOR_TIMEOUT, call_collaborator
from mediation_engine.modes import PolicyDecision


THRESHOLD_CONFIDENCE_DIFF = 0.1


class Disagreement(Enum):
    PHILOSOPHICAL = "PHILOSOPHICAL"
    THRESHOLD = "THRESHOLD"
    TECHNICAL = "TECHNICAL"


@dataclass(frozen=True)
class VerifierVerdict:
    """One verifier's output, reduced to what reconciliation reads."""
    decision: PolicyDecision
    confidence: float
    rationale: str = ""
    gap_type: Optional[str] = None

    @property
    def saw_ontological(self) -> bool:
        return self.gap_type == "ONTOLOGICAL"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decision": self.decision.value,
            "confidence": self.confidence,
            "rationale": self.rationale,
            "gapType": self.gap_type,
        }

    @classmethod
    def from_evaluation(cls, result: Mapping[str, Any], rationale: str = "") -> "VerifierVerdict":
        """Build from a MediationService.evaluate() response."""
        gap = result.get("gap") or {}
        return cls(
            decision=PolicyDecision(result["decision"]),
            confidence=float(result["confidence"]),
            rationale=rationale,
            gap_type=gap.get("dominantType"),
        )


@dataclass(frozen=True)
class Reconciliation:
    agreement: bool
    decision: PolicyDecision
    disagreement: Optional[Disagreement] = None
    explanation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agreement": self.agreement,
            "decision": self.decision.value,
            "disagreement": self.disagreement.value if self.disagreement else None,
            "explanation": self.explanation,
        }


def most_cautious(a: PolicyDecision, b: PolicyDecision) -> PolicyDecision:
    if PolicyDecision.BLOCK in (a, b):
        return PolicyDecision.BLOCK
    if PolicyDecision.STEP_UP in (a, b):
        return PolicyDecision.STEP_UP
    return PolicyDecision.ALLOW


def classify_disagreement(primary: VerifierVerdict, secondary: VerifierVerdict) -> Disagreement:
    if primary.saw_ontological or secondary.saw_ontological:
        return Disagreement.PHILOSOPHICAL
    if abs(primary.confidence - secondary.confidence) < THRESHOLD_CONFIDENCE_DIFF:
        return Disagreement.THRESHOLD
    return Disagreement.TECHNICAL


def _explain(kind: Disagreement, primary: VerifierVerdict, secondary: VerifierVerdict) -> str:
    if kind is Disagreement.PHILOSOPHICAL:
        return (
            "An ontological gap was identified by one verifier and not the other. "
            "The question touches categorical limits and needs human review."
        )
    if kind is Disagreement.THRESHOLD:
        return (
            f"Primary decided {primary.decision.value} (confidence {primary.confidence:.2f}), "
            f"secondary decided {secondary.decision.value} (confidence {secondary.confidence:.2f}). "
            "Confidences are close, so this is a borderline case."
        )
    return (
        f"Primary sees {primary.decision.value}, secondary sees {secondary.decision.value}. "
        f'Primary: "{primary.rationale}". Secondary: "{secondary.rationale}".'
    )


def reconcile(primary: VerifierVerdict, secondary: VerifierVerdict) -> Reconciliation:
    if primary.decision is secondary.decision:
        return Reconciliation(agreement=True, decision=primary.decision)

    kind = classify_disagreement(primary, secondary)
    if kind is Disagreement.PHILOSOPHICAL:
        decision = PolicyDecision.STEP_UP
    elif kind is Disagreement.THRESHOLD:
        decision = most_cautious(primary.decision, secondary.decision)
    elif secondary.gap_type:
        decision = secondary.decision
    elif primary.gap_type:
        decision = primary.decision
    else:
        decision = most_cautious(primary.decision, secondary.decision)

    return Reconciliation(
        agreement=False,
        decision=decision,
        disagreement=kind,
        explanation=_explain(kind, primary, secondary),
    )


# =============================================================================
# Parallel execution
# =============================================================================

VerifierResult = Union[VerifierVerdict, Mapping[str, Any]]
VerifierFunction = Callable[[str], Awaitable[VerifierResult]]


@dataclass(frozen=True)
class ParallelResult:
    primary: VerifierVerdict
    secondary: VerifierVerdict
    reconciliation: Reconciliation

    @property
    def decision(self) -> PolicyDecision:
        return self.reconciliation.decision

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary.to_dict(),
            "secondary": self.secondary.to_dict(),
            **self.reconciliation.to_dict(),
        }


def _as_verdict(result: VerifierResult) -> VerifierVerdict:
    if isinstance(result, VerifierVerdict):
        return result
    return VerifierVerdict.from_evaluation(result, rationale=result.get("rationale", ""))


async def run_parallel(
    primary: VerifierFunction,
    secondary: VerifierFunction,
    content: str,
    timeout: Optional[float] = DEFAULT_COLLABORATOR_TIMEOUT,
) -> ParallelResult:
    """
    Run both verifiers on content concurrently, then reconcile.

    Each verifier may return a VerifierVerdict or a MediationService.evaluate()
    response. Either verifier failing or missing its deadline raises
    CollaboratorFailureError / CollaboratorTimeoutError.
    """
    first, second = await asyncio.gather(
        call_collaborator(primary(content), "primary verifier", timeout),
        call_collaborator(secondary(content), "secondary verifier", timeout),
    )
    primary_verdict = _as_verdict(first)
    secondary_verdict = _as_verdict(second)
    return ParallelResult(
        primary=primary_verdict,
        secondary=secondary_verdict,
        reconciliation=reconcile(primary_verdict, secondary_verdict),
    )
