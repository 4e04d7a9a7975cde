"""
Verifier Reconciliation Tests
"""

import asyncio

import pytest

from mediation_engine.errors import CollaboratorFailureError
from mediation_engine.modes import PolicyDecision
from mediation_engine.reconcile import (
    Disagreement,
    VerifierVerdict,
    classify_disagreement,
    most_cautious,
    reconcile,
    run_parallel,
)

ALLOW = PolicyDecision.ALLOW
BLOCK = PolicyDecision.BLOCK
STEP_UP = PolicyDecision.STEP_UP


def test_agreement_passes_through():
    result = reconcile(VerifierVerdict(ALLOW, 0.9), VerifierVerdict(ALLOW, 0.4))
    assert result.agreement
    assert result.decision is ALLOW
    assert result.disagreement is None


def test_ontological_disagreement_steps_up():
    primary = VerifierVerdict(ALLOW, 0.9)
    secondary = VerifierVerdict(BLOCK, 0.05, gap_type="ONTOLOGICAL")
    result = reconcile(primary, secondary)
    assert result.disagreement is Disagreement.PHILOSOPHICAL
    assert result.decision is STEP_UP
    assert "human review" in result.explanation


def test_close_confidences_take_most_cautious():
    result = reconcile(VerifierVerdict(ALLOW, 0.70), VerifierVerdict(STEP_UP, 0.65))
    assert result.disagreement is Disagreement.THRESHOLD
    assert result.decision is STEP_UP


def test_technical_disagreement_prefers_gap_bearing_verifier():
    primary = VerifierVerdict(BLOCK, 0.2, rationale="signals low")
    secondary = VerifierVerdict(ALLOW, 0.9, rationale="no gap", gap_type="NONE")
    result = reconcile(primary, secondary)
    assert result.disagreement is Disagreement.TECHNICAL
    assert result.decision is ALLOW
    assert '"signals low"' in result.explanation


def test_technical_disagreement_without_gaps_is_cautious():
    result = reconcile(VerifierVerdict(ALLOW, 0.9), VerifierVerdict(BLOCK, 0.2))
    assert result.decision is BLOCK


def test_most_cautious_order():
    assert most_cautious(ALLOW, BLOCK) is BLOCK
    assert most_cautious(STEP_UP, ALLOW) is STEP_UP
    assert most_cautious(ALLOW, ALLOW) is ALLOW


def test_classify_prefers_philosophical():
    a = VerifierVerdict(ALLOW, 0.5, gap_type="ONTOLOGICAL")
    b = VerifierVerdict(BLOCK, 0.5)
    assert classify_disagreement(a, b) is Disagreement.PHILOSOPHICAL


def test_verdict_from_service_result():
    verdict = VerifierVerdict.from_evaluation(
        {"decision": "STEP_UP", "confidence": 0.5, "gap": {"dominantType": "SEMANTIC"}},
        rationale="facade",
    )
    assert verdict.decision is STEP_UP
    assert verdict.gap_type == "SEMANTIC"
    assert reconcile(verdict, VerifierVerdict(ALLOW, 0.55)).to_dict()["disagreement"] == "THRESHOLD"


# =============================================================================
# Parallel execution
# =============================================================================

def test_run_parallel_runs_verifiers_concurrently():
    secondary_started = asyncio.Event()

    async def primary(content):
        # only completes if the secondary is running at the same time
        await asyncio.wait_for(secondary_started.wait(), 1.0)
        return VerifierVerdict(ALLOW, 0.9, rationale="signals high")

    async def secondary(content):
        secondary_started.set()
        return VerifierVerdict(ALLOW, 0.8)

    result = asyncio.run(run_parallel(primary, secondary, "The sky is blue."))
    assert result.reconciliation.agreement
    assert result.decision is ALLOW
    assert result.primary.rationale == "signals high"


def test_run_parallel_accepts_service_evaluation():
    from mediation_engine.service import MediationService

    service = MediationService()

    async def primary(content):
        return VerifierVerdict(ALLOW, 0.9)

    async def secondary(content):
        return await service.evaluate(content, "Yes")

    result = asyncio.run(run_parallel(primary, secondary, "Can AI feel pain?"))
    assert result.secondary.gap_type == "ONTOLOGICAL"
    assert result.reconciliation.disagreement is Disagreement.PHILOSOPHICAL
    assert result.decision is STEP_UP
    assert result.to_dict()["secondary"]["decision"] == "BLOCK"


def test_run_parallel_reports_failing_verifier():
    async def primary(content):
        raise RuntimeError("verifier offline")

    async def secondary(content):
        return VerifierVerdict(ALLOW, 0.8)

    with pytest.raises(CollaboratorFailureError) as exc:
        asyncio.run(run_parallel(primary, secondary, "The sky is blue."))
    assert exc.value.role == "primary verifier"
    assert isinstance(exc.value.cause, RuntimeError)
