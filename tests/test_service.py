"""
Mediation Service Tests

The single-shot facade: signals in, a wire-shaped decision out.
"""

import asyncio
import random

import pytest

from mediation_engine.config_loader import load_service_settings
from mediation_engine.errors import InvalidInputError
from mediation_engine.events import EventLogger, EventType
from mediation_engine.service import MediationService, gap_distances
from mediation_engine.signals import Signal


CAPITAL = {"intent": "What is the capital of France?", "groundTruth": {"capital": "Paris"}}


def _service(**kwargs):
    kwargs.setdefault("smoothing_factor", 1.0)
    kwargs.setdefault("rng", random.Random(0))
    return MediationService(**kwargs)


def _evaluate(service, source, manifestation, **kwargs):
    return asyncio.run(service.evaluate(source, manifestation, **kwargs))


def test_exact_answer_is_allowed():
    result = _evaluate(_service(), "What is 2+2?", "4", signals=[Signal("grounding", 1.0)])
    assert result["decision"] == "ALLOW"
    assert result["confidence"] == pytest.approx(1.0)
    assert result["finalState"] == "original"
    assert result["mediation"] == {
        "type": "DIRECT_ALLOW",
        "moderationApplied": 0.0,
        "correctionAttempted": False,
    }
    assert result["gap"]["dominantType"] == "NONE"


def test_default_signal_applies_without_signals():
    result = _evaluate(_service(), "What is 2+2?", "4")
    assert result["confidence"] == pytest.approx(0.9)


def test_ontological_gap_blocks_early():
    result = _evaluate(_service(), "Can AI feel pain?", "Yes")
    assert result["decision"] == "BLOCK"
    assert result["finalState"] == "blocked"
    assert result["mediation"]["type"] == "ONTOLOGICAL_BLOCK"
    assert result["mediation"]["correctionAttempted"] is False
    assert result["gap"]["ontological"] == 1.0


def test_wrong_fact_is_redeemed_by_transform():
    async def transform(content, strategy):
        return "Paris"

    result = _evaluate(_service(transform=transform), CAPITAL, {"content": "Berlin"}, signals=[Signal("s", 1.0)])
    assert result["decision"] == "BLOCK"
    assert result["mediation"]["type"] == "REDEMPTIVE"
    assert result["mediation"]["correctionAttempted"] is True
    assert result["finalState"] == "redeemed"
    assert result["mediation"]["transformation"]["to"] == "Paris"


def test_redemptive_mode_off_blocks():
    result = _evaluate(
        _service(), CAPITAL, "Berlin",
        signals=[Signal("s", 1.0)],
        policy={"redemptiveMode": False},
    )
    assert result["mediation"]["type"] == "REDEMPTIVE"
    assert result["mediation"]["correctionAttempted"] is False
    assert result["finalState"] == "blocked"


def test_zero_correction_budget_blocks():
    result = _evaluate(
        _service(), CAPITAL, "Berlin",
        signals=[Signal("s", 1.0)],
        policy={"maxResurrectionAttempts": 0},
    )
    assert result["mediation"]["correctionAttempted"] is True
    assert result["finalState"] == "blocked"


def test_smoothing_carries_across_calls():
    service = MediationService(smoothing_factor=0.3)
    first = _evaluate(service, "What is 2+2?", "4")
    assert first["confidence"] == pytest.approx(0.62)
    assert first["decision"] == "STEP_UP"

    second = _evaluate(service, "What is 2+2?", "4")
    assert second["confidence"] > first["confidence"]

    service.reset_history()
    assert _evaluate(service, "What is 2+2?", "4")["confidence"] == pytest.approx(0.62)


def test_invalid_policy_rejected():
    with pytest.raises(InvalidInputError):
        _evaluate(_service(), "What is 2+2?", "4", policy={"allowThreshold": 1.5})


def test_invalid_source_rejected():
    with pytest.raises(InvalidInputError):
        _evaluate(_service(), {"intent": ""}, "4")
    with pytest.raises(InvalidInputError):
        _evaluate(_service(), "What is 2+2?", {"content": ""})


def test_evaluation_event_emitted():
    logger = EventLogger()
    _evaluate(_service(logger=logger), "Can AI feel pain?", "Yes")
    events = logger.get_events(EventType.EVALUATION)
    assert len(events) == 1
    assert events[0].final_state == "blocked"
    assert events[0].gap_type == "ONTOLOGICAL"


def test_service_from_settings(tmp_path):
    settings = load_service_settings(tmp_path / "absent.json")
    service = MediationService.from_settings(settings)
    assert service.smoother.alpha == 0.3
    assert service.policy["maxResurrectionAttempts"] == 3


def test_gap_distances_for_unevaluated_dimensions():
    from mediation_engine.gap import detect_gap

    distances = gap_distances(detect_gap("What is 2+2?", "4"))
    assert distances["factual"] == 0.0
    assert distances["logical"] == 0.0
    assert distances["bridgeable"] is True


# =============================================================================
# Collaborator deadline
# =============================================================================

def test_hung_transform_is_bounded_by_deadline():
    calls = []

    async def hung(content, strategy):
        calls.append(strategy)
        await asyncio.sleep(3600)

    service = _service(transform=hung, collaborator_timeout=0.05)

    async def run():
        return await asyncio.wait_for(
            service.evaluate(CAPITAL, "Berlin", signals=[Signal("s", 1.0)], policy={"maxResurrectionAttempts": 2}),
            timeout=5.0,
        )

    result = asyncio.run(run())
    assert len(calls) == 2
    assert result["mediation"]["correctionAttempted"] is True
    assert result["finalState"] == "blocked"


def test_service_has_a_finite_default_deadline():
    assert MediationService().collaborator_timeout == 30.0
    with pytest.raises(InvalidInputError):
        MediationService(collaborator_timeout=0)


def test_service_deadline_read_from_settings(tmp_path):
    path = tmp_path / "c.json"
    path.write_text('{"service": {"collaborator_timeout": 2.5}}', encoding="utf-8")
    service = MediationService.from_settings(load_service_settings(path))
    assert service.collaborator_timeout == 2.5
