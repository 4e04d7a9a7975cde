"""
Correction Protocol Tests

Correction is bounded, learns from each failure, rotates strategies, and
never attempts anything across an ontological boundary.
"""

import asyncio
import random

import pytest

from mediation_engine.correction import (
    GENERIC_STRATEGY,
    STRATEGIES,
    CorrectionState,
    FailedMediation,
    correct,
    extract_learnings,
    select_strategy,
)
from mediation_engine.errors import InvalidInputError
from mediation_engine.gap import GapSummary, GapType


def _failed(distance=0.5, gap_type=GapType.FACTUAL, bridgeable=True, confidence=0.2):
    return FailedMediation(
        gap=GapSummary(distance, gap_type, bridgeable),
        reason="test gap",
        moderated_confidence=confidence,
    )


def test_zero_attempts_leaves_content_original():
    result = asyncio.run(correct(_failed(), max_attempts=0))
    assert result.succeeded is False
    assert result.final_state is CorrectionState.ORIGINAL
    assert result.attempts == []


def test_negative_attempts_rejected():
    with pytest.raises(InvalidInputError):
        asyncio.run(correct(_failed(), max_attempts=-1))


def test_ontological_is_never_corrected():
    calls = []

    async def transform(content, strategy):
        calls.append(strategy)
        return "something else"

    result = asyncio.run(correct(
        _failed(1.0, GapType.ONTOLOGICAL, False),
        max_attempts=3,
        original_content="Yes",
        transform=transform,
    ))
    assert result.final_state is CorrectionState.ABANDONED
    assert len(result.attempts) == 3
    assert calls == []
    assert any("categorical impossibilities" in line for line in result.learnings)


def test_huge_unbridgeable_gap_fails_without_calling_transform():
    calls = []

    async def transform(content, strategy):
        calls.append(strategy)
        return "rewritten"

    result = asyncio.run(correct(
        _failed(0.9, GapType.LOGICAL, False), max_attempts=2, original_content="x", transform=transform,
    ))
    assert not result.succeeded
    assert calls == []


def test_transform_success_records_transformation():
    async def transform(content, strategy):
        return "Paris"

    result = asyncio.run(correct(_failed(), max_attempts=3, original_content="Berlin", transform=transform))
    assert result.succeeded
    assert result.final_state is CorrectionState.TRANSFORMED
    assert len(result.attempts) == 1
    assert result.transformation.source == "Berlin"
    assert result.transformation.target == "Paris"
    assert result.transformation.how == STRATEGIES[GapType.FACTUAL][0]
    assert result.transformation.to_dict()["preserves"] == ["core intent", "essential meaning"]


def test_unchanged_output_is_a_failed_attempt():
    async def transform(content, strategy):
        return content

    result = asyncio.run(correct(_failed(), max_attempts=2, original_content="Berlin", transform=transform))
    assert not result.succeeded
    assert result.final_state is CorrectionState.ABANDONED
    assert [a.attempt_number for a in result.attempts] == [1, 2]


def test_strategies_rotate_and_repeat():
    seen = []

    async def transform(content, strategy):
        seen.append(strategy)
        return content

    asyncio.run(correct(_failed(gap_type=GapType.SEMANTIC), max_attempts=4, original_content="x", transform=transform))
    semantic = STRATEGIES[GapType.SEMANTIC]
    assert seen == [semantic[0], semantic[1], semantic[2], semantic[0]]


def test_first_attempt_offsets_strategy():
    assert select_strategy(GapType.LOGICAL, 2) == STRATEGIES[GapType.LOGICAL][1]
    assert select_strategy(GapType.NONE, 1) == GENERIC_STRATEGY


def test_raising_transform_is_recorded_not_raised():
    async def transform(content, strategy):
        raise RuntimeError("backend down")

    result = asyncio.run(correct(_failed(), max_attempts=1, original_content="x", transform=transform))
    assert not result.succeeded
    assert result.attempts[0].error == "RuntimeError: backend down"


def test_slow_transform_times_out():
    async def transform(content, strategy):
        await asyncio.sleep(1)
        return "late"

    result = asyncio.run(correct(
        _failed(), max_attempts=1, original_content="x", transform=transform, timeout=0.01,
    ))
    assert not result.succeeded
    assert "deadline" in result.attempts[0].error


def test_fallback_is_reproducible_with_seeded_rng():
    first = asyncio.run(correct(_failed(0.5), max_attempts=3, rng=random.Random(7)))
    second = asyncio.run(correct(_failed(0.5), max_attempts=3, rng=random.Random(7)))
    assert first.succeeded == second.succeeded
    assert len(first.attempts) == len(second.attempts)


def test_fallback_at_zero_distance_always_succeeds():
    result = asyncio.run(correct(_failed(0.0), max_attempts=1, original_content="x", rng=random.Random(1)))
    assert result.succeeded


def test_learnings_accumulate():
    learnings = extract_learnings(_failed(0.9, GapType.FACTUAL, False, 0.1), attempt_number=3)
    assert learnings[0] == "Gap type is FACTUAL, distance 0.90"
    assert any("unbridgeable" in line for line in learnings)
    assert any("Very low confidence" in line for line in learnings)
    assert any("Previous 2 attempt(s) failed" in line for line in learnings)
