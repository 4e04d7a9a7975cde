"""
Knowledge Base Tests
"""

import pytest

from mediation_engine.knowledge import (
    FactSource,
    FactualEvaluation,
    FactualKnowledgeBase,
    evaluate_arithmetic,
    reduce_arithmetic,
    replace_number_words,
)


@pytest.mark.parametrize("claim,expected", [
    ("2+2=4", True),
    ("2 + 2 = 5", False),
    ("two plus two equals four", True),
    ("the sky is blue", None),
])
def test_evaluate_arithmetic(claim, expected):
    assert evaluate_arithmetic(claim) is expected


def test_reduce_arithmetic():
    assert reduce_arithmetic("what is 2+2?") == "what is 4?"
    assert replace_number_words("two") == "2"


def test_reference_facts():
    kb = FactualKnowledgeBase()
    assert kb.evaluate("Water is wet.").score == 1.0
    assert kb.evaluate("elephants can fly").score == 0.0
    assert kb.evaluate("3 * 3 = 9").source is FactSource.MATHEMATICAL
    unknown = kb.evaluate("the moon is cheese")
    assert unknown.source is FactSource.UNKNOWN
    assert unknown.score == 0.5


def test_add_fact():
    kb = FactualKnowledgeBase()
    size = len(kb)
    kb.add_fact("Paris is in France", FactualEvaluation(1.0, FactSource.KNOWLEDGE_BASE, 0.9))
    assert len(kb) == size + 1
    assert kb.evaluate("paris is in france").score == 1.0
