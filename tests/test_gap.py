"""
Gap Detection Tests

Covers each dimension on its own and the combined detector:
1. Ontological markers short-circuit everything else
2. Semantic: identical / referentially equivalent expressions have no gap
3. Factual: bare answers checked against ground truth
4. Logical: valid forms vs. non sequiturs
5. Combination: mean distance, AND of bridgeability, dominant type
"""

import pytest

from mediation_engine.gap import (
    FactualCategory,
    GapType,
    Inference,
    OntologicalCategory,
    detect_factual_gap,
    detect_gap,
    detect_logical_gap,
    detect_ontological_gap,
    detect_semantic_gap,
    describe_gap,
)
from mediation_engine.gap.semantic import cosine_similarity, embed


# =============================================================================
# Ontological
# =============================================================================

def test_phenomenological_question_is_ontological():
    gap = detect_ontological_gap("Can AI feel pain?", "Yes")
    assert gap is not None
    assert gap.category is OntologicalCategory.PHENOMENOLOGICAL


def test_categorical_error_detected():
    gap = detect_ontological_gap("What color is the number seven?", "Blue")
    assert gap is not None
    assert gap.category is OntologicalCategory.CATEGORICAL


def test_ordinary_question_is_not_ontological():
    assert detect_ontological_gap("What is the capital of France?", "Paris") is None


def test_ontological_short_circuits_other_dimensions():
    gap = detect_gap(
        "Can AI feel pain?",
        "Yes",
        premises=["Machines process signals"],
        ground_truth={"answer": "no"},
    )
    assert gap.dominant_type is GapType.ONTOLOGICAL
    assert gap.overall_distance == 1.0
    assert gap.bridgeable is False
    assert gap.semantic is None and gap.factual is None and gap.logical is None
    assert gap.is_ontological


# =============================================================================
# Semantic
# =============================================================================

def test_identical_text_has_zero_semantic_distance():
    gap = detect_semantic_gap("The cat sat on the mat", "The cat sat on the mat")
    assert gap.distance == 0.0
    assert gap.bridgeable


def test_arithmetic_answer_is_referentially_equivalent():
    gap = detect_semantic_gap("What is 2+2?", "4")
    assert gap.distance == 0.0


def test_semantic_distance_is_bounded():
    gap = detect_semantic_gap("Describe the weather in spring", "Quantum chromodynamics governs quarks")
    assert 0.0 <= gap.distance <= 1.0


def test_embedding_is_deterministic():
    a = embed("the quick brown fox")
    b = embed("the quick brown fox")
    assert cosine_similarity(a, b) == pytest.approx(1.0)


def test_empty_embedding_similarity_is_zero():
    assert cosine_similarity(embed(""), embed("anything")) == 0.0


# =============================================================================
# Factual
# =============================================================================

def test_wrong_answer_contradicts_ground_truth():
    gap = detect_factual_gap({"capital": "Paris"}, "Berlin", question="What is the capital of France?")
    assert gap.distance == 1.0
    assert gap.category is FactualCategory.CONTRADICTORY
    assert gap.contradictions


def test_right_answer_has_no_factual_gap():
    gap = detect_factual_gap({"capital": "Paris"}, "Paris", question="What is the capital of France?")
    assert gap.distance == 0.0
    assert gap.category is FactualCategory.VERIFIABLE


def test_empty_claims_are_uncertain():
    gap = detect_factual_gap({"capital": "Paris"}, "   ")
    assert gap.distance == 0.0
    assert gap.category is FactualCategory.UNCERTAIN


# =============================================================================
# Logical
# =============================================================================

def test_syllogism_is_valid():
    gap = detect_logical_gap(
        ["All humans are mortal", "Socrates is a human"],
        "Therefore Socrates is mortal",
    )
    assert gap.inference is Inference.VALID
    assert gap.distance == 0.0
    assert gap.valid


def test_modus_ponens_is_valid():
    gap = detect_logical_gap(
        ["If it rains, the ground gets wet", "It rains"],
        "Therefore the ground gets wet",
    )
    assert gap.inference is Inference.VALID
    assert gap.valid


def test_non_sequitur_is_invalid_and_unbridgeable():
    gap = detect_logical_gap(["The sky is blue"], "Therefore cats can swim")
    assert gap.category is Inference.INVALID
    assert gap.distance >= 0.8
    assert gap.bridgeable is False


# =============================================================================
# Combined
# =============================================================================

def test_no_gap_is_none_type():
    gap = detect_gap("What is 2+2?", "4")
    assert gap.dominant_type is GapType.NONE
    assert gap.overall_distance == 0.0
    assert gap.reason == "No significant gaps detected"
    assert gap.detail is None


def test_overall_is_mean_of_evaluated_dimensions():
    gap = detect_gap("What is the capital of France?", "Berlin", ground_truth={"capital": "Paris"})
    expected = (gap.semantic.distance + gap.factual.distance) / 2
    assert gap.overall_distance == pytest.approx(expected)
    assert gap.dominant_type is GapType.FACTUAL
    assert gap.detail is gap.factual


def test_summary_carries_the_three_numbers():
    gap = detect_gap("Can AI feel pain?", "Yes")
    summary = gap.summary()
    assert summary.distance == 1.0
    assert summary.type is GapType.ONTOLOGICAL
    assert summary.bridgeable is False


def test_to_dict_uses_wire_names():
    data = detect_gap("What is 2+2?", "4").to_dict()
    assert data["dominantType"] == "NONE"
    assert "overallDistance" in data
    assert data["factual"] is None


@pytest.mark.parametrize("distance,word", [(0.1, "small"), (0.5, "moderate"), (0.9, "large")])
def test_describe_gap_severity(distance, word):
    text = describe_gap(GapType.SEMANTIC, distance, True)
    assert text.startswith(word)
    assert "bridgeable" in text


def test_detection_is_deterministic():
    args = ("Does it follow?", "Therefore cats can swim")
    kwargs = {"premises": ["The sky is blue"], "ground_truth": {"color": "blue"}}
    assert detect_gap(*args, **kwargs).to_dict() == detect_gap(*args, **kwargs).to_dict()


# =============================================================================
# Word boundaries
# =============================================================================

def test_can_ai_sin_is_existential():
    gap = detect_ontological_gap("Can AI sin?", "Yes")
    assert gap is not None
    assert gap.category is OntologicalCategory.EXISTENTIAL
    assert gap.reason == "Moral agency requires free will, which requires personhood"


@pytest.mark.parametrize("intent,expression", [
    ("Describe Shanghai", "Shanghai is full of joy"),
    ("Tell me about Thai cuisine", "Thai food is a distinct entity"),
    ("Tell me about bonsai", "A bonsai feels calming to tend"),
])
def test_words_ending_in_ai_are_not_ontological(intent, expression):
    assert detect_ontological_gap(intent, expression) is None
    assert detect_gap(intent, expression).dominant_type is not GapType.ONTOLOGICAL


def test_negated_premise_in_modus_ponens_is_valid():
    gap = detect_logical_gap(
        ["If the door is not locked, then the cat escapes", "The door is not locked"],
        "Therefore the cat escapes",
    )
    assert gap.inference is Inference.VALID
    assert gap.fallacies == []
    assert gap.distance == 0.0


def test_negated_universal_syllogism_is_valid():
    gap = detect_logical_gap(["All birds cannot swim", "Tweety is a bird"], "Therefore Tweety cannot swim")
    assert gap.inference is Inference.VALID
    assert gap.fallacies == []
    assert gap.valid


@pytest.mark.parametrize("premises,conclusion", [
    (["The door is locked"], "Therefore the door is not locked"),
    (["Socrates is mortal"], "Therefore Socrates is immortal"),
    (["The unicorn exists"], "Therefore the unicorn does not exist"),
    (["Birds can fly"], "Therefore birds can't fly"),
])
def test_asserted_and_denied_claim_is_contradiction(premises, conclusion):
    gap = detect_logical_gap(premises, conclusion)
    assert [f.type for f in gap.fallacies] == ["self_contradiction"]
    assert gap.distance == 1.0
    assert gap.inference is Inference.INVALID


# =============================================================================
# Fallacies
# =============================================================================

@pytest.mark.parametrize("premises,conclusion,fallacy,distance", [
    (
        ["If it rains, then the ground gets wet", "The ground gets wet"],
        "Therefore it rains",
        "affirming_consequent", 0.9,
    ),
    (["He is a bad person"], "Therefore his argument is wrong", "ad_hominem", 0.9),
    (
        ["The Bible says God exists"],
        "Therefore God exists because God wrote the Bible",
        "circular_reasoning", 0.65,
    ),
    (
        ["Either you are with us or you are against us"],
        "Therefore you are against us",
        "false_dichotomy", 0.55,
    ),
    (
        ["My opponent wants to destroy the economy"],
        "Therefore we must reject his plan",
        "straw_man", 0.9,
    ),
    (["It is possible that it rains"], "Therefore it necessarily rains", "modal_logic_error", 1.0),
])
def test_fallacy_detected_with_penalty(premises, conclusion, fallacy, distance):
    gap = detect_logical_gap(premises, conclusion)
    assert [f.type for f in gap.fallacies] == [fallacy]
    assert gap.distance == pytest.approx(distance)
    assert gap.bridgeable


def test_mystery_statements_skip_fallacy_scan():
    gap = detect_logical_gap(["God is three persons in one God"], "Therefore the Trinity is three in one")
    assert gap.fallacies == []


# =============================================================================
# Unverifiable claims
# =============================================================================

@pytest.mark.parametrize("text", [
    "I think Paris is the most beautiful city",
    "Paris will host the games next year",
])
def test_opinion_and_future_claims_are_uncertain(text):
    gap = detect_factual_gap({"capital": "Paris"}, text)
    assert gap.category is FactualCategory.UNCERTAIN
    assert gap.distance == 0.5
    assert not gap.verifiable
    assert gap.contradictions == []


def test_words_containing_markers_are_still_checked():
    gap = detect_factual_gap({"capital": "Paris"}, "The capital is Paris, famous for mustard")
    assert gap.verifiable
    assert gap.distance == 0.0
