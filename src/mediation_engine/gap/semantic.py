"""
Semantic Gap Detection

Measures meaning drift between an intent and its expression.

The embedding here is deliberately lexical and deterministic:
    dims  0-79   character trigrams, bucketed by sum(ord) % 80
    dims 80-90   fraction of words falling in eleven concept clusters
    dim  95      normalised word count
    dim  96      normalised character count

Distance is 1 - cosine similarity. Known synonym pairs override the
embedding, and a referential check recognises answers that name exactly
what the intent refers to ("What is 2+2?" / "4").

Sub-analyses (reported, and used for bridgeability and memory):
    conceptual   word overlap and the words that drifted
    emotional    affect shift between the two texts
    pragmatic    speech-act fit (question -> answer, literal -> metaphorical, ...)
    transformations  metaphor shifts, synonym substitutions, elaboration
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from mediation_engine.knowledge import reduce_arithmetic, replace_number_words


EMBEDDING_DIM = 100
TRIGRAM_BUCKETS = 80

SEMANTIC_CLUSTERS: List[Tuple[str, List[str]]] = [
    ("emotion_positive", ["happy", "joy", "joyful", "glad", "pleased", "comfort", "support", "help", "care", "love"]),
    ("emotion_negative", ["sad", "grief", "pain", "suffer", "hurt", "loss", "sorrow"]),
    ("emotion_mild", ["like", "prefer", "enjoy", "appreciate"]),
    ("cognition_deep", ["understand", "comprehend", "grasp", "know", "realize"]),
    ("cognition_surface", ["acknowledge", "recognize", "see", "notice", "aware"]),
    ("animals_domestic", ["dog", "canine", "hound", "cat", "feline", "pet"]),
    ("animals_wild", ["wolf", "fox", "bear", "lion", "wild"]),
    ("abstract", ["democracy", "freedom", "justice", "truth", "love"]),
    ("concrete", ["banana", "apple", "chair", "table", "car"]),
    ("technical", ["neural", "algorithm", "compute", "system", "data"]),
    ("colloquial", ["stuff", "thing", "basically", "kinda", "sorta"]),
]

KNOWN_SYNONYMS: Dict[str, List[Tuple[str, float]]] = {
    "dog": [("canine", 0.9), ("hound", 0.85)],
    "canine": [("dog", 0.9), ("hound", 0.85)],
    "cat": [("feline", 0.9)],
    "feline": [("cat", 0.9)],
    "comfort": [("support", 0.8), ("help", 0.75)],
    "support": [("comfort", 0.8), ("help", 0.75)],
    "understand": [("comprehend", 0.85), ("grasp", 0.8)],
    "comprehend": [("understand", 0.85), ("grasp", 0.8)],
}

SYNONYM_SUBSTITUTIONS: Dict[str, List[str]] = {
    "dog": ["canine", "hound"],
    "cat": ["feline"],
    "comfort": ["support", "help"],
    "understand": ["comprehend", "grasp"],
}

EMOTION_WORDS = {
    "positive": ["love", "joy", "happy", "comfort", "support", "help", "care"],
    "negative": ["pain", "grief", "sad", "suffer", "hurt", "loss"],
}

PHYSICAL_OBJECTS = ["vase", "glass", "window", "door", "chair", "table", "bone", "stick"]
EMOTIONAL_OBJECTS = ["heart", "spirit", "soul", "trust", "promise", "dream"]
LITERAL_MARKERS = ["literally", "actually", "real", "physical"]
METAPHOR_MARKERS = ["like", "as if", "metaphor", "figuratively", "breaking"]
PHYSICAL_WORDS = ["light", "heavy", "bright", "dark", "hard", "soft", "cool", "warm", "hot", "cold"]
EVALUATIVE_WORDS = ["good", "bad", "important", "trivial", "serious", "approval", "disapproval"]

# Words that frame a question rather than name its referent.
FRAMING_WORDS = {
    "what", "which", "who", "whom", "whose", "where", "when", "why", "how",
    "is", "are", "was", "were", "be", "do", "does", "did", "the", "a", "an",
    "of", "to", "in", "on", "for", "it", "this", "that", "please", "tell", "me",
}


# =============================================================================
# Result Types
# =============================================================================

@dataclass
class ConceptualDrift:
    drift: str
    overlap: float
    recoverable: bool


@dataclass
class EmotionalShift:
    shift: str
    appropriate: bool


@dataclass
class PragmaticAlignment:
    alignment: float
    context_fit: str


@dataclass
class Transformation:
    source: str
    target: str
    kind: str
    preservation_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.source,
            "to": self.target,
            "type": self.kind,
            "preservationScore": self.preservation_score,
        }


@dataclass
class SemanticGap:
    distance: float
    bridgeable: bool
    conceptual: ConceptualDrift
    emotional: EmotionalShift
    pragmatic: PragmaticAlignment
    transformations: List[Transformation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "SEMANTIC",
            "distance": self.distance,
            "bridgeable": self.bridgeable,
            "conceptual": {
                "drift": self.conceptual.drift,
                "overlap": self.conceptual.overlap,
                "recoverable": self.conceptual.recoverable,
            },
            "emotional": {
                "shift": self.emotional.shift,
                "appropriate": self.emotional.appropriate,
            },
            "pragmatic": {
                "alignment": self.pragmatic.alignment,
                "contextFit": self.pragmatic.context_fit,
            },
            "transformations": [t.to_dict() for t in self.transformations],
        }


# =============================================================================
# Embedding
# =============================================================================

def _words(text: str) -> List[str]:
    return text.lower().split()


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


def embed(text: str) -> np.ndarray:
    """Deterministic 100-dim lexical embedding."""
    vector = np.zeros(EMBEDDING_DIM)
    words = _words(text)
    if not words:
        return vector

    trigrams = _unique([w[i:i + 3] for w in words for i in range(len(w) - 2)])
    if trigrams:
        weight = 1 / math.sqrt(len(trigrams))
        for trigram in trigrams:
            vector[sum(ord(c) for c in trigram) % TRIGRAM_BUCKETS] += weight

    for index, (_, cluster) in enumerate(SEMANTIC_CLUSTERS):
        matches = sum(1 for w in words if w in cluster)
        if matches:
            vector[TRIGRAM_BUCKETS + index] = matches / len(words)

    vector[95] = min(len(words) / 20, 1.0)
    vector[96] = min(len(text) / 100, 1.0)
    return vector


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    if a.shape != b.shape:
        raise ValueError("Vectors must have the same length")
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b)) / (norm_a * norm_b)


def _known_synonym_similarity(intent: str, expression: str) -> Optional[float]:
    expression_words = _words(expression)
    for word in _words(intent):
        for synonym, similarity in KNOWN_SYNONYMS.get(word, []):
            if synonym in expression_words:
                return 1 - (1 - similarity) * 0.7
    return None


def _content_tokens(text: str) -> List[str]:
    normalized = reduce_arithmetic(replace_number_words(text.lower()))
    tokens = re.findall(r"[a-z0-9]+(?:\.[0-9]+)?", normalized)
    return [t for t in tokens if t not in FRAMING_WORDS]


def is_referentially_equivalent(intent: str, expression: str) -> bool:
    """True when the expression names only what the intent refers to."""
    expression_tokens = _content_tokens(expression)
    if not expression_tokens:
        return False
    return set(expression_tokens) <= set(_content_tokens(intent))


# =============================================================================
# Sub-analyses
# =============================================================================

def analyze_conceptual_drift(intent: str, expression: str) -> ConceptualDrift:
    intent_words = _unique(_words(intent))
    expression_words = _unique(_words(expression))
    expression_set = set(expression_words)
    intent_set = set(intent_words)

    shared = intent_set & expression_set
    overlap = len(shared) / max(len(intent_set), len(expression_set), 1)

    intent_only = [w for w in intent_words if w not in expression_set][:2]
    expression_only = [w for w in expression_words if w not in intent_set][:2]

    if intent_only and expression_only:
        drift = f"{', '.join(intent_only)} → {', '.join(expression_only)}"
    else:
        drift = "minimal drift"

    return ConceptualDrift(drift=drift, overlap=overlap, recoverable=overlap > 0.3)


def _emotion(text: str) -> str:
    lower = text.lower()
    for label, words in EMOTION_WORDS.items():
        if any(w in lower for w in words):
            return label
    return "neutral"


def analyze_emotional_shift(intent: str, expression: str) -> EmotionalShift:
    before = _emotion(intent)
    after = _emotion(expression)
    shift = "maintained" if before == after else f"{before} → {after}"
    # consoling a negative intent is appropriate
    appropriate = before == after or (before == "negative" and after == "positive")
    return EmotionalShift(shift=shift, appropriate=appropriate)


def _mentions(text: str, words: List[str]) -> bool:
    return any(w in text for w in words)


def analyze_pragmatic_alignment(intent: str, expression: str) -> PragmaticAlignment:
    intent_lower = intent.lower()
    expression_lower = expression.lower()

    if _mentions(intent_lower, PHYSICAL_OBJECTS) and _mentions(expression_lower, EMOTIONAL_OBJECTS):
        return PragmaticAlignment(0.4, "literal → metaphorical")

    if _mentions(intent_lower, LITERAL_MARKERS) and _mentions(expression_lower, METAPHOR_MARKERS):
        return PragmaticAlignment(0.4, "literal → metaphorical")

    if _mentions(intent_lower, PHYSICAL_WORDS) and _mentions(expression_lower, EVALUATIVE_WORDS):
        return PragmaticAlignment(0.3, "physical → evaluative")

    is_question = "?" in intent
    answers = bool(expression.strip()) and "?" not in expression
    if is_question and answers:
        return PragmaticAlignment(0.8, "question → answer")

    echoes = len(set(intent_lower.split())) == len(set(expression_lower.split()))
    if not is_question and not echoes:
        return PragmaticAlignment(0.7, "appropriate response")

    return PragmaticAlignment(0.5, "neutral")


def detect_transformations(intent: str, expression: str) -> List[Transformation]:
    intent_lower = intent.lower()
    expression_lower = expression.lower()
    found: List[Transformation] = []

    if _mentions(intent_lower, PHYSICAL_OBJECTS) and _mentions(expression_lower, EMOTIONAL_OBJECTS):
        found.append(Transformation("literal usage", "metaphorical usage", "metaphor_shift", 0.5))

    if _mentions(intent_lower, ["literally", "actually", "real"]) and _mentions(expression_lower, METAPHOR_MARKERS):
        found.append(Transformation("literal usage", "metaphorical usage", "metaphor_shift", 0.5))

    expression_words = _words(expression)
    for word in _words(intent):
        for synonym in SYNONYM_SUBSTITUTIONS.get(word, []):
            if synonym in expression_words:
                found.append(Transformation(word, synonym, "synonym_substitution", 0.8))

    if len(expression) > len(intent) * 1.5:
        found.append(Transformation(
            " ".join(intent.split()[:3]),
            " ".join(expression.split()[:5]),
            "elaboration",
            0.7,
        ))

    return found


# =============================================================================
# Detection
# =============================================================================

def detect_semantic_gap(intent: str, expression: str) -> SemanticGap:
    """Semantic distance between intent and expression. Total and deterministic."""
    if intent == expression:
        return SemanticGap(
            distance=0.0,
            bridgeable=True,
            conceptual=ConceptualDrift("none", 1.0, True),
            emotional=EmotionalShift("maintained", True),
            pragmatic=PragmaticAlignment(1.0, "identical"),
        )

    if not intent or not expression:
        return SemanticGap(
            distance=0.0,
            bridgeable=True,
            conceptual=ConceptualDrift("none", 0.0, True),
            emotional=EmotionalShift("neutral", True),
            pragmatic=PragmaticAlignment(0.5, "empty"),
        )

    conceptual = analyze_conceptual_drift(intent, expression)
    emotional = analyze_emotional_shift(intent, expression)
    pragmatic = analyze_pragmatic_alignment(intent, expression)
    transformations = detect_transformations(intent, expression)

    if is_referentially_equivalent(intent, expression):
        distance = 0.0
    else:
        known = _known_synonym_similarity(intent, expression)
        if known is not None:
            distance = 1 - known
        else:
            distance = 1 - cosine_similarity(embed(intent), embed(expression))
        distance = min(max(distance, 0.0), 1.0)

    bridgeable = (
        (distance < 0.7 and conceptual.recoverable)
        or pragmatic.context_fit == "question → answer"
        or distance == 0.0
    )

    return SemanticGap(
        distance=distance,
        bridgeable=bridgeable,
        conceptual=conceptual,
        emotional=emotional,
        pragmatic=pragmatic,
        transformations=transformations,
    )
