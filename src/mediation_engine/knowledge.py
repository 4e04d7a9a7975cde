"""
Knowledge Base - arithmetic evaluation and reference facts.

Arithmetic is the one domain where a claim can be checked with certainty
without any external collaborator. This module owns:

- number-word normalisation ("two plus two equals four" -> "2+2=4")
- checking a claimed equation (evaluate_arithmetic)
- reducing bare expressions to their value (reduce_arithmetic: "2+2" -> "4")
- a small catalogue of reference facts (FactualKnowledgeBase)

Usage:
    from mediation_engine.knowledge import evaluate_arithmetic, FactualKnowledgeBase

    evaluate_arithmetic("two plus two equals four")   # True
    evaluate_arithmetic("2 + 2 = 5")                   # False
    evaluate_arithmetic("the sky is blue")             # None (not arithmetic)

    kb = FactualKnowledgeBase()
    kb.evaluate("water is wet").score                  # 1.0
"""

import operator
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional


NUMBER_WORDS: Dict[str, str] = {
    "zero": "0", "one": "1", "two": "2", "three": "3", "four": "4",
    "five": "5", "six": "6", "seven": "7", "eight": "8", "nine": "9", "ten": "10",
}

_WORD_OPERATORS = [
    (re.compile(r"\bdivided\s+by\b"), "/"),
    (re.compile(r"\bplus\b"), "+"),
    (re.compile(r"\bminus\b"), "-"),
    (re.compile(r"\btimes\b"), "*"),
    (re.compile(r"\bequals\b"), "="),
]

_OPERATORS: Dict[str, Callable[[int, int], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}

_EQUATION = re.compile(r"(\d+)([+\-*/])(\d+)=(\d+)")
_EXPRESSION = re.compile(r"(\d+)\s*([+\-*/x×])\s*(\d+)")


def replace_number_words(text: str) -> str:
    """Replace the number words zero..ten with digits (whole words only)."""
    def _sub(match: "re.Match") -> str:
        return NUMBER_WORDS[match.group(0).lower()]
    pattern = r"\b(" + "|".join(NUMBER_WORDS) + r")\b"
    return re.sub(pattern, _sub, text, flags=re.IGNORECASE)


def normalize_arithmetic(text: str) -> str:
    """Lowercase, digitise number words, map word operators, drop whitespace."""
    processed = replace_number_words(text.lower())
    for pattern, symbol in _WORD_OPERATORS:
        processed = pattern.sub(symbol, processed)
    return re.sub(r"\s+", "", processed)


def evaluate_arithmetic(claim: str) -> Optional[bool]:
    """
    Check an equation claim.

    Returns True/False when the text contains an `a op b = c` equation,
    None when there is nothing arithmetic to check.
    """
    match = _EQUATION.search(normalize_arithmetic(claim))
    if not match:
        return None

    a, op, b, c = int(match.group(1)), match.group(2), int(match.group(3)), int(match.group(4))
    if op == "/" and b == 0:
        return False
    return abs(_OPERATORS[op](a, b) - c) < 1e-9


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def reduce_arithmetic(text: str) -> str:
    """Replace every `a op b` sub-expression with its value ("2+2" -> "4")."""
    def _sub(match: "re.Match") -> str:
        a, op, b = int(match.group(1)), match.group(2), int(match.group(3))
        if op in ("x", "×"):
            op = "*"
        if op == "/" and b == 0:
            return match.group(0)
        return _format_number(_OPERATORS[op](a, b))

    previous = None
    reduced = text
    # left-to-right chains like 1+2+3 collapse one step per pass
    while previous != reduced:
        previous = reduced
        reduced = _EXPRESSION.sub(_sub, reduced, count=1)
    return reduced


# =============================================================================
# Reference Facts
# =============================================================================

class FactSource(Enum):
    MATHEMATICAL = "mathematical"
    KNOWLEDGE_BASE = "knowledge_base"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FactualEvaluation:
    score: float        # 1.0 definitely true, 0.0 definitely false
    source: FactSource
    confidence: float   # how sure the evaluation itself is


class FactualKnowledgeBase:
    """Exact-match reference facts plus arithmetic."""

    def __init__(self):
        self._facts: Dict[str, FactualEvaluation] = {
            "the sky is blue": FactualEvaluation(0.9, FactSource.KNOWLEDGE_BASE, 0.8),
            "water is wet": FactualEvaluation(1.0, FactSource.KNOWLEDGE_BASE, 0.9),
            "elephants can fly": FactualEvaluation(0.0, FactSource.KNOWLEDGE_BASE, 0.95),
        }

    def evaluate(self, text: str) -> FactualEvaluation:
        normalized = text.lower().strip().rstrip(".")
        if normalized in self._facts:
            return self._facts[normalized]

        verdict = evaluate_arithmetic(text)
        if verdict is not None:
            return FactualEvaluation(1.0 if verdict else 0.0, FactSource.MATHEMATICAL, 1.0)

        return FactualEvaluation(0.5, FactSource.UNKNOWN, 0.1)

    def add_fact(self, text: str, evaluation: FactualEvaluation) -> None:
        self._facts[text.lower().strip().rstrip(".")] = evaluation

    def __len__(self) -> int:
        return len(self._facts)
