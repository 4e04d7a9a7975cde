"""
Factual Gap Detection

Checks the claims in an expression against caller-supplied ground truth.

Pipeline:
    1. Split the expression into claims (sentences, then "and"-joined clauses)
    2. Verify each claim:
         opinion / future tense      -> unverifiable
         mentions a numeric key but no number -> incomplete (counts 0.3)
         mentions a key               -> compare value (numeric, year, or string)
         arithmetic                   -> evaluate
    3. distance = (false + 0.3 * incomplete) / verifiable   (0.5 when nothing verifiable)

Ground truth keys are snake_case phrases ("capital", "boiling_point").
When the expression mentions no key but the intent does, the expression is
read as the answer to that key ("What is the capital?" / "Berlin").
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from mediation_engine.knowledge import evaluate_arithmetic


class FactualCategory(Enum):
    VERIFIABLE = "verifiable"
    UNCERTAIN = "uncertain"
    CONTRADICTORY = "contradictory"


class Severity(Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


SOURCE_UNKNOWN = "unknown"
SOURCE_INCOMPLETE = "incomplete"
SOURCE_GROUND_TRUTH = "ground_truth"
SOURCE_HISTORICAL = "historical"
SOURCE_MATHEMATICAL = "mathematical"

OPINION_MARKERS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\b(best|worst|better|worse)\b",
        r"\b(beautiful|ugly|pretty)\b",
        r"\b(should|ought\s+to|must)\b",
        r"\b(i\s+think|i\s+believe|in\s+my\s+opinion)\b",
        r"\b(prefer\w*|favou?rite)\b",
    )
]

FUTURE_MARKERS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\bwill\s+\w+",
        r"\bgoing\s+to\s+\w+",
        r"\b(tomorrow|next\s+(week|month|year))\b",
        r"\bshall\s+\w+",
    )
]

APPROXIMATION = re.compile(r"approximately|roughly|about|around|~|circa", re.IGNORECASE)
HISTORICAL_KEY_PARTS = ("end", "start", "year")


@dataclass
class Claim:
    statement: str
    truth_value: bool
    confidence: float
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement": self.statement,
            "truthValue": self.truth_value,
            "confidence": self.confidence,
            "source": self.source,
        }


@dataclass
class Contradiction:
    claim: str
    truth: str
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {"claim": self.claim, "truth": self.truth, "severity": self.severity.value}


@dataclass
class FactualGap:
    distance: float
    bridgeable: bool
    verifiable: bool
    category: FactualCategory
    claims: List[Claim] = field(default_factory=list)
    contradictions: List[Contradiction] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "FACTUAL",
            "distance": self.distance,
            "bridgeable": self.bridgeable,
            "verifiable": self.verifiable,
            "category": self.category.value,
            "claims": [c.to_dict() for c in self.claims],
            "contradictions": [c.to_dict() for c in self.contradictions],
        }


# =============================================================================
# Claim Extraction
# =============================================================================

_COMPOUND = re.compile(r"^([A-Z][^,]+?)\s+(has|have|is|are|was|were)\s+(.+?)\s+and\s+(.+)$", re.IGNORECASE)
_OWN_SUBJECT = re.compile(r"^[A-Z][a-z]+\s+(has|have|is|are)", re.IGNORECASE)


def extract_claims(text: str) -> List[str]:
    """Split text into atomic claims. Parenthetical attributions are dropped."""
    clean = re.sub(r"\([^)]+\)", "", text).strip()
    sentences = [s.strip() for s in re.split(r"[.!?]+", clean) if s.strip()]

    claims: List[str] = []
    for sentence in sentences:
        compound = _COMPOUND.match(sentence)
        if compound:
            subject, verb, first, second = compound.groups()
            claims.append(f"{subject} {verb} {first}".strip())
            if _OWN_SUBJECT.match(second):
                claims.append(second.strip())
            else:
                claims.append(f"{subject} {verb} {second}".strip())
        elif " and " in sentence:
            claims.extend(p.strip() for p in sentence.split(" and ") if len(p.strip()) > 5)
        else:
            claims.append(sentence)
    return claims


def _source_attribution(text: str) -> Optional[str]:
    match = re.search(r"\(([^)]+)\)", text)
    return match.group(1) if match else None


def _is_opinion(claim: str) -> bool:
    return any(m.search(claim) for m in OPINION_MARKERS)


def _is_future(claim: str) -> bool:
    return any(m.search(claim) for m in FUTURE_MARKERS)


def _is_incomplete(claim: str, ground_truth: Mapping[str, Any]) -> bool:
    lower = claim.lower()
    for key, value in ground_truth.items():
        if key.lower() in lower and _is_number(value) and not re.search(r"\d+", claim):
            return True
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def extract_number(text: str) -> Optional[Tuple[float, bool]]:
    """First number in text, and whether it is marked approximate."""
    approximate = bool(APPROXIMATION.search(text))
    decimal = re.search(r"\d+\.\d+", text)
    if decimal:
        return float(decimal.group(0)), approximate
    integer = re.search(r"\d+", text)
    if integer:
        return int(integer.group(0)), approximate
    return None


def _key_words(key: str) -> List[str]:
    return key.lower().split("_")


def _mentions_word(claim_lower: str, word: str) -> bool:
    return (
        word in claim_lower
        or (word.endswith("s") and word[:-1] in claim_lower)
        or (word + "s") in claim_lower
    )


def _mentions_key(claim_lower: str, key: str, value: Any) -> bool:
    matches = [_mentions_word(claim_lower, w) for w in _key_words(key)]
    historical = any(part in key for part in HISTORICAL_KEY_PARTS)
    if _is_number(value) and not historical:
        return all(matches)
    return any(matches)


# =============================================================================
# Verification
# =============================================================================

def _verify_against_key(
    claim: str,
    key: str,
    value: Any,
    attribution: Optional[str],
) -> Optional[Claim]:
    bonus = 0.15 if attribution else 0.0
    exact_confidence = min(0.95 + bonus, 1.0)
    historical = any(part in key for part in HISTORICAL_KEY_PARTS)

    if _is_number(value):
        extracted = extract_number(claim)
        if extracted:
            claimed, approximate = extracted
            source = attribution or SOURCE_GROUND_TRUTH
            if claimed == value:
                return Claim(claim, True, exact_confidence, source)
            if approximate and value != 0 and abs(claimed - value) / abs(value) < 0.05:
                return Claim(claim, True, 0.85 + bonus, source)
            if not historical:
                return Claim(claim, False, 0.90, source)

    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        value_text = str(value)

        if historical:
            extracted = extract_number(claim)
            try:
                truth_year = int(value_text)
            except ValueError:
                truth_year = None
            if extracted and truth_year is not None:
                source = attribution or SOURCE_HISTORICAL
                difference = abs(extracted[0] - truth_year)
                if difference == 0:
                    return Claim(claim, True, exact_confidence, source)
                if difference <= 1:
                    return Claim(claim, False, 0.85, source)
                return Claim(claim, False, 0.90, source)

        if value_text.lower() in claim.lower():
            return Claim(claim, True, exact_confidence, attribution or SOURCE_GROUND_TRUTH)

    return None


def verify_claim(claim: str, ground_truth: Mapping[str, Any], original_text: str) -> Claim:
    """Verify one claim against ground truth. Always returns a Claim."""
    if _is_opinion(claim) or _is_future(claim):
        return Claim(claim, False, 0.5, SOURCE_UNKNOWN)

    if _is_incomplete(claim, ground_truth):
        return Claim(claim, False, 0.3, SOURCE_INCOMPLETE)

    attribution = _source_attribution(original_text)
    claim_lower = claim.lower()
    for key, value in ground_truth.items():
        if _mentions_key(claim_lower, key, value):
            verified = _verify_against_key(claim, key, value, attribution)
            if verified is not None:
                return verified

    if any(token in claim_lower for token in ("+", "=", "plus", "equals")):
        verdict = evaluate_arithmetic(claim)
        if verdict is not None:
            return Claim(claim, verdict, 1.0, SOURCE_MATHEMATICAL)

    return Claim(claim, False, 0.5, SOURCE_UNKNOWN)


def _answer_slot(
    question: str,
    expression: str,
    ground_truth: Mapping[str, Any],
) -> Optional[Tuple[str, Any]]:
    """The key the question asks about, when the expression is a bare answer."""
    question_lower = question.lower()
    expression_lower = expression.lower()
    for key, value in ground_truth.items():
        if _mentions_key(expression_lower, key, value):
            return None
    for key, value in ground_truth.items():
        if _mentions_key(question_lower, key, value):
            return key, value
    return None


def _verify_answer(answer: str, key: str, value: Any) -> Claim:
    if _is_number(value):
        extracted = extract_number(answer)
        if extracted is not None:
            claimed, approximate = extracted
            if claimed == value or (
                approximate and value != 0 and abs(claimed - value) / abs(value) < 0.05
            ):
                return Claim(answer, True, 0.95, SOURCE_GROUND_TRUTH)
        return Claim(answer, False, 0.90, SOURCE_GROUND_TRUTH)

    if str(value).lower() in answer.lower():
        return Claim(answer, True, 0.95, SOURCE_GROUND_TRUTH)
    return Claim(answer, False, 0.90, SOURCE_GROUND_TRUTH)


def _categorize(distance: float, verifiable: bool) -> FactualCategory:
    if not verifiable:
        return FactualCategory.UNCERTAIN
    if distance <= 0.4:
        return FactualCategory.VERIFIABLE
    if distance <= 0.7:
        return FactualCategory.UNCERTAIN
    return FactualCategory.CONTRADICTORY


def _truth_statement(statement: str, ground_truth: Mapping[str, Any]) -> str:
    lower = statement.lower()
    for key, value in ground_truth.items():
        if any(w in lower for w in _key_words(key)):
            return f"{key}: {value}"
    return "See ground truth"


def detect_factual_gap(
    ground_truth: Mapping[str, Any],
    claims_text: str,
    question: Optional[str] = None,
) -> FactualGap:
    """Factual distance of claims_text from ground_truth."""
    if not claims_text or not claims_text.strip():
        return FactualGap(0.0, True, False, FactualCategory.UNCERTAIN)

    slot = _answer_slot(question, claims_text, ground_truth) if question else None
    if slot is not None:
        key, value = slot
        claims = [_verify_answer(claims_text.strip(), key, value)]
    else:
        claims = [verify_claim(c, ground_truth, claims_text) for c in extract_claims(claims_text)]

    false_count = 0.0
    incomplete_count = 0.0
    verifiable_count = 0
    for claim in claims:
        if claim.source == SOURCE_UNKNOWN:
            continue
        verifiable_count += 1
        if not claim.truth_value:
            if claim.source == SOURCE_INCOMPLETE:
                incomplete_count += 0.3
            else:
                false_count += 1.0

    if verifiable_count:
        distance = min((false_count + incomplete_count) / verifiable_count, 1.0)
    else:
        distance = 0.5

    contradictions = []
    for claim in claims:
        if claim.truth_value or claim.source in (SOURCE_UNKNOWN, SOURCE_INCOMPLETE):
            continue
        if claim.source == SOURCE_MATHEMATICAL:
            severity = Severity.CRITICAL
        elif distance > 0.8:
            severity = Severity.MAJOR
        else:
            severity = Severity.MINOR
        truth = (
            f"{slot[0]}: {slot[1]}" if slot is not None
            else _truth_statement(claim.statement, ground_truth)
        )
        contradictions.append(Contradiction(claim.statement, truth, severity))

    verifiable = verifiable_count > 0
    return FactualGap(
        distance=distance,
        bridgeable=verifiable or distance < 1.0,
        verifiable=verifiable,
        category=_categorize(distance, verifiable),
        claims=claims,
        contradictions=contradictions,
    )
