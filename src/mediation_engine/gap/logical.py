"""
Logical Gap Detection

Assesses whether a conclusion follows from a list of premises.

Inference assessment (first match wins):
    tautology, self-contradiction (invalid), modus ponens, categorical syllogism,
    transitive chain, variable arithmetic, modal confusion (invalid),
    inductive markers (weak), temporal induction (weak), cited-source overlap,
    conditional overlap, plain word overlap.

Fallacy scan (independent of the inference verdict):
    self_contradiction   critical
    affirming_consequent major
    ad_hominem           major
    circular_reasoning   critical
    false_dichotomy      major
    straw_man            major
    modal_logic_error    critical

Distance:
    valid 0.0 / weak 0.45 / invalid 0.8, plus 0.2 / 0.1 / 0.05 per
    critical / major / minor fallacy, capped at 1.0.
    A self-contradiction is always 1.0.
"""

import re
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class Inference(Enum):
    VALID = "valid"
    WEAK = "weak"
    INVALID = "invalid"


class FallacySeverity(Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


INFERENCE_DISTANCE = {
    Inference.VALID: 0.0,
    Inference.WEAK: 0.45,
    Inference.INVALID: 0.8,
}

SEVERITY_PENALTY = {
    FallacySeverity.CRITICAL: 0.2,
    FallacySeverity.MAJOR: 0.1,
    FallacySeverity.MINOR: 0.05,
}


@dataclass
class Fallacy:
    type: str
    description: str
    severity: FallacySeverity

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "description": self.description, "severity": self.severity.value}


@dataclass
class LogicalGap:
    distance: float
    bridgeable: bool
    valid: bool
    premises: List[str]
    conclusion: str
    inference: Inference
    category: Inference
    fallacies: List[Fallacy] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "LOGICAL",
            "distance": self.distance,
            "bridgeable": self.bridgeable,
            "valid": self.valid,
            "reasoning": {
                "premises": list(self.premises),
                "conclusion": self.conclusion,
                "inference": self.inference.value,
            },
            "fallacies": [f.to_dict() for f in self.fallacies],
            "category": self.category.value,
        }


# =============================================================================
# Helpers
# =============================================================================

MYSTERY_MARKERS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"trinity.*three.*one",
        r"three\s+persons.*one\s+god",
        r"hypostatic\s+union",
        r"fully\s+god.*fully\s+human",
    )
]

# Antonym pairs: the second term asserts the negation of the first.
OPPOSITES: List[Tuple[str, str]] = [
    ("true", "false"),
    ("mortal", "immortal"),
    ("finite", "infinite"),
    ("possible", "impossible"),
    ("present", "absent"),
]
_ANTONYMS = {second: first for first, second in OPPOSITES}

_CONTRACTIONS = [
    (re.compile(r"\bcan't\b|\bcannot\b"), "can not"),
    (re.compile(r"\bwon't\b"), "will not"),
    (re.compile(r"\bisn't\b"), "is not"),
    (re.compile(r"\baren't\b"), "are not"),
    (re.compile(r"\bdoesn't\b"), "does not"),
]
_ASSERTION = re.compile(r"\b(\w+)\s+(is|are|can|will)\s+(not\s+)?(?:an?\s+|the\s+)?(\w+)")
_EXISTENCE = re.compile(r"\b(\w+)\s+(does\s+not\s+exist|exists)\b")
_COPULA = {"is": "be", "are": "be", "can": "can", "will": "will"}

CONTRADICTION_PATTERNS = [
    re.compile(r"\b(\w+)\s+is\s+true\b.*\b\1\s+is\s+false\b"),
    re.compile(r"\b(\w+)\s+is\s+false\b.*\b\1\s+is\s+true\b"),
    re.compile(r"\ball\s+(\w+)\s+are\s+(\w+)\b.*\b(\w+)\s+is\s+not\s+\2\b"),
]

_CONDITIONAL_TEST = re.compile(r"\bif\s+.+[,\s]+(?:then\s+)?.+", re.IGNORECASE)
_CONDITIONAL_SPLIT = re.compile(r"\bif\s+(.+?)\s*(?:then|,)\s*(.+)", re.IGNORECASE)
_THEREFORE = re.compile(r"\btherefore,?\s*", re.IGNORECASE)
_UNIVERSAL = re.compile(r"\ball\s+(\w+)\s+are\s+(\w+)", re.IGNORECASE)
_UNIVERSAL_MODAL = re.compile(r"\ball\s+(\w+)\s+(can\s+not|can|will\s+not|will)\s+(\w+)")
_INSTANCE = re.compile(r"(\w+)\s+is\s+(?:an?\s+|the\s+)?(\w+)", re.IGNORECASE)
_CITATION = re.compile(r"\(?\d*\s*\w+\s*\d+:\d+\)?", re.IGNORECASE)
_ASSIGNMENT = re.compile(r"[a-z]\s*=\s*\d+")
_STEM_SUFFIX = re.compile(r"(ing|ed|s|es)$")


def _is_mystery(premises: Sequence[str], conclusion: str) -> bool:
    combined = " ".join([*premises, conclusion]).lower()
    return any(m.search(combined) for m in MYSTERY_MARKERS)


def _words_match(a: str, b: str) -> bool:
    if a == b:
        return True
    stem_a = _STEM_SUFFIX.sub("", a)
    stem_b = _STEM_SUFFIX.sub("", b)
    return stem_a == stem_b or stem_b in a or stem_a in b


def _key_terms(text: str, stop: Tuple[str, ...]) -> List[str]:
    return [w for w in text.split() if len(w) > 2 and w not in stop]


def _covers(terms: List[str], target: str) -> bool:
    """True when at least 60% of terms (minimum one) appear in target."""
    target_words = target.split()
    matched = [t for t in terms if any(_words_match(t, w) for w in target_words)]
    return len(matched) >= max(1, int(len(terms) * 0.6))


def _split_conditional(premises: Sequence[str]) -> Optional[Tuple[str, str, str]]:
    conditional = next((p for p in premises if _CONDITIONAL_TEST.search(p)), None)
    if conditional is None:
        return None
    match = _CONDITIONAL_SPLIT.search(conditional)
    if not match:
        return None
    return conditional, match.group(1).lower().strip(), match.group(2).lower().strip()


def _has(text: str, *words: str) -> bool:
    """Whole-word match of any word (each a regex fragment)."""
    return any(re.search(rf"\b{word}\b", text) for word in words)


def _strip_therefore(conclusion: str) -> str:
    return _THEREFORE.sub("", conclusion.lower(), count=1).strip()


def _expand_contractions(text: str) -> str:
    for pattern, replacement in _CONTRACTIONS:
        text = pattern.sub(replacement, text)
    return text


def _assertions(statement: str) -> List[Tuple[str, str, str, bool]]:
    """(subject, copula, predicate, affirmed) for each simple claim in statement."""
    text = _expand_contractions(statement.lower())
    found = []
    for subject, copula, negation, predicate in _ASSERTION.findall(text):
        affirmed = not negation
        if predicate in _ANTONYMS:
            predicate, affirmed = _ANTONYMS[predicate], not affirmed
        found.append((subject, _COPULA[copula], predicate, affirmed))
    for subject, verb in _EXISTENCE.findall(text):
        found.append((subject, "exist", "", verb == "exists"))
    return found


def has_contradiction(premises: Sequence[str], conclusion: str) -> bool:
    """
    True when the same claim is both asserted and denied.

    Conditionals assert neither of their clauses and are skipped.
    """
    combined = " ".join([*premises, conclusion]).lower()
    if any(p.search(combined) for p in CONTRADICTION_PATTERNS):
        return True

    seen: Dict[Tuple[str, str, str], bool] = {}
    for statement in [*premises, _strip_therefore(conclusion)]:
        if _CONDITIONAL_TEST.search(statement):
            continue
        for subject, copula, predicate, affirmed in _assertions(statement):
            key = (subject, copula, predicate)
            if key in seen and seen[key] != affirmed:
                return True
            seen.setdefault(key, affirmed)
    return False


def _is_affirming_consequent(premises: Sequence[str], conclusion: str) -> bool:
    split = _split_conditional(premises)
    if split is None:
        return False
    conditional, antecedent, consequent = split
    stop = ("the", "and", "or")
    others = [p.lower() for p in premises if p != conditional]
    asserts_consequent = any(_covers(_key_terms(consequent, stop), p) for p in others)
    concludes_antecedent = _covers(_key_terms(antecedent, stop), _strip_therefore(conclusion))
    return asserts_consequent and concludes_antecedent


def is_modus_ponens(premises: Sequence[str], conclusion: str) -> bool:
    split = _split_conditional(premises)
    if split is None:
        return False
    conditional, antecedent, consequent = split
    stop = ("the", "and", "or", "not")
    others = [p.lower() for p in premises if p != conditional]
    asserts_antecedent = any(_covers(_key_terms(antecedent, stop), p) for p in others)
    concludes_consequent = _covers(_key_terms(consequent, stop), _strip_therefore(conclusion))
    return asserts_antecedent and concludes_consequent


def _universal(premise: str) -> Optional[Tuple[str, str]]:
    """(category, attribute) of "all X are Y" or "all X can [not] Y"."""
    match = _UNIVERSAL.search(premise)
    if match:
        return match.group(1).lower(), match.group(2).lower()
    match = _UNIVERSAL_MODAL.search(_expand_contractions(premise.lower()))
    if match:
        return match.group(1), f"{match.group(2)} {match.group(3)}"
    return None


def is_syllogism(premises: Sequence[str], conclusion: str) -> bool:
    universal = next((p for p in premises if _universal(p)), None)
    if universal is None:
        return False
    category, attribute = _universal(universal)

    asserts_category = False
    for premise in premises:
        if premise is universal:
            continue
        instance = _INSTANCE.search(premise.lower())
        if instance is None:
            continue
        asserted = instance.group(2)
        if asserted in (category, category + "s") or asserted + "s" == category:
            asserts_category = True
            break

    concluded = _expand_contractions(_strip_therefore(conclusion))
    return asserts_category and re.search(rf"\b{re.escape(attribute)}\b", concluded) is not None


def is_transitive_chain(premises: Sequence[str], conclusion: str) -> bool:
    edges: List[Tuple[str, str]] = []
    for premise in premises:
        match = _UNIVERSAL.search(premise) or _INSTANCE.search(premise)
        if match:
            edges.append((match.group(1).lower(), match.group(2).lower()))
    if len(edges) < 2:
        return False

    target = _INSTANCE.search(conclusion)
    if target is None:
        return False
    start, end = target.group(1).lower(), target.group(2).lower()

    queue = deque([start])
    visited = {start}
    while queue:
        current = queue.popleft()
        if current == end:
            return True
        for source, destination in edges:
            if source == current and destination not in visited:
                visited.add(destination)
                queue.append(destination)
    return False


def _overlap(a: List[str], b: List[str]) -> int:
    b_set = set(b)
    return len([w for w in dict.fromkeys(a) if w in b_set])


def assess_inference(premises: Sequence[str], conclusion: str) -> Inference:
    if not premises:
        return Inference.INVALID

    premise_text = " ".join(premises).lower()
    conclusion_lower = conclusion.lower()

    if len(premises) == 1 and premises[0].strip().lower() == conclusion.strip().lower():
        return Inference.VALID
    if has_contradiction(premises, conclusion):
        return Inference.INVALID
    if is_modus_ponens(premises, conclusion):
        return Inference.VALID
    if is_syllogism(premises, conclusion):
        return Inference.VALID
    if is_transitive_chain(premises, conclusion):
        return Inference.VALID
    if _ASSIGNMENT.search(premise_text) and _ASSIGNMENT.search(conclusion_lower):
        return Inference.VALID
    if _has(premise_text, "possible") and _has(conclusion_lower, "necessarily"):
        return Inference.INVALID
    if _has(premise_text, "most", "usually", "some"):
        return Inference.WEAK
    if _has(premise_text, "yesterday") and _has(premise_text, "today") and _has(conclusion_lower, "tomorrow"):
        return Inference.WEAK

    if _CITATION.search(premise_text + conclusion_lower):
        long_premise = [w for w in premise_text.split() if len(w) > 3]
        long_conclusion = [w for w in conclusion_lower.split() if len(w) > 3]
        if _overlap(long_premise, long_conclusion) > 1:
            return Inference.VALID

    if _has(premise_text, "if") and _has(premise_text, "then"):
        premise_words = list(dict.fromkeys(premise_text.split()))
        shared = _overlap(premise_words, conclusion_lower.split())
        return Inference.WEAK if shared > len(premise_words) * 0.3 else Inference.INVALID

    premise_words = list(dict.fromkeys(w for w in premise_text.split() if len(w) > 2))
    conclusion_words = list(dict.fromkeys(w for w in conclusion_lower.split() if len(w) > 2))
    shared = _overlap(premise_words, conclusion_words)
    if shared > min(len(premise_words), len(conclusion_words)) * 0.5:
        return Inference.WEAK
    return Inference.INVALID


def detect_fallacies(premises: Sequence[str], conclusion: str) -> List[Fallacy]:
    if _is_mystery(premises, conclusion):
        return []

    combined = " ".join([*premises, conclusion]).lower()
    conclusion_lower = conclusion.lower()
    fallacies: List[Fallacy] = []

    if has_contradiction(premises, conclusion):
        fallacies.append(Fallacy(
            "self_contradiction", "Conclusion contradicts premises", FallacySeverity.CRITICAL))

    if _is_affirming_consequent(premises, conclusion):
        fallacies.append(Fallacy(
            "affirming_consequent",
            "Affirms the consequent: If A then B, B, therefore A",
            FallacySeverity.MAJOR,
        ))

    if _has(combined, "unethical", r"bad\s+person") and _has(conclusion_lower, "argument", "wrong"):
        fallacies.append(Fallacy(
            "ad_hominem", "Attacks the person instead of the argument", FallacySeverity.MAJOR))

    premise_words = set(" ".join(premises).lower().split())
    conclusion_words = set(conclusion_lower.split())
    shared = len(premise_words & conclusion_words)
    circular = (
        (_has(combined, "bible") and _has(combined, "god") and _has(combined, "wrote"))
        or (shared > len(premise_words) * 0.9 and len(premises) == 1 and len(premises[0]) > 20)
    )
    if circular:
        fallacies.append(Fallacy(
            "circular_reasoning", "Conclusion assumes what it tries to prove", FallacySeverity.CRITICAL))

    if _has(combined, "either") and _has(combined, "or") and _has(combined, r"with\s+us", r"against\s+us"):
        fallacies.append(Fallacy(
            "false_dichotomy", "Presents only two options when more exist", FallacySeverity.MAJOR))

    if _has(combined, r"opponents?") and _has(combined, r"destroy\w*"):
        fallacies.append(Fallacy(
            "straw_man", "Misrepresents the opponent's argument", FallacySeverity.MAJOR))

    if _has(combined, "possible") and _has(combined, "necessarily"):
        fallacies.append(Fallacy(
            "modal_logic_error", "Confuses possibility with necessity", FallacySeverity.CRITICAL))

    return fallacies


def _distance(inference: Inference, fallacies: List[Fallacy]) -> float:
    if any(f.type == "self_contradiction" for f in fallacies):
        return 1.0
    distance = INFERENCE_DISTANCE[inference]
    distance += sum(SEVERITY_PENALTY[f.severity] for f in fallacies)
    return min(distance, 1.0)


# =============================================================================
# Detection
# =============================================================================

def detect_logical_gap(premises: Sequence[str], conclusion: str) -> LogicalGap:
    """Logical distance of conclusion from premises."""
    premises = list(premises)
    if not premises and not conclusion:
        return LogicalGap(
            distance=0.0,
            bridgeable=False,
            valid=False,
            premises=[],
            conclusion="",
            inference=Inference.INVALID,
            category=Inference.INVALID,
        )

    fallacies = detect_fallacies(premises, conclusion)
    inference = assess_inference(premises, conclusion)
    distance = _distance(inference, fallacies)

    if distance < 0.2:
        category = Inference.VALID
    elif distance < 0.6:
        category = Inference.WEAK
    else:
        category = Inference.INVALID

    return LogicalGap(
        distance=distance,
        bridgeable=category is Inference.WEAK or (category is Inference.INVALID and bool(fallacies)),
        valid=inference is Inference.VALID and not fallacies,
        premises=premises,
        conclusion=conclusion,
        inference=inference,
        category=category,
        fallacies=fallacies,
    )
