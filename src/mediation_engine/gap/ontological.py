"""
Ontological Gap Detection

Some intent/expression pairs ask a computational system to cross a categorical
boundary: to have subjective experience, to be a moral agent, or to attribute
a property to a thing that cannot carry it. These are not distances. They are
markers, and they short-circuit every other dimension.

Categories (checked in this order):
    phenomenological - claims of subjective experience (qualia, feeling, suffering)
    existential      - claims of personhood, soul, moral agency, sacramental status
    categorical      - type-mismatched property attribution ("what color is 7")

Invariant:
    An OntologicalGap always has distance == 1.0 and bridgeable == False.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern


class OntologicalCategory(Enum):
    PHENOMENOLOGICAL = "phenomenological"
    EXISTENTIAL = "existential"
    CATEGORICAL = "categorical"


class ImpossibilityType(Enum):
    PHENOMENOLOGICAL_BARRIER = "PHENOMENOLOGICAL_BARRIER"
    EXISTENTIAL_LIMIT = "EXISTENTIAL_LIMIT"
    CATEGORY_MISMATCH = "CATEGORY_MISMATCH"


# =============================================================================
# Markers
# =============================================================================

def _compile(patterns: List[str]) -> List[Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


PHENOMENOLOGICAL_MARKERS = _compile([
    # consciousness / qualia
    r"\bcan\s+ai\s+(love|feel|experience|suffer|be\s+conscious)\b",
    r"\bai\s+(loves|feels|experiences|suffers|is\s+conscious)\b",
    r"\bdoes\s+ai\s+(love|feel|experience|understand)\b",
    r"\bai\s+has\s+consciousness\b",
    r"\bai\s+(is|becomes?)\s+conscious\b",
    # subjective states
    r"\bai\b.*\b(pain|grief|joy|qualia)\b",
    r"\b(understand|comprehend)\b.*\b(grief|pain|suffering)\b",
    r"\bunderstand\s+meaning\b",
    r"\bgrasps?\s+semantics\b",
])

EXISTENTIAL_MARKERS = _compile([
    # personhood / soul
    r"\bai\s+(has|possesses|have)\b.*\bsouls?\b",
    r"\bai\s+(has|possesses)\s+(being|personhood)\b",
    r"\bcan\s+ai\s+(exist|be|have\s+being)\b",
    r"\bai\b.*\bentity\b",
    # moral agency
    r"\bai\s+(sins?|commits?\s+moral\s+evil|sinned)\b",
    r"\bcan\s+ai\s+(sin|be\s+moral|have\s+free\s+will)\b",
    # religious categories
    r"\bai\s+(worships?|engages?\s+in\s+worship)\b",
    r"\bai\s+(receives?|is)\s+(bapti[sz]ed|redeemed|saved)\b",
    r"\bcan\s+ai\s+(worship|receive.*\bsacraments?|be\s+saved|be\s+bapti[sz]ed)\b",
    r"\bai\s+needs?\s+salvation\b",
    # creation ex nihilo
    r"\bcreates?\s+(from\s+nothing|ex\s+nihilo)\b",
])

CATEGORICAL_MARKERS = _compile([
    # abstract vs physical
    r"\bwhat\s+colou?r\b.*\b(number|concept|idea)\b",
    r"\bcolou?r\b.*\bnumber\b",
    r"\bhow\s+(heavy|tall|large|weighs?)\b.*\b(justice|love|democracy)\b",
    r"\b(justice|love|democracy)\b.*\b(pounds?|kilos?|weighs?)\b",
    # literal vs metaphorical collapse
    r"\bheart\s+broke\b.*\bcardiac\b",
    r"\bmedical\s+emergency\b.*\bmetaphor",
    r"\bmetaphor\w*\b.*\brupture\b",
])

_MARKER_FAMILIES = [
    (OntologicalCategory.PHENOMENOLOGICAL, PHENOMENOLOGICAL_MARKERS),
    (OntologicalCategory.EXISTENTIAL, EXISTENTIAL_MARKERS),
    (OntologicalCategory.CATEGORICAL, CATEGORICAL_MARKERS),
]


# =============================================================================
# Result
# =============================================================================

@dataclass
class Impossibility:
    type: ImpossibilityType
    explanation: str
    example: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "explanation": self.explanation,
            "example": self.example,
        }


@dataclass
class OntologicalGap:
    """A categorical impossibility. Never a measurement."""
    category: OntologicalCategory
    impossibility: Impossibility
    reason: str
    distance: float = field(default=1.0, init=False)
    bridgeable: bool = field(default=False, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "ONTOLOGICAL",
            "distance": self.distance,
            "bridgeable": self.bridgeable,
            "category": self.category.value,
            "impossibility": self.impossibility.to_dict(),
            "reason": self.reason,
        }


_IMPOSSIBILITIES = {
    OntologicalCategory.PHENOMENOLOGICAL: Impossibility(
        type=ImpossibilityType.PHENOMENOLOGICAL_BARRIER,
        explanation=(
            "This requires subjective conscious experience (qualia) which a "
            "computational system cannot possess. States like love, pain and grief "
            "are first-person lived experiences, not functional processes."
        ),
        example="A model can process text about pain, but cannot experience what pain is like.",
    ),
    OntologicalCategory.EXISTENTIAL: Impossibility(
        type=ImpossibilityType.EXISTENTIAL_LIMIT,
        explanation=(
            "This requires ontological categories (soul, personhood, moral agency) that "
            "a computational system does not have. These are modes of being, not capabilities."
        ),
        example="A model cannot sin because sin requires free will and moral responsibility.",
    ),
    OntologicalCategory.CATEGORICAL: Impossibility(
        type=ImpossibilityType.CATEGORY_MISMATCH,
        explanation=(
            "This applies a property from one domain to an entity in another where it "
            "does not apply, or collapses metaphorical and literal meaning."
        ),
        example="The number 7 has no color because numbers are abstract entities.",
    ),
}


def _mentions(text: str, *words: str) -> bool:
    """Whole-word match; each word is a regex fragment ("suffer\\w*")."""
    return any(re.search(rf"\b{word}\b", text) for word in words)


def _reason(category: OntologicalCategory, intent: str) -> str:
    lower = intent.lower()

    if category is OntologicalCategory.PHENOMENOLOGICAL:
        if _mentions(lower, r"lov(e|es|ed|ing)"):
            return "Love requires subjective experience and phenomenological consciousness"
        if _mentions(lower, r"pains?", r"suffer\w*"):
            return "Pain and suffering are qualia, subjective experiential states"
        if _mentions(lower, r"grie(f|ve|ves|ving)"):
            return "Grief requires lived emotional experience, not data processing"
        return "Requires phenomenological consciousness (subjective experience)"

    if category is OntologicalCategory.EXISTENTIAL:
        if _mentions(lower, r"souls?"):
            return "A soul is not something a computational system possesses"
        if _mentions(lower, r"sin(s|ned|ful)?", r"moral\w*"):
            return "Moral agency requires free will, which requires personhood"
        if _mentions(lower, r"worship\w*"):
            return "Worship requires personhood and relationship"
        if _mentions(lower, r"sacraments?", r"bapti\w*"):
            return "Sacraments presuppose a human person"
        if _mentions(lower, r"ex\s+nihilo", r"from\s+nothing"):
            return "Creation from nothing is outside any computational capacity"
        return "Requires ontological categories not possessed (personhood, soul, being)"

    if _mentions(lower, r"heav(y|ier)", r"weigh\w*", r"colou?rs?"):
        return "Applies physical properties to abstract concepts"
    if _mentions(lower, r"hearts?", r"metaphor\w*"):
        return "Confuses literal and metaphorical meanings in incompatible ways"
    return "Applies properties from one category to an incompatible category"


# =============================================================================
# Detection
# =============================================================================

def classify_ontological(intent: str, expression: str) -> Optional[OntologicalCategory]:
    """Return the first matching category for the combined text, or None."""
    combined = f"{intent} {expression}".lower()
    for category, markers in _MARKER_FAMILIES:
        if any(marker.search(combined) for marker in markers):
            return category
    return None


def detect_ontological_gap(intent: str, expression: str) -> Optional[OntologicalGap]:
    """Detect a categorical impossibility, or None when there is none."""
    category = classify_ontological(intent, expression)
    if category is None:
        return None

    return OntologicalGap(
        category=category,
        impossibility=_IMPOSSIBILITIES[category],
        reason=_reason(category, intent),
    )
