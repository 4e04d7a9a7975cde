"""
Gap detection across four dimensions.

    semantic     meaning drift (lexical embedding + conceptual/pragmatic analysis)
    factual      claims vs. ground truth
    logical      conclusion vs. premises
    ontological  categorical impossibility (short-circuits the others)
"""

from mediation_engine.gap.detector import (
    GapType,
    GapResult,
    GapSummary,
    GapDetail,
    detect_gap,
    describe_gap,
)
from mediation_engine.gap.semantic import SemanticGap, detect_semantic_gap
from mediation_engine.gap.factual import FactualGap, FactualCategory, detect_factual_gap
from mediation_engine.gap.logical import LogicalGap, Inference, Fallacy, detect_logical_gap
from mediation_engine.gap.ontological import (
    OntologicalGap,
    OntologicalCategory,
    detect_ontological_gap,
)

__all__ = [
    "GapType",
    "GapResult",
    "GapSummary",
    "GapDetail",
    "detect_gap",
    "describe_gap",
    "SemanticGap",
    "detect_semantic_gap",
    "FactualGap",
    "FactualCategory",
    "detect_factual_gap",
    "LogicalGap",
    "Inference",
    "Fallacy",
    "detect_logical_gap",
    "OntologicalGap",
    "OntologicalCategory",
    "detect_ontological_gap",
]
