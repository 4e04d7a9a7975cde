"""
Mediation Engine Package

Measures the gap between what was asked (intent) and what was produced
(manifestation), moderates confidence by that gap, and routes the result
to allow, correction, human review, or an ontological block.

Architecture:
    Source → Generator → Gap Detector → Moderation → Decision
                ↑                                       ↓
            Correction  ←──────── REDEMPTIVE ───────  Route
                                                        ↓
                                    Experiential Memory / Verifier Posture

Modules:
    gap/            - Four-dimensional gap detection
    moderation.py   - Confidence withholding proportional to the gap
    correction.py   - Bounded, learning correction attempts
    posture.py      - Adaptive verifier weights and thresholds
    memory.py       - Distilled experience and receptivity
    persistence.py  - Versioned JSON state file
    cycle.py        - The mediation cycle orchestrator
    service.py      - Single-shot evaluation facade
    reconcile.py    - Two-verifier disagreement resolution
"""

from mediation_engine.errors import (
    MediationError,
    InvalidInputError,
    MissingCollaboratorError,
    CollaboratorFailureError,
    CollaboratorTimeoutError,
    IncompatibleVersionError,
    StateFileError,
)

# Gap detection
from mediation_engine.gap import GapType, GapResult, GapSummary, detect_gap

# Confidence
from mediation_engine.moderation import ModerationResult, moderate, withholding
from mediation_engine.signals import (
    Signal,
    ConfidenceSmoother,
    signals_to_confidence,
    adaptive_confidence,
)

# Decisions
from mediation_engine.modes import MediationMode, PolicyDecision, MediationDecision
from mediation_engine.policy import Classifier, decide, to_policy

# Correction
from mediation_engine.correction import (
    CorrectionResult,
    CorrectionState,
    FailedMediation,
    correct,
)

# Learning state
from mediation_engine.posture import VerifierPosture, default_posture, adjust_posture
from mediation_engine.memory import ExperientialMemory, create_memory, integrate, recall_wisdom
from mediation_engine.persistence import save_state, load_state, auto_load, auto_save

# Orchestration
from mediation_engine.cycle import (
    CycleConfig,
    CycleState,
    Manifestation,
    Source,
    circulate,
    run_cycle,
)
from mediation_engine.service import MediationService
from mediation_engine.reconcile import VerifierVerdict, reconcile, run_parallel

# Event Logging
from mediation_engine.events import EventLogger, EventType

__version__ = "0.1.0"
__all__ = [
    # Errors
    "MediationError",
    "InvalidInputError",
    "MissingCollaboratorError",
    "CollaboratorFailureError",
    "CollaboratorTimeoutError",
    "IncompatibleVersionError",
    "StateFileError",
    # Gap detection
    "GapType",
    "GapResult",
    "GapSummary",
    "detect_gap",
    # Confidence
    "ModerationResult",
    "moderate",
    "withholding",
    "Signal",
    "ConfidenceSmoother",
    "signals_to_confidence",
    "adaptive_confidence",
    # Decisions
    "MediationMode",
    "PolicyDecision",
    "MediationDecision",
    "Classifier",
    "decide",
    "to_policy",
    # Correction
    "CorrectionResult",
    "CorrectionState",
    "FailedMediation",
    "correct",
    # Learning state
    "VerifierPosture",
    "default_posture",
    "adjust_posture",
    "ExperientialMemory",
    "create_memory",
    "integrate",
    "recall_wisdom",
    "save_state",
    "load_state",
    "auto_load",
    "auto_save",
    # Orchestration
    "CycleConfig",
    "CycleState",
    "Manifestation",
    "Source",
    "circulate",
    "run_cycle",
    "MediationService",
    "VerifierVerdict",
    "reconcile",
    "run_parallel",
    # Events
    "EventLogger",
    "EventType",
]
