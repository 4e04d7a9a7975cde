"""
Mediation Modes

The five outcomes of the Decide phase, and the decision record that carries them.

    DIRECT_ALLOW       gap small, moderated confidence high     terminal success
    KENOTIC            allowed with proportional restraint       terminal success
    REDEMPTIVE         correctable; routes to the Correction Protocol
    STEP_UP            uncertain; deferred to a human            terminal
    ONTOLOGICAL_BLOCK  categorical impossibility                 terminal, never correctable
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class MediationMode(Enum):
    DIRECT_ALLOW = "DIRECT_ALLOW"
    KENOTIC = "KENOTIC"
    REDEMPTIVE = "REDEMPTIVE"
    STEP_UP = "STEP_UP"
    ONTOLOGICAL_BLOCK = "ONTOLOGICAL_BLOCK"


class PolicyDecision(Enum):
    ALLOW = "ALLOW"
    BLOCK = "BLOCK"
    STEP_UP = "STEP_UP"


@dataclass(frozen=True)
class MediationDecision:
    mode: MediationMode
    required_moderation: float
    human_required: bool
    correctable: bool
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "requiredModeration": self.required_moderation,
            "humanRequired": self.human_required,
            "correctable": self.correctable,
            "reason": self.reason,
        }
