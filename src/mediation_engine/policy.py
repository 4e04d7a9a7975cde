"""
Decision Policy - classify an analysed gap into one of five mediation modes.

Two classifiers share the same vocabulary:

GAP_FIRST (default):
    ONTOLOGICAL dominant                          -> ONTOLOGICAL_BLOCK
    unbridgeable, or moderated < 0.3 and d > 0.6  -> REDEMPTIVE
    moderated < 0.7                               -> STEP_UP
    otherwise                                     -> DIRECT_ALLOW

THRESHOLD (uses the posture's allow/block thresholds):
    ONTOLOGICAL dominant                          -> ONTOLOGICAL_BLOCK
    block < c < allow                             -> STEP_UP
    c <= block, bridgeable                        -> REDEMPTIVE
    c <= block, unbridgeable                      -> ONTOLOGICAL_BLOCK (policy block)
    c >= allow, d > 0.3                           -> KENOTIC
    otherwise                                     -> DIRECT_ALLOW
"""

from enum import Enum
from typing import Optional

from mediation_engine.gap.detector import GapResult, GapType
from mediation_engine.modes import MediationDecision, MediationMode, PolicyDecision
from mediation_engine.posture import PostureThresholds


class Classifier(Enum):
    GAP_FIRST = "gap_first"
    THRESHOLD = "threshold"


REDEMPTIVE_CONFIDENCE = 0.3
REDEMPTIVE_DISTANCE = 0.6
ALLOW_CONFIDENCE = 0.7
KENOTIC_DISTANCE = 0.3


def _ontological(gap: GapResult) -> MediationDecision:
    return MediationDecision(
        mode=MediationMode.ONTOLOGICAL_BLOCK,
        required_moderation=1.0,
        human_required=True,
        correctable=False,
        reason=(
            f"Ontological boundary detected: {gap.reason}. This gap cannot be mediated "
            "computationally; correction was not attempted."
        ),
    )


def decide_gap_first(gap: GapResult, moderated: float) -> MediationDecision:
    if gap.dominant_type is GapType.ONTOLOGICAL:
        return _ontological(gap)

    distance = gap.overall_distance
    if not gap.bridgeable or (moderated < REDEMPTIVE_CONFIDENCE and distance > REDEMPTIVE_DISTANCE):
        return MediationDecision(
            mode=MediationMode.REDEMPTIVE,
            required_moderation=0.7,
            human_required=False,
            correctable=True,
            reason=(
                f"Moderated confidence {moderated:.3f} with {gap.reason}. "
                "Routing to correction."
            ),
        )

    if moderated < ALLOW_CONFIDENCE:
        return MediationDecision(
            mode=MediationMode.STEP_UP,
            required_moderation=0.5,
            human_required=True,
            correctable=True,
            reason=f"Moderated confidence {moderated:.3f} is below {ALLOW_CONFIDENCE}. Deferring to a human.",
        )

    return MediationDecision(
        mode=MediationMode.DIRECT_ALLOW,
        required_moderation=0.1,
        human_required=False,
        correctable=False,
        reason=f"High confidence ({moderated:.3f}) and minimal gap ({distance:.3f}). Allowed directly.",
    )


def decide_threshold(
    gap: GapResult,
    confidence: float,
    thresholds: Optional[PostureThresholds] = None,
) -> MediationDecision:
    thresholds = thresholds or PostureThresholds()
    if gap.dominant_type is GapType.ONTOLOGICAL:
        return _ontological(gap)

    distance = gap.overall_distance
    if thresholds.block < confidence < thresholds.allow:
        return MediationDecision(
            mode=MediationMode.STEP_UP,
            required_moderation=0.5,
            human_required=True,
            correctable=True,
            reason=f"Confidence {confidence:.3f} lies between thresholds. Requires human judgment.",
        )

    if confidence <= thresholds.block:
        if gap.bridgeable:
            return MediationDecision(
                mode=MediationMode.REDEMPTIVE,
                required_moderation=0.7,
                human_required=False,
                correctable=True,
                reason=f"Low confidence ({confidence:.3f}) but the gap is bridgeable. Attempting correction.",
            )
        return MediationDecision(
            mode=MediationMode.ONTOLOGICAL_BLOCK,
            required_moderation=0.9,
            human_required=True,
            correctable=False,
            reason=(
                f"Low confidence ({confidence:.3f}) and the gap is unbridgeable. "
                "Correction was not attempted."
            ),
        )

    if distance > KENOTIC_DISTANCE:
        return MediationDecision(
            mode=MediationMode.KENOTIC,
            required_moderation=distance * 0.5,
            human_required=False,
            correctable=False,
            reason=(
                f"Confidence acceptable ({confidence:.3f}) but gap detected ({distance:.3f}). "
                "Allowed with proportional restraint."
            ),
        )

    return MediationDecision(
        mode=MediationMode.DIRECT_ALLOW,
        required_moderation=0.1,
        human_required=False,
        correctable=False,
        reason=f"High confidence ({confidence:.3f}) and minimal gap ({distance:.3f}). Allowed directly.",
    )


def decide(
    gap: GapResult,
    moderated: float,
    classifier: Classifier = Classifier.GAP_FIRST,
    thresholds: Optional[PostureThresholds] = None,
) -> MediationDecision:
    if classifier is Classifier.THRESHOLD:
        return decide_threshold(gap, moderated, thresholds)
    return decide_gap_first(gap, moderated)


def to_policy(mode: MediationMode) -> PolicyDecision:
    if mode in (MediationMode.DIRECT_ALLOW, MediationMode.KENOTIC):
        return PolicyDecision.ALLOW
    if mode is MediationMode.STEP_UP:
        return PolicyDecision.STEP_UP
    return PolicyDecision.BLOCK


def final_state(mode: MediationMode) -> str:
    """original | redeemed | blocked. REDEMPTIVE is optimistic until correction reports."""
    if mode is MediationMode.REDEMPTIVE:
        return "redeemed"
    if mode is MediationMode.ONTOLOGICAL_BLOCK:
        return "blocked"
    return "original"
