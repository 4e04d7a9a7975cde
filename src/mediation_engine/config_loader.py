"""
Config Loader - Load cycle limits and posture defaults from config files.

This separates tunable values from source code:
- Source defines structure (what settings exist)
- Config files define values (what the settings are)

Usage:
    from mediation_engine.config_loader import load_cycle_config, load_posture

    cycle_config = load_cycle_config()               # uses default config
    cycle_config = load_cycle_config("custom.json")
    posture = load_posture()

The MEDIATION_CONFIG environment variable overrides the default path.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from mediation_engine.cycle import DEFAULT_COLLABORATOR_TIMEOUT, CycleConfig
from mediation_engine.errors import InvalidInputError
from mediation_engine.policy import Classifier
from mediation_engine.posture import PostureThresholds, PostureWeights, VerifierPosture


CONFIG_ENV = "MEDIATION_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "mediation.json"

PathLike = Union[str, Path]


def get_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override)
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Optional[PathLike] = None) -> Dict[str, Any]:
    """Load the full config file ({} when missing, so code defaults apply)."""
    path = Path(config_path) if config_path else get_config_path()
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def load_cycle_config(config_path: Optional[PathLike] = None) -> CycleConfig:
    cycle = load_config(config_path).get("cycle", {})
    if not cycle:
        return CycleConfig()

    classifier = cycle.get("classifier", Classifier.GAP_FIRST.value)
    try:
        classifier = Classifier(classifier)
    except ValueError as e:
        raise InvalidInputError(
            "classifier", classifier, " or ".join(c.value for c in Classifier)
        ) from e

    return CycleConfig(
        max_cycles=int(cycle.get("max_cycles", 5)),
        max_correction_attempts=int(cycle.get("max_correction_attempts", 3)),
        classifier=classifier,
        collaborator_timeout=cycle.get("collaborator_timeout", DEFAULT_COLLABORATOR_TIMEOUT),
    )


def load_posture(config_path: Optional[PathLike] = None) -> VerifierPosture:
    """Initial posture from config; falls back to code defaults."""
    posture = load_config(config_path).get("posture", {})
    if not posture:
        return VerifierPosture()

    weights = posture.get("weights", {})
    thresholds = posture.get("thresholds", {})
    return VerifierPosture(
        weights=PostureWeights(
            grounding_factual=weights.get("grounding_factual", 1.0),
            semantic_coherence=weights.get("semantic_coherence", 0.8),
            logical_consistency=weights.get("logical_consistency", 0.7),
            completeness=weights.get("completeness", 0.6),
        ),
        thresholds=PostureThresholds(
            allow=thresholds.get("allow", 0.7),
            block=thresholds.get("block", 0.3),
        ),
        learning_rate=posture.get("learning_rate", 0.1),
    )


def save_posture(
    posture: VerifierPosture,
    config_path: Optional[PathLike] = None,
    notes: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Write posture defaults back to the config file.

    Preserves the other sections. History is runtime state and is not written.
    """
    path = Path(config_path) if config_path else get_config_path()
    existing = load_config(path)

    existing["posture"] = {
        "weights": posture.weights.as_dict(),
        "thresholds": {
            "allow": posture.thresholds.allow,
            "block": posture.thresholds.block,
        },
        "learning_rate": posture.learning_rate,
    }
    if notes:
        existing["notes"] = {**existing.get("notes", {}), **notes}

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(existing, f, indent=2)


def load_service_settings(config_path: Optional[PathLike] = None) -> Dict[str, Any]:
    """Facade settings: smoothing factor, correction budget and transform deadline."""
    service = load_config(config_path).get("service", {})
    return {
        "smoothing_factor": service.get("smoothing_factor", 0.3),
        "redemptive_mode": service.get("redemptive_mode", True),
        "max_correction_attempts": service.get("max_correction_attempts", 3),
        "collaborator_timeout": service.get("collaborator_timeout", DEFAULT_COLLABORATOR_TIMEOUT),
    }
