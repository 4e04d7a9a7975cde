"""
State Persistence

Memory and posture outlive a single cycle. They are saved together as one
versioned JSON document:

    {
      "version": "1.0.0",
      "savedAt": "2026-01-01T00:00:00+00:00",
      "memory":  {...},
      "posture": {...}
    }

Loading a document with any other version raises IncompatibleVersionError;
nothing is coerced. Writes go to a temp file in the target directory and are
moved into place, so a failed save never corrupts the existing file.

Usage:
    from mediation_engine.persistence import save_state, load_state

    save_state(memory, posture, path)
    memory, posture = load_state(path)

    memory, posture = auto_load()   # fresh state on first run
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from mediation_engine.errors import IncompatibleVersionError, StateFileError
from mediation_engine.gap.detector import GapType
from mediation_engine.memory import (
    DistilledExperience,
    ExperientialMemory,
    GapPattern,
    Receptivity,
    create_memory,
)
from mediation_engine.modes import MediationMode
from mediation_engine.posture import (
    PostureAdjustment,
    PostureThresholds,
    PostureWeights,
    VerifierPosture,
    default_posture,
)


STATE_VERSION = "1.0.0"
STATE_DIR = ".mediation"
STATE_FILE = "memory.json"
STATE_PATH_ENV = "MEDIATION_STATE_PATH"

PathLike = Union[str, Path]


# =============================================================================
# Serialization
# =============================================================================

def serialize_memory(memory: ExperientialMemory) -> Dict[str, Any]:
    return {
        "distilled": [exp.to_dict() for exp in memory.distilled],
        "receptivity": memory.receptivity.to_dict(),
        "cyclesCompleted": memory.cycles_completed,
    }


def deserialize_memory(data: Dict[str, Any]) -> ExperientialMemory:
    distilled = []
    for item in data.get("distilled", []):
        pattern = item["gapPattern"]
        distilled.append(DistilledExperience(
            pattern=GapPattern(GapType(pattern["type"]), list(pattern.get("characteristics", []))),
            succeeded=bool(item["succeeded"]),
            wisdom=item["wisdom"],
            mode=MediationMode(item["mode"]),
            timestamp=datetime.fromisoformat(item["timestamp"]),
            observations=int(item.get("observations", 1)),
        ))
    return ExperientialMemory(
        distilled=distilled,
        receptivity=Receptivity(**data.get("receptivity", {})),
        cycles_completed=int(data.get("cyclesCompleted", 0)),
    )


def serialize_posture(posture: VerifierPosture) -> Dict[str, Any]:
    return {
        "weights": posture.weights.as_dict(),
        "thresholds": {
            "allow": posture.thresholds.allow,
            "block": posture.thresholds.block,
        },
        "learningRate": posture.learning_rate,
        "history": [adj.to_dict() for adj in posture.history],
    }


def deserialize_posture(data: Dict[str, Any]) -> VerifierPosture:
    history = [
        PostureAdjustment(
            cycle_number=int(item["cycleNumber"]),
            dimension=item["dimension"],
            old_value=float(item["oldValue"]),
            new_value=float(item["newValue"]),
            delta=float(item["delta"]),
            reason=item["reason"],
            timestamp=datetime.fromisoformat(item["timestamp"]),
        )
        for item in data.get("history", [])
    ]
    thresholds = data.get("thresholds", {})
    return VerifierPosture(
        weights=PostureWeights(**data.get("weights", {})),
        thresholds=PostureThresholds(
            allow=float(thresholds.get("allow", 0.7)),
            block=float(thresholds.get("block", 0.3)),
        ),
        learning_rate=float(data.get("learningRate", 0.1)),
        history=history,
    )


def dump_state(memory: ExperientialMemory, posture: VerifierPosture) -> Dict[str, Any]:
    return {
        "version": STATE_VERSION,
        "savedAt": datetime.now(timezone.utc).isoformat(),
        "memory": serialize_memory(memory),
        "posture": serialize_posture(posture),
    }


def restore_state(blob: Dict[str, Any]) -> Tuple[ExperientialMemory, VerifierPosture]:
    """Inverse of dump_state. Raises IncompatibleVersionError on a version mismatch."""
    version = blob.get("version")
    if version != STATE_VERSION:
        raise IncompatibleVersionError(version, STATE_VERSION)
    return deserialize_memory(blob["memory"]), deserialize_posture(blob["posture"])


# =============================================================================
# File I/O
# =============================================================================

def default_state_path() -> Path:
    override = os.environ.get(STATE_PATH_ENV)
    if override:
        return Path(override)
    return Path.cwd() / STATE_DIR / STATE_FILE


def state_exists(path: Optional[PathLike] = None) -> bool:
    return Path(path or default_state_path()).is_file()


def save_state(
    memory: ExperientialMemory,
    posture: VerifierPosture,
    path: Optional[PathLike] = None,
) -> Path:
    path = Path(path or default_state_path())
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(dump_state(memory, posture), f, indent=2)
        os.replace(temp_path, path)
    except OSError as e:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise StateFileError(str(path), str(e)) from e
    return path


def load_state(path: Optional[PathLike] = None) -> Tuple[ExperientialMemory, VerifierPosture]:
    path = Path(path or default_state_path())
    try:
        with open(path, encoding="utf-8") as f:
            blob = json.load(f)
    except OSError as e:
        raise StateFileError(str(path), str(e)) from e
    except json.JSONDecodeError as e:
        raise StateFileError(str(path), f"corrupted state file: {e}") from e
    return restore_state(blob)


def auto_load(path: Optional[PathLike] = None) -> Tuple[ExperientialMemory, VerifierPosture]:
    """Load saved state, or start fresh when nothing has been saved yet."""
    if not state_exists(path):
        return create_memory(), default_posture()
    return load_state(path)


def auto_save(
    memory: ExperientialMemory,
    posture: VerifierPosture,
    path: Optional[PathLike] = None,
) -> Path:
    return save_state(memory, posture, path)
