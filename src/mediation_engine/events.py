"""
Mediation Event Logging

Structured event emission for replay and inspection of mediation runs.

Event types:
- CycleEvent: one pass through Analyze/Decide/Integrate/Route
- DecisionEvent: the mode chosen for an analysed gap
- CorrectionEvent: the outcome of a correction invocation
- PersistenceEvent: state saved or loaded
- EvaluationEvent: one facade evaluation

Output formats:
- JSONL files (for replay/analysis)
- In-memory buffer (always on, for inspection and tests)
- Callbacks (for custom integrations)

Usage:
    from mediation_engine.events import EventLogger, DecisionEvent

    logger = EventLogger(output_path="mediation.jsonl")
    logger.emit(DecisionEvent(cycle_number=1, mode="DIRECT_ALLOW", confidence=0.9))
    logger.flush()
"""

import hashlib
import json
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union


# =============================================================================
# Event Types
# =============================================================================

class EventType(Enum):
    CYCLE = "cycle"
    DECISION = "decision"
    CORRECTION = "correction"
    PERSISTENCE = "persistence"
    EVALUATION = "evaluation"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BaseEvent:
    """Base class for all events."""
    event_type: EventType
    timestamp: datetime = field(default_factory=_now)
    session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["event_type"] = self.event_type.value
        d["timestamp"] = self.timestamp.isoformat()
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass
class CycleEvent(BaseEvent):
    event_type: EventType = field(default=EventType.CYCLE)

    cycle_number: int = 0
    intent: str = ""
    intent_hash: str = ""
    manifestation: str = ""
    gap_type: str = ""
    distance: float = 0.0
    bridgeable: bool = True
    raw_confidence: float = 0.0
    moderated_confidence: float = 0.0
    terminated: bool = False
    termination_reason: Optional[str] = None

    def __post_init__(self):
        if self.intent and not self.intent_hash:
            self.intent_hash = hashlib.sha256(self.intent.encode()).hexdigest()[:16]


@dataclass
class DecisionEvent(BaseEvent):
    event_type: EventType = field(default=EventType.DECISION)

    cycle_number: int = 0
    mode: str = ""
    policy: str = ""
    confidence: float = 0.0
    human_required: bool = False
    correctable: bool = False
    reason: str = ""


@dataclass
class CorrectionEvent(BaseEvent):
    event_type: EventType = field(default=EventType.CORRECTION)

    cycle_number: int = 0
    attempt_number: int = 0
    strategy: str = ""
    succeeded: bool = False
    final_state: str = ""
    error: Optional[str] = None


@dataclass
class PersistenceEvent(BaseEvent):
    event_type: EventType = field(default=EventType.PERSISTENCE)

    action: str = ""  # "save" | "load"
    path: str = ""
    version: str = ""
    distilled_count: int = 0
    cycles_completed: int = 0


@dataclass
class EvaluationEvent(BaseEvent):
    event_type: EventType = field(default=EventType.EVALUATION)

    decision: str = ""
    confidence: float = 0.0
    gap_type: str = ""
    distance: float = 0.0
    correction_attempted: bool = False
    final_state: str = ""


EVENT_CLASSES = {
    EventType.CYCLE.value: CycleEvent,
    EventType.DECISION.value: DecisionEvent,
    EventType.CORRECTION.value: CorrectionEvent,
    EventType.PERSISTENCE.value: PersistenceEvent,
    EventType.EVALUATION.value: EvaluationEvent,
}


# =============================================================================
# Sinks
# =============================================================================

class EventSink(ABC):
    """Where events go."""

    @abstractmethod
    def write(self, event: BaseEvent):
        pass

    @abstractmethod
    def flush(self):
        pass

    @abstractmethod
    def close(self):
        pass


class JSONLSink(EventSink):
    """Append events to a JSONL file, buffered."""

    def __init__(self, path: Union[str, Path], buffer_size: int = 100):
        self.path = Path(path)
        self.buffer_size = buffer_size
        self._buffer: List[str] = []
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, event: BaseEvent):
        with self._lock:
            self._buffer.append(event.to_json())
            if len(self._buffer) >= self.buffer_size:
                self._flush_buffer()

    def flush(self):
        with self._lock:
            self._flush_buffer()

    def _flush_buffer(self):
        if not self._buffer:
            return
        with open(self.path, "a", encoding="utf-8") as f:
            for line in self._buffer:
                f.write(line + "\n")
        self._buffer.clear()

    def close(self):
        self.flush()


class MemorySink(EventSink):
    """Keep the most recent events in memory."""

    def __init__(self, max_events: int = 10000):
        self.events: deque = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def write(self, event: BaseEvent):
        with self._lock:
            self.events.append(event)

    def flush(self):
        pass

    def close(self):
        pass

    def get_events(self, event_type: Optional[EventType] = None) -> List[BaseEvent]:
        with self._lock:
            if event_type:
                return [e for e in self.events if e.event_type == event_type]
            return list(self.events)

    def clear(self):
        with self._lock:
            self.events.clear()


class CallbackSink(EventSink):
    def __init__(self, callback: Callable[[BaseEvent], None]):
        self.callback = callback

    def write(self, event: BaseEvent):
        self.callback(event)

    def flush(self):
        pass

    def close(self):
        pass


# =============================================================================
# Event Logger
# =============================================================================

class EventLogger:
    """
    Fans events out to every sink.

    A MemorySink is always attached so callers can inspect what was emitted.
    """

    def __init__(
        self,
        output_path: Optional[Union[str, Path]] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or self._generate_session_id()
        self._sinks: List[EventSink] = []

        if output_path:
            self._sinks.append(JSONLSink(output_path))

        self._memory_sink = MemorySink()
        self._sinks.append(self._memory_sink)

    def _generate_session_id(self) -> str:
        return hashlib.sha256(
            f"{_now().isoformat()}-{id(self)}".encode()
        ).hexdigest()[:12]

    def add_sink(self, sink: EventSink):
        self._sinks.append(sink)

    def add_callback(self, callback: Callable[[BaseEvent], None]):
        self._sinks.append(CallbackSink(callback))

    def emit(self, event: BaseEvent):
        if not event.session_id:
            event.session_id = self.session_id
        for sink in self._sinks:
            sink.write(event)

    def get_events(self, event_type: Optional[EventType] = None) -> List[BaseEvent]:
        return self._memory_sink.get_events(event_type)

    def flush(self):
        for sink in self._sinks:
            sink.flush()

    def close(self):
        self.flush()
        for sink in self._sinks:
            sink.close()

    def get_summary(self) -> Dict[str, Any]:
        events = self._memory_sink.get_events()
        decisions = [e for e in events if isinstance(e, DecisionEvent)]
        corrections = [e for e in events if isinstance(e, CorrectionEvent)]

        modes: Dict[str, int] = {}
        for e in decisions:
            modes[e.mode] = modes.get(e.mode, 0) + 1

        return {
            "session_id": self.session_id,
            "total_events": len(events),
            "cycles": sum(1 for e in events if isinstance(e, CycleEvent)),
            "decisions_by_mode": modes,
            "corrections": len(corrections),
            "corrections_succeeded": sum(1 for e in corrections if e.succeeded),
        }


def load_events(path: Union[str, Path]) -> List[BaseEvent]:
    """Read events back from a JSONL file."""
    events: List[BaseEvent] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            data = json.loads(line)
            cls = EVENT_CLASSES.get(data.get("event_type", ""))
            if cls is None:
                continue
            data["event_type"] = EventType(data["event_type"])
            data["timestamp"] = datetime.fromisoformat(data["timestamp"])
            events.append(cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__}))
    return events
