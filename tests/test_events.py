"""
Event Logging Tests
"""

from mediation_engine.events import (
    CorrectionEvent,
    CycleEvent,
    DecisionEvent,
    EventLogger,
    EventType,
    PersistenceEvent,
    load_events,
)


def test_session_id_is_stamped():
    logger = EventLogger(session_id="abc")
    event = DecisionEvent(cycle_number=1, mode="DIRECT_ALLOW")
    logger.emit(event)
    assert event.session_id == "abc"
    assert logger.get_events() == [event]


def test_intent_hash_is_derived():
    event = CycleEvent(intent="What is 2+2?")
    assert len(event.intent_hash) == 16
    assert CycleEvent(intent="What is 2+2?").intent_hash == event.intent_hash


def test_jsonl_round_trip(tmp_path):
    path = tmp_path / "logs" / "events.jsonl"
    logger = EventLogger(output_path=path)
    logger.emit(CycleEvent(cycle_number=1, intent="q", gap_type="NONE", terminated=True))
    logger.emit(CorrectionEvent(cycle_number=1, attempt_number=1, strategy="s", error="boom"))
    logger.emit(PersistenceEvent(action="save", path="x", version="1.0.0"))
    logger.close()

    events = load_events(path)
    assert [e.event_type for e in events] == [EventType.CYCLE, EventType.CORRECTION, EventType.PERSISTENCE]
    assert events[0].terminated is True
    assert events[0].session_id == logger.session_id
    assert events[1].error == "boom"


def test_callbacks_receive_events():
    received = []
    logger = EventLogger()
    logger.add_callback(received.append)
    logger.emit(DecisionEvent(mode="STEP_UP"))
    assert [e.mode for e in received] == ["STEP_UP"]


def test_summary_counts():
    logger = EventLogger()
    logger.emit(DecisionEvent(mode="REDEMPTIVE"))
    logger.emit(CorrectionEvent(succeeded=True))
    logger.emit(DecisionEvent(mode="STEP_UP"))
    logger.emit(CycleEvent())
    summary = logger.get_summary()
    assert summary["decisions_by_mode"] == {"REDEMPTIVE": 1, "STEP_UP": 1}
    assert summary["corrections_succeeded"] == 1
    assert summary["cycles"] == 1
    assert summary["total_events"] == 4


def test_to_dict_serializes_enum_and_time():
    data = DecisionEvent(mode="KENOTIC").to_dict()
    assert data["event_type"] == "decision"
    assert isinstance(data["timestamp"], str)
