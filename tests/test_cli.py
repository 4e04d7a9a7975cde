"""
CLI Tests

Drives main() with explicit argv and a temporary state file.
"""

import json

import pytest

from mediation_engine.cli import build_parser, main
from mediation_engine.events import EventType, load_events


@pytest.fixture
def base_args(tmp_path):
    return ["--state", str(tmp_path / "memory.json"), "--config", str(tmp_path / "absent.json")]


def _json_out(capsys):
    return json.loads(capsys.readouterr().out)


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "mediate" in capsys.readouterr().out


def test_evaluate_exact_answer(base_args, tmp_path, capsys):
    assert main(base_args + ["evaluate", "What is 2+2?", "4", "--json"]) == 0
    result = _json_out(capsys)
    assert result["decision"]["mode"] == "DIRECT_ALLOW"
    assert result["policy"] == "ALLOW"
    assert (tmp_path / "memory.json").exists()


def test_evaluate_with_mock_correction(base_args, capsys):
    argv = base_args + [
        "evaluate", "What is the capital of France?", "Berlin",
        "--ground-truth", '{"capital": "Paris"}',
        "-p", "mock", "--transform-to", "Paris",
        "--json",
    ]
    assert main(argv) == 0
    result = _json_out(capsys)
    assert result["decisionHistory"] == ["REDEMPTIVE", "STEP_UP"]
    assert result["manifestation"] == "Paris"


def test_evaluate_renders_table(base_args, capsys):
    assert main(base_args + ["evaluate", "Can AI feel pain?", "Yes", "--no-save"]) == 0
    out = capsys.readouterr().out
    assert "ONTOLOGICAL_BLOCK" in out


def test_missing_generator_reports_error(base_args, capsys):
    assert main(base_args + ["evaluate", "What is 2+2?"]) == 1
    assert "No generator configured" in capsys.readouterr().out


def test_memory_accumulates_across_runs(base_args, capsys):
    main(base_args + ["evaluate", "What is 2+2?", "4", "--json"])
    main(base_args + ["evaluate", "Can AI feel pain?", "Yes", "--json"])
    capsys.readouterr()

    assert main(base_args + ["memory", "--json"]) == 0
    memory = _json_out(capsys)
    assert memory["cyclesCompleted"] == 2
    assert len(memory["distilled"]) == 1


def test_reset_requires_force(base_args, tmp_path, capsys):
    main(base_args + ["evaluate", "Can AI feel pain?", "Yes", "--json"])
    capsys.readouterr()

    main(base_args + ["reset"])
    assert "--force" in capsys.readouterr().out
    main(base_args + ["memory", "--json"])
    assert _json_out(capsys)["cyclesCompleted"] == 1

    main(base_args + ["reset", "--force"])
    capsys.readouterr()
    main(base_args + ["memory", "--json"])
    assert _json_out(capsys)["cyclesCompleted"] == 0


def test_posture_command(base_args, capsys):
    assert main(base_args + ["posture", "--history"]) == 0
    out = capsys.readouterr().out
    assert "allow threshold" in out
    assert "No adjustments yet" in out


def test_event_log(base_args, tmp_path, capsys):
    log = tmp_path / "events.jsonl"
    main(base_args + ["evaluate", "What is 2+2?", "4", "--log", str(log), "--json"])
    capsys.readouterr()

    events = load_events(log)
    assert [e.event_type for e in events] == [EventType.DECISION, EventType.CYCLE, EventType.PERSISTENCE]

    assert main(base_args + ["events", str(log), "--filter", "cycle"]) == 0
    assert "cycle" in capsys.readouterr().out
    assert main(base_args + ["events", str(tmp_path / "nope.jsonl")]) == 1


def test_parser_choices():
    args = build_parser().parse_args(["evaluate", "q", "--classifier", "threshold", "--premise", "a", "--premise", "b"])
    assert args.classifier == "threshold"
    assert args.premise == ["a", "b"]
