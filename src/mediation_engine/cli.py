#!/usr/bin/env python3
"""
Mediation Engine CLI

Commands:
    mediate evaluate <intent> [manifestation]   Run one mediation cycle
    mediate memory                              Show experiential memory
    mediate posture                             Show the verifier posture
    mediate events <logfile>                    Summarize an event log
    mediate reset                               Reset saved state

Examples:
    mediate evaluate "What is 2+2?" "4" --confidence 0.9
    mediate evaluate "What is the capital of France?" "Berlin" \\
        --ground-truth '{"capital": "Paris"}' -p mock --transform-to Paris
    mediate evaluate "Summarize the premises" -p ollama -m llama3
    mediate memory --json
    mediate reset --force

Providers:
    ollama      - Local models via Ollama (default: llama3)
    openai      - OpenAI API (requires OPENAI_API_KEY)
    anthropic   - Anthropic API (requires ANTHROPIC_API_KEY)
    mock        - Deterministic mock for testing

State is kept in .mediation/memory.json (override with --state or
MEDIATION_STATE_PATH). Configuration comes from config/mediation.json
(override with --config or MEDIATION_CONFIG).
"""

import argparse
import asyncio
import json
import random
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mediation_engine.config_loader import load_cycle_config, load_posture
from mediation_engine.cycle import CycleState, Manifestation, Source, run_cycle
from mediation_engine.errors import MediationError
from mediation_engine.events import EventLogger, EventType, PersistenceEvent, load_events
from mediation_engine.memory import create_memory, is_mature
from mediation_engine.modes import MediationMode
from mediation_engine.persistence import (
    STATE_VERSION,
    auto_load,
    default_state_path,
    load_state,
    save_state,
    state_exists,
)
from mediation_engine.policy import Classifier, to_policy
from mediation_engine.posture import summarize_posture_history
from mediation_engine.providers import MockProvider, create_provider


console = Console()

MODE_STYLES = {
    MediationMode.DIRECT_ALLOW: "green",
    MediationMode.KENOTIC: "cyan",
    MediationMode.REDEMPTIVE: "yellow",
    MediationMode.STEP_UP: "magenta",
    MediationMode.ONTOLOGICAL_BLOCK: "bold red",
}


def _state_path(args) -> Path:
    return Path(args.state) if args.state else default_state_path()


def _load_or_fresh(args):
    """Saved state if present; otherwise a fresh memory with the configured posture."""
    path = _state_path(args)
    if state_exists(path):
        return load_state(path)
    return create_memory(), load_posture(args.config)


# =============================================================================
# CLI Commands
# =============================================================================

def _build_provider(args):
    if not args.provider:
        return None
    if args.provider == "mock":
        return MockProvider(
            default_response=args.mock_response or "I don't know.",
            default_transform=args.transform_to,
        )
    return create_provider(args.provider, args.model)


def _render_cycle(state: CycleState):
    mode = state.decision.mode
    gap = state.gap

    table = Table(title="Mediation Cycle", box=box.SIMPLE_HEAVY, show_header=False)
    table.add_column("field", style="dim")
    table.add_column("value")
    table.add_row("intent", escape(state.source.intent))
    table.add_row("manifestation", escape(state.manifestation.content))
    table.add_row("cycles", f"{state.cycle_number} / {state.max_cycles}")
    table.add_row(
        "correction attempts",
        f"{state.correction_attempts} / {state.max_correction_attempts}",
    )
    table.add_row("gap", escape(f"{gap.dominant_type.value} ({gap.reason})"))
    table.add_row("moderated confidence", f"{state.moderation.moderated:.3f}")
    table.add_row("mode", f"[{MODE_STYLES[mode]}]{mode.value}[/]")
    table.add_row("policy", to_policy(mode).value)
    table.add_row("termination", escape(state.termination_reason or ""))
    console.print(table)

    if len(state.decisions) > 1:
        history = " → ".join(d.mode.value for d in state.decisions)
        console.print(f"[dim]Decision history:[/] {history}")

    console.print(Panel(escape(state.decision.reason), title="Reason", expand=False))


def cmd_evaluate(args):
    """Run one mediation cycle and persist what was learned."""
    config = load_cycle_config(args.config)
    overrides = {}
    if args.max_cycles is not None:
        overrides["max_cycles"] = args.max_cycles
    if args.max_attempts is not None:
        overrides["max_correction_attempts"] = args.max_attempts
    if args.classifier:
        overrides["classifier"] = Classifier(args.classifier)
    if overrides:
        config = replace(config, **overrides)

    ground_truth = json.loads(args.ground_truth) if args.ground_truth else None
    memory, posture = _load_or_fresh(args)
    provider = _build_provider(args)

    state = CycleState(
        source=Source(args.intent, ground_truth=ground_truth, premises=args.premise or None),
        manifestation=Manifestation(args.manifestation) if args.manifestation else None,
        config=config,
        memory=memory,
        posture=posture,
    )
    logger = EventLogger(output_path=args.log) if args.log else None
    rng = random.Random(args.seed) if args.seed is not None else None

    state = asyncio.run(run_cycle(
        state,
        confidence=args.confidence,
        generator=provider.generate if provider else None,
        transform=provider.transform if provider else None,
        rng=rng,
        logger=logger,
    ))
    if not args.no_save:
        path = save_state(state.memory, state.posture, _state_path(args))
        if logger is not None:
            logger.emit(PersistenceEvent(
                action="save",
                path=str(path),
                version=STATE_VERSION,
                distilled_count=len(state.memory.distilled),
                cycles_completed=state.memory.cycles_completed,
            ))
    if logger is not None:
        logger.close()

    if args.json:
        print(json.dumps(state.to_dict(), indent=2))
    else:
        _render_cycle(state)


def cmd_memory(args):
    """Show distilled experience and receptivity."""
    path = _state_path(args)
    memory, _ = auto_load(path)

    if args.json:
        print(json.dumps({
            "distilled": [e.to_dict() for e in memory.distilled],
            "receptivity": memory.receptivity.to_dict(),
            "cyclesCompleted": memory.cycles_completed,
            "mature": is_mature(memory),
        }, indent=2))
        return

    receptivity = Table(title="Receptivity", box=box.SIMPLE)
    receptivity.add_column("dimension")
    receptivity.add_column("depth", justify="right")
    for name, value in memory.receptivity.to_dict().items():
        receptivity.add_row(name, f"{value:.3f}")
    console.print(receptivity)
    console.print(
        f"Cycles completed: {memory.cycles_completed}   "
        f"Mature: {'yes' if is_mature(memory) else 'no'}"
    )

    if not memory.distilled:
        console.print("[dim]No distilled experience yet.[/]")
        return

    distilled = Table(title="Distilled Experience", box=box.SIMPLE, show_lines=True)
    distilled.add_column("type")
    distilled.add_column("seen", justify="right")
    distilled.add_column("ok")
    distilled.add_column("mode")
    distilled.add_column("wisdom", overflow="fold")
    limit = args.limit or len(memory.distilled)
    for exp in memory.distilled[-limit:]:
        distilled.add_row(
            exp.pattern.type.value,
            str(exp.observations),
            "✓" if exp.succeeded else "✗",
            exp.mode.value,
            escape(exp.wisdom),
        )
    console.print(distilled)


def cmd_posture(args):
    """Show weights, thresholds and adjustment history."""
    _, posture = _load_or_fresh(args)

    weights = Table(title="Verifier Posture", box=box.SIMPLE)
    weights.add_column("weight")
    weights.add_column("value", justify="right")
    for name, value in posture.weights.as_dict().items():
        weights.add_row(name, f"{value:.3f}")
    weights.add_row("allow threshold", f"{posture.thresholds.allow:.3f}")
    weights.add_row("block threshold", f"{posture.thresholds.block:.3f}")
    weights.add_row("learning rate", f"{posture.learning_rate:.3f}")
    console.print(weights)

    if args.history:
        console.print(escape(summarize_posture_history(posture)))


def cmd_events(args):
    """Summarize a JSONL event log."""
    path = Path(args.logfile)
    if not path.exists():
        console.print(f"[red]Error: File not found: {args.logfile}[/]")
        return 1

    events = load_events(path)
    if args.filter:
        events = [e for e in events if e.event_type == EventType(args.filter)]
    if args.tail:
        events = events[-args.tail:]

    table = Table(title=f"Events ({len(events)})", box=box.SIMPLE)
    table.add_column("time", style="dim")
    table.add_column("type")
    table.add_column("detail", overflow="fold")
    for event in events:
        data = event.to_dict()
        detail = ", ".join(
            f"{k}={v}" for k, v in data.items()
            if k not in ("event_type", "timestamp", "session_id") and v not in ("", None)
        )
        table.add_row(event.timestamp.strftime("%H:%M:%S"), event.event_type.value, escape(detail))
    console.print(table)
    return 0


def cmd_reset(args):
    """Replace saved state with a fresh memory and the configured posture."""
    path = _state_path(args)
    if not args.force:
        console.print("[yellow]This will erase learned memory and posture. Use --force to confirm.[/]")
        return

    save_state(create_memory(), load_posture(args.config), path)
    console.print(f"[green]✓ State reset[/] ({path})")


# =============================================================================
# Main Entry Point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mediate",
        description="Mediation Engine CLI - gap detection, moderation and correction",
    )
    parser.add_argument("--state", help="Path to the state file")
    parser.add_argument("--config", help="Path to the config file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # evaluate
    p_eval = subparsers.add_parser("evaluate", help="Run one mediation cycle")
    p_eval.add_argument("intent", help="The stated intent (source)")
    p_eval.add_argument("manifestation", nargs="?", help="Content to check (generated if omitted)")
    p_eval.add_argument("--ground-truth", "-g", help="Ground truth as a JSON object")
    p_eval.add_argument("--premise", action="append", help="A premise (repeatable)")
    p_eval.add_argument("--confidence", type=float, help="External confidence in [0, 1]")
    p_eval.add_argument("--provider", "-p", choices=["ollama", "openai", "anthropic", "mock"],
                        help="Generator/transform provider")
    p_eval.add_argument("--model", "-m", help="Model name for the provider")
    p_eval.add_argument("--mock-response", help="Mock provider: generated content")
    p_eval.add_argument("--transform-to", help="Mock provider: corrected content")
    p_eval.add_argument("--max-cycles", type=int, help="Cycle ceiling")
    p_eval.add_argument("--max-attempts", type=int, help="Correction attempt ceiling")
    p_eval.add_argument("--classifier", choices=[c.value for c in Classifier],
                        help="Decision classifier")
    p_eval.add_argument("--seed", type=int, help="Seed for the correction fallback")
    p_eval.add_argument("--log", help="Append events to this JSONL file")
    p_eval.add_argument("--no-save", action="store_true", help="Do not persist memory/posture")
    p_eval.add_argument("--json", action="store_true", help="Print the cycle state as JSON")
    p_eval.set_defaults(func=cmd_evaluate)

    # memory
    p_memory = subparsers.add_parser("memory", help="Show experiential memory")
    p_memory.add_argument("--limit", "-n", type=int, help="Max experiences to show")
    p_memory.add_argument("--json", action="store_true", help="Print as JSON")
    p_memory.set_defaults(func=cmd_memory)

    # posture
    p_posture = subparsers.add_parser("posture", help="Show the verifier posture")
    p_posture.add_argument("--history", action="store_true", help="Include adjustment history")
    p_posture.set_defaults(func=cmd_posture)

    # events
    p_events = subparsers.add_parser("events", help="Summarize an event log file")
    p_events.add_argument("logfile", help="Path to a JSONL event log")
    p_events.add_argument("--filter", choices=[t.value for t in EventType], help="Event type")
    p_events.add_argument("--tail", type=int, help="Show only the last N events")
    p_events.set_defaults(func=cmd_events)

    # reset
    p_reset = subparsers.add_parser("reset", help="Reset saved state")
    p_reset.add_argument("--force", "-f", action="store_true", help="Reset without confirmation")
    p_reset.set_defaults(func=cmd_reset)

    return parser


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args) or 0
    except MediationError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
