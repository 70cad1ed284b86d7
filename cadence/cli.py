"""Command-line interface: replay recorded sessions, list passages, write config."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from dotenv import load_dotenv
from rich.prompt import Confirm
from rich.table import Table

from cadence.session.engine import ReadingSession
from cadence.session.models import SessionResult
from cadence.session.passages import get_passage, list_passages
from cadence.session.report import save_report
from cadence.utils.config import DEFAULT_CONFIG_YAML, load_config, merge_cli_overrides
from cadence.utils.logging import Verbosity, console, debug, error, info, setup_logging, success, warn

load_dotenv()

app = typer.Typer(
    name="cadence",
    help="Read-aloud and free-speech coaching: alignment, fillers, pacing and scoring.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


class ReportFormat(str, Enum):
    json = "json"
    csv = "csv"


# ── Helper functions ──────────────────────────────────────────────────────────

class ReplayClock:
    """Simulated monotonic clock driven by script timestamps."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def _read_script(path: Path) -> dict[str, Any]:
    if not path.exists():
        error(f"Script not found: {path}")
        raise typer.Exit(1)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        error(f"Malformed session script {path}: {e}")
        raise typer.Exit(1)
    if not isinstance(data, dict) or not isinstance(data.get("updates", []), list):
        error(f"Session script must be an object with an 'updates' list: {path}")
        raise typer.Exit(1)
    return data


def _resolve_passage(passage: Path | None, prompt: str | None) -> str:
    if passage and prompt:
        error("Use either --passage or --prompt, not both")
        raise typer.Exit(1)
    if passage:
        if not passage.exists():
            error(f"Passage file not found: {passage}")
            raise typer.Exit(1)
        return passage.read_text(encoding="utf-8")
    if prompt:
        found = get_passage(prompt)
        if found is None:
            error(f"Unknown passage: {prompt} (see 'cadence passages')")
            raise typer.Exit(1)
        return found.text
    return ""


def replay_script(session: ReadingSession, clock: ReplayClock, script: dict[str, Any],
                  eye_contact: float | None = None) -> SessionResult:
    """Feed a recorded session through ``session`` in timestamp order."""
    timestamps = [float(t) for t in script.get("timestamps", [])]
    events: list[tuple[float, int, str, Any]] = []
    for u in script.get("updates", []):
        events.append((float(u.get("t", 0.0)), 0, "text", u.get("text", "")))
    for a in script.get("amplitude", []):
        events.append((float(a.get("t", 0.0)), 1, "level", float(a.get("level", 0.0))))
    events.sort(key=lambda e: (e[0], e[1]))

    last_t = events[-1][0] if events else 0.0
    duration = float(script.get("duration", last_t))
    if eye_contact is None and script.get("eye_contact") is not None:
        eye_contact = float(script["eye_contact"])
    if eye_contact is not None:
        # Auto-finish (grace or silence) may fire before the explicit finish below
        session.eye_contact_provider = lambda: eye_contact

    session.start()
    for t, _, kind, value in events:
        if t > duration:
            break
        clock.now = t
        if kind == "text":
            session.on_transcript_update(value)
            session.on_word_timestamps([ts for ts in timestamps if ts <= t])
        else:
            session.on_amplitude(value)
        session.tick()
        session.check_silence()

    clock.now = duration
    session.tick()
    return session.finish()


def _print_result(result: SessionResult) -> None:
    m = result.metrics
    table = Table(title="Session summary", show_header=False, box=None, pad_edge=False)
    table.add_column("metric", style="dim")
    table.add_column("value")
    table.add_row("Score", f"[highlight]{result.score.total}[/highlight] / 100")
    table.add_row("Pace", f"{m.wpm} WPM")
    table.add_row("Fillers", f"{m.filler_count}" + (f" ({', '.join(m.filler_words)})" if m.filler_words else ""))
    table.add_row("Accuracy", f"{m.accuracy_percent:.1f}%")
    table.add_row("Rhythm", "unmeasured" if m.rhythm_stability < 0 else f"{m.rhythm_stability:.1f}")
    table.add_row("Duration", f"{m.duration:.1f}s")
    if m.missed_words:
        table.add_row("Missed", ", ".join(m.missed_words))
    if result.flow_events:
        table.add_row("Flow", " ".join(e.label for e in result.flow_events))
        table.add_row("Flow breaks", str(result.flow_break_count))
    console.print(table)
    title, body = result.insight
    console.print(f"[info]{title}[/info]: {body}")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command()
def analyze(
    script: Annotated[Path, typer.Option("--script", "-s", help="Recorded session JSON")],
    passage: Annotated[Optional[Path], typer.Option("--passage", "-p", help="Passage text file")] = None,
    prompt: Annotated[Optional[str], typer.Option("--prompt", help="Built-in passage title")] = None,
    free_speech: Annotated[bool, typer.Option("--free-speech", help="Score speech without a passage")] = False,
    eye_contact: Annotated[Optional[float], typer.Option("--eye-contact", min=0, max=100)] = None,
    fmt: Annotated[ReportFormat, typer.Option("--format", "-f", help="Report format")] = ReportFormat.json,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write report here")] = None,
    max_lookahead: Annotated[Optional[int], typer.Option(help="Alignment lookahead depth")] = None,
    config: Annotated[Optional[Path], typer.Option("--config")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
):
    """Replay a recorded transcript script and score it."""
    setup_logging(Verbosity.VERBOSE if verbose else Verbosity.NORMAL)

    cfg = load_config(config)
    cfg = merge_cli_overrides(cfg, {
        "alignment.max_lookahead": max_lookahead,
        "session.run_timers": False,
    })

    if free_speech and (passage or prompt):
        error("--free-speech takes no passage")
        raise typer.Exit(1)
    text = _resolve_passage(passage, prompt)
    data = _read_script(script)
    if not data.get("updates"):
        warn(f"{script.name} has no transcript updates; the session will score as no speech")

    clock = ReplayClock()
    session = ReadingSession(cfg, clock=clock)
    session.load_passage(text, free_speech=free_speech)
    info(f"Replaying {script.name} ({len(data.get('updates', []))} updates)")
    result = replay_script(session, clock, data, eye_contact)
    debug(f"Result: {result.to_dict()['score']}")

    _print_result(result)
    if output:
        path = save_report(result, output, fmt.value)
        success(f"Report written: {path}")


@app.command()
def passages(
    category: Annotated[Optional[str], typer.Option("--category", "-c")] = None,
):
    """List the built-in reading passages."""
    items = list_passages(category)
    if not items:
        error(f"No passages in category: {category}")
        raise typer.Exit(1)
    table = Table(title="Reading passages")
    table.add_column("Title", style="highlight")
    table.add_column("Category")
    table.add_column("Level")
    table.add_column("Words", justify="right")
    for p in items:
        table.add_row(p.title, p.category, p.difficulty_label, str(p.word_count))
    console.print(table)


@app.command("init")
def init_config(
    path: Annotated[Path, typer.Option("--path")] = Path("cadence.yaml"),
):
    """Generate a default cadence.yaml in the current directory."""
    setup_logging(Verbosity.NORMAL)
    if path.exists():
        if not Confirm.ask(f"{path} exists. Overwrite?", default=False):
            raise typer.Exit(0)
    path.write_text(DEFAULT_CONFIG_YAML, encoding="utf-8")
    success(f"Created {path}")


# ── ENTRY POINT ───────────────────────────────────────────────────────────────

def app_entry():
    app()


if __name__ == "__main__":
    app_entry()
