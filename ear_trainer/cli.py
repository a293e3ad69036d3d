"""Command-line interface for the ear-trainer detection core.

Provides commands for:
- notes: Track single notes in a recording against a target
- chords: Track chords in a recording against a target chord
- calibrate: Derive a reference pitch from an open-string recording
- benchmark: Time a polyphonic detector on synthetic chords
- info: Show audio file information
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .core.config import DetectionConfig, load_config
from .core.constants import DEFAULT_A4_FREQUENCY, DEFAULT_FFT_SIZE, DEFAULT_SR
from .core.frame import empty_note_energies

app = typer.Typer(
    name="ear-trainer",
    help="Note and chord detection for instrument ear training",
    rich_markup_mode="markdown",
)
console = Console()

# Auto sensitivity measures the room from the first frames of a recording
NOISE_FLOOR_FRAMES = 10


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _config(ctx: typer.Context) -> DetectionConfig:
    if ctx.obj is None:
        return DetectionConfig()
    return ctx.obj


def _load_frames(input_file: Path, hop: int):
    """Load a file and slice it into analysis frames; exits on bad input."""
    from .input import AudioLoader

    loader = AudioLoader(target_sr=DEFAULT_SR)
    try:
        audio, sr = loader.load(input_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    return list(loader.frames(audio, sr, DEFAULT_FFT_SIZE, hop or None))


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="JSON file with detection setting overrides"
    ),
):
    """Note and chord detection for instrument ear training."""
    if config is None:
        ctx.obj = DetectionConfig()
        return
    try:
        ctx.obj = load_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def notes(
    ctx: typer.Context,
    input_file: Path = typer.Argument(..., help="Input audio file"),
    target: Optional[str] = typer.Option(
        None, "-t", "--target", help="Target pitch class, e.g. A or C#"
    ),
    a4: float = typer.Option(
        DEFAULT_A4_FREQUENCY, "--a4", help="Reference pitch for A4 in Hz"
    ),
    method: Optional[str] = typer.Option(
        None, "-m", "--method", help="Pitch method: autocorrelation/yin"
    ),
    attack: Optional[str] = typer.Option(
        None, "--attack", help="Attack filter: off/balanced/strong"
    ),
    hold: Optional[str] = typer.Option(
        None, "--hold", help="Hold filter: off/40ms/80ms/120ms"
    ),
    sensitivity: Optional[str] = typer.Option(
        None, "-s", "--sensitivity", help="Input sensitivity: quiet_room/normal/noisy_room/auto"
    ),
    hop: int = typer.Option(
        0, "--hop", help="Samples between frames (0 = one frame per FFT window)"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Verbose output"
    ),
):
    """Track single notes in a recording.

    **Examples:**

        ear-trainer notes open_a.wav --target A

        ear-trainer notes riff.wav -t E --hold off --json
    """
    from .pipeline import FramePipeline
    from .tracking import DetectionEvent

    _setup_logging(verbose)
    config = _config(ctx)
    config = replace(
        config,
        pitch=replace(config.pitch, method=method or config.pitch.method),
        filters=replace(
            config.filters,
            attack_preset=attack or config.filters.attack_preset,
            hold_preset=hold or config.filters.hold_preset,
            sensitivity_preset=sensitivity or config.filters.sensitivity_preset,
        ),
    )

    frames = _load_frames(input_file, hop)
    pipeline = FramePipeline(config, a4_frequency=a4)
    if config.filters.sensitivity_preset == "auto":
        pipeline.measure_noise_floor(f.volume for f in frames[:NOISE_FLOOR_FRAMES])

    if not json_output:
        console.print(f"[blue]Tracking notes:[/blue] {input_file}")
        console.print(
            f"  Frames: {len(frames)}, threshold: {pipeline.volume_threshold:.3f}, "
            f"A4: {a4:.2f} Hz"
        )

    # One entry per stable run, not per stable frame
    events: List[Dict[str, Any]] = []
    reported = None
    for frame in frames:
        tick = pipeline.process_monophonic(frame, target)
        if not tick.event.is_stable:
            reported = None
            continue
        if tick.result.detected_note == reported:
            continue
        reported = tick.result.detected_note
        cents = tick.tuner.cents if tick.tuner is not None else None
        events.append(
            {
                "time": round(tick.timestamp_ms / 1000.0, 3),
                "note": reported,
                "frequency": round(tick.result.smoothed_frequency or 0.0, 2),
                "event": tick.event.value,
                "cents": round(cents, 1) if cents is not None else None,
            }
        )

    matches = sum(1 for e in events if e["event"] == DetectionEvent.STABLE_MATCH.value)
    result = {
        "input": str(input_file),
        "target": target,
        "a4": a4,
        "frames": len(frames),
        "stable_matches": matches,
        "stable_mismatches": len(events) - matches,
        "events": events,
    }

    if json_output:
        console.print_json(data=result)
        return

    if events:
        _show_events_table(events, "note")
    else:
        console.print("[yellow]No stable notes detected[/yellow]")
    console.print(
        f"[green]Matches: {matches}[/green], mismatches: {len(events) - matches}"
    )


@app.command()
def chords(
    ctx: typer.Context,
    input_file: Path = typer.Argument(..., help="Input audio file"),
    target: Optional[str] = typer.Option(
        None, "-t", "--target", help="Target pitch classes, comma separated (e.g. C,E,G)"
    ),
    chord: Optional[str] = typer.Option(
        None, "--chord", help='Target chord name (e.g. "C Major", "G7")'
    ),
    provider: str = typer.Option(
        "spectrum", "-p", "--provider", help="Detector provider: spectrum/chroma_experimental"
    ),
    a4: float = typer.Option(
        DEFAULT_A4_FREQUENCY, "--a4", help="Reference pitch for A4 in Hz"
    ),
    hop: int = typer.Option(
        0, "--hop", help="Samples between frames (0 = one frame per FFT window)"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Verbose output"
    ),
):
    """Track chords in a recording.

    **Examples:**

        ear-trainer chords strum.wav --chord "C Major"

        ear-trainer chords strum.wav -t C,E,G -p chroma --json
    """
    from .inference import chord_notes, parse_notes_key
    from .pipeline import FramePipeline
    from .tracking import LOW_CONFIDENCE_MESSAGE, DetectionEvent, is_low_confidence

    _setup_logging(verbose)
    if chord:
        target_notes = chord_notes(chord)
        if target_notes is None:
            console.print(f"[red]Error: Unknown chord: {chord}[/red]")
            raise typer.Exit(1)
    elif target:
        target_notes = parse_notes_key(target)
    else:
        console.print("[red]Error: Provide --target or --chord[/red]")
        raise typer.Exit(1)

    frames = _load_frames(input_file, hop)
    pipeline = FramePipeline(_config(ctx), a4_frequency=a4)

    if not json_output:
        console.print(f"[blue]Tracking chords:[/blue] {input_file}")
        console.print(f"  Target: {', '.join(target_notes)}, provider: {provider}")

    events: List[Dict[str, Any]] = []
    totals = empty_note_energies()
    low_confidence = False
    reported = None
    for frame in frames:
        tick = pipeline.process_polyphonic(frame, target_notes, provider)
        for note, value in tick.result.energies.items():
            totals[note] += value
        low_confidence = low_confidence or is_low_confidence(tick.result)
        if not tick.event.is_stable:
            reported = None
            continue
        if tick.result.detected_notes_key == reported:
            continue
        reported = tick.result.detected_notes_key
        events.append(
            {
                "time": round(tick.timestamp_ms / 1000.0, 3),
                "notes": reported,
                "event": tick.event.value,
                "provider": tick.result.provider,
            }
        )

    top_energies = sorted(
        ((note, value) for note, value in totals.items() if value > 0),
        key=lambda item: -item[1],
    )[:5]
    matches = sum(1 for e in events if e["event"] == DetectionEvent.STABLE_MATCH.value)
    result = {
        "input": str(input_file),
        "target": target_notes,
        "provider": provider,
        "frames": len(frames),
        "stable_matches": matches,
        "stable_mismatches": len(events) - matches,
        "low_confidence": low_confidence,
        "top_energies": {note: round(value, 6) for note, value in top_energies},
        "events": events,
    }

    if json_output:
        console.print_json(data=result)
        return

    if events:
        _show_events_table(events, "notes")
    else:
        console.print("[yellow]No stable chords detected[/yellow]")
    if top_energies:
        console.print(
            "  Top energies: "
            + ", ".join(f"{note} {value:.3f}" for note, value in top_energies)
        )
    if low_confidence:
        console.print(f"[yellow]{LOW_CONFIDENCE_MESSAGE}[/yellow]")
    console.print(
        f"[green]Matches: {matches}[/green], mismatches: {len(events) - matches}"
    )


@app.command()
def calibrate(
    ctx: typer.Context,
    input_file: Path = typer.Argument(..., help="Recording of a plucked open A string"),
    string: Optional[str] = typer.Option(
        None, "--string", help="Open string name, e.g. A2 (default: one octave below A4)"
    ),
    required: Optional[int] = typer.Option(
        None, "--required", help="Accepted samples needed (default: 30)"
    ),
    tolerance: Optional[float] = typer.Option(
        None, "--tolerance", help="Accepted deviation ratio (default: 0.15)"
    ),
    hop: int = typer.Option(
        1024, "--hop", help="Samples between frames"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Verbose output"
    ),
):
    """Calibrate the reference pitch from an open-string recording."""
    from .pipeline import FramePipeline

    _setup_logging(verbose)
    config = _config(ctx)
    config = replace(
        config,
        calibration=replace(
            config.calibration,
            required_samples=required if required is not None else config.calibration.required_samples,
            tolerance_ratio=tolerance if tolerance is not None else config.calibration.tolerance_ratio,
        ),
    )

    frames = _load_frames(input_file, hop)
    pipeline = FramePipeline(config)
    pipeline.start_calibration(string)
    expected = pipeline.calibration.expected_frequency

    progress = 0.0
    for frame in frames:
        tick = pipeline.process_monophonic(frame)
        if tick.calibration is not None:
            progress = tick.calibration.progress_percent
        if not pipeline.is_calibrating:
            break

    complete = not pipeline.is_calibrating
    result = {
        "input": str(input_file),
        "expected_frequency": round(expected, 2),
        "progress_percent": round(progress, 1),
        "complete": complete,
        "a4": round(pipeline.a4_frequency, 2) if complete else None,
    }

    if json_output:
        console.print_json(data=result)
    elif complete:
        console.print(f"[green]Calibrated A4: {pipeline.a4_frequency:.2f} Hz[/green]")
    else:
        console.print(
            f"[yellow]Calibration incomplete ({progress:.0f}%). "
            f"Pluck the string near {expected:.1f} Hz for longer.[/yellow]"
        )

    if not complete:
        raise typer.Exit(1)


@app.command()
def benchmark(
    ctx: typer.Context,
    provider: str = typer.Option(
        "spectrum", "-p", "--provider", help="Detector provider: spectrum/chroma_experimental"
    ),
    frames: int = typer.Option(
        90, "--frames", help="Frames per scenario"
    ),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Save the summary as JSON"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
):
    """Benchmark a polyphonic detector on synthetic chord frames."""
    from .benchmark import run_polyphonic_benchmark

    summary = run_polyphonic_benchmark(provider, frames, _config(ctx))

    if output is not None:
        summary.save(output)

    if json_output:
        console.print_json(data=summary.to_dict())
        return

    table = Table(title="Scenarios")
    table.add_column("Scenario", style="cyan")
    table.add_column("Matches", style="green")
    table.add_column("Mismatches", style="red")
    table.add_column("Pending", style="yellow")
    for name, counts in summary.scenarios.items():
        table.add_row(
            name,
            str(counts["stable_match"]),
            str(counts["stable_mismatch"]),
            str(counts["pending"]),
        )
    console.print(table)
    console.print(summary.format())


@app.command()
def info(
    input_file: Path = typer.Argument(..., help="Input audio file"),
):
    """Show information about an audio file."""
    from .input import AudioLoader

    loader = AudioLoader()
    try:
        file_info = loader.info(input_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold]Audio Info:[/bold] {input_file.name}")
    console.print(f"  Duration: {file_info['duration']:.2f} seconds")
    console.print(f"  Sample rate: {file_info['sample_rate']} Hz")
    console.print(f"  Channels: {file_info['channels']}")
    console.print(f"  Format: {file_info['format']} ({file_info['subtype']})")


def _show_events_table(events: List[Dict[str, Any]], detail_key: str) -> None:
    """Display stable events in a table."""
    table = Table(title="Stable Events")
    table.add_column("Time (s)", style="green")
    table.add_column(detail_key.capitalize(), style="cyan")
    table.add_column("Event", style="magenta")

    for event in events:
        table.add_row(f"{event['time']:.2f}", str(event[detail_key]), event["event"])

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
