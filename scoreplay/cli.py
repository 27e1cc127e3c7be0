"""scoreplay CLI entry point."""

import logging
import sys

import click

from scoreplay import __version__
from scoreplay.config import PlaybackConfig
from scoreplay.music21_adapter import ProportionalLayout, load_score
from scoreplay.playback import ScorePlayback

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _load_playback(score_file: str, bpm: float, measures_per_system: int) -> ScorePlayback:
    """Parse the score and wrap it in a ScorePlayback, exiting with a message on failure."""
    try:
        score = load_score(score_file, ProportionalLayout(measures_per_system=measures_per_system))
    except OSError as exc:
        click.echo(f"  ERROR: Could not read score file — {exc}", err=True)
        sys.exit(1)
    except ValueError as exc:
        click.echo(f"  ERROR: Could not parse score — {exc}", err=True)
        sys.exit(1)
    return ScorePlayback(score, PlaybackConfig(default_bpm=bpm))


def _check_part(playback: ScorePlayback, part: int) -> None:
    if not 0 <= part < playback.score.part_count:
        click.echo(f"  ERROR: Part {part} does not exist (score has {playback.score.part_count}).", err=True)
        sys.exit(1)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="scoreplay")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def main(log_level: str) -> None:
    """scoreplay — inspect the playback model of a musical score."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def score_options(command):
    """Options shared by every subcommand that loads a score."""
    command = click.option(
        "--measures-per-system",
        type=click.IntRange(1, 64),
        default=4,
        show_default=True,
        help="Measures laid out on each system of the proportional layout.",
    )(command)
    command = click.option(
        "--bpm",
        type=click.FloatRange(1, 1000),
        default=120.0,
        show_default=True,
        help="Tempo used until the score sets one.",
    )(command)
    command = click.argument("score_file", type=click.Path(exists=True, dir_okay=False, readable=True))(command)
    return command


# ── timeline subcommand ────────────────────────────────────────────────────────

@main.command()
@score_options
def timeline(score_file: str, bpm: float, measures_per_system: int) -> None:
    """
    Print the merged playback timeline of a score.

    SCORE_FILE is a MusicXML (or other music21-readable) file.

    \b
    Examples:
      scoreplay timeline song.musicxml
      scoreplay timeline song.musicxml --bpm 90 --measures-per-system 2
    """
    playback = _load_playback(score_file, bpm, measures_per_system)
    merged = playback.get_timeline()

    click.echo(f"scoreplay v{__version__}")
    click.echo(f"  Score    : {score_file}")
    click.echo(f"  Parts    : {playback.score.part_count}")
    click.echo(f"  Events   : {merged.get_count()}")
    click.echo(f"  Duration : {merged.get_duration().ms:.0f} ms")
    click.echo()

    for line in merged.to_human_readable():
        click.echo(f"  {line}")


# ── sequence subcommand ────────────────────────────────────────────────────────

@main.command()
@score_options
@click.option("--part", type=int, default=0, show_default=True, help="Part index to sequence.")
def sequence(score_file: str, bpm: float, measures_per_system: int, part: int) -> None:
    """
    Print the time-ordered entries of one part.

    \b
    Examples:
      scoreplay sequence song.musicxml --part 1
    """
    playback = _load_playback(score_file, bpm, measures_per_system)
    _check_part(playback, part)
    part_sequence = playback.get_sequence(part)

    click.echo(f"  Part {part}: {part_sequence.get_length()} entries, {part_sequence.get_duration_ms():.0f} ms")
    for index, entry in enumerate(part_sequence):
        start = entry.duration_range.start.ms
        end = entry.duration_range.end.ms
        active = ", ".join(element.id for element in entry.active_elements)
        click.echo(f"  {index:4d}  [{start:8.0f}, {end:8.0f})  {entry.element.id:<16} {active}")


# ── seek subcommand ────────────────────────────────────────────────────────────

@main.command()
@score_options
@click.argument("time_ms", type=float)
@click.option("--part", type=int, default=0, show_default=True, help="Part index the cursor follows.")
def seek(score_file: str, bpm: float, measures_per_system: int, time_ms: float, part: int) -> None:
    """
    Seek a cursor to TIME_MS and print where it lands.

    \b
    Examples:
      scoreplay seek song.musicxml 1500
      scoreplay seek song.musicxml 1500 --part 1
    """
    playback = _load_playback(score_file, bpm, measures_per_system)
    _check_part(playback, part)
    cursor = playback.add_cursor(part_index=part)
    cursor.seek(time_ms)
    state = cursor.get_state()

    if state.element is None:
        click.echo("  Cursor : (empty sequence)")
        return

    rect = state.rect
    click.echo(f"  Index   : {state.index} / {state.length}")
    click.echo(f"  Element : {state.element.id} ({state.element.kind})")
    click.echo(f"  Alpha   : {state.alpha:.3f}")
    click.echo(f"  Rect    : x={rect.x:.1f} y={rect.y:.1f} w={rect.w:.1f} h={rect.h:.1f}")
