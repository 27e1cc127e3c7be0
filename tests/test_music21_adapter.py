"""Integration tests for the music21 adapter (requires music21)."""

from pathlib import Path

import pytest

from scoreplay.music21_adapter import Music21ScoreBuilder, ProportionalLayout, load_score
from scoreplay.score_models import RepeatEnd, RepeatEnding, RepeatStart
from scoreplay.sequence import SequenceFactory

music21 = pytest.importorskip("music21")

pytestmark = pytest.mark.integration


def _measure(number: int, pitches: list[str], bpm: float | None = None):
    from music21 import note, stream, tempo

    measure = stream.Measure(number=number)
    if bpm is not None:
        measure.insert(0, tempo.MetronomeMark(number=bpm))
    for name in pitches:
        measure.append(note.Note(name, quarterLength=1))
    return measure


def _score(*measures):
    from music21 import stream

    part = stream.Part()
    for measure in measures:
        part.append(measure)
    score = stream.Score()
    score.insert(0, part)
    return score


def test_builds_measures_and_tempo() -> None:
    m21_score = _score(
        _measure(1, ["C4", "D4", "E4", "F4"], bpm=100),
        _measure(2, ["G4", "A4", "B4", "C5"]),
    )
    score = Music21ScoreBuilder().build(m21_score)
    assert score.part_count == 1
    assert len(score.get_measures()) == 2
    [sequence] = SequenceFactory(score).create()
    assert sequence.get_length() == 8
    assert sequence.get_duration_ms() == 4800


def test_layout_groups_measures_into_systems() -> None:
    m21_score = _score(*[_measure(number, ["C4"] * 4) for number in range(1, 6)])
    score = Music21ScoreBuilder(ProportionalLayout(measures_per_system=2)).build(m21_score)
    assert [len(system.measures) for system in score.systems] == [2, 2, 1]
    assert all(system.measures[-1].is_last_in_system for system in score.systems)
    assert score.systems[1].rect.top() > score.systems[0].rect.bottom()


def test_repeat_barlines_become_jumps() -> None:
    from music21 import bar

    first = _measure(1, ["C4"] * 4, bpm=120)
    second = _measure(2, ["D4"] * 4)
    first.leftBarline = bar.Repeat(direction="start")
    second.rightBarline = bar.Repeat(direction="end")
    score = Music21ScoreBuilder().build(_score(first, second))

    measures = score.get_measures()
    assert RepeatStart() in measures[0].jumps
    assert measures[1].jumps == (RepeatEnd(1),)
    [sequence] = SequenceFactory(score).create()
    assert sequence.get_length() == 16
    assert len(sequence.get_jumps()) == 1


def test_repeat_brackets_become_endings() -> None:
    from music21 import bar, spanner

    measures = [_measure(number, ["C4"] * 4, bpm=120 if number == 1 else None) for number in range(1, 4)]
    measures[1].rightBarline = bar.Repeat(direction="end")
    m21_score = _score(*measures)
    part = m21_score.parts[0]
    part_measures = list(part.getElementsByClass("Measure"))
    part.insert(0, spanner.RepeatBracket(part_measures[1], number=1))
    part.insert(0, spanner.RepeatBracket(part_measures[2], number=2))

    score = Music21ScoreBuilder().build(m21_score)
    jumps = [measure.jumps for measure in score.get_measures()]
    assert jumps[1] == (RepeatEnding(1, "1", "both"),)
    assert jumps[2] == (RepeatEnding(0, "2", "both"),)
    [sequence] = SequenceFactory(score).create()
    # m1 m2 m1 m3
    assert sequence.get_length() == 16


def test_ties_share_a_curve() -> None:
    from music21 import tie

    measure = _measure(1, ["C4", "C4", "E4", "G4"])
    first, second = list(measure.notes)[:2]
    first.tie = tie.Tie("start")
    second.tie = tie.Tie("stop")
    score = Music21ScoreBuilder().build(_score(measure))
    entries = score.get_measures()[0].fragments[0].get_entries(0)
    assert entries[0].shares_a_curve_with(entries[1])
    assert not entries[1].shares_a_curve_with(entries[2])


def test_load_score_round_trips_musicxml(tmp_path: Path) -> None:
    path = tmp_path / "song.musicxml"
    _score(_measure(1, ["C4", "D4", "E4", "F4"], bpm=100)).write("musicxml", fp=str(path))
    score = load_score(str(path))
    [sequence] = SequenceFactory(score).create()
    assert [entry.element.kind for entry in sequence] == ["note"] * 4
    assert sequence.get_duration_ms() == 2400


def test_load_score_rejects_unknown_format(tmp_path: Path) -> None:
    path = tmp_path / "song.unknownformat"
    path.write_text("nothing musical")
    with pytest.raises(ValueError):
        load_score(str(path))


def test_tempo_mark_mid_measure_is_not_delayed_by_held_notes() -> None:
    from music21 import note, stream, tempo

    upper = _measure(1, ["C4", "D4", "E4", "F4"], bpm=60)
    upper.insert(2, tempo.MetronomeMark(number=120))
    lower = stream.Measure(number=1)
    lower.append(note.Note("C3", quarterLength=4))

    m21_score = stream.Score()
    for measure in (upper, lower):
        part = stream.Part()
        part.append(measure)
        m21_score.insert(0, part)

    score = Music21ScoreBuilder().build(m21_score)
    upper_sequence, lower_sequence = SequenceFactory(score).create()
    assert [entry.duration_range.start.ms for entry in upper_sequence] == [0, 1000, 2000, 2500]
    assert lower_sequence.get_duration_ms() == 4000


def test_slur_ids_are_stable_across_builds() -> None:
    from music21 import spanner

    measure = _measure(1, ["C4", "D4", "E4", "G4"])
    first, second = list(measure.notes)[:2]
    m21_score = _score(measure)
    m21_score.parts[0].insert(0, spanner.Slur(first, second))

    builder = Music21ScoreBuilder()
    builds = [builder.build(m21_score), Music21ScoreBuilder().build(m21_score)]
    curves = [
        [entry.curve_ids for entry in score.get_measures()[0].fragments[0].get_entries(0)]
        for score in builds
    ]
    assert curves[0] == curves[1]
    assert curves[0][0] == curves[0][1] == frozenset({"slur1"})
    assert curves[0][2] == frozenset()
