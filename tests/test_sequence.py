"""Unit tests for SequenceFactory and Sequence."""

import logging
from fractions import Fraction

import pytest
from builders import ScoreBuilder, four_quarters, simple_score

from scoreplay.config import PlaybackConfig
from scoreplay.score_models import RepeatEnd, Score
from scoreplay.sequence import Sequence, SequenceFactory
from scoreplay.timing import Duration


def _ids(sequence: Sequence) -> list[str]:
    return [entry.element.id for entry in sequence]


def _ranges_ms(sequence: Sequence) -> list[tuple[float, float]]:
    return [(entry.duration_range.start.ms, entry.duration_range.end.ms) for entry in sequence]


def _assert_tiles(sequence: Sequence) -> None:
    entries = sequence.get_entries()
    if not entries:
        assert sequence.get_duration() == Duration.zero()
        return
    assert entries[0].duration_range.start == Duration.zero()
    for previous, current in zip(entries, entries[1:]):
        assert previous.duration_range.end == current.duration_range.start
    assert entries[-1].duration_range.end == sequence.get_duration()


def test_four_quarters_at_100_bpm() -> None:
    [sequence] = SequenceFactory(simple_score(bpm=100)).create()
    assert _ids(sequence) == ["n0", "n1", "n2", "n3"]
    assert _ranges_ms(sequence) == [(0, 600), (600, 1200), (1200, 1800), (1800, 2400)]
    assert sequence.get_duration_ms() == 2400


def test_default_bpm_applies_without_tempo_marking() -> None:
    score = ScoreBuilder().add_measure({0: [four_quarters("n")]}).build()
    [sequence] = SequenceFactory(score, PlaybackConfig(default_bpm=60)).create()
    assert sequence.get_duration_ms() == 4000


def test_chord_members_collapse_into_one_entry() -> None:
    score = (
        ScoreBuilder()
        .add_measure({0: [[("low", 0, 2, "C4")], [("high", 0, 2, "E4")]]}, bpm=120)
        .build()
    )
    [sequence] = SequenceFactory(score).create()
    assert sequence.get_length() == 1
    entry = sequence.get_entry(0)
    assert entry is not None
    assert {element.id for element in entry.active_elements} == {"low", "high"}


def test_overlapping_voices_split_entries() -> None:
    score = (
        ScoreBuilder()
        .add_measure({0: [[("whole", 0, 4, "C3")], four_quarters("q", "G4")]}, bpm=60)
        .build()
    )
    [sequence] = SequenceFactory(score).create()
    assert sequence.get_length() == 4
    assert all("whole" in {element.id for element in entry.active_elements} for entry in sequence)
    assert _ids(sequence)[1:] == ["q1", "q2", "q3"]
    _assert_tiles(sequence)


def test_element_follows_the_latest_start() -> None:
    score = (
        ScoreBuilder()
        .add_measure({0: [[("late", 1, 1, "E4")], [("early", 0, 2, "C4")]]}, bpm=60)
        .build()
    )
    [sequence] = SequenceFactory(score).create()
    assert _ids(sequence) == ["early", "late"]


def test_current_element_falls_back_when_it_stops_first() -> None:
    score = (
        ScoreBuilder()
        .add_measure({0: [[("long", 0, 3, "C4")], [("short", 1, 1, "E4")]]}, bpm=60)
        .build()
    )
    [sequence] = SequenceFactory(score).create()
    assert _ids(sequence) == ["long", "short", "long"]
    assert _ranges_ms(sequence) == [(0, 1000), (1000, 2000), (2000, 3000)]


def test_silent_gap_is_absorbed_by_next_entry() -> None:
    score = (
        ScoreBuilder()
        .add_measure({0: [[("a", 0, 1, "C4"), ("b", 2, 1, "D4")]]}, bpm=60)
        .build()
    )
    [sequence] = SequenceFactory(score).create()
    assert _ids(sequence) == ["a", "b"]
    assert _ranges_ms(sequence) == [(0, 1000), (1000, 3000)]


def test_tempo_change_takes_effect_from_its_fragment() -> None:
    score = (
        ScoreBuilder()
        .add_fragmented_measure(
            [
                (60, {0: [[("slow", 0, 1, "C4")]]}),
                (120, {0: [[("fast", 0, 1, "D4")]]}),
            ]
        )
        .add_measure({0: [[("still_fast", 0, 1, "E4")]]})
        .build()
    )
    [sequence] = SequenceFactory(score).create()
    assert _ranges_ms(sequence) == [(0, 1000), (1000, 1500), (1500, 2000)]


def test_note_held_across_tempo_change_does_not_delay_it() -> None:
    score = (
        ScoreBuilder(part_count=2)
        .add_fragmented_measure(
            [
                (60, {0: [[("q0", 0, 1, "C4"), ("q1", 1, 1, "D4")]], 1: [[("whole", 0, 4, "C3")]]}),
                (120, {0: [[("q2", 0, 1, "E4"), ("q3", 1, 1, "F4")]]}),
            ],
            lengths=[2, 2],
        )
        .add_measure({0: [[("after", 0, 1, "G4")]], 1: [[("bass", 0, 1, "G3")]]})
        .build()
    )
    upper, lower = SequenceFactory(score).create()
    assert [entry.duration_range.start.ms for entry in upper] == [0, 1000, 2000, 2500, 3000]
    # The whole note keeps its own tempo and still ends the measure.
    assert _ranges_ms(lower) == [(0, 4000), (4000, 4500)]
    assert _ranges_ms(upper)[-1] == (3000, 4500)


def test_non_positive_tempo_is_ignored(caplog: pytest.LogCaptureFixture) -> None:
    score = (
        ScoreBuilder()
        .add_measure({0: [[("a", 0, 1, "C4")]]}, bpm=60)
        .add_measure({0: [[("b", 0, 1, "C4")]]}, bpm=0)
        .build()
    )
    with caplog.at_level(logging.WARNING, logger="scoreplay.sequence"):
        [sequence] = SequenceFactory(score).create()
    assert _ranges_ms(sequence) == [(0, 1000), (1000, 2000)]
    assert "non-positive tempo" in caplog.text


def test_negative_beats_are_clamped_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    score = ScoreBuilder().add_measure({0: [[("odd", -1, 1, "C4")]]}, bpm=60).build()
    with caplog.at_level(logging.WARNING, logger="scoreplay.sequence"):
        [sequence] = SequenceFactory(score).create()
    assert _ranges_ms(sequence) == [(0, 1000)]
    assert "odd" in caplog.text


def test_zero_length_elements_are_skipped() -> None:
    score = (
        ScoreBuilder()
        .add_measure({0: [[("grace", 0, 0, "B3"), ("main", 0, 1, "C4")]]}, bpm=60)
        .build()
    )
    [sequence] = SequenceFactory(score).create()
    assert _ids(sequence) == ["main"]
    assert all(transition.element.id != "grace" for transition in sequence.get_transitions())


def test_repeat_replays_the_same_elements() -> None:
    score = (
        ScoreBuilder()
        .add_measure({0: [[("a", 0, 1, "C4")]]}, bpm=60)
        .add_measure({0: [[("b", 0, 1, "D4")]]}, jumps=(RepeatEnd(1),))
        .build()
    )
    [sequence] = SequenceFactory(score).create()
    assert _ids(sequence) == ["a", "b", "a", "b"]
    assert sequence.get_jumps() == (Duration.from_ms(2000),)
    _assert_tiles(sequence)


def test_system_ends_are_recorded() -> None:
    builder = ScoreBuilder(measures_per_system=1)
    builder.add_measure({0: [[("a", 0, 1, "C4")]]}, bpm=60)
    builder.add_measure({0: [[("b", 0, 1, "D4")]]})
    [sequence] = SequenceFactory(builder.build()).create()
    assert sequence.get_system_ends() == (Duration.from_ms(1000), Duration.from_ms(2000))


def test_parts_share_one_clock() -> None:
    score = (
        ScoreBuilder(part_count=2)
        .add_measure({0: [[("short", 0, 1, "C4")]], 1: [[("long", 0, 2, "C3")]]}, bpm=60)
        .add_measure({0: [[("next", 0, 1, "D4")]], 1: [[("bass", 0, 1, "D3")]]})
        .build()
    )
    upper, lower = SequenceFactory(score).create()
    assert _ranges_ms(upper) == [(0, 1000), (1000, 3000)]
    assert _ranges_ms(lower) == [(0, 2000), (2000, 3000)]
    assert upper.get_part_index() == 0
    assert lower.get_part_index() == 1


def test_selected_parts_only() -> None:
    score = (
        ScoreBuilder(part_count=2)
        .add_measure({0: [four_quarters("u")], 1: [four_quarters("l", "C3")]}, bpm=60)
        .build()
    )
    [lower] = SequenceFactory(score).create([1])
    assert _ids(lower) == ["l0", "l1", "l2", "l3"]


def test_unknown_part_raises_value_error() -> None:
    with pytest.raises(ValueError):
        SequenceFactory(simple_score()).create([3])


def test_empty_score_yields_empty_sequence() -> None:
    [sequence] = SequenceFactory(Score(part_count=1)).create()
    assert sequence.get_length() == 0
    assert sequence.get_duration() == Duration.zero()
    assert sequence.get_entry(0) is None


def test_triplets_tile_without_drift() -> None:
    third = Fraction(1, 3)
    voice = [(f"t{i}", i * third, third, "C4") for i in range(3)]
    score = ScoreBuilder().add_measure({0: [voice]}, bpm=100).build()
    [sequence] = SequenceFactory(score).create()
    _assert_tiles(sequence)
    assert sequence.get_duration() == Duration.from_ms(600)


def test_building_twice_is_deterministic() -> None:
    score = simple_score()
    first = SequenceFactory(score).create()[0]
    second = SequenceFactory(score).create()[0]
    assert first.get_entries() == second.get_entries()
    assert first.get_transitions() == second.get_transitions()


def test_get_entry_and_at() -> None:
    [sequence] = SequenceFactory(simple_score()).create()
    assert sequence.get_entry(-1) is None
    assert sequence.get_entry(4) is None
    last = sequence.at(-1)
    assert last is not None and last.element.id == "n3"


def test_covers_includes_closing_instant_of_last_entry() -> None:
    [sequence] = SequenceFactory(simple_score(bpm=100)).create()
    assert sequence.covers(0, Duration.zero())
    assert not sequence.covers(0, Duration.from_ms(600))
    assert sequence.covers(1, Duration.from_ms(600))
    assert sequence.covers(3, Duration.from_ms(2400))
    assert not sequence.covers(4, Duration.from_ms(2400))
