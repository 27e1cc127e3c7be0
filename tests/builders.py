"""Helpers for building small laid-out scores in tests."""

from __future__ import annotations

from dataclasses import replace
from fractions import Fraction
from typing import Union

from scoreplay.score_models import (
    Fragment,
    FragmentPart,
    Jump,
    Measure,
    Pitch,
    Score,
    Stave,
    System,
    Voice,
    VoiceEntry,
)
from scoreplay.spatial import Rect

Beats = Union[int, float, Fraction]
# (id, start beat, beat count) or (id, start beat, beat count, "C4")
EntryTuple = Union[tuple[str, Beats, Beats], tuple[str, Beats, Beats, str]]
# part index -> voices -> entries
PartsLayout = dict[int, list[list[EntryTuple]]]

MEASURE_WIDTH = 100.0
PART_HEIGHT = 50.0
BEAT_WIDTH = 20.0
ELEMENT_SIZE = 8.0


class ScoreBuilder:
    def __init__(self, part_count: int = 1, measures_per_system: int = 4) -> None:
        self.part_count = part_count
        self.measures_per_system = measures_per_system
        self._measures: list[Measure] = []
        self._curves: dict[str, frozenset[str]] = {}

    def curve(self, curve_id: str, *element_ids: str) -> ScoreBuilder:
        for element_id in element_ids:
            self._curves[element_id] = self._curves.get(element_id, frozenset()) | {curve_id}
        return self

    def add_measure(self, parts: PartsLayout, jumps: tuple[Jump, ...] = (), bpm: float | None = None) -> ScoreBuilder:
        return self.add_fragmented_measure([(bpm, parts)], jumps)

    def add_fragmented_measure(
        self,
        fragments: list[tuple[float | None, PartsLayout]],
        jumps: tuple[Jump, ...] = (),
        lengths: list[Beats] | None = None,
    ) -> ScoreBuilder:
        """
        Add a measure split at tempo changes.

        Each fragment lasts until its latest stop unless ``lengths`` gives its
        length in quarter notes.
        """
        position = len(self._measures)
        system_index, column = divmod(position, self.measures_per_system)
        system_y = system_index * (self.part_count * PART_HEIGHT + 20)
        measure_rect = Rect(column * MEASURE_WIDTH, system_y, MEASURE_WIDTH, self.part_count * PART_HEIGHT)

        beat_offset = Fraction(0)
        built: list[Fragment] = []
        for fragment_number, (bpm, parts) in enumerate(fragments):
            fragment_parts = []
            fragment_length = Fraction(0)
            for part_index, voices in sorted(parts.items()):
                part_rect = Rect(measure_rect.x, system_y + part_index * PART_HEIGHT, MEASURE_WIDTH, PART_HEIGHT)
                built_voices = []
                for voice_items in voices:
                    entries = []
                    for item in voice_items:
                        entries.append(
                            self._entry(item, part_rect, beat_offset, system_index, position, part_index)
                        )
                        fragment_length = max(fragment_length, Fraction(item[1]) + Fraction(item[2]))
                    built_voices.append(Voice(tuple(entries)))
                fragment_parts.append(FragmentPart(part_index, part_rect, (Stave(tuple(built_voices)),)))
            if lengths is not None:
                fragment_length = Fraction(lengths[fragment_number])
            built.append(Fragment(tuple(fragment_parts), bpm, fragment_length))
            beat_offset += fragment_length

        self._measures.append(Measure(position, system_index, measure_rect, tuple(built), jumps))
        return self

    def build(self) -> Score:
        systems: list[System] = []
        for start in range(0, len(self._measures), self.measures_per_system):
            chunk = self._measures[start : start + self.measures_per_system]
            chunk[-1] = replace(chunk[-1], is_last_in_system=True)
            system_index = start // self.measures_per_system
            systems.append(System(system_index, Rect.merge(m.rect for m in chunk), tuple(chunk)))
        return Score(self.part_count, tuple(systems))

    def _entry(
        self,
        item: EntryTuple,
        part_rect: Rect,
        beat_offset: Fraction,
        system_index: int,
        position: int,
        part_index: int,
    ) -> VoiceEntry:
        element_id, beat, count = item[0], Fraction(item[1]), Fraction(item[2])
        pitches: tuple[Pitch, ...] = ()
        kind = "rest"
        if len(item) == 4:
            name = item[3]  # type: ignore[misc]
            pitches = (Pitch(name[0], int(name[1:])),)
            kind = "note"
        x = part_rect.x + 5 + float(beat_offset + beat) * BEAT_WIDTH
        return VoiceEntry(
            id=element_id,
            kind=kind,  # type: ignore[arg-type]
            measure_beat=beat,
            beat_count=count,
            rect=Rect(x, part_rect.y + 20, ELEMENT_SIZE, ELEMENT_SIZE),
            system_index=system_index,
            measure_index=position,
            part_index=part_index,
            pitches=pitches,
            curve_ids=self._curves.get(element_id, frozenset()),
        )


def four_quarters(prefix: str, pitch: str | None = "C4") -> list[EntryTuple]:
    """One voice of four quarter notes named ``{prefix}0`` .. ``{prefix}3``."""
    if pitch is None:
        return [(f"{prefix}{beat}", beat, 1) for beat in range(4)]
    return [(f"{prefix}{beat}", beat, 1, pitch) for beat in range(4)]


def simple_score(bpm: float = 100.0) -> Score:
    """One measure, one voice, four quarter notes."""
    return ScoreBuilder().add_measure({0: [four_quarters("n")]}, bpm=bpm).build()
