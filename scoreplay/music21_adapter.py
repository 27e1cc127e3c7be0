"""Builds a playback ``Score`` from a music21 stream with a proportional layout."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Any

from scoreplay.score_models import (
    ElementKind,
    EndingBracketType,
    Fragment,
    FragmentPart,
    Jump,
    Measure,
    Pitch,
    RepeatEnd,
    RepeatEnding,
    RepeatStart,
    Score,
    Stave,
    System,
    Voice,
    VoiceEntry,
)
from scoreplay.spatial import Rect

logger = logging.getLogger(__name__)

DEFAULT_MEASURE_QUARTERS = Fraction(4)


@dataclass(frozen=True)
class ProportionalLayout:
    """
    A simple engraving stand-in: fixed-width measures, evenly stacked parts,
    and elements placed in proportion to their offset within the measure.
    """

    measures_per_system: int = 4
    measure_width: float = 240.0
    part_height: float = 80.0
    system_gap: float = 40.0
    margin: float = 20.0
    element_width: float = 10.0
    element_padding: float = 15.0

    def __post_init__(self) -> None:
        if self.measures_per_system < 1:
            raise ValueError(f"measures_per_system must be at least 1, got {self.measures_per_system}.")


@dataclass(frozen=True)
class _Bracket:
    first: int
    last: int
    label: str
    passes: int


def load_score(path: str, layout: ProportionalLayout | None = None) -> Score:
    """
    Parse a MusicXML (or any music21-readable) file into a playback ``Score``.

    Raises:
        ValueError: If music21 cannot parse the file.
    """
    from music21 import converter, exceptions21

    try:
        parsed = converter.parse(path)
    except exceptions21.Music21Exception as exc:
        raise ValueError(f"music21 could not parse {path}: {exc}") from exc
    return Music21ScoreBuilder(layout).build(parsed)


def _to_fraction(value: Any) -> Fraction:
    if isinstance(value, Fraction):
        return value
    return Fraction(value).limit_denominator(1_000_000)


def _is_repeat(barline: Any, direction: str) -> bool:
    return barline is not None and "Repeat" in barline.classes and barline.direction == direction


class Music21ScoreBuilder:
    """
    Convert a music21 ``Score`` into the structural model playback consumes.

    Each music21 part (including each ``PartStaff`` of a piano system) becomes
    one part with a single stave. Repeat barlines and repeat brackets are
    merged across parts: a jump exists on a measure if any part states it.
    """

    def __init__(self, layout: ProportionalLayout | None = None) -> None:
        self.layout = layout or ProportionalLayout()
        self._curve_ids = itertools.count(1)
        self._slur_ids: dict[int, str] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, m21_score: Any) -> Score:
        self._curve_ids = itertools.count(1)
        self._slur_ids = {}
        parts = list(getattr(m21_score, "parts", [])) or [m21_score]
        part_measures = [list(part.getElementsByClass("Measure")) for part in parts]
        part_count = len(parts)
        measure_count = max((len(measures) for measures in part_measures), default=0)

        jumps = self._extract_jumps(m21_score, part_measures, measure_count)
        open_ties: list[dict[str, str]] = [{} for _ in parts]

        measures: list[Measure] = []
        for position in range(measure_count):
            m21_measures = [
                measures_of_part[position] if position < len(measures_of_part) else None
                for measures_of_part in part_measures
            ]
            measures.append(self._build_measure(position, m21_measures, part_count, jumps[position], open_ties))

        systems = self._group_systems(measures)
        logger.debug("Built score with %d part(s), %d measure(s), %d system(s)", part_count, measure_count, len(systems))
        return Score(part_count=part_count, systems=tuple(systems))

    # ------------------------------------------------------------------
    # Jumps
    # ------------------------------------------------------------------

    def _extract_jumps(self, m21_score: Any, part_measures: list[list[Any]], measure_count: int) -> list[tuple[Jump, ...]]:
        starts: set[int] = set()
        ends: dict[int, int] = {}
        positions: dict[int, int] = {}

        for measures in part_measures:
            for position, m21_measure in enumerate(measures):
                positions[id(m21_measure)] = position
                if _is_repeat(m21_measure.leftBarline, "start"):
                    starts.add(position)
                right = m21_measure.rightBarline
                if _is_repeat(right, "end") and position not in ends:
                    plays = right.times if right.times is not None else 2
                    ends[position] = max(plays, 1) - 1

        brackets: dict[int, _Bracket] = {}
        for bracket in m21_score.recurse().getElementsByClass("RepeatBracket"):
            spanned = sorted(positions[id(m)] for m in bracket.getSpannedElements() if id(m) in positions)
            if not spanned:
                continue
            numbers = bracket.getNumberList() or [1]
            info = _Bracket(spanned[0], spanned[-1], str(bracket.number or ""), len(numbers))
            for position in range(info.first, info.last + 1):
                brackets.setdefault(position, info)

        result: list[tuple[Jump, ...]] = []
        for position in range(measure_count):
            measure_jumps: list[Jump] = []
            if position in starts:
                measure_jumps.append(RepeatStart())
            info = brackets.get(position)
            if info is not None:
                times = info.passes if position == info.last and position in ends else 0
                measure_jumps.append(RepeatEnding(times, info.label, self._bracket_type(position, info)))
            elif position in ends:
                measure_jumps.append(RepeatEnd(ends[position]))
            result.append(tuple(measure_jumps))
        return result

    def _bracket_type(self, position: int, info: _Bracket) -> EndingBracketType:
        if info.first == info.last:
            return "both"
        if position == info.first:
            return "begin"
        if position == info.last:
            return "end"
        return "mid"

    # ------------------------------------------------------------------
    # Measures
    # ------------------------------------------------------------------

    def _build_measure(
        self,
        position: int,
        m21_measures: list[Any | None],
        part_count: int,
        jumps: tuple[Jump, ...],
        open_ties: list[dict[str, str]],
    ) -> Measure:
        layout = self.layout
        system_index, column = divmod(position, layout.measures_per_system)
        system_y = layout.margin + system_index * (part_count * layout.part_height + layout.system_gap)
        measure_rect = Rect(
            layout.margin + column * layout.measure_width,
            system_y,
            layout.measure_width,
            part_count * layout.part_height,
        )

        length = max(
            (_to_fraction(m.highestTime) for m in m21_measures if m is not None),
            default=DEFAULT_MEASURE_QUARTERS,
        )
        if length <= 0:
            length = DEFAULT_MEASURE_QUARTERS

        tempos = self._extract_tempos(m21_measures)
        boundaries = sorted({offset for offset in tempos if 0 < offset < length})
        fragment_starts = [Fraction(0), *boundaries]
        fragment_ends = [*boundaries, length]

        # entries[fragment][part] -> voice number -> entries
        grouped: list[dict[int, dict[int, list[VoiceEntry]]]] = [{} for _ in fragment_starts]
        part_rects: dict[int, Rect] = {}

        for part_index, m21_measure in enumerate(m21_measures):
            if m21_measure is None:
                continue
            part_rect = Rect(
                measure_rect.x,
                system_y + part_index * layout.part_height,
                layout.measure_width,
                layout.part_height,
            )
            part_rects[part_index] = part_rect

            for number, (voice_number, offset, element) in enumerate(self._iter_elements(m21_measure)):
                fragment_index = self._fragment_index(offset, fragment_starts)
                entry = self._build_entry(
                    element_id=f"p{part_index}m{position}v{voice_number}e{number}",
                    element=element,
                    measure_beat=offset - fragment_starts[fragment_index],
                    x=self._element_x(measure_rect, offset, length),
                    part_rect=part_rect,
                    system_index=system_index,
                    position=position,
                    part_index=part_index,
                    open_ties=open_ties[part_index],
                )
                voices = grouped[fragment_index].setdefault(part_index, {})
                voices.setdefault(voice_number, []).append(entry)

        fragments: list[Fragment] = []
        for fragment_index, start in enumerate(fragment_starts):
            fragment_parts = tuple(
                FragmentPart(
                    index=part_index,
                    rect=part_rects[part_index],
                    staves=(Stave(voices=tuple(Voice(tuple(entries)) for _, entries in sorted(voices.items()))),),
                )
                for part_index, voices in sorted(grouped[fragment_index].items())
            )
            fragments.append(
                Fragment(
                    parts=fragment_parts,
                    bpm=tempos.get(start),
                    beat_length=fragment_ends[fragment_index] - start,
                )
            )

        return Measure(
            index=position,
            system_index=system_index,
            rect=measure_rect,
            fragments=tuple(fragments),
            jumps=jumps,
        )

    def _extract_tempos(self, m21_measures: list[Any | None]) -> dict[Fraction, float]:
        tempos: dict[Fraction, float] = {}
        for m21_measure in m21_measures:
            if m21_measure is None:
                continue
            for mark in m21_measure.flatten().getElementsByClass("MetronomeMark"):
                bpm = mark.getQuarterBPM()
                if bpm is None or bpm <= 0:
                    continue
                tempos.setdefault(_to_fraction(mark.offset), float(bpm))
        return tempos

    def _fragment_index(self, offset: Fraction, fragment_starts: list[Fraction]) -> int:
        index = 0
        for candidate, start in enumerate(fragment_starts):
            if offset >= start:
                index = candidate
        return index

    def _iter_elements(self, m21_measure: Any) -> list[tuple[int, Fraction, Any]]:
        elements: list[tuple[int, Fraction, Any]] = [
            (0, _to_fraction(element.offset), element) for element in m21_measure.notesAndRests
        ]
        for voice_number, voice in enumerate(m21_measure.voices, start=1):
            voice_offset = _to_fraction(voice.offset)
            for element in voice.notesAndRests:
                elements.append((voice_number, voice_offset + _to_fraction(element.offset), element))
        return elements

    def _element_x(self, measure_rect: Rect, offset: Fraction, length: Fraction) -> float:
        layout = self.layout
        usable = measure_rect.w - 2 * layout.element_padding - layout.element_width
        ratio = min(max(float(offset / length), 0.0), 1.0)
        return measure_rect.x + layout.element_padding + usable * ratio

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def _build_entry(
        self,
        *,
        element_id: str,
        element: Any,
        measure_beat: Fraction,
        x: float,
        part_rect: Rect,
        system_index: int,
        position: int,
        part_index: int,
        open_ties: dict[str, str],
    ) -> VoiceEntry:
        size = self.layout.element_width
        kind: ElementKind = "rest" if element.isRest else "chord" if element.isChord else "note"
        pitches = tuple(
            Pitch(str(pitch.step), pitch.octave if pitch.octave is not None else 4, float(pitch.alter))
            for pitch in getattr(element, "pitches", ())
        )
        return VoiceEntry(
            id=element_id,
            kind=kind,
            measure_beat=measure_beat,
            beat_count=_to_fraction(element.duration.quarterLength),
            rect=Rect(x, part_rect.y + (part_rect.h - size) / 2, size, size),
            system_index=system_index,
            measure_index=position,
            part_index=part_index,
            pitches=pitches,
            curve_ids=self._curve_ids_of(element, open_ties),
        )

    def _curve_ids_of(self, element: Any, open_ties: dict[str, str]) -> frozenset[str]:
        curve_ids: set[str] = set()

        notes = [] if element.isRest else list(element.notes) if element.isChord else [element]
        for m21_note in notes:
            tie = m21_note.tie
            if tie is None:
                continue
            key = m21_note.pitch.nameWithOctave
            if tie.type == "start":
                curve_id = open_ties[key] = f"tie{next(self._curve_ids)}"
            elif tie.type == "continue":
                curve_id = open_ties.setdefault(key, f"tie{next(self._curve_ids)}")
            else:
                curve_id = open_ties.pop(key, None) or f"tie{next(self._curve_ids)}"
            curve_ids.add(curve_id)

        for spanner in element.getSpannerSites():
            if "Slur" in spanner.classes:
                if id(spanner) not in self._slur_ids:
                    self._slur_ids[id(spanner)] = f"slur{next(self._curve_ids)}"
                curve_ids.add(self._slur_ids[id(spanner)])

        return frozenset(curve_ids)

    # ------------------------------------------------------------------
    # Systems
    # ------------------------------------------------------------------

    def _group_systems(self, measures: list[Measure]) -> list[System]:
        systems: list[System] = []
        per_system = self.layout.measures_per_system
        for system_index, start in enumerate(range(0, len(measures), per_system)):
            chunk = measures[start : start + per_system]
            chunk[-1] = replace(chunk[-1], is_last_in_system=True)
            rect = Rect.merge(measure.rect for measure in chunk)
            systems.append(System(index=system_index, rect=rect, measures=tuple(chunk)))
        return systems
