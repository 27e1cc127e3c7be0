"""scoreplay: deterministic playback timelines and cursors for rendered scores."""

from scoreplay.config import DEFAULT_CONFIG, PlaybackConfig
from scoreplay.cursor import Cursor, CursorState, DiscreteCursor, DiscreteCursorState
from scoreplay.cursor_frame import CursorFrame, CursorVerticalSpan, EmptyCursorFrame, LazyCursorStateHintProvider
from scoreplay.errors import LocatorCoverageError
from scoreplay.locators import CheapLocator, ExpensiveLocator
from scoreplay.measure_sequence import MeasureSequenceIterator
from scoreplay.playback import ScorePlayback
from scoreplay.player import Player
from scoreplay.sequence import Sequence, SequenceEntry, SequenceFactory
from scoreplay.timeline import JumpEvent, SystemEndEvent, Timeline, TransitionEvent
from scoreplay.timing import Duration, DurationRange

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG",
    "CheapLocator",
    "Cursor",
    "CursorFrame",
    "CursorState",
    "CursorVerticalSpan",
    "DiscreteCursor",
    "DiscreteCursorState",
    "Duration",
    "DurationRange",
    "EmptyCursorFrame",
    "ExpensiveLocator",
    "JumpEvent",
    "LazyCursorStateHintProvider",
    "LocatorCoverageError",
    "MeasureSequenceIterator",
    "PlaybackConfig",
    "Player",
    "ScorePlayback",
    "Sequence",
    "SequenceEntry",
    "SequenceFactory",
    "SystemEndEvent",
    "Timeline",
    "TransitionEvent",
    "__version__",
]
