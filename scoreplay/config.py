"""Tunable defaults for building and presenting playback models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class PlaybackConfig:
    """
    Attributes:
        default_bpm:               Tempo (quarter notes per minute) until the score sets one.
        cursor_width_px:           Width of the highlight rectangle drawn for a cursor.
        last_measure_x_padding_px: Gap kept between the final frame and its measure's right edge.
        alpha_decimals:            Precision of cursor interpolation; finer changes are not published.
    """

    default_bpm: float = 120.0
    cursor_width_px: float = 1.5
    last_measure_x_padding_px: float = 6.0
    alpha_decimals: int = 3

    def __post_init__(self) -> None:
        if self.default_bpm <= 0:
            raise ValueError(f"default_bpm must be positive, got {self.default_bpm}.")
        if self.cursor_width_px < 0:
            raise ValueError(f"cursor_width_px cannot be negative, got {self.cursor_width_px}.")
        if self.alpha_decimals < 0:
            raise ValueError(f"alpha_decimals cannot be negative, got {self.alpha_decimals}.")


DEFAULT_CONFIG: Final[PlaybackConfig] = PlaybackConfig()
