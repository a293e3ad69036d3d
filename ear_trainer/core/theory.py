"""Note theory - frequency to pitch-class mapping, intervals and tuner readings."""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .constants import (
    CENTS_TOLERANCE,
    CENTS_VISUAL_RANGE,
    DEFAULT_A4_FREQUENCY,
    NOTE_TO_SEMITONE,
    PITCH_NAMES,
)

UNKNOWN_NOTE = "?"


def _is_positive(value: float) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def frequency_to_pitch_class(
    freq: float, a4_ref: float = DEFAULT_A4_FREQUENCY
) -> Optional[str]:
    """
    Convert a frequency to the closest pitch class.

    The reference is treated as "A" wherever it sits, so any calibrated
    A4 value works, not just 440 Hz.

    Args:
        freq: Frequency in Hz
        a4_ref: Calibrated reference frequency for A4

    Returns:
        Pitch class name (e.g. "C#"), or None for non-positive input
    """
    if not _is_positive(freq) or not _is_positive(a4_ref):
        return None

    n = round(12 * math.log2(freq / a4_ref))
    # A is 9 semitones above C
    index = ((n + 9) % 12 + 12) % 12
    return PITCH_NAMES[index]


def pitch_class_frequency(
    note: str, octave: int = 4, a4_ref: float = DEFAULT_A4_FREQUENCY
) -> Optional[float]:
    """Frequency of a named note in a given octave (e.g. "C", 3 -> ~130.81 Hz)."""
    semitone = NOTE_TO_SEMITONE.get(note)
    if semitone is None or not _is_positive(a4_ref):
        return None
    midi = (octave + 1) * 12 + semitone
    return a4_ref * (2 ** ((midi - 69) / 12.0))


def major_third_and_fifth(root: str) -> Tuple[str, str]:
    """
    Get the major third and perfect fifth above a root note.

    Returns:
        Tuple of (major_third, perfect_fifth); ("?", "?") for an unknown root
    """
    root_semitone = NOTE_TO_SEMITONE.get(root)
    if root_semitone is None:
        return UNKNOWN_NOTE, UNKNOWN_NOTE

    major_third = PITCH_NAMES[(root_semitone + 4) % 12]
    perfect_fifth = PITCH_NAMES[(root_semitone + 7) % 12]
    return major_third, perfect_fifth


def cents_between(freq_a: float, freq_b: float) -> float:
    """Pitch distance from freq_b to freq_a in cents (1200 per octave)."""
    if not _is_positive(freq_a) or not _is_positive(freq_b):
        return 0.0
    return 1200.0 * math.log2(freq_a / freq_b)


@dataclass
class TunerReading:
    """What a tuner needle should show for a detected frequency."""

    tone: str  # "neutral", "in_tune", "flat" or "sharp"
    cents: Optional[float]
    cents_text: str
    translation_percent: float  # needle offset, -50..50

    @property
    def in_tune(self) -> bool:
        return self.tone == "in_tune"


def tuner_reading(
    frequency: Optional[float],
    target_frequency: Optional[float],
    cents_tolerance: float = CENTS_TOLERANCE,
    visual_range: float = CENTS_VISUAL_RANGE,
) -> TunerReading:
    """
    Compare a detected frequency against a target for tuner display.

    Args:
        frequency: Detected frequency in Hz (None or <= 0 means nothing detected)
        target_frequency: Target frequency in Hz
        cents_tolerance: Deviation still considered in tune
        visual_range: Cents shown at the edge of the needle range

    Returns:
        TunerReading
    """
    if not _is_positive(frequency) or not _is_positive(target_frequency):
        return TunerReading(tone="neutral", cents=None, cents_text="--", translation_percent=0.0)

    cents = cents_between(frequency, target_frequency)
    clamped = max(-visual_range, min(visual_range, cents))

    if abs(cents) <= cents_tolerance:
        tone = "in_tune"
    elif cents < 0:
        tone = "flat"
    else:
        tone = "sharp"

    sign = "+" if cents > 0 else ""
    return TunerReading(
        tone=tone,
        cents=cents,
        cents_text=f"{sign}{cents:.1f} cents",
        translation_percent=(clamped / visual_range) * 50.0 if visual_range > 0 else 0.0,
    )
