"""Monophonic stability tracker - debounce per-frame pitches into note events.

Pure function of (frequency, state, target, reference, config); the caller
keeps the returned state for the next frame.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ..core.config import PitchConfig, TrackingConfig
from ..core.constants import DEFAULT_A4_FREQUENCY
from ..core.theory import frequency_to_pitch_class
from .events import DetectionEvent


@dataclass(frozen=True)
class MonophonicDetectionState:
    """Tracker memory carried between frames."""

    last_pitches: Tuple[float, ...] = ()
    last_note: Optional[str] = None
    stable_note_counter: int = 0
    consecutive_silence_frames: int = 0


@dataclass(frozen=True)
class MonophonicFrameResult:
    """Per-frame outcome of the monophonic tracker."""

    event: DetectionEvent
    within_range: bool = False
    detected_note: Optional[str] = None
    smoothed_frequency: Optional[float] = None
    stable_note_counter: int = 0

    @property
    def is_stable_match(self) -> bool:
        return self.event is DetectionEvent.STABLE_MATCH

    @property
    def is_stable_mismatch(self) -> bool:
        return self.event is DetectionEvent.STABLE_MISMATCH


def analyze_monophonic_frame(
    frequency: float,
    state: MonophonicDetectionState,
    target_note: Optional[str],
    a4_frequency: float = DEFAULT_A4_FREQUENCY,
    pitch_config: Optional[PitchConfig] = None,
    tracking_config: Optional[TrackingConfig] = None,
) -> Tuple[MonophonicDetectionState, MonophonicFrameResult]:
    """
    Advance the monophonic tracker by one frame.

    Frequencies outside the open (min, max) range leave the state
    untouched. Otherwise the frequency joins the pitch window and the
    window mean is resolved to a pitch class; the stability counter
    restarts at 1 whenever that pitch class changes.

    Args:
        frequency: Raw detected frequency (0 = no pitch)
        state: State returned by the previous frame
        target_note: Pitch class the player should produce
        a4_frequency: Calibrated reference pitch
        pitch_config: Range and window settings
        tracking_config: Required stable frames

    Returns:
        Tuple of (new_state, result)
    """
    pitch_config = pitch_config or PitchConfig()
    tracking_config = tracking_config or TrackingConfig()

    if not (pitch_config.min_frequency < frequency < pitch_config.max_frequency):
        return state, MonophonicFrameResult(
            DetectionEvent.NONE, stable_note_counter=state.stable_note_counter
        )

    window = max(1, pitch_config.pitch_window)
    pitches = (state.last_pitches + (float(frequency),))[-window:]
    smoothed = sum(pitches) / len(pitches)
    note = frequency_to_pitch_class(smoothed, a4_frequency)

    if note is None:
        new_state = replace(state, last_pitches=pitches)
        return new_state, MonophonicFrameResult(
            DetectionEvent.NONE,
            within_range=True,
            smoothed_frequency=smoothed,
            stable_note_counter=state.stable_note_counter,
        )

    counter = state.stable_note_counter + 1 if note == state.last_note else 1
    new_state = replace(
        state, last_pitches=pitches, last_note=note, stable_note_counter=counter
    )

    if counter < tracking_config.required_stable_frames:
        event = DetectionEvent.PROVISIONAL
    elif note == target_note:
        event = DetectionEvent.STABLE_MATCH
    else:
        event = DetectionEvent.STABLE_MISMATCH

    return new_state, MonophonicFrameResult(
        event,
        within_range=True,
        detected_note=note,
        smoothed_frequency=smoothed,
        stable_note_counter=counter,
    )


def reset_monophonic_state(
    state: MonophonicDetectionState,
) -> MonophonicDetectionState:
    """Forget the note and its pitch history; keep the silence count."""
    return MonophonicDetectionState(
        consecutive_silence_frames=state.consecutive_silence_frames
    )
