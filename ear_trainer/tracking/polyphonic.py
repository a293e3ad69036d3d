"""Polyphonic stability tracker - debounce per-frame note sets into chord events."""

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Tuple

from ..core.config import ChordMatchConfig, TrackingConfig
from ..core.frame import NoteEnergies
from ..inference.chords import detect_likely_notes, notes_key, notes_match_robust
from .events import DetectionEvent


@dataclass(frozen=True)
class PolyphonicDetectionState:
    """Tracker memory carried between frames."""

    last_detected_notes_key: str = ""
    stable_chord_counter: int = 0
    consecutive_silence_frames: int = 0


@dataclass(frozen=True)
class PolyphonicFrameResult:
    """Per-frame outcome of a polyphonic detector."""

    event: DetectionEvent
    detected_notes_key: str = ""
    detected_notes: List[str] = field(default_factory=list)
    stable_chord_counter: int = 0
    energies: NoteEnergies = field(default_factory=dict)
    provider: str = "spectrum"
    requested_provider: Optional[str] = None
    fallback_from: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def is_stable_match(self) -> bool:
        return self.event is DetectionEvent.STABLE_MATCH

    @property
    def is_stable_mismatch(self) -> bool:
        return self.event is DetectionEvent.STABLE_MISMATCH


def analyze_polyphonic_frame(
    energies: NoteEnergies,
    state: PolyphonicDetectionState,
    target_notes: Iterable[str],
    tracking_config: Optional[TrackingConfig] = None,
    chord_config: Optional[ChordMatchConfig] = None,
) -> Tuple[PolyphonicDetectionState, PolyphonicFrameResult]:
    """
    Advance the polyphonic tracker by one frame.

    The likely notes form a sorted key; the counter grows only while a
    non-empty key repeats. Once stable, the robust matcher decides
    between match and mismatch.

    Args:
        energies: Pitch-class energies for this frame
        state: State returned by the previous frame
        target_notes: Pitch classes of the target chord
        tracking_config: Required stable frames
        chord_config: Likely-note and matching thresholds

    Returns:
        Tuple of (new_state, result)
    """
    tracking_config = tracking_config or TrackingConfig()
    chord_config = chord_config or ChordMatchConfig()

    detected = sorted(detect_likely_notes(energies, chord_config))
    key = notes_key(detected)

    if key and key == state.last_detected_notes_key:
        counter = state.stable_chord_counter + 1
    else:
        counter = 1
    new_state = replace(state, last_detected_notes_key=key, stable_chord_counter=counter)

    if not key:
        event = DetectionEvent.NONE
    elif counter < tracking_config.required_stable_frames:
        event = DetectionEvent.PROVISIONAL
    elif notes_match_robust(energies, target_notes, chord_config):
        event = DetectionEvent.STABLE_MATCH
    else:
        event = DetectionEvent.STABLE_MISMATCH

    return new_state, PolyphonicFrameResult(
        event,
        detected_notes_key=key,
        detected_notes=detected,
        stable_chord_counter=counter,
        energies=dict(energies),
    )


def reset_polyphonic_state(
    state: PolyphonicDetectionState,
) -> PolyphonicDetectionState:
    """Forget the chord key and counter; keep the silence count."""
    return PolyphonicDetectionState(
        consecutive_silence_frames=state.consecutive_silence_frames
    )
