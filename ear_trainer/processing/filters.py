"""Note acceptance filters - reject decay tails and transient flukes.

Both filters are pure; the caller owns the per-note timestamp and peak
volume kept in NoteAcceptanceFilterState.
"""

from dataclasses import dataclass, replace
from typing import Optional

ATTACK_PRESETS = {"off": 0.0, "balanced": 1.5, "strong": 2.4}
HOLD_PRESETS_MS = {"off": 0.0, "40ms": 40.0, "80ms": 80.0, "120ms": 120.0}

DEFAULT_ATTACK_PRESET = "balanced"
DEFAULT_HOLD_PRESET = "80ms"


def normalize_attack_preset(value: Optional[str]) -> str:
    """Map any input to a known attack preset (default: balanced)."""
    return value if value in ATTACK_PRESETS else DEFAULT_ATTACK_PRESET


def normalize_hold_preset(value: Optional[str]) -> str:
    """Map any input to a known hold preset (default: 80ms)."""
    return value if value in HOLD_PRESETS_MS else DEFAULT_HOLD_PRESET


def attack_peak_multiplier(preset: str) -> float:
    return ATTACK_PRESETS[normalize_attack_preset(preset)]


def hold_duration_ms(preset: str) -> float:
    return HOLD_PRESETS_MS[normalize_hold_preset(preset)]


def accept_by_attack_strength(
    preset: str, peak_volume: float, volume_threshold: float
) -> bool:
    """
    Accept a note only if its attack was loud enough.

    Args:
        preset: Attack preset name
        peak_volume: Peak RMS seen for the current note
        volume_threshold: Active silence threshold

    Returns:
        True if the note passes (always True for "off")
    """
    if normalize_attack_preset(preset) == "off":
        return True
    return peak_volume >= volume_threshold * attack_peak_multiplier(preset)


def accept_by_hold_duration(
    preset: str, note_first_detected_at_ms: Optional[float], now_ms: float
) -> bool:
    """
    Accept a note only once it has been held for the preset duration.

    An unknown first-seen time is rejected unless the filter is off.
    """
    min_hold_ms = hold_duration_ms(preset)
    if min_hold_ms <= 0:
        return True
    if note_first_detected_at_ms is None:
        return False
    return now_ms - note_first_detected_at_ms >= min_hold_ms


@dataclass(frozen=True)
class NoteAcceptanceFilterState:
    """Tracking for the current candidate note."""

    candidate_note: Optional[str] = None
    note_first_detected_at_ms: Optional[float] = None
    peak_volume: float = 0.0


def update_filter_state(
    state: NoteAcceptanceFilterState,
    candidate_note: Optional[str],
    now_ms: float,
    volume: float,
) -> NoteAcceptanceFilterState:
    """
    Advance the filter state for this frame's candidate note.

    A new candidate restarts the hold timer and the attack peak.
    """
    if candidate_note is None:
        return NoteAcceptanceFilterState()
    if candidate_note != state.candidate_note:
        return NoteAcceptanceFilterState(candidate_note, now_ms, volume)
    return replace(state, peak_volume=max(state.peak_volume, volume))


def accept_note(
    state: NoteAcceptanceFilterState,
    attack_preset: str,
    hold_preset: str,
    volume_threshold: float,
    now_ms: float,
) -> bool:
    """Both filters combined for the current candidate."""
    return accept_by_attack_strength(
        attack_preset, state.peak_volume, volume_threshold
    ) and accept_by_hold_duration(hold_preset, state.note_first_detected_at_ms, now_ms)
