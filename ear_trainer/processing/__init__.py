"""Processing layer - Gates and filters between detection and tracking.

This layer decides whether a frame or note should count at all:
- Silence gate (player stopped)
- Input sensitivity (volume threshold)
- Attack and hold acceptance filters
- Reference pitch calibration
"""

from .calibration import (
    CalibrationSampleResult,
    CalibrationSession,
    OpenStringTuning,
    compute_calibrated_reference,
    evaluate_calibration_sample,
    open_string_tuning,
)
from .filters import (
    NoteAcceptanceFilterState,
    accept_by_attack_strength,
    accept_by_hold_duration,
    accept_note,
    normalize_attack_preset,
    normalize_hold_preset,
    update_filter_state,
)
from .sensitivity import (
    derive_auto_volume_threshold,
    estimate_noise_floor_rms,
    normalize_sensitivity_preset,
    resolve_volume_threshold,
)
from .silence import SilenceGateResult, evaluate_silence_gate

__all__ = [
    "CalibrationSampleResult",
    "CalibrationSession",
    "OpenStringTuning",
    "compute_calibrated_reference",
    "evaluate_calibration_sample",
    "open_string_tuning",
    "NoteAcceptanceFilterState",
    "accept_by_attack_strength",
    "accept_by_hold_duration",
    "accept_note",
    "normalize_attack_preset",
    "normalize_hold_preset",
    "update_filter_state",
    "derive_auto_volume_threshold",
    "estimate_noise_floor_rms",
    "normalize_sensitivity_preset",
    "resolve_volume_threshold",
    "SilenceGateResult",
    "evaluate_silence_gate",
]
