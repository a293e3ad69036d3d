"""Microphone input sensitivity - the RMS threshold that separates silence from play.

The "auto" preset derives its threshold from a measured room noise floor.
"""

import math
from typing import Iterable, Optional

SENSITIVITY_PRESETS = {
    "quiet_room": 0.02,
    "normal": 0.03,
    "noisy_room": 0.055,
}
AUTO_PRESET = "auto"
DEFAULT_SENSITIVITY_PRESET = "normal"

AUTO_FLOOR_MULTIPLIER = 3.25
AUTO_FLOOR_MARGIN = 0.012
AUTO_MIN_THRESHOLD = 0.018
AUTO_MAX_THRESHOLD = 0.12


def normalize_sensitivity_preset(value: Optional[str]) -> str:
    """Map any input to a known preset (default: normal)."""
    if value == AUTO_PRESET or value in SENSITIVITY_PRESETS:
        return value
    return DEFAULT_SENSITIVITY_PRESET


def estimate_noise_floor_rms(samples: Iterable[float]) -> Optional[float]:
    """
    Estimate the room noise floor from RMS readings taken while nobody plays.

    Args:
        samples: RMS readings; non-finite and negative values are ignored

    Returns:
        90th percentile of the valid readings, or None if there are none
    """
    valid = sorted(
        float(value)
        for value in samples
        if value is not None and math.isfinite(value) and value >= 0
    )
    if not valid:
        return None
    index = min(len(valid) - 1, int(math.floor(len(valid) * 0.9)))
    return valid[index]


def derive_auto_volume_threshold(noise_floor_rms: Optional[float]) -> float:
    """Threshold comfortably above the noise floor, bounded to a usable range."""
    floor = noise_floor_rms
    if floor is None or not math.isfinite(floor):
        floor = 0.0
    derived = max(
        floor * AUTO_FLOOR_MULTIPLIER, floor + AUTO_FLOOR_MARGIN, AUTO_MIN_THRESHOLD
    )
    return min(AUTO_MAX_THRESHOLD, derived)


def resolve_volume_threshold(
    preset: Optional[str], noise_floor_rms: Optional[float] = None
) -> float:
    """
    Get the active volume threshold for a sensitivity preset.

    Args:
        preset: Sensitivity preset name (unknown names resolve to "normal")
        noise_floor_rms: Measured floor, only used by "auto"

    Returns:
        RMS volume threshold
    """
    preset = normalize_sensitivity_preset(preset)
    if preset == AUTO_PRESET:
        return derive_auto_volume_threshold(noise_floor_rms)
    return SENSITIVITY_PRESETS[preset]
