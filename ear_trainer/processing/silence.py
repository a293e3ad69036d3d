"""Silence gate - the single authority on "the player stopped"."""

import math
from dataclasses import dataclass

from ..core.constants import SILENCE_RESET_FRAMES


@dataclass(frozen=True)
class SilenceGateResult:
    """Outcome of gating one frame."""

    is_below_threshold: bool
    next_consecutive_silence_frames: int
    should_reset_tracking: bool


def evaluate_silence_gate(
    volume: float,
    volume_threshold: float,
    consecutive_silence_frames: int,
    reset_after_frames: int = SILENCE_RESET_FRAMES,
) -> SilenceGateResult:
    """
    Gate a frame on its RMS volume.

    Silent frames are counted; any frame at or above the threshold zeroes
    the count. A non-finite volume counts as silence. Tracking should reset
    once the count reaches the configured number of frames, and keeps
    signalling so while silence lasts.

    Args:
        volume: Frame RMS
        volume_threshold: Active threshold
        consecutive_silence_frames: Count carried from the previous frame
        reset_after_frames: Silent frames before a reset (default: 2)

    Returns:
        SilenceGateResult
    """
    if math.isfinite(volume) and volume >= volume_threshold:
        return SilenceGateResult(False, 0, False)

    count = max(0, consecutive_silence_frames) + 1
    return SilenceGateResult(True, count, count >= reset_after_frames)
