"""Monophonic pitch detection for single time-domain buffers."""

import numpy as np
from typing import Optional

from ..core.config import PitchConfig
from ..core.frame import rms


def _as_buffer(buffer) -> Optional[np.ndarray]:
    if buffer is None:
        return None
    x = np.asarray(buffer, dtype=np.float64).ravel()
    if x.size < 2 or not np.all(np.isfinite(x)):
        return None
    return x


def autocorrelation(buffer: np.ndarray) -> np.ndarray:
    """
    Raw (unnormalized) autocorrelation c[lag] = sum(buf[i] * buf[i + lag]).

    Computed through a zero-padded FFT so the result matches the direct
    sum without circular wrap-around.

    Returns:
        Array of length len(buffer), indexed by lag
    """
    n = len(buffer)
    size = 1 << (2 * n - 1).bit_length()
    spectrum = np.fft.rfft(buffer, size)
    corr = np.fft.irfft(spectrum * np.conj(spectrum), size)
    return corr[:n]


def detect_pitch_autocorrelation(
    buffer: np.ndarray,
    sample_rate: float,
    volume_threshold: float = 0.03,
    min_correlation: float = 0.3,
) -> float:
    """
    Estimate the fundamental frequency of a buffer by autocorrelation.

    Args:
        buffer: Time-domain samples
        sample_rate: Sample rate in Hz
        volume_threshold: RMS below which the buffer counts as silent
        min_correlation: Peak correlation needed, relative to rms^2 * N

    Returns:
        Frequency in Hz, or 0.0 when silent or not periodic
    """
    x = _as_buffer(buffer)
    if x is None or sample_rate <= 0:
        return 0.0

    level = rms(x)
    if level < volume_threshold:
        return 0.0

    n = len(x)
    corr = autocorrelation(x)

    # Skip the zero-lag peak and its initial descent
    d = 0
    while d < n - 1 and corr[d] > corr[d + 1]:
        d += 1

    search = corr[d:]
    if search.size == 0:
        return 0.0
    max_pos = int(np.argmax(search)) + d
    if corr[max_pos] < min_correlation * level * level * n:
        return 0.0

    lag = float(max_pos)
    if 0 < max_pos < n - 1:
        y0, y1, y2 = corr[max_pos - 1], corr[max_pos], corr[max_pos + 1]
        a = (y0 + y2 - 2.0 * y1) / 2.0
        b = (y2 - y0) / 2.0
        if a != 0:
            lag = max_pos - b / (2.0 * a)

    if lag <= 0 or not np.isfinite(lag):
        return 0.0
    return float(sample_rate / lag)


def detect_pitch_yin(
    buffer: np.ndarray,
    sample_rate: float,
    min_frequency: float = 50.0,
    max_frequency: float = 1200.0,
    threshold: float = 0.12,
) -> float:
    """
    Estimate the fundamental frequency with the YIN algorithm.

    Returns:
        Frequency in Hz, or 0.0 when no stable pitch is found
    """
    x = _as_buffer(buffer)
    if x is None or sample_rate <= 0 or min_frequency <= 0 or max_frequency <= 0:
        return 0.0

    n = len(x)
    max_tau = min(int(sample_rate // min_frequency), n // 2 - 1)
    min_tau = max(2, int(sample_rate // max_frequency))
    if max_tau <= min_tau:
        return 0.0

    # Difference function d(tau) = sum (x[i] - x[i + tau])^2
    diff = np.zeros(max_tau + 1)
    for tau in range(1, max_tau + 1):
        delta = x[: n - tau] - x[tau:]
        diff[tau] = np.dot(delta, delta)

    # Cumulative mean normalized difference
    cmnd = np.ones(max_tau + 1)
    running = np.cumsum(diff[1:])
    taus = np.arange(1, max_tau + 1)
    with np.errstate(divide="ignore", invalid="ignore"):
        cmnd[1:] = np.where(running == 0, 1.0, diff[1:] * taus / running)

    tau_estimate = -1
    for tau in range(min_tau, max_tau + 1):
        if cmnd[tau] < threshold:
            while tau + 1 <= max_tau and cmnd[tau + 1] < cmnd[tau]:
                tau += 1
            tau_estimate = tau
            break

    if tau_estimate == -1:
        band = cmnd[min_tau : max_tau + 1]
        tau_estimate = int(np.argmin(band)) + min_tau
        if not np.isfinite(cmnd[tau_estimate]) or cmnd[tau_estimate] > 0.35:
            return 0.0

    better_tau = float(tau_estimate)
    if 1 < tau_estimate < max_tau:
        s0, s1, s2 = cmnd[tau_estimate - 1], cmnd[tau_estimate], cmnd[tau_estimate + 1]
        denominator = 2.0 * (2.0 * s1 - s2 - s0)
        if denominator != 0:
            better_tau = tau_estimate + (s2 - s0) / denominator

    if better_tau <= 0 or not np.isfinite(better_tau):
        return 0.0
    frequency = sample_rate / better_tau
    if not np.isfinite(frequency) or frequency < min_frequency or frequency > max_frequency:
        return 0.0
    return float(frequency)


class PitchDetector:
    """Stateless monophonic pitch detector with a selectable method."""

    METHODS = ("autocorrelation", "yin")

    def __init__(self, config: Optional[PitchConfig] = None):
        """
        Initialize PitchDetector.

        Args:
            config: PitchConfig; an unknown method falls back to autocorrelation
        """
        self.config = config or PitchConfig()
        self.method = self.config.method if self.config.method in self.METHODS else "autocorrelation"

    def detect(
        self,
        buffer: np.ndarray,
        sample_rate: float,
        volume_threshold: Optional[float] = None,
    ) -> float:
        """
        Detect pitch in a buffer.

        Args:
            buffer: Time-domain samples
            sample_rate: Sample rate in Hz
            volume_threshold: Override for the configured RMS gate

        Returns:
            Frequency in Hz, 0.0 meaning silent or no pitch
        """
        threshold = self.config.volume_threshold if volume_threshold is None else volume_threshold
        if self.method == "yin":
            if rms(buffer) < threshold:
                return 0.0
            return detect_pitch_yin(
                buffer,
                sample_rate,
                min_frequency=self.config.min_frequency,
                max_frequency=self.config.max_frequency,
                threshold=self.config.yin_threshold,
            )
        return detect_pitch_autocorrelation(
            buffer,
            sample_rate,
            volume_threshold=threshold,
            min_correlation=self.config.min_correlation,
        )
