"""Synthetic signals with known pitch content.

Used by the benchmark and the tests where real recordings would make the
expected notes uncertain.
"""

from typing import Iterable, Optional, Sequence

import numpy as np

from ..core.constants import DEFAULT_FFT_SIZE, DEFAULT_SR


def sine_buffer(
    freq: float,
    sr: int = DEFAULT_SR,
    length: int = DEFAULT_FFT_SIZE,
    amplitude: float = 0.5,
) -> np.ndarray:
    """Pure sine wave of the given length in samples."""
    t = np.arange(length, dtype=np.float64) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def harmonic_buffer(
    freq: float,
    sr: int = DEFAULT_SR,
    length: int = DEFAULT_FFT_SIZE,
    amplitude: float = 0.5,
    harmonics: Sequence[float] = (1.0, 0.3, 0.15, 0.08),
) -> np.ndarray:
    """Tone with relative harmonic amplitudes (index 0 = fundamental)."""
    t = np.arange(length, dtype=np.float64) / sr
    audio = np.zeros(length, dtype=np.float64)
    for order, weight in enumerate(harmonics, start=1):
        audio += weight * np.sin(2 * np.pi * freq * order * t)
    return (amplitude * audio).astype(np.float32)


def chord_buffer(
    freqs: Iterable[float],
    sr: int = DEFAULT_SR,
    length: int = DEFAULT_FFT_SIZE,
    amplitude: float = 0.2,
) -> np.ndarray:
    """Sum of harmonic tones, one per frequency."""
    audio = np.zeros(length, dtype=np.float32)
    for freq in freqs:
        audio += harmonic_buffer(freq, sr, length, amplitude)
    return audio


def noise_buffer(
    level: float = 0.01,
    length: int = DEFAULT_FFT_SIZE,
    seed: Optional[int] = 0,
) -> np.ndarray:
    """White noise with the given RMS level."""
    rng = np.random.default_rng(seed)
    return (rng.standard_normal(length) * level).astype(np.float32)


class SyntheticSpectrum:
    """
    dB spectrum built from shaped peaks over a flat floor.

    Each peak sets its centre bin and drops 3 dB on the neighbouring bins,
    a rough stand-in for window leakage.
    """

    def __init__(
        self,
        sr: int = DEFAULT_SR,
        fft_size: int = DEFAULT_FFT_SIZE,
        floor_db: float = -100.0,
    ):
        self.sr = sr
        self.fft_size = fft_size
        self.db = np.full(fft_size // 2, floor_db, dtype=np.float32)

    def bin_for(self, freq: float) -> int:
        return int(round(freq * self.fft_size / self.sr))

    def add_peak(self, freq: float, db: float) -> "SyntheticSpectrum":
        """Raise the bins around freq; never lowers an existing value."""
        center = self.bin_for(freq)
        for offset, level in ((-1, db - 3.0), (0, db), (1, db - 3.0)):
            index = center + offset
            if 0 <= index < len(self.db):
                self.db[index] = max(self.db[index], level)
        return self

    def add_note(
        self,
        freq: float,
        db: float,
        harmonic_drops_db: Sequence[float] = (),
    ) -> "SyntheticSpectrum":
        """Fundamental at db plus harmonics 2, 3, ... at db minus each drop."""
        self.add_peak(freq, db)
        for order, drop in enumerate(harmonic_drops_db, start=2):
            self.add_peak(freq * order, db - drop)
        return self

    def to_array(self) -> np.ndarray:
        return self.db.copy()
