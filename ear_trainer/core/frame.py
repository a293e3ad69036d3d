"""Frame-level data types shared across the detection layers."""

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from .constants import DEFAULT_FFT_SIZE, DEFAULT_SR, PITCH_NAMES

NoteEnergies = Dict[str, float]


def empty_note_energies() -> NoteEnergies:
    """All 12 pitch classes at zero energy."""
    return {name: 0.0 for name in PITCH_NAMES}


def rms(buffer: Optional[np.ndarray]) -> float:
    """Root mean square level of a buffer (0.0 for empty or non-finite input)."""
    if buffer is None or len(buffer) == 0:
        return 0.0
    x = np.asarray(buffer, dtype=np.float64)
    level = float(np.sqrt(np.mean(x**2)))
    if not np.isfinite(level):
        return 0.0
    return level


@dataclass
class AudioFrame:
    """One analysis tick of audio input.

    Either representation may be missing; detectors that need the absent
    one report "no detection".

    Callers must stamp timestamp_ms with the capture time. The hold filter
    measures how long a note has sounded from these stamps, so frames left
    at the default 0.0 never pass a hold preset other than "off".
    """

    time_domain: Optional[np.ndarray] = None  # float32 samples
    spectrum_db: Optional[np.ndarray] = None  # fft_size / 2 bins, dBFS
    sample_rate: int = DEFAULT_SR
    fft_size: int = DEFAULT_FFT_SIZE
    timestamp_ms: float = 0.0

    @property
    def volume(self) -> float:
        """RMS level of the time-domain buffer."""
        return rms(self.time_domain)


@dataclass(frozen=True)
class SpectrumPeak:
    """A spectral peak in linear magnitude units."""

    frequency: float
    magnitude: float

    def merge(self, other: "SpectrumPeak") -> "SpectrumPeak":
        """Combine two peaks into one at their magnitude-weighted frequency."""
        total = self.magnitude + other.magnitude
        if total <= 0:
            return SpectrumPeak((self.frequency + other.frequency) / 2.0, 0.0)
        frequency = (
            self.frequency * self.magnitude + other.frequency * other.magnitude
        ) / total
        return SpectrumPeak(frequency, total)
