"""Input layer - audio files and synthetic signals."""

from .loader import AudioLoader, magnitude_spectrum_db
from .synthetic import (
    SyntheticSpectrum,
    chord_buffer,
    harmonic_buffer,
    noise_buffer,
    sine_buffer,
)

__all__ = [
    "AudioLoader",
    "magnitude_spectrum_db",
    "SyntheticSpectrum",
    "chord_buffer",
    "harmonic_buffer",
    "noise_buffer",
    "sine_buffer",
]
