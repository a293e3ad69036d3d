"""Analysis layer - Low-level signal analysis.

This layer turns one audio frame into raw measurements:
- Monophonic pitch (autocorrelation, YIN)
- Pitch-class energies from a dB spectrum (peaks, clustering, harmonics)
"""

from .pitch import (
    PitchDetector,
    autocorrelation,
    detect_pitch_autocorrelation,
    detect_pitch_yin,
)
from .spectrum import (
    SpectrumAnalyzer,
    cluster_peaks,
    harmonic_cluster_support,
    harmonic_product_support,
    pick_spectrum_peaks,
    spectrum_to_note_energies,
)

__all__ = [
    "PitchDetector",
    "autocorrelation",
    "detect_pitch_autocorrelation",
    "detect_pitch_yin",
    "SpectrumAnalyzer",
    "cluster_peaks",
    "harmonic_cluster_support",
    "harmonic_product_support",
    "pick_spectrum_peaks",
    "spectrum_to_note_energies",
]
