"""Core types, constants and configuration for the ear-trainer."""

from .constants import (
    PITCH_NAMES,
    CHORDS,
    DEFAULT_A4_FREQUENCY,
    DEFAULT_SR,
    DEFAULT_FFT_SIZE,
    VOLUME_THRESHOLD,
)
from .config import (
    DetectionConfig,
    SpectrumConfig,
    ChordMatchConfig,
    PitchConfig,
    TrackingConfig,
    FilterConfig,
    CalibrationConfig,
    load_config,
)
from .frame import AudioFrame, SpectrumPeak, NoteEnergies, empty_note_energies, rms
from .theory import (
    frequency_to_pitch_class,
    pitch_class_frequency,
    major_third_and_fifth,
    cents_between,
    tuner_reading,
    TunerReading,
)

__all__ = [
    "PITCH_NAMES",
    "CHORDS",
    "DEFAULT_A4_FREQUENCY",
    "DEFAULT_SR",
    "DEFAULT_FFT_SIZE",
    "VOLUME_THRESHOLD",
    "DetectionConfig",
    "SpectrumConfig",
    "ChordMatchConfig",
    "PitchConfig",
    "TrackingConfig",
    "FilterConfig",
    "CalibrationConfig",
    "load_config",
    "AudioFrame",
    "SpectrumPeak",
    "NoteEnergies",
    "empty_note_energies",
    "rms",
    "frequency_to_pitch_class",
    "pitch_class_frequency",
    "major_third_and_fifth",
    "cents_between",
    "tuner_reading",
    "TunerReading",
]
