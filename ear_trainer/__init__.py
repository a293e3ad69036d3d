"""Ear Trainer - Note and chord detection for instrument ear training.

Architecture Layers:
    1. core/       - Constants, note theory, configuration, frame types
    2. input/      - Audio loading, framing and synthetic signals
    3. analysis/   - Low-level signal analysis (pitch, spectrum note energies)
    4. inference/  - Musical judgments (likely notes, chord matching)
    5. processing/ - Silence gate, sensitivity, acceptance filters, calibration
    6. tracking/   - Stability state machines and polyphonic providers
"""

__version__ = "0.1.0"

# Core types
from .core import AudioFrame, DetectionConfig, load_config

# Input layer
from .input import AudioLoader

# Analysis layer
from .analysis import PitchDetector, SpectrumAnalyzer

# Inference layer
from .inference import detect_likely_notes, notes_match_robust

# Processing layer
from .processing import CalibrationSession, evaluate_silence_gate

# Tracking layer
from .tracking import (
    DetectionEvent,
    analyze_monophonic_frame,
    analyze_polyphonic_frame,
    detect_polyphonic_frame,
)

# Pipeline
from .pipeline import FramePipeline

__all__ = [
    # Core
    "AudioFrame",
    "DetectionConfig",
    "load_config",
    # Input
    "AudioLoader",
    # Analysis
    "PitchDetector",
    "SpectrumAnalyzer",
    # Inference
    "detect_likely_notes",
    "notes_match_robust",
    # Processing
    "CalibrationSession",
    "evaluate_silence_gate",
    # Tracking
    "DetectionEvent",
    "analyze_monophonic_frame",
    "analyze_polyphonic_frame",
    "detect_polyphonic_frame",
    # Pipeline
    "FramePipeline",
]
