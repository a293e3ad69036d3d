"""Tracking layer - Temporal stability over per-frame detections.

Pipeline: detection → [stability counter] → DetectionEvent
"""

from .events import DetectionEvent
from .monophonic import (
    MonophonicDetectionState,
    MonophonicFrameResult,
    analyze_monophonic_frame,
    reset_monophonic_state,
)
from .polyphonic import (
    PolyphonicDetectionState,
    PolyphonicFrameResult,
    analyze_polyphonic_frame,
    reset_polyphonic_state,
)
from .providers import (
    LOW_CONFIDENCE_MESSAGE,
    ChromaChordDetector,
    PolyphonicDetector,
    SpectrumChordDetector,
    available_providers,
    detect_polyphonic_frame,
    is_low_confidence,
    list_providers,
    normalize_provider,
    register_detector,
    unregister_detector,
)

__all__ = [
    "DetectionEvent",
    "MonophonicDetectionState",
    "MonophonicFrameResult",
    "analyze_monophonic_frame",
    "reset_monophonic_state",
    "PolyphonicDetectionState",
    "PolyphonicFrameResult",
    "analyze_polyphonic_frame",
    "reset_polyphonic_state",
    "LOW_CONFIDENCE_MESSAGE",
    "ChromaChordDetector",
    "PolyphonicDetector",
    "SpectrumChordDetector",
    "available_providers",
    "detect_polyphonic_frame",
    "is_low_confidence",
    "list_providers",
    "normalize_provider",
    "register_detector",
    "unregister_detector",
]
