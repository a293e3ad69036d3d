"""Polyphonic detector providers - interchangeable chord detection strategies.

The built-in "spectrum" provider is always available and cannot be
replaced. Other providers are registered by name; when a requested
provider is missing or cannot handle a frame, detection falls back to
"spectrum" and the result says so.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

import librosa
import numpy as np

from ..analysis.spectrum import SpectrumAnalyzer
from ..core.config import DetectionConfig
from ..core.constants import DEFAULT_A4_FREQUENCY, PITCH_NAMES
from ..core.frame import AudioFrame, NoteEnergies, empty_note_energies, rms
from .events import DetectionEvent
from .polyphonic import (
    PolyphonicDetectionState,
    PolyphonicFrameResult,
    analyze_polyphonic_frame,
)

logger = logging.getLogger(__name__)

SPECTRUM_PROVIDER = "spectrum"
CHROMA_PROVIDER = "chroma_experimental"

_PROVIDER_ALIASES = {
    "chroma": CHROMA_PROVIDER,
    "chroma-experimental": CHROMA_PROVIDER,
    CHROMA_PROVIDER: CHROMA_PROVIDER,
    SPECTRUM_PROVIDER: SPECTRUM_PROVIDER,
}

LOW_CONFIDENCE_MESSAGE = (
    "Low mic confidence. Reduce room noise, mute ringing strings, "
    "or switch detector provider."
)

DetectionOutcome = Tuple[PolyphonicDetectionState, PolyphonicFrameResult]


class PolyphonicDetector(ABC):
    """Abstract base class for polyphonic chord detectors."""

    name: str = ""

    @abstractmethod
    def detect(
        self,
        frame: AudioFrame,
        state: PolyphonicDetectionState,
        target_notes: List[str],
        a4_frequency: float,
        config: DetectionConfig,
    ) -> Optional[DetectionOutcome]:
        """
        Detect the sounding notes in one frame and advance the tracker.

        Args:
            frame: Audio frame (spectrum and/or time-domain buffer)
            state: Polyphonic state from the previous frame
            target_notes: Pitch classes of the target chord
            a4_frequency: Calibrated reference pitch
            config: Detection configuration

        Returns:
            Tuple of (new_state, result), or None if this detector cannot
            handle the frame
        """
        pass


class SpectrumChordDetector(PolyphonicDetector):
    """Target-conditioned note-energy detector over the dB spectrum."""

    name = SPECTRUM_PROVIDER

    def note_energies(
        self, frame: AudioFrame, a4_frequency: float, config: DetectionConfig
    ) -> NoteEnergies:
        if frame.spectrum_db is None:
            return empty_note_energies()
        analyzer = SpectrumAnalyzer(config.spectrum)
        return analyzer.note_energies(
            frame.spectrum_db, frame.sample_rate, frame.fft_size, a4_frequency
        )

    def detect(self, frame, state, target_notes, a4_frequency, config):
        energies = self.note_energies(frame, a4_frequency, config)
        return analyze_polyphonic_frame(
            energies, state, target_notes, config.tracking, config.chords
        )


class ChromaChordDetector(PolyphonicDetector):
    """
    Experimental chromagram detector over the time-domain buffer.

    A chord matches when the likely pitch classes equal the target set
    exactly; there is no dominance test as in the spectrum detector.
    """

    name = CHROMA_PROVIDER

    @staticmethod
    def _tuning(a4_frequency: float) -> float:
        """Reference offset in fractions of a semitone, wrapped to [-0.5, 0.5)."""
        offset = 12.0 * np.log2(a4_frequency / DEFAULT_A4_FREQUENCY)
        return float(offset - np.floor(offset + 0.5))

    def note_energies(
        self, buffer: np.ndarray, sample_rate: int, a4_frequency: float
    ) -> NoteEnergies:
        energies = empty_note_energies()
        if rms(buffer) <= 0:
            return energies

        chroma = librosa.feature.chroma_stft(
            y=buffer,
            sr=sample_rate,
            n_fft=len(buffer),
            hop_length=len(buffer),
            center=False,
            tuning=self._tuning(a4_frequency),
        )
        profile = np.mean(chroma, axis=1)
        for name, value in zip(PITCH_NAMES, profile):
            if np.isfinite(value):
                energies[name] = float(value)
        return energies

    def detect(self, frame, state, target_notes, a4_frequency, config):
        buffer = frame.time_domain
        if buffer is None or len(buffer) < 2:
            return None
        if not np.isfinite(a4_frequency) or a4_frequency <= 0:
            return None

        buffer = np.asarray(buffer, dtype=np.float32)
        energies = self.note_energies(buffer, frame.sample_rate, a4_frequency)
        new_state, result = analyze_polyphonic_frame(
            energies, state, target_notes, config.tracking, config.chords
        )
        if result.event.is_stable:
            matched = set(result.detected_notes) == set(target_notes)
            event = (
                DetectionEvent.STABLE_MATCH if matched else DetectionEvent.STABLE_MISMATCH
            )
            result = replace(result, event=event)
        return new_state, result


_BUILTIN = SpectrumChordDetector()
_DETECTORS: Dict[str, PolyphonicDetector] = {CHROMA_PROVIDER: ChromaChordDetector()}


def normalize_provider(value: Optional[str]) -> str:
    """Map a provider name or alias to its canonical name (default: spectrum)."""
    if value is None:
        return SPECTRUM_PROVIDER
    return _PROVIDER_ALIASES.get(value.strip().lower(), SPECTRUM_PROVIDER)


def list_providers() -> List[str]:
    """Known provider names, built-in first."""
    return [SPECTRUM_PROVIDER, CHROMA_PROVIDER]


def available_providers() -> List[str]:
    """Providers that currently have a detector registered."""
    return [SPECTRUM_PROVIDER] + sorted(_DETECTORS)


def register_detector(provider: str, detector: PolyphonicDetector) -> None:
    """
    Register a detector under a provider name.

    Raises:
        ValueError: If the name refers to the built-in spectrum provider
    """
    name = normalize_provider(provider)
    if name == SPECTRUM_PROVIDER:
        raise ValueError(
            f'The built-in "{SPECTRUM_PROVIDER}" polyphonic detector cannot be overridden.'
        )
    _DETECTORS[name] = detector


def unregister_detector(provider: str) -> None:
    """Remove a registered detector; the built-in one is never removed."""
    name = normalize_provider(provider)
    if name != SPECTRUM_PROVIDER:
        _DETECTORS.pop(name, None)


def detect_polyphonic_frame(
    frame: AudioFrame,
    state: PolyphonicDetectionState,
    target_notes: Iterable[str],
    a4_frequency: float = DEFAULT_A4_FREQUENCY,
    config: Optional[DetectionConfig] = None,
    provider: Optional[str] = SPECTRUM_PROVIDER,
) -> DetectionOutcome:
    """
    Run the requested polyphonic provider, falling back to spectrum.

    Returns:
        Tuple of (new_state, result); result.provider names the detector
        that actually ran
    """
    config = config or DetectionConfig()
    targets = list(dict.fromkeys(target_notes))
    requested = normalize_provider(provider)

    if requested != SPECTRUM_PROVIDER:
        detector = _DETECTORS.get(requested)
        outcome = None
        if detector is not None:
            outcome = detector.detect(frame, state, targets, a4_frequency, config)
        if outcome is not None:
            new_state, result = outcome
            return new_state, replace(
                result, provider=requested, requested_provider=requested
            )
        logger.debug("Provider %s unavailable, falling back to spectrum", requested)

    new_state, result = _BUILTIN.detect(frame, state, targets, a4_frequency, config)
    warnings: List[str] = []
    fallback_from = None
    if requested != SPECTRUM_PROVIDER:
        fallback_from = requested
        warnings.append(
            f'Polyphonic detector provider "{requested}" is not available; '
            f'using "{SPECTRUM_PROVIDER}".'
        )
    return new_state, replace(
        result,
        provider=SPECTRUM_PROVIDER,
        requested_provider=requested,
        fallback_from=fallback_from,
        warnings=warnings,
    )


def is_low_confidence(result: PolyphonicFrameResult) -> bool:
    """True when the result came from a fallback or carries warnings."""
    return bool(result.fallback_from) or len(result.warnings) > 0
