"""Frame pipeline - the per-tick glue between audio frames and events.

Data flow for every frame:
    silence gate → detector (pitch or chord provider) → acceptance filters
    → stability tracker → DetectionEvent

The pipeline owns the calibrated reference pitch and every state record,
so a caller only feeds frames and reads results. It runs on a single
timeline; nothing here blocks or spawns work.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from .analysis.pitch import PitchDetector
from .core.config import DetectionConfig
from .core.constants import DEFAULT_A4_FREQUENCY
from .core.frame import AudioFrame
from .core.theory import TunerReading, tuner_reading
from .processing.calibration import CalibrationSampleResult, CalibrationSession
from .processing.filters import (
    NoteAcceptanceFilterState,
    accept_note,
    update_filter_state,
)
from .processing.sensitivity import estimate_noise_floor_rms, resolve_volume_threshold
from .processing.silence import SilenceGateResult, evaluate_silence_gate
from .tracking.events import DetectionEvent
from .tracking.monophonic import (
    MonophonicDetectionState,
    MonophonicFrameResult,
    analyze_monophonic_frame,
    reset_monophonic_state,
)
from .tracking.polyphonic import (
    PolyphonicDetectionState,
    PolyphonicFrameResult,
    reset_polyphonic_state,
)
from .tracking.providers import SPECTRUM_PROVIDER, detect_polyphonic_frame

logger = logging.getLogger(__name__)


def nearest_note_frequency(frequency: float, a4_frequency: float) -> Optional[float]:
    """Equal-tempered frequency closest to the given one."""
    if not (frequency > 0 and a4_frequency > 0):
        return None
    semitones = round(12 * math.log2(frequency / a4_frequency))
    return a4_frequency * 2 ** (semitones / 12.0)


@dataclass
class MonophonicTick:
    """Everything the monophonic pipeline learned from one frame."""

    timestamp_ms: float
    volume: float
    gate: SilenceGateResult
    frequency: float = 0.0
    result: MonophonicFrameResult = field(
        default_factory=lambda: MonophonicFrameResult(DetectionEvent.NONE)
    )
    accepted: bool = False
    tuner: Optional[TunerReading] = None
    should_reset_tuner: bool = False
    calibration: Optional[CalibrationSampleResult] = None

    @property
    def event(self) -> DetectionEvent:
        return self.result.event


@dataclass
class PolyphonicTick:
    """Everything the polyphonic pipeline learned from one frame."""

    timestamp_ms: float
    volume: float
    gate: SilenceGateResult
    result: PolyphonicFrameResult = field(
        default_factory=lambda: PolyphonicFrameResult(DetectionEvent.NONE)
    )
    should_reset_tuner: bool = False

    @property
    def event(self) -> DetectionEvent:
        return self.result.event


class FramePipeline:
    """
    Stateful driver for the pure detection functions.

    Example:
        >>> pipeline = FramePipeline()
        >>> for frame in frames:
        ...     tick = pipeline.process_monophonic(frame, target_note="A")
        ...     if tick.event is DetectionEvent.STABLE_MATCH:
        ...         break
    """

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        a4_frequency: float = DEFAULT_A4_FREQUENCY,
        noise_floor_rms: Optional[float] = None,
    ):
        """
        Initialize FramePipeline.

        Args:
            config: DetectionConfig
            a4_frequency: Initial reference pitch
            noise_floor_rms: Measured room noise, used by the "auto" sensitivity
        """
        self.config = config or DetectionConfig()
        self.a4_frequency = a4_frequency
        self.noise_floor_rms = noise_floor_rms
        self.pitch_detector = PitchDetector(self.config.pitch)

        self.mono_state = MonophonicDetectionState()
        self.poly_state = PolyphonicDetectionState()
        self.filter_state = NoteAcceptanceFilterState()
        self.calibration: Optional[CalibrationSession] = None

    @property
    def volume_threshold(self) -> float:
        """Active RMS threshold for the configured sensitivity preset."""
        return resolve_volume_threshold(
            self.config.filters.sensitivity_preset, self.noise_floor_rms
        )

    @property
    def is_calibrating(self) -> bool:
        return self.calibration is not None

    def measure_noise_floor(self, volumes: Iterable[float]) -> Optional[float]:
        """Estimate the room noise floor from RMS readings taken in silence."""
        self.noise_floor_rms = estimate_noise_floor_rms(volumes)
        logger.debug(
            "Noise floor %s, volume threshold %.4f",
            self.noise_floor_rms,
            self.volume_threshold,
        )
        return self.noise_floor_rms

    def reset(self) -> None:
        """Forget all tracking state; the reference pitch is kept."""
        self.mono_state = MonophonicDetectionState()
        self.poly_state = PolyphonicDetectionState()
        self.filter_state = NoteAcceptanceFilterState()

    def _gate(self, volume: float, consecutive_silence_frames: int) -> SilenceGateResult:
        return evaluate_silence_gate(
            volume,
            self.volume_threshold,
            consecutive_silence_frames,
            self.config.tracking.silence_reset_frames,
        )

    # Monophonic

    def process_monophonic(
        self, frame: AudioFrame, target_note: Optional[str] = None
    ) -> MonophonicTick:
        """
        Run one frame through the monophonic pipeline.

        While a calibration session is active, detected frequencies feed
        the session instead of the tracker.

        Args:
            frame: Audio frame with a time-domain buffer
            target_note: Pitch class the player should produce

        Returns:
            MonophonicTick
        """
        volume = frame.volume
        threshold = self.volume_threshold
        gate = self._gate(volume, self.mono_state.consecutive_silence_frames)
        self.mono_state = replace(
            self.mono_state, consecutive_silence_frames=gate.next_consecutive_silence_frames
        )
        tick = MonophonicTick(frame.timestamp_ms, volume, gate)

        if gate.is_below_threshold:
            if gate.should_reset_tracking:
                logger.debug(
                    "Silence for %d frames, resetting note tracking",
                    gate.next_consecutive_silence_frames,
                )
                self.mono_state = reset_monophonic_state(self.mono_state)
                self.filter_state = NoteAcceptanceFilterState()
                tick.should_reset_tuner = not self.is_calibrating
            return tick

        if frame.time_domain is None:
            return tick

        tick.frequency = self.pitch_detector.detect(
            frame.time_domain, frame.sample_rate, threshold
        )

        if self.is_calibrating:
            if tick.frequency > 0:
                tick.calibration = self.process_calibration(tick.frequency)
            return tick

        self.mono_state, result = analyze_monophonic_frame(
            tick.frequency,
            self.mono_state,
            target_note,
            self.a4_frequency,
            self.config.pitch,
            self.config.tracking,
        )

        if result.detected_note is not None:
            self.filter_state = update_filter_state(
                self.filter_state, result.detected_note, frame.timestamp_ms, volume
            )
            tick.accepted = accept_note(
                self.filter_state,
                self.config.filters.attack_preset,
                self.config.filters.hold_preset,
                threshold,
                frame.timestamp_ms,
            )
            # Stability alone is not enough; the filters must agree too
            if result.event.is_stable and not tick.accepted:
                result = replace(result, event=DetectionEvent.PROVISIONAL)

        if result.smoothed_frequency is not None:
            tick.tuner = tuner_reading(
                result.smoothed_frequency,
                nearest_note_frequency(result.smoothed_frequency, self.a4_frequency),
            )

        tick.result = result
        return tick

    # Polyphonic

    def process_polyphonic(
        self,
        frame: AudioFrame,
        target_notes: Iterable[str],
        provider: Optional[str] = SPECTRUM_PROVIDER,
    ) -> PolyphonicTick:
        """
        Run one frame through the polyphonic pipeline.

        Args:
            frame: Audio frame (spectrum, plus time-domain for some providers)
            target_notes: Pitch classes of the target chord
            provider: Polyphonic detector provider name

        Returns:
            PolyphonicTick
        """
        if frame.time_domain is None:
            # Spectrum-only frames have no RMS; the spectrum decides silence
            gate = SilenceGateResult(False, 0, False)
        else:
            gate = self._gate(frame.volume, self.poly_state.consecutive_silence_frames)
        self.poly_state = replace(
            self.poly_state, consecutive_silence_frames=gate.next_consecutive_silence_frames
        )
        tick = PolyphonicTick(frame.timestamp_ms, frame.volume, gate)

        if gate.is_below_threshold:
            if gate.should_reset_tracking:
                logger.debug(
                    "Silence for %d frames, resetting chord tracking",
                    gate.next_consecutive_silence_frames,
                )
                self.poly_state = reset_polyphonic_state(self.poly_state)
                tick.should_reset_tuner = not self.is_calibrating
            return tick

        self.poly_state, tick.result = detect_polyphonic_frame(
            frame,
            self.poly_state,
            list(target_notes),
            self.a4_frequency,
            self.config,
            provider,
        )
        return tick

    # Calibration

    def start_calibration(self, open_string: Optional[str] = None) -> bool:
        """
        Begin a calibration session against an open A string.

        Args:
            open_string: String name such as "A2". Without one, the string
                sits the configured octave_shift below the current A4.

        Returns:
            False if a session is already running
        """
        if self.calibration is not None:
            return False
        settings = self.config.calibration
        if open_string is None:
            self.calibration = CalibrationSession(
                expected_frequency=self.a4_frequency / 2.0**settings.octave_shift,
                required_sample_count=settings.required_samples,
                tolerance_ratio=settings.tolerance_ratio,
                octave_shift=settings.octave_shift,
            )
        else:
            self.calibration = CalibrationSession.for_string(
                open_string, settings.required_samples, settings.tolerance_ratio
            )
        logger.debug(
            "Calibration started at %.2f Hz", self.calibration.expected_frequency
        )
        return True

    def cancel_calibration(self) -> None:
        self.calibration = None

    def process_calibration(self, frequency: float) -> Optional[CalibrationSampleResult]:
        """
        Offer a detected frequency to the running session.

        The reference pitch is replaced once, when the session completes.

        Returns:
            Sample result, or None if no session is running
        """
        if self.calibration is None:
            return None

        result = self.calibration.add_sample(frequency)
        if result.is_complete:
            self.finish_calibration()
        return result

    def finish_calibration(self) -> Optional[float]:
        """
        End the running session and apply its reference if it has one.

        Returns:
            New reference pitch, or None if nothing usable was collected
        """
        if self.calibration is None:
            return None
        session, self.calibration = self.calibration, None
        reference = session.finish()
        if reference is not None:
            self.a4_frequency = reference
            self.reset()
        return reference

