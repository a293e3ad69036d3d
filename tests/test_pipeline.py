"""Tests for the frame pipeline that wires gate, detectors, filters and trackers."""

import logging

import numpy as np
import pytest

from ear_trainer.core.config import (
    CalibrationConfig,
    DetectionConfig,
    FilterConfig,
)
from ear_trainer.core.frame import AudioFrame
from ear_trainer.input.synthetic import SyntheticSpectrum, sine_buffer
from ear_trainer.pipeline import FramePipeline, nearest_note_frequency
from ear_trainer.tracking.events import DetectionEvent


def frames_of(buffer, count, step_ms=85.0):
    return [
        AudioFrame(time_domain=buffer, timestamp_ms=i * step_ms) for i in range(count)
    ]


def silent_frame(timestamp_ms=0.0):
    return AudioFrame(time_domain=np.zeros(4096, dtype=np.float32), timestamp_ms=timestamp_ms)


class TestNearestNote:

    def test_snaps_to_equal_temperament(self):
        assert nearest_note_frequency(445.0, 440.0) == pytest.approx(440.0)
        assert nearest_note_frequency(262.0, 440.0) == pytest.approx(261.63, abs=0.01)

    def test_invalid_input(self):
        assert nearest_note_frequency(0.0, 440.0) is None
        assert nearest_note_frequency(440.0, 0.0) is None


class TestMonophonicPipeline:

    def test_sustained_note_matches_on_third_frame(self):
        pipeline = FramePipeline()
        ticks = [
            pipeline.process_monophonic(frame, "A")
            for frame in frames_of(sine_buffer(440.0), 3)
        ]

        assert [t.event for t in ticks] == [
            DetectionEvent.PROVISIONAL,
            DetectionEvent.PROVISIONAL,
            DetectionEvent.STABLE_MATCH,
        ]
        assert ticks[-1].accepted
        assert ticks[-1].frequency == pytest.approx(440.0, rel=0.01)
        assert ticks[-1].tuner.in_tune

    def test_wrong_note_is_a_mismatch(self):
        pipeline = FramePipeline()
        for frame in frames_of(sine_buffer(440.0), 3):
            tick = pipeline.process_monophonic(frame, "E")
        assert tick.event is DetectionEvent.STABLE_MISMATCH

    def test_hold_filter_delays_stable_event(self):
        pipeline = FramePipeline()
        ticks = [
            pipeline.process_monophonic(frame, "A")
            for frame in frames_of(sine_buffer(440.0), 5, step_ms=20.0)
        ]

        # Stable from frame 3, but only held long enough at 80 ms
        assert [t.event for t in ticks[2:]] == [
            DetectionEvent.PROVISIONAL,
            DetectionEvent.PROVISIONAL,
            DetectionEvent.STABLE_MATCH,
        ]

    def test_weak_attack_is_rejected(self):
        quiet = sine_buffer(440.0, amplitude=0.05)
        pipeline = FramePipeline()
        ticks = [pipeline.process_monophonic(frame, "A") for frame in frames_of(quiet, 4)]

        assert all(t.event is DetectionEvent.PROVISIONAL for t in ticks)
        assert not ticks[-1].accepted

    def test_weak_attack_passes_with_filter_off(self):
        quiet = sine_buffer(440.0, amplitude=0.05)
        config = DetectionConfig(filters=FilterConfig(attack_preset="off"))
        pipeline = FramePipeline(config)
        ticks = [pipeline.process_monophonic(frame, "A") for frame in frames_of(quiet, 3)]
        assert ticks[-1].event is DetectionEvent.STABLE_MATCH

    def test_silence_resets_tracking(self):
        pipeline = FramePipeline()
        for frame in frames_of(sine_buffer(440.0), 3):
            pipeline.process_monophonic(frame, "A")

        first = pipeline.process_monophonic(silent_frame(), "A")
        assert first.gate.is_below_threshold
        assert not first.should_reset_tuner
        assert pipeline.mono_state.last_note == "A"

        second = pipeline.process_monophonic(silent_frame(), "A")
        assert second.gate.should_reset_tracking
        assert second.should_reset_tuner
        assert pipeline.mono_state.last_note is None
        assert pipeline.mono_state.consecutive_silence_frames == 2
        assert pipeline.filter_state.candidate_note is None

    def test_silence_reset_is_logged(self, caplog):
        caplog.set_level(logging.DEBUG, logger="ear_trainer.pipeline")
        pipeline = FramePipeline()
        pipeline.process_monophonic(silent_frame(), "A")
        assert "resetting note tracking" not in caplog.text

        pipeline.process_monophonic(silent_frame(), "A")
        assert "Silence for 2 frames, resetting note tracking" in caplog.text

    def test_unstamped_frames_never_pass_hold(self):
        frames = [AudioFrame(time_domain=sine_buffer(440.0)) for _ in range(10)]

        held = FramePipeline()
        assert all(
            held.process_monophonic(frame, "A").event is not DetectionEvent.STABLE_MATCH
            for frame in frames
        )

        config = DetectionConfig(filters=FilterConfig(hold_preset="off"))
        unheld = FramePipeline(config)
        ticks = [unheld.process_monophonic(frame, "A") for frame in frames]
        assert ticks[2].event is DetectionEvent.STABLE_MATCH

    def test_note_after_silence_starts_over(self):
        pipeline = FramePipeline()
        frames = frames_of(sine_buffer(440.0), 3)
        for frame in frames:
            pipeline.process_monophonic(frame, "A")
        pipeline.process_monophonic(silent_frame(), "A")
        pipeline.process_monophonic(silent_frame(), "A")

        tick = pipeline.process_monophonic(frames[0], "A")
        assert tick.event is DetectionEvent.PROVISIONAL
        assert pipeline.mono_state.consecutive_silence_frames == 0

    def test_auto_sensitivity_uses_noise_floor(self):
        config = DetectionConfig(filters=FilterConfig(sensitivity_preset="auto"))
        pipeline = FramePipeline(config)
        assert pipeline.volume_threshold == pytest.approx(0.018)

        pipeline.measure_noise_floor([0.01] * 10)
        assert pipeline.noise_floor_rms == pytest.approx(0.01)
        assert pipeline.volume_threshold == pytest.approx(0.0325)


class TestCalibration:

    def test_open_string_sets_reference(self):
        config = DetectionConfig(calibration=CalibrationConfig(required_samples=5))
        pipeline = FramePipeline(config)
        assert pipeline.start_calibration()
        assert pipeline.calibration.expected_frequency == pytest.approx(220.0)

        ticks = [
            pipeline.process_monophonic(frame, "A")
            for frame in frames_of(sine_buffer(220.0), 5)
        ]

        assert all(t.calibration is not None and t.calibration.accepted for t in ticks)
        assert all(t.event is DetectionEvent.NONE for t in ticks)
        assert ticks[-1].calibration.is_complete
        assert not pipeline.is_calibrating
        assert pipeline.a4_frequency == pytest.approx(440.0, rel=0.005)

    def test_concurrent_session_is_rejected(self):
        pipeline = FramePipeline()
        assert pipeline.start_calibration("A2")
        assert pipeline.calibration.expected_frequency == pytest.approx(110.0)
        assert not pipeline.start_calibration()

        pipeline.cancel_calibration()
        assert not pipeline.is_calibrating
        assert pipeline.start_calibration()

    def test_finish_without_samples_keeps_reference(self):
        pipeline = FramePipeline(a4_frequency=432.0)
        pipeline.start_calibration()
        assert pipeline.finish_calibration() is None
        assert pipeline.a4_frequency == 432.0

    def test_out_of_range_readings_are_ignored(self):
        pipeline = FramePipeline()
        pipeline.start_calibration()
        tick = pipeline.process_monophonic(AudioFrame(time_domain=sine_buffer(440.0)))
        assert not tick.calibration.accepted
        assert pipeline.calibration.sample_count == 0

    def test_silence_during_calibration_keeps_tuner(self):
        pipeline = FramePipeline()
        pipeline.start_calibration()
        pipeline.process_monophonic(silent_frame())
        tick = pipeline.process_monophonic(silent_frame())
        assert tick.gate.should_reset_tracking
        assert not tick.should_reset_tuner


class TestPolyphonicPipeline:

    def c_major_spectrum(self):
        spectrum = SyntheticSpectrum(floor_db=-120.0)
        for freq in (130.81, 164.81, 196.0):
            spectrum.add_note(freq, -18.0, harmonic_drops_db=(10.0, 18.0))
        return spectrum.to_array()

    def test_silence_reset_is_logged(self, caplog):
        caplog.set_level(logging.DEBUG, logger="ear_trainer.pipeline")
        pipeline = FramePipeline()
        frame = AudioFrame(time_domain=np.zeros(4096, dtype=np.float32))
        pipeline.process_polyphonic(frame, ["C", "E", "G"])
        pipeline.process_polyphonic(frame, ["C", "E", "G"])
        assert "resetting chord tracking" in caplog.text

    def test_spectrum_only_frames_match(self):
        pipeline = FramePipeline()
        frame = AudioFrame(spectrum_db=self.c_major_spectrum())
        ticks = [pipeline.process_polyphonic(frame, ["C", "E", "G"]) for _ in range(3)]

        assert not any(t.gate.is_below_threshold for t in ticks)
        assert ticks[-1].event is DetectionEvent.STABLE_MATCH
        assert ticks[-1].result.provider == "spectrum"

    def test_silent_time_domain_is_gated(self):
        pipeline = FramePipeline()
        frame = AudioFrame(
            time_domain=np.zeros(4096, dtype=np.float32),
            spectrum_db=self.c_major_spectrum(),
        )
        pipeline.process_polyphonic(frame, ["C", "E", "G"])
        tick = pipeline.process_polyphonic(frame, ["C", "E", "G"])

        assert tick.event is DetectionEvent.NONE
        assert tick.should_reset_tuner
        assert pipeline.poly_state.stable_chord_counter == 0
