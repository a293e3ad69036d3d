"""Tests for the monophonic and polyphonic stability trackers."""

from dataclasses import replace

from ear_trainer.core.config import PitchConfig, TrackingConfig
from ear_trainer.core.frame import empty_note_energies
from ear_trainer.tracking.events import DetectionEvent
from ear_trainer.tracking.monophonic import (
    MonophonicDetectionState,
    analyze_monophonic_frame,
    reset_monophonic_state,
)
from ear_trainer.tracking.polyphonic import (
    PolyphonicDetectionState,
    analyze_polyphonic_frame,
    reset_polyphonic_state,
)


def run_mono(frequencies, target, **kwargs):
    state = MonophonicDetectionState()
    results = []
    for freq in frequencies:
        state, result = analyze_monophonic_frame(freq, state, target, **kwargs)
        results.append(result)
    return state, results


def c_major_energies():
    energies = empty_note_energies()
    energies.update({"C": 1.0, "E": 0.8, "G": 0.7})
    return energies


class TestMonophonicTracker:

    def test_three_frames_become_a_stable_match(self):
        state, results = run_mono([440.0, 440.0, 440.0], "A")

        assert [r.event for r in results] == [
            DetectionEvent.PROVISIONAL,
            DetectionEvent.PROVISIONAL,
            DetectionEvent.STABLE_MATCH,
        ]
        assert results[-1].is_stable_match
        assert state.stable_note_counter == 3
        assert state.last_note == "A"

    def test_wrong_note_is_a_stable_mismatch(self):
        _, results = run_mono([440.0] * 3, "E")
        assert results[-1].is_stable_mismatch
        assert results[-1].detected_note == "A"

    def test_stable_event_repeats_while_held(self):
        _, results = run_mono([440.0] * 5, "A")
        assert all(r.is_stable_match for r in results[2:])

    def test_out_of_range_leaves_state_untouched(self):
        state, _ = run_mono([440.0, 440.0], "A")

        for freq in (0.0, 50.0, 1000.0, 2000.0):
            new_state, result = analyze_monophonic_frame(freq, state, "A")
            assert new_state == state
            assert result.event is DetectionEvent.NONE
            assert not result.within_range

    def test_window_is_bounded(self):
        state, _ = run_mono([440.0, 441.0, 442.0, 443.0, 444.0], "A")
        assert state.last_pitches == (443.0, 444.0)

    def test_smoothed_frequency_is_window_mean(self):
        _, results = run_mono([440.0, 444.0], "A")
        assert results[-1].smoothed_frequency == 442.0

    def test_note_change_restarts_counter(self):
        config = PitchConfig(pitch_window=1)
        state, results = run_mono([440.0, 440.0, 329.63], "A", pitch_config=config)

        assert results[-1].detected_note == "E"
        assert results[-1].event is DetectionEvent.PROVISIONAL
        assert state.stable_note_counter == 1

    def test_unresolvable_reference_gives_no_event(self):
        state, results = run_mono([440.0], "A", a4_frequency=0.0)
        assert results[0].event is DetectionEvent.NONE
        assert results[0].within_range
        assert state.last_pitches == (440.0,)
        assert state.last_note is None

    def test_required_frames_are_configurable(self):
        _, results = run_mono(
            [440.0], "A", tracking_config=TrackingConfig(required_stable_frames=1)
        )
        assert results[0].is_stable_match

    def test_calibrated_reference_changes_the_note(self):
        # 415.3 Hz is G# at 440 but A at 415.3
        _, results = run_mono([415.3], "A", a4_frequency=415.3)
        assert results[0].detected_note == "A"

    def test_reset_keeps_silence_count(self):
        state = MonophonicDetectionState((440.0,), "A", 3, consecutive_silence_frames=2)
        assert reset_monophonic_state(state) == MonophonicDetectionState(
            consecutive_silence_frames=2
        )


class TestPolyphonicTracker:

    def test_chord_becomes_stable_match(self):
        state = PolyphonicDetectionState()
        events = []
        for _ in range(3):
            state, result = analyze_polyphonic_frame(
                c_major_energies(), state, ["C", "E", "G"]
            )
            events.append(result.event)

        assert events == [
            DetectionEvent.PROVISIONAL,
            DetectionEvent.PROVISIONAL,
            DetectionEvent.STABLE_MATCH,
        ]
        assert result.detected_notes_key == "C,E,G"
        assert result.detected_notes == ["C", "E", "G"]
        assert state.stable_chord_counter == 3

    def test_wrong_chord_is_a_stable_mismatch(self):
        state = PolyphonicDetectionState(last_detected_notes_key="C,E,G", stable_chord_counter=2)
        _, result = analyze_polyphonic_frame(c_major_energies(), state, ["D", "F#", "A"])
        assert result.is_stable_mismatch

    def test_silent_energies_give_no_event(self):
        state = PolyphonicDetectionState(last_detected_notes_key="C,E,G", stable_chord_counter=5)
        new_state, result = analyze_polyphonic_frame(
            empty_note_energies(), state, ["C", "E", "G"]
        )
        assert result.event is DetectionEvent.NONE
        assert result.detected_notes_key == ""
        assert new_state.stable_chord_counter == 1

    def test_key_change_restarts_counter(self):
        state = PolyphonicDetectionState(last_detected_notes_key="C,E,G", stable_chord_counter=4)
        energies = c_major_energies()
        energies["C"] = 0.0
        new_state, result = analyze_polyphonic_frame(energies, state, ["C", "E", "G"])

        assert result.detected_notes_key == "E,G"
        assert result.event is DetectionEvent.PROVISIONAL
        assert new_state.stable_chord_counter == 1

    def test_result_carries_energies(self):
        _, result = analyze_polyphonic_frame(
            c_major_energies(), PolyphonicDetectionState(), ["C", "E", "G"]
        )
        assert result.energies == c_major_energies()
        assert result.provider == "spectrum"
        assert result.fallback_from is None

    def test_reset_keeps_silence_count(self):
        state = replace(
            PolyphonicDetectionState("C,E,G", 3), consecutive_silence_frames=4
        )
        assert reset_polyphonic_state(state) == PolyphonicDetectionState(
            consecutive_silence_frames=4
        )
