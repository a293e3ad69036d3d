"""Tests for likely-note detection and robust chord matching."""

import pytest

from ear_trainer.analysis.spectrum import spectrum_to_note_energies
from ear_trainer.core.config import ChordMatchConfig
from ear_trainer.core.frame import empty_note_energies
from ear_trainer.inference.chords import (
    chord_notes,
    detect_likely_notes,
    notes_key,
    notes_match_robust,
    parse_notes_key,
)
from ear_trainer.input.synthetic import SyntheticSpectrum


def energies_of(**values):
    energies = empty_note_energies()
    for note, value in values.items():
        energies[note.replace("s", "#")] = value
    return energies


class TestLikelyNotes:
    """Which pitch classes look present."""

    def test_silence_has_no_notes(self):
        assert detect_likely_notes(empty_note_energies()) == set()

    def test_threshold_relative_to_strongest(self):
        energies = energies_of(C=1.0, E=0.5, G=0.3, A=0.25, B=0.1)
        assert detect_likely_notes(energies) == {"C", "E", "G", "A"}

    def test_top_three_always_kept(self):
        energies = energies_of(C=1.0, E=0.1, G=0.05)
        assert detect_likely_notes(energies) == {"C", "E", "G"}

    def test_capped_at_five(self):
        energies = energies_of(C=1.0, Cs=1.0, D=1.0, Ds=1.0, E=1.0, F=1.0, Fs=1.0)
        likely = detect_likely_notes(energies)
        assert len(likely) == 5
        # Ties resolve in pitch order
        assert likely == {"C", "C#", "D", "D#", "E"}

    def test_config_changes_threshold(self):
        energies = energies_of(C=1.0, E=0.5, G=0.3, A=0.25)
        config = ChordMatchConfig(likely_threshold_ratio=0.4, likely_min_notes=1)
        assert detect_likely_notes(energies, config) == {"C", "E"}

    def test_is_pure(self):
        energies = energies_of(C=1.0, E=0.5, G=0.3)
        before = dict(energies)
        detect_likely_notes(energies)
        notes_match_robust(energies, ["C", "E", "G"])
        assert energies == before


class TestRobustMatch:
    """Target chord must be present and dominant."""

    def test_clean_triad_matches(self):
        assert notes_match_robust(energies_of(C=1.0, E=0.9, G=0.8), ["C", "E", "G"])

    def test_missing_target_fails(self):
        assert not notes_match_robust(energies_of(C=1.0, E=0.9), ["C", "E", "G"])

    def test_weak_target_fails_presence(self):
        assert not notes_match_robust(energies_of(C=1.0, E=0.9, G=0.1), ["C", "E", "G"])

    def test_dominant_non_target_fails(self):
        energies = energies_of(C=1.0, E=0.92, G=0.88, F=0.97, A=0.65)
        assert not notes_match_robust(energies, ["C", "E", "G"])

    def test_intruder_tolerated_when_targets_dominate(self):
        energies = energies_of(C=1.0, E=1.0, G=1.0, F=1.1)
        assert notes_match_robust(energies, ["C", "E", "G"])

    def test_intruder_rejected_below_dominance(self):
        energies = energies_of(C=1.0, E=1.0, G=1.0, F=1.2)
        assert not notes_match_robust(energies, ["C", "E", "G"])

    def test_low_target_share_fails(self):
        energies = {note: 0.9 for note in empty_note_energies()}
        energies.update(C=1.0, E=1.0, G=1.0)
        assert not notes_match_robust(energies, ["C", "E", "G"])

    def test_empty_target_or_silence_fails(self):
        assert not notes_match_robust(energies_of(C=1.0), [])
        assert not notes_match_robust(empty_note_energies(), ["C", "E", "G"])


class TestSyntheticChordSpectrum:
    """C major fundamentals and harmonics with light unrelated noise."""

    @pytest.fixture
    def c_major_energies(self):
        spectrum = SyntheticSpectrum(48000, 4096, floor_db=-120.0)
        for freq in (130.81, 164.81, 196.0):
            spectrum.add_note(freq, -18.0, harmonic_drops_db=(10.0, 18.0))
        spectrum.add_peak(220.0, -48.0)
        spectrum.add_peak(247.0, -52.0)
        return spectrum_to_note_energies(spectrum.to_array(), 48000, 4096, 440.0)

    def test_likely_notes_contain_triad(self, c_major_energies):
        assert {"C", "E", "G"} <= detect_likely_notes(c_major_energies)

    def test_matches_c_major(self, c_major_energies):
        assert notes_match_robust(c_major_energies, ["C", "E", "G"])

    def test_rejects_d_major(self, c_major_energies):
        assert not notes_match_robust(c_major_energies, ["D", "F#", "A"])

    def test_rejects_mismatched_triad_without_harmonics(self):
        spectrum = SyntheticSpectrum(48000, 4096, floor_db=-120.0)
        for freq in (130.81, 164.81, 196.0):
            spectrum.add_peak(freq, -20.0)
        energies = spectrum_to_note_energies(spectrum.to_array(), 48000, 4096, 440.0)
        assert not notes_match_robust(energies, ["D", "F#", "A"])


class TestNotesKey:

    def test_key_is_sorted_and_joined(self):
        assert notes_key({"G", "C", "E"}) == "C,E,G"

    def test_empty_key(self):
        assert notes_key([]) == ""
        assert parse_notes_key("") == []
        assert parse_notes_key("  ") == []

    def test_parse_strips_and_dedupes(self):
        assert parse_notes_key("G, C,E,C") == ["C", "E", "G"]


class TestChordLookup:

    def test_known_chord(self):
        assert chord_notes("C Major") == ["C", "E", "G"]

    def test_case_insensitive(self):
        assert chord_notes("  g7 ") == ["G", "B", "D", "F"]

    def test_unknown_chord(self):
        assert chord_notes("H Major") is None
