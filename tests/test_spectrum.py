"""Tests for spectrum note-energy analysis.

Spectra are synthetic: shaped peaks (centre bin plus -3 dB shoulders) on
a -120 dB floor at 48 kHz / 4096-point FFT unless stated otherwise.
"""

import numpy as np
import pytest

from ear_trainer.analysis.spectrum import (
    SpectrumAnalyzer,
    cluster_peaks,
    harmonic_cluster_support,
    harmonic_product_support,
    pick_spectrum_peaks,
    spectrum_to_note_energies,
)
from ear_trainer.core.config import SpectrumConfig
from ear_trainer.core.frame import SpectrumPeak
from ear_trainer.input.synthetic import SyntheticSpectrum

SR = 48000
FFT_SIZE = 4096


def new_spectrum(fft_size: int = FFT_SIZE) -> SyntheticSpectrum:
    return SyntheticSpectrum(SR, fft_size, floor_db=-120.0)


def nonzero(energies):
    return {note for note, value in energies.items() if value > 0}


class TestPeakPicking:
    """Local maxima, prominence, band and boost."""

    def test_single_peak_magnitude_has_low_frequency_boost(self):
        spectrum = new_spectrum().add_peak(234.375, -20.0).to_array()
        peaks = pick_spectrum_peaks(spectrum, SR, FFT_SIZE)

        assert len(peaks) == 1
        assert peaks[0].frequency == pytest.approx(234.375)
        expected = 0.1 / (1.0 + 234.375 * 0.0025)
        assert peaks[0].magnitude == pytest.approx(expected, rel=1e-4)

    def test_peaks_outside_band_are_dropped(self):
        spectrum = new_spectrum().add_peak(600.0, -20.0).add_peak(50.0, -20.0).to_array()
        assert pick_spectrum_peaks(spectrum, SR, FFT_SIZE) == []

    def test_band_is_configurable(self):
        spectrum = new_spectrum().add_peak(600.0, -20.0).to_array()
        config = SpectrumConfig(max_frequency=1000.0)
        assert len(pick_spectrum_peaks(spectrum, SR, FFT_SIZE, config)) == 1

    def test_peaks_below_noise_floor_are_dropped(self):
        spectrum = new_spectrum().add_peak(234.375, -20.0).add_peak(300.0, -85.0).to_array()
        peaks = pick_spectrum_peaks(spectrum, SR, FFT_SIZE)
        assert len(peaks) == 1, f"Only the loud peak should survive, got {peaks}"

    def test_quiet_spectrum_is_silent(self):
        spectrum = new_spectrum().add_peak(234.375, -85.0).to_array()
        assert pick_spectrum_peaks(spectrum, SR, FFT_SIZE) == []

    @pytest.mark.parametrize("spectrum", [None, np.full(2048, np.nan), np.full(2048, -np.inf)])
    def test_malformed_spectrum_has_no_peaks(self, spectrum):
        assert pick_spectrum_peaks(spectrum, SR, FFT_SIZE) == []


class TestClustering:

    def test_close_peaks_merge_to_weighted_frequency(self):
        peaks = [SpectrumPeak(101.0, 1.0), SpectrumPeak(100.0, 3.0)]
        clustered = cluster_peaks(peaks, tolerance_cents=40.0)

        assert len(clustered) == 1
        assert clustered[0].frequency == pytest.approx(100.25)
        assert clustered[0].magnitude == pytest.approx(4.0)

    def test_distant_peaks_stay_separate(self):
        peaks = [SpectrumPeak(100.0, 1.0), SpectrumPeak(106.0, 1.0)]
        assert len(cluster_peaks(peaks, tolerance_cents=40.0)) == 2

    def test_empty_input(self):
        assert cluster_peaks([]) == []


class TestHarmonicSupport:
    """Harmonic-cluster and harmonic-product layers."""

    @pytest.fixture
    def a2_stack(self):
        return [SpectrumPeak(110.0, 1.0), SpectrumPeak(220.0, 1.0), SpectrumPeak(330.0, 1.0)]

    def test_cluster_support_needs_two_orders(self, a2_stack):
        support = harmonic_cluster_support(a2_stack, 440.0, SpectrumConfig())
        assert support["A"] > 0
        # E is implied by the 330 Hz peak alone
        assert support["E"] == 0.0

    def test_product_support_is_geometric_mean(self, a2_stack):
        support = harmonic_product_support(a2_stack, 440.0, SpectrumConfig())
        assert support["A"] == pytest.approx((1.0 * 0.82 * 0.72) ** (1.0 / 3.0))
        assert nonzero(support) == {"A"}

    def test_product_support_needs_two_matches(self):
        support = harmonic_product_support([SpectrumPeak(220.0, 1.0)], 440.0, SpectrumConfig())
        assert nonzero(support) == set()


class TestNoteEnergies:
    """End-to-end spectrum → pitch-class energies."""

    def test_silence_is_all_zero(self):
        energies = spectrum_to_note_energies(new_spectrum().to_array(), SR, FFT_SIZE)
        assert len(energies) == 12
        assert all(value == 0.0 for value in energies.values())

    def test_malformed_spectrum_is_all_zero(self):
        energies = spectrum_to_note_energies(np.full(2048, np.nan), SR, FFT_SIZE)
        assert all(value == 0.0 for value in energies.values())

    def test_shoulder_bins_do_not_leak_into_neighbours(self):
        spectrum = new_spectrum().to_array()
        spectrum[14] = -21.0  # ~164 Hz -> E
        spectrum[15] = -18.0  # ~176 Hz -> F
        spectrum[16] = -21.0  # ~188 Hz -> F#

        energies = spectrum_to_note_energies(spectrum, SR, FFT_SIZE)

        assert energies["F"] > 0
        assert energies["E"] == 0
        assert energies["F#"] == 0

    def test_wiggle_without_prominence_is_ignored(self):
        spectrum = new_spectrum().to_array()
        spectrum[20] = -18.8
        spectrum[21] = -17.4
        spectrum[22] = -18.0
        spectrum[23] = -17.9

        energies = spectrum_to_note_energies(spectrum, SR, FFT_SIZE)

        assert all(value == 0 for value in energies.values())

    def test_smeared_partial_stays_one_note(self):
        fft_size = 32768
        spectrum = new_spectrum(fft_size).to_array()
        spectrum[114] = -15.0  # ~166.99 Hz -> E
        spectrum[115] = -26.0
        spectrum[116] = -21.0  # ~169.92 Hz -> F without clustering

        energies = spectrum_to_note_energies(spectrum, SR, fft_size)

        assert energies["E"] > 0
        assert energies["F"] == 0

    def test_weak_fundamental_is_reinforced_by_harmonics(self):
        spectrum = (
            new_spectrum()
            .add_peak(130.81, -42.0)
            .add_peak(261.62, -31.0)
            .add_peak(392.43, -18.0)
            .to_array()
        )
        energies = spectrum_to_note_energies(spectrum, SR, FFT_SIZE)
        assert energies["C"] > energies["G"], f"C={energies['C']:.4f} G={energies['G']:.4f}"

    def test_coherent_stack_beats_isolated_peak(self):
        spectrum = (
            new_spectrum()
            .add_peak(110.0, -40.0)
            .add_peak(220.0, -22.0)
            .add_peak(330.0, -19.0)
            .add_peak(164.81, -28.0)
            .to_array()
        )
        energies = spectrum_to_note_energies(spectrum, SR, FFT_SIZE)
        assert energies["A"] > energies["E"]

    def test_reference_pitch_shifts_note_boundaries(self):
        spectrum = new_spectrum().add_peak(211.0, -20.0).to_array()

        assert nonzero(spectrum_to_note_energies(spectrum, SR, FFT_SIZE, 432.0)) == {"A"}
        assert nonzero(spectrum_to_note_energies(spectrum, SR, FFT_SIZE, 440.0)) == {"G#"}

    def test_analyzer_matches_function(self):
        spectrum = new_spectrum().add_note(130.81, -18.0, (10.0, 17.0)).to_array()
        analyzer = SpectrumAnalyzer()
        assert analyzer.note_energies(spectrum, SR, FFT_SIZE) == spectrum_to_note_energies(
            spectrum, SR, FFT_SIZE
        )
