"""Spectrum note-energy analysis - pitch-class energies from a dB spectrum.

Three complementary layers feed the energies:

1. Direct peaks: every clustered spectral peak credits its own pitch class.
2. Harmonic-cluster support: each peak also credits the fundamentals it
   could be a harmonic of; a pitch class only keeps this support when at
   least two different harmonic orders point at it.
3. Harmonic-product support: for each candidate fundamental, the weighted
   magnitudes of its matched harmonics are combined by geometric mean.

A fretted note's fundamental is often weaker than its 2nd or 3rd harmonic,
so the direct layer alone confuses roots with their fifths and octaves.
"""

import math
from typing import Dict, List, Optional, Set

import numpy as np

from ..core.config import SpectrumConfig
from ..core.constants import DEFAULT_A4_FREQUENCY
from ..core.frame import NoteEnergies, SpectrumPeak, empty_note_energies
from ..core.theory import frequency_to_pitch_class


def _cents(freq_a: float, freq_b: float) -> float:
    return abs(1200.0 * math.log2(freq_a / freq_b))


def pick_spectrum_peaks(
    spectrum_db: np.ndarray,
    sample_rate: float,
    fft_size: int,
    config: Optional[SpectrumConfig] = None,
) -> List[SpectrumPeak]:
    """
    Find prominent local maxima in a dB spectrum.

    Args:
        spectrum_db: Magnitude spectrum in dB (length fft_size / 2)
        sample_rate: Sample rate in Hz
        fft_size: FFT size the spectrum was computed with
        config: SpectrumConfig

    Returns:
        Peaks inside the configured band, in linear magnitude with the
        low-frequency boost applied, sorted by frequency
    """
    config = config or SpectrumConfig()
    if spectrum_db is None or sample_rate <= 0 or fft_size <= 0:
        return []

    db = np.asarray(spectrum_db, dtype=np.float64).ravel()
    finite = np.isfinite(db)
    if not np.any(finite):
        return []

    max_db = float(np.max(db[finite]))
    if max_db < config.silence_db:
        return []

    noise_floor = max_db - config.dynamic_range_db
    # Non-finite bins never win a comparison
    db = np.where(finite, db, -np.inf)
    radius = config.prominence_radius
    n = len(db)

    peaks = []
    for i in range(1, n - 1):
        value = db[i]
        if value < noise_floor or not np.isfinite(value):
            continue
        if not (value > db[i - 1] and value >= db[i + 1]):
            continue

        # Edge bins without a full neighbourhood pass by default
        if i - radius >= 0 and i + radius < n:
            neighbours = np.concatenate((db[i - radius : i], db[i + 1 : i + radius + 1]))
            if value - np.max(neighbours) < config.min_prominence_db:
                continue

        freq = i * sample_rate / fft_size
        if freq < config.min_frequency or freq > config.max_frequency:
            continue

        magnitude = 10 ** (value / 20.0)
        boost = 1.0 / (1.0 + freq * config.low_frequency_boost)
        peaks.append(SpectrumPeak(freq, magnitude * boost))

    return peaks


def cluster_peaks(
    peaks: List[SpectrumPeak], tolerance_cents: float = 40.0
) -> List[SpectrumPeak]:
    """
    Merge peaks that lie within tolerance of a running cluster centroid.

    Spectral leakage of a single partial shows up as several nearby
    maxima; each cluster becomes one peak at the magnitude-weighted
    frequency.
    """
    clustered: List[SpectrumPeak] = []
    for peak in sorted(peaks, key=lambda p: p.frequency):
        if clustered and _cents(peak.frequency, clustered[-1].frequency) <= tolerance_cents:
            clustered[-1] = clustered[-1].merge(peak)
        else:
            clustered.append(peak)
    return clustered


def _in_band(freq: float, config: SpectrumConfig) -> bool:
    return config.min_frequency <= freq <= config.max_frequency


def harmonic_cluster_support(
    peaks: List[SpectrumPeak],
    a4_frequency: float,
    config: SpectrumConfig,
) -> NoteEnergies:
    """Credit fundamentals implied by each peak, kept only with multi-order evidence."""
    support = empty_note_energies()
    orders: Dict[str, Set[int]] = {}

    for peak in peaks:
        best: Dict[str, tuple] = {}
        for order in range(1, config.max_harmonic_order + 1):
            fundamental = peak.frequency / order
            if not _in_band(fundamental, config):
                continue
            note = frequency_to_pitch_class(fundamental, a4_frequency)
            if note is None:
                continue
            score = peak.magnitude * config.harmonic_weight(order)
            if note not in best or score > best[note][0]:
                best[note] = (score, order)

        for note, (score, order) in best.items():
            support[note] += score
            orders.setdefault(note, set()).add(order)

    for note in support:
        if len(orders.get(note, ())) < config.min_harmonic_orders:
            support[note] = 0.0
    return support


def _match_harmonic(
    peaks: List[SpectrumPeak], target: float, tolerance_cents: float
) -> Optional[SpectrumPeak]:
    best = None
    best_distance = tolerance_cents
    for peak in peaks:
        distance = _cents(peak.frequency, target)
        if distance <= best_distance:
            best = peak
            best_distance = distance
    return best


def harmonic_product_support(
    peaks: List[SpectrumPeak],
    a4_frequency: float,
    config: SpectrumConfig,
) -> NoteEnergies:
    """Geometric-mean harmonic evidence per pitch class (best candidate wins)."""
    support = empty_note_energies()

    candidates = []
    for peak in peaks:
        for order in range(1, config.max_harmonic_order + 1):
            fundamental = peak.frequency / order
            if _in_band(fundamental, config):
                candidates.append(fundamental)

    for fundamental in candidates:
        note = frequency_to_pitch_class(fundamental, a4_frequency)
        if note is None:
            continue

        product = 1.0
        matches = 0
        for order in range(1, config.max_harmonic_order + 1):
            match = _match_harmonic(
                peaks, fundamental * order, config.harmonic_product_tolerance_cents
            )
            if match is None:
                continue
            product *= match.magnitude * config.harmonic_weight(order)
            matches += 1

        if matches < config.min_harmonic_matches:
            continue

        # Geometric mean so more detected harmonics don't bias the score
        score = product ** (1.0 / matches)
        if score > support[note]:
            support[note] = score

    return support


def spectrum_to_note_energies(
    spectrum_db: np.ndarray,
    sample_rate: float,
    fft_size: int,
    a4_frequency: float = DEFAULT_A4_FREQUENCY,
    config: Optional[SpectrumConfig] = None,
) -> NoteEnergies:
    """
    Aggregate a dB spectrum into pitch-class energies.

    Args:
        spectrum_db: Magnitude spectrum in dB (length fft_size / 2)
        sample_rate: Sample rate in Hz
        fft_size: FFT size the spectrum was computed with
        a4_frequency: Calibrated reference pitch
        config: SpectrumConfig

    Returns:
        Energy per pitch class; all zero for silence or malformed input
    """
    config = config or SpectrumConfig()
    energies = empty_note_energies()

    peaks = pick_spectrum_peaks(spectrum_db, sample_rate, fft_size, config)
    if not peaks:
        return energies
    peaks = cluster_peaks(peaks, config.cluster_tolerance_cents)

    for peak in peaks:
        note = frequency_to_pitch_class(peak.frequency, a4_frequency)
        if note is not None:
            energies[note] += peak.magnitude

    cluster = harmonic_cluster_support(peaks, a4_frequency, config)
    product = harmonic_product_support(peaks, a4_frequency, config)
    for note in energies:
        energies[note] += cluster[note] * config.harmonic_cluster_blend
        energies[note] += product[note] * config.harmonic_product_blend

    return energies


class SpectrumAnalyzer:
    """Pitch-class energy analyzer bound to a configuration."""

    def __init__(self, config: Optional[SpectrumConfig] = None):
        self.config = config or SpectrumConfig()

    def note_energies(
        self,
        spectrum_db: np.ndarray,
        sample_rate: float,
        fft_size: int,
        a4_frequency: float = DEFAULT_A4_FREQUENCY,
    ) -> NoteEnergies:
        """Pitch-class energies for one spectrum frame."""
        return spectrum_to_note_energies(
            spectrum_db, sample_rate, fft_size, a4_frequency, self.config
        )
