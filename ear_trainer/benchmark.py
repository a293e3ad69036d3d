"""Polyphonic detector benchmark on synthetic chord frames.

Three scenarios are replayed against a C major target:
- match: C, E and G with 2nd and 3rd harmonics
- near match: the same chord plus a strong F and a weaker A
- mismatch: D, F and A with 2nd harmonics

Each frame is timed, and the report counts how many frames ended stable
(match or mismatch), how many were still pending, and how many fell back
to the spectrum provider.
"""

import json
import platform
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

import numpy as np

from .core.config import DetectionConfig, TrackingConfig
from .core.frame import AudioFrame
from .input.synthetic import SyntheticSpectrum, chord_buffer
from .tracking.polyphonic import PolyphonicDetectionState
from .tracking.providers import (
    CHROMA_PROVIDER,
    detect_polyphonic_frame,
    normalize_provider,
)

BENCHMARK_SAMPLE_RATE = 48000
BENCHMARK_FFT_SIZE = 4096
BENCHMARK_REQUIRED_STABLE_FRAMES = 3
BENCHMARK_FRAMES_PER_SCENARIO = 90
BENCHMARK_TARGET_CHORD = ["C", "E", "G"]
BENCHMARK_FLOOR_DB = -120.0

_PROVIDER_LABELS = {CHROMA_PROVIDER: "Chroma Experimental"}

C_MAJOR_FREQS = (130.81, 164.81, 196.0)
D_MINOR_FREQS = (146.83, 174.61, 220.0)


@dataclass
class BenchmarkScenario:
    """One synthetic chord frame replayed many times."""

    name: str
    spectrum_db: np.ndarray
    time_domain: np.ndarray


def _new_spectrum() -> SyntheticSpectrum:
    return SyntheticSpectrum(BENCHMARK_SAMPLE_RATE, BENCHMARK_FFT_SIZE, BENCHMARK_FLOOR_DB)


def build_match_spectrum() -> np.ndarray:
    spectrum = _new_spectrum()
    for freq in C_MAJOR_FREQS:
        spectrum.add_note(freq, -18.0, harmonic_drops_db=(10.0, 18.0))
    return spectrum.to_array()


def build_near_match_spectrum() -> np.ndarray:
    spectrum = _new_spectrum()
    for freq in C_MAJOR_FREQS:
        spectrum.add_note(freq, -18.0, harmonic_drops_db=(10.0, 18.0))
    spectrum.add_peak(174.61, -18.5)  # F, strong intruder
    spectrum.add_peak(220.0, -27.0)
    return spectrum.to_array()


def build_mismatch_spectrum() -> np.ndarray:
    spectrum = _new_spectrum()
    for freq in D_MINOR_FREQS:
        spectrum.add_note(freq, -18.0, harmonic_drops_db=(10.0,))
    return spectrum.to_array()


def build_scenarios() -> List[BenchmarkScenario]:
    """The match, near-match and mismatch scenarios."""
    kwargs = dict(sr=BENCHMARK_SAMPLE_RATE, length=BENCHMARK_FFT_SIZE)
    c_major = chord_buffer(C_MAJOR_FREQS, **kwargs)
    return [
        BenchmarkScenario("match", build_match_spectrum(), c_major),
        BenchmarkScenario(
            "near_match",
            build_near_match_spectrum(),
            chord_buffer(C_MAJOR_FREQS + (174.61, 220.0), **kwargs),
        ),
        BenchmarkScenario(
            "mismatch", build_mismatch_spectrum(), chord_buffer(D_MINOR_FREQS, **kwargs)
        ),
    ]


@dataclass
class BenchmarkSummary:
    """Aggregated outcome of a benchmark run."""

    provider: str
    frames: int = 0
    avg_latency_ms: float = 0.0
    max_latency_ms: float = 0.0
    fallback_frames: int = 0
    warning_frames: int = 0
    stable_match_frames: int = 0
    stable_mismatch_frames: int = 0
    pending_frames: int = 0
    scenarios: Dict[str, Dict[str, int]] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    system_info: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def save(self, path: Path) -> None:
        """Save summary to JSON file."""
        path.write_text(self.to_json())

    def format(self) -> str:
        """One-line human readable summary."""
        label = _PROVIDER_LABELS.get(self.provider, "Spectrum")
        text = (
            f"Poly benchmark ({label}): {self.frames} frames, "
            f"avg {self.avg_latency_ms:.2f} ms, max {self.max_latency_ms:.2f} ms, "
            f"matches {self.stable_match_frames}, "
            f"mismatches {self.stable_mismatch_frames}, "
            f"pending {self.pending_frames}"
        )
        if self.fallback_frames > 0:
            text += f", fallbacks {self.fallback_frames}"
        if self.warning_frames > 0:
            text += f", warnings {self.warning_frames}"
        return text + "."


def get_system_info() -> Dict[str, str]:
    """Get system information for benchmark context."""
    return {
        "platform": platform.system(),
        "platform_version": platform.version(),
        "python_version": platform.python_version(),
        "processor": platform.processor(),
        "numpy_version": np.__version__,
    }


def run_polyphonic_benchmark(
    provider: Optional[str] = None,
    frames_per_scenario: int = BENCHMARK_FRAMES_PER_SCENARIO,
    config: Optional[DetectionConfig] = None,
    now: Callable[[], float] = time.perf_counter,
) -> BenchmarkSummary:
    """
    Replay every scenario through a polyphonic provider.

    Args:
        provider: Provider name (unknown names resolve to "spectrum")
        frames_per_scenario: Frames replayed per scenario
        config: Detection configuration (stable frames default to 3)
        now: Clock in seconds, injectable for deterministic runs

    Returns:
        BenchmarkSummary
    """
    provider = normalize_provider(provider)
    if config is None:
        config = DetectionConfig(
            tracking=TrackingConfig(required_stable_frames=BENCHMARK_REQUIRED_STABLE_FRAMES)
        )

    summary = BenchmarkSummary(provider=provider, system_info=get_system_info())
    total_latency_ms = 0.0

    for scenario in build_scenarios():
        state = PolyphonicDetectionState()
        counts = {"stable_match": 0, "stable_mismatch": 0, "pending": 0}

        for _ in range(frames_per_scenario):
            started = now()
            frame = AudioFrame(
                time_domain=scenario.time_domain,
                spectrum_db=scenario.spectrum_db,
                sample_rate=BENCHMARK_SAMPLE_RATE,
                fft_size=BENCHMARK_FFT_SIZE,
                timestamp_ms=started * 1000.0,
            )
            state, result = detect_polyphonic_frame(
                frame, state, BENCHMARK_TARGET_CHORD, 440.0, config, provider
            )
            latency_ms = max(0.0, (now() - started) * 1000.0)

            summary.frames += 1
            total_latency_ms += latency_ms
            summary.max_latency_ms = max(summary.max_latency_ms, latency_ms)
            if result.fallback_from:
                summary.fallback_frames += 1
            if result.warnings:
                summary.warning_frames += 1
            if result.is_stable_match:
                counts["stable_match"] += 1
            elif result.is_stable_mismatch:
                counts["stable_mismatch"] += 1
            else:
                counts["pending"] += 1

        summary.stable_match_frames += counts["stable_match"]
        summary.stable_mismatch_frames += counts["stable_mismatch"]
        summary.pending_frames += counts["pending"]
        summary.scenarios[scenario.name] = counts

    if summary.frames > 0:
        summary.avg_latency_ms = total_latency_ms / summary.frames
    return summary
