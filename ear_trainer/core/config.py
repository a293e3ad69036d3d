"""Detection configuration - every tunable tolerance of the detection core.

The numeric defaults reproduce the behaviour the trainer was tuned with.
The blend factors of the harmonic layers and the chord "everyone present"
ratio are empirical tuning constants, not invariants.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from .constants import (
    CALIBRATION_SAMPLES,
    CALIBRATION_TOLERANCE_RATIO,
    REQUIRED_STABLE_FRAMES,
    SILENCE_RESET_FRAMES,
    VOLUME_THRESHOLD,
)


@dataclass
class SpectrumConfig:
    """Configuration for spectrum note-energy analysis.

    Attributes:
        min_frequency: Lowest frequency considered, in Hz (default: 65)
        max_frequency: Highest frequency considered, in Hz (default: 500)
        silence_db: Spectra whose maximum is below this are silent (default: -80)
        dynamic_range_db: Noise floor distance below the maximum (default: 60)
        min_prominence_db: Required rise over the surrounding bins (default: 2)
        prominence_radius: Bins on each side used for prominence (default: 2)
        low_frequency_boost: Roll-off compensation slope, 1/(1+f*k) (default: 0.0025)
        cluster_tolerance_cents: Peaks this close to a cluster centroid merge (default: 40)
        harmonic_weights: Weight per harmonic order 1..4
        min_harmonic_orders: Distinct orders needed for cluster support (default: 2)
        harmonic_cluster_blend: Tuning constant for cluster support (default: 1.2)
        harmonic_product_tolerance_cents: Harmonic match tolerance (default: 35)
        min_harmonic_matches: Matched orders needed for product support (default: 2)
        harmonic_product_blend: Tuning constant for product support (default: 1.1)
    """

    min_frequency: float = 65.0
    max_frequency: float = 500.0
    silence_db: float = -80.0
    dynamic_range_db: float = 60.0
    min_prominence_db: float = 2.0
    prominence_radius: int = 2
    low_frequency_boost: float = 0.0025
    cluster_tolerance_cents: float = 40.0
    harmonic_weights: Tuple[float, ...] = (1.0, 0.82, 0.72, 0.58)
    min_harmonic_orders: int = 2
    harmonic_cluster_blend: float = 1.2
    harmonic_product_tolerance_cents: float = 35.0
    min_harmonic_matches: int = 2
    harmonic_product_blend: float = 1.1

    def harmonic_weight(self, order: int) -> float:
        """Weight for a 1-based harmonic order (0 outside the table)."""
        if order < 1 or order > len(self.harmonic_weights):
            return 0.0
        return self.harmonic_weights[order - 1]

    @property
    def max_harmonic_order(self) -> int:
        return len(self.harmonic_weights)


@dataclass
class ChordMatchConfig:
    """Configuration for chord energy matching.

    Attributes:
        likely_threshold_ratio: Fraction of the top energy kept as likely (default: 0.2)
        likely_min_notes: Top-ranked notes always kept (default: 3)
        likely_max_notes: Cap on likely notes (default: 5)
        presence_ratio: Tuning constant, each target >= peak * ratio (default: 0.13)
        min_target_ratio: Minimum target share of total energy (default: 0.30)
        intruder_ratio: Non-target at this multiple of the weakest target intrudes (default: 1.1)
        dominance_ratio: Target share that tolerates an intruder (default: 0.72)
    """

    likely_threshold_ratio: float = 0.2
    likely_min_notes: int = 3
    likely_max_notes: int = 5
    presence_ratio: float = 0.13
    min_target_ratio: float = 0.30
    intruder_ratio: float = 1.1
    dominance_ratio: float = 0.72


@dataclass
class PitchConfig:
    """Configuration for monophonic pitch detection and smoothing.

    Attributes:
        method: "autocorrelation" (default) or "yin"
        volume_threshold: RMS below which a buffer is silent (default: 0.03)
        min_correlation: Normalized correlation needed for a pitch (default: 0.3)
        yin_threshold: YIN absolute threshold (default: 0.12)
        min_frequency: Lowest tracked frequency, exclusive (default: 50)
        max_frequency: Highest tracked frequency, exclusive (default: 1000)
        pitch_window: Recent frequencies averaged before resolving (default: 2)
    """

    method: str = "autocorrelation"
    volume_threshold: float = VOLUME_THRESHOLD
    min_correlation: float = 0.3
    yin_threshold: float = 0.12
    min_frequency: float = 50.0
    max_frequency: float = 1000.0
    pitch_window: int = 2


@dataclass
class TrackingConfig:
    """Configuration for stability tracking.

    Attributes:
        required_stable_frames: Consecutive frames before an event (default: 3)
        silence_reset_frames: Silent frames before tracking resets (default: 2)
    """

    required_stable_frames: int = REQUIRED_STABLE_FRAMES
    silence_reset_frames: int = SILENCE_RESET_FRAMES


@dataclass
class FilterConfig:
    """Configuration for note acceptance filters and input sensitivity.

    Attributes:
        attack_preset: "off", "balanced" (default) or "strong"
        hold_preset: "off", "40ms", "80ms" (default) or "120ms"
        sensitivity_preset: "quiet_room", "normal" (default), "noisy_room" or "auto"
    """

    attack_preset: str = "balanced"
    hold_preset: str = "80ms"
    sensitivity_preset: str = "normal"


@dataclass
class CalibrationConfig:
    """Configuration for reference pitch calibration.

    Attributes:
        required_samples: Accepted samples needed to finish (default: 30)
        tolerance_ratio: Accepted deviation from the expected frequency (default: 0.15)
        octave_shift: Octaves between the sampled string and the reference (default: 1)
    """

    required_samples: int = CALIBRATION_SAMPLES
    tolerance_ratio: float = CALIBRATION_TOLERANCE_RATIO
    octave_shift: int = 1


@dataclass
class DetectionConfig:
    """All detection settings, grouped by stage."""

    spectrum: SpectrumConfig = field(default_factory=SpectrumConfig)
    chords: ChordMatchConfig = field(default_factory=ChordMatchConfig)
    pitch: PitchConfig = field(default_factory=PitchConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionConfig":
        """
        Build a config from nested overrides; missing keys keep their defaults.

        Raises:
            ValueError: If a section or key is unknown
        """
        sections = {f.name: f for f in fields(cls)}
        kwargs = {}
        for section_name, overrides in data.items():
            if section_name not in sections:
                raise ValueError(f"Unknown config section: {section_name}")
            if not isinstance(overrides, dict):
                raise ValueError(f"Config section '{section_name}' must be a mapping")
            section_cls = sections[section_name].default_factory
            known = {f.name for f in fields(section_cls)}
            unknown = set(overrides) - known
            if unknown:
                raise ValueError(
                    f"Unknown keys in '{section_name}': {', '.join(sorted(unknown))}"
                )
            values = dict(overrides)
            if "harmonic_weights" in values:
                values["harmonic_weights"] = tuple(values["harmonic_weights"])
            kwargs[section_name] = section_cls(**values)
        return cls(**kwargs)


def load_config(path: Union[str, Path]) -> DetectionConfig:
    """
    Load a DetectionConfig from a JSON file of overrides.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file holds unknown sections or keys
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")
    return DetectionConfig.from_dict(data)
