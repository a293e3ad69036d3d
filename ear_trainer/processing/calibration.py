"""Reference pitch calibration - turn a burst of string samples into a new A4.

The player plucks an open string repeatedly; readings near its expected
frequency are collected and their mean, shifted up by octaves, becomes
the reference every frequency→pitch-class conversion uses.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..core.constants import (
    CALIBRATION_SAMPLES,
    CALIBRATION_TOLERANCE_RATIO,
    DEFAULT_A4_FREQUENCY,
)

logger = logging.getLogger(__name__)

_OPEN_STRING_PATTERN = re.compile(r"^A(-?\d+)$")


@dataclass(frozen=True)
class CalibrationSampleResult:
    """Outcome of offering one frequency reading to the sampler."""

    accepted: bool
    next_sample_count: int
    progress_percent: float
    is_complete: bool


def evaluate_calibration_sample(
    frequency: float,
    expected_frequency: float,
    current_sample_count: int,
    required_samples: int = CALIBRATION_SAMPLES,
    tolerance_ratio: float = CALIBRATION_TOLERANCE_RATIO,
) -> CalibrationSampleResult:
    """
    Accept or reject one calibration reading.

    Readings of 0 (no pitch) and non-positive references are always rejected.

    Args:
        frequency: Detected frequency in Hz
        expected_frequency: Nominal frequency of the sampled string
        current_sample_count: Accepted readings so far
        required_samples: Readings needed to finish (clamped to >= 1)
        tolerance_ratio: Accepted relative deviation (default: 0.15)

    Returns:
        CalibrationSampleResult with progress clamped to 0..100
    """
    lower = expected_frequency * (1 - tolerance_ratio)
    upper = expected_frequency * (1 + tolerance_ratio)
    accepted = (
        math.isfinite(frequency)
        and frequency > 0
        and expected_frequency > 0
        and lower <= frequency <= upper
    )

    next_count = current_sample_count + 1 if accepted else current_sample_count
    required = max(1, required_samples)
    progress = max(0.0, min(100.0, next_count / required * 100.0))

    return CalibrationSampleResult(
        accepted=accepted,
        next_sample_count=next_count,
        progress_percent=progress,
        is_complete=next_count >= required,
    )


def compute_calibrated_reference(
    samples: Iterable[float], octave_shift: int = 1
) -> Optional[float]:
    """
    Average the accepted readings and shift them to the reference octave.

    Returns:
        New A4 frequency, or None if no finite positive sample exists
    """
    valid = [s for s in samples if s is not None and math.isfinite(s) and s > 0]
    if not valid:
        return None
    return sum(valid) / len(valid) * (2.0**octave_shift)


@dataclass(frozen=True)
class OpenStringTuning:
    """Expected frequency of the open A string used for calibration."""

    expected_frequency: float
    octave: int

    @property
    def octave_shift(self) -> int:
        """Octaves between this string and A4."""
        return 4 - self.octave


def open_string_tuning(note_name: Optional[str]) -> OpenStringTuning:
    """
    Parse an open A string name such as "A2" (default: A4 at 440 Hz).

    Anything other than "A<octave>" falls back to the default.
    """
    match = _OPEN_STRING_PATTERN.match((note_name or "").strip())
    if not match:
        return OpenStringTuning(DEFAULT_A4_FREQUENCY, 4)
    octave = int(match.group(1))
    return OpenStringTuning(DEFAULT_A4_FREQUENCY * 2.0 ** (octave - 4), octave)


@dataclass
class CalibrationSession:
    """
    One calibration run. Not persisted; discard after finish().

    Attributes:
        expected_frequency: Nominal frequency of the sampled string
        required_sample_count: Accepted readings needed (default: 30)
        tolerance_ratio: Accepted relative deviation (default: 0.15)
        octave_shift: Octaves from the sampled string up to A4 (default: 1)
        collected_frequencies: Accepted raw readings
    """

    expected_frequency: float
    required_sample_count: int = CALIBRATION_SAMPLES
    tolerance_ratio: float = CALIBRATION_TOLERANCE_RATIO
    octave_shift: int = 1
    collected_frequencies: List[float] = field(default_factory=list)

    @classmethod
    def for_string(
        cls,
        note_name: Optional[str],
        required_sample_count: int = CALIBRATION_SAMPLES,
        tolerance_ratio: float = CALIBRATION_TOLERANCE_RATIO,
    ) -> "CalibrationSession":
        """Session targeting an open A string, e.g. "A2"."""
        tuning = open_string_tuning(note_name)
        return cls(
            expected_frequency=tuning.expected_frequency,
            required_sample_count=required_sample_count,
            tolerance_ratio=tolerance_ratio,
            octave_shift=tuning.octave_shift,
        )

    @property
    def sample_count(self) -> int:
        return len(self.collected_frequencies)

    @property
    def is_complete(self) -> bool:
        return self.sample_count >= max(1, self.required_sample_count)

    def add_sample(self, frequency: float) -> CalibrationSampleResult:
        """Offer a reading; accepted readings are kept for the average.

        A complete session takes no more readings.
        """
        if self.is_complete:
            return CalibrationSampleResult(
                accepted=False,
                next_sample_count=self.sample_count,
                progress_percent=100.0,
                is_complete=True,
            )
        result = evaluate_calibration_sample(
            frequency,
            self.expected_frequency,
            self.sample_count,
            self.required_sample_count,
            self.tolerance_ratio,
        )
        if result.accepted:
            self.collected_frequencies.append(float(frequency))
        return result

    def finish(self) -> Optional[float]:
        """
        Compute the calibrated reference from the collected readings.

        Returns:
            New A4 frequency, or None if nothing valid was collected
        """
        reference = compute_calibrated_reference(
            self.collected_frequencies, self.octave_shift
        )
        if reference is None:
            logger.debug("Calibration finished without usable samples")
        else:
            logger.debug(
                "Calibration finished: %d samples, A4 = %.2f Hz",
                self.sample_count,
                reference,
            )
        return reference
