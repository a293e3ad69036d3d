"""Events emitted by the stability trackers."""

from enum import Enum


class DetectionEvent(Enum):
    """What a tracker concluded about one frame."""

    NONE = "none"  # nothing usable in the frame
    PROVISIONAL = "provisional"  # detection seen, not yet stable
    STABLE_MATCH = "stable_match"
    STABLE_MISMATCH = "stable_mismatch"

    @property
    def is_stable(self) -> bool:
        return self in (DetectionEvent.STABLE_MATCH, DetectionEvent.STABLE_MISMATCH)
