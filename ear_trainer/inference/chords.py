"""Chord energy matching - decide which pitch classes are sounding.

Two questions are answered separately:
- Which notes look present? (display and stability key)
- Does the target chord dominate the spectrum? (correctness check)
"""

from typing import Iterable, List, Optional, Set

from ..core.config import ChordMatchConfig
from ..core.constants import CHORDS, NOTE_TO_SEMITONE
from ..core.frame import NoteEnergies


def _ranked(energies: NoteEnergies) -> List[tuple]:
    """Non-zero entries, strongest first; ties keep canonical pitch order."""
    entries = [(note, value) for note, value in energies.items() if value > 0]
    entries.sort(key=lambda item: (-item[1], NOTE_TO_SEMITONE.get(item[0], 12)))
    return entries


def detect_likely_notes(
    energies: NoteEnergies, config: Optional[ChordMatchConfig] = None
) -> Set[str]:
    """
    Get the most probable pitch classes in a frame.

    Keeps notes within the threshold ratio of the strongest note, plus the
    top few regardless, capped at the configured maximum.

    Returns:
        Set of pitch class names (empty for silence)
    """
    config = config or ChordMatchConfig()
    ranked = _ranked(energies)
    if not ranked:
        return set()

    threshold = ranked[0][1] * config.likely_threshold_ratio
    selected = [
        note
        for index, (note, value) in enumerate(ranked)
        if value >= threshold or index < config.likely_min_notes
    ]
    return set(selected[: config.likely_max_notes])


def notes_key(notes: Iterable[str]) -> str:
    """Stable string key for a set of notes: sorted and comma-joined."""
    return ",".join(sorted(set(notes)))


def parse_notes_key(key: str) -> List[str]:
    """Inverse of notes_key (empty key -> empty list)."""
    if not key.strip():
        return []
    return sorted({note.strip() for note in key.split(",") if note.strip()})


def notes_match_robust(
    energies: NoteEnergies,
    target_notes: Iterable[str],
    config: Optional[ChordMatchConfig] = None,
) -> bool:
    """
    Check whether the target notes dominate the detected energy.

    All of these must hold:
    - every target note is present (>= presence ratio of the peak)
    - targets carry at least the minimum share of the total energy
    - no non-target note rivals the weakest target, unless the targets
      dominate the total energy overwhelmingly

    Returns:
        True if the target chord matches
    """
    config = config or ChordMatchConfig()
    targets = list(dict.fromkeys(target_notes))
    if not targets:
        return False

    values = [value for value in energies.values() if value > 0]
    if not values:
        return False

    peak = max(values)
    total_energy = sum(values)
    target_values = [max(energies.get(note, 0.0), 0.0) for note in targets]
    target_energy = sum(target_values)
    weakest_target = min(target_values)
    target_ratio = target_energy / total_energy if total_energy > 0 else 0.0

    everyone_present = all(value >= peak * config.presence_ratio for value in target_values)
    if not everyone_present or target_ratio < config.min_target_ratio:
        return False

    target_set = set(targets)
    non_target = [value for note, value in energies.items() if note not in target_set]
    strongest_non_target = max(non_target, default=0.0)

    intruder = strongest_non_target >= weakest_target * config.intruder_ratio
    if intruder and target_ratio < config.dominance_ratio:
        return False
    return True


def chord_notes(name: str) -> Optional[List[str]]:
    """
    Look up the pitch classes of a named chord (e.g. "C Major", "G7").

    Returns:
        List of pitch classes, or None if the chord is unknown
    """
    notes = CHORDS.get(name)
    if notes is None:
        lowered = {key.lower(): value for key, value in CHORDS.items()}
        notes = lowered.get(name.strip().lower())
    return list(notes) if notes is not None else None

