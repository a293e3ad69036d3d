"""Inference layer - Musical judgments from pitch-class energies.

Pipeline: NoteEnergies → [likely notes, robust chord match]
"""

from .chords import (
    chord_notes,
    detect_likely_notes,
    notes_key,
    notes_match_robust,
    parse_notes_key,
)

__all__ = [
    "chord_notes",
    "detect_likely_notes",
    "notes_key",
    "notes_match_robust",
    "parse_notes_key",
]
