"""Global constants for the ear-trainer detection core."""

# Pitch names (index 0 = C)
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

NOTE_TO_SEMITONE = {name: index for index, name in enumerate(PITCH_NAMES)}

# Reference pitch
DEFAULT_A4_FREQUENCY = 440.0

# Audio frame defaults
DEFAULT_SR = 48000
DEFAULT_FFT_SIZE = 4096

# Detection defaults
VOLUME_THRESHOLD = 0.03  # RMS
REQUIRED_STABLE_FRAMES = 3
SILENCE_RESET_FRAMES = 2
CALIBRATION_SAMPLES = 30
CALIBRATION_TOLERANCE_RATIO = 0.15

# Tuner display
CENTS_TOLERANCE = 10.0
CENTS_VISUAL_RANGE = 50.0

# Chord spellings by pitch class, independent of instrument
CHORDS = {
    # Major
    "C Major": ["C", "E", "G"],
    "G Major": ["G", "B", "D"],
    "D Major": ["D", "F#", "A"],
    "A Major": ["A", "C#", "E"],
    "E Major": ["E", "G#", "B"],
    "F Major": ["F", "A", "C"],
    # Minor
    "A Minor": ["A", "C", "E"],
    "E Minor": ["E", "G", "B"],
    "D Minor": ["D", "F", "A"],
    "B Minor": ["B", "D", "F#"],
    # Dominant 7th
    "C7": ["C", "E", "G", "A#"],
    "G7": ["G", "B", "D", "F"],
    "D7": ["D", "F#", "A", "C"],
    "A7": ["A", "C#", "E", "G"],
    "E7": ["E", "G#", "B", "D"],
    "B7": ["B", "D#", "F#", "A"],
    # Other 7ths
    "Cmaj7": ["C", "E", "G", "B"],
    "Am7": ["A", "C", "E", "G"],
    "Dm7": ["D", "F", "A", "C"],
    "Em7": ["E", "G", "B", "D"],
}
