"""Audio loading and framing into analysis ticks."""

import logging
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

import librosa
import numpy as np
import soundfile as sf

from ..core.constants import DEFAULT_FFT_SIZE, DEFAULT_SR
from ..core.frame import AudioFrame

logger = logging.getLogger(__name__)


def magnitude_spectrum_db(buffer: np.ndarray, fft_size: int = DEFAULT_FFT_SIZE) -> np.ndarray:
    """
    dB magnitude spectrum of one buffer, shaped like a live analyser's output.

    The buffer is Blackman-windowed, zero-padded or cut to fft_size, and
    scaled by 1/fft_size; the Nyquist bin is dropped so the result has
    fft_size / 2 bins.

    Returns:
        Spectrum in dBFS (floored at -100 dB)
    """
    x = np.zeros(fft_size, dtype=np.float64)
    samples = np.asarray(buffer, dtype=np.float64)[:fft_size]
    x[: len(samples)] = samples
    x *= np.blackman(fft_size)

    magnitude = np.abs(np.fft.rfft(x))[: fft_size // 2] / fft_size
    return librosa.amplitude_to_db(magnitude, ref=1.0, top_db=None)


class AudioLoader:
    """Handles audio file loading and framing."""

    SUPPORTED_FORMATS = {".wav", ".mp3", ".flac", ".ogg", ".m4a", ".mp4"}

    def __init__(
        self,
        target_sr: int = DEFAULT_SR,
        mono: bool = True,
        normalize: bool = False,
    ):
        """
        Initialize AudioLoader.

        Args:
            target_sr: Target sample rate for resampling
            mono: Convert to mono if True
            normalize: Peak-normalize amplitude if True. Off by default so
                RMS levels stay comparable with the volume thresholds.
        """
        self.target_sr = target_sr
        self.mono = mono
        self.normalize = normalize

    def _check_path(self, path: Union[str, Path]) -> Path:
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        if path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {path.suffix}. "
                f"Supported: {self.SUPPORTED_FORMATS}"
            )
        return path

    def load(self, path: Union[str, Path]) -> Tuple[np.ndarray, int]:
        """
        Load audio file and preprocess.

        Args:
            path: Path to audio file

        Returns:
            Tuple of (audio array, sample rate)

        Raises:
            ValueError: If file format not supported
            FileNotFoundError: If file doesn't exist
        """
        path = self._check_path(path)

        audio, sr = librosa.load(
            str(path),
            sr=self.target_sr,
            mono=self.mono,
        )
        logger.debug("Loaded %s: %d samples at %d Hz", path.name, len(audio), sr)

        if self.normalize:
            audio = self._normalize(audio)

        return audio.astype(np.float32), int(sr)

    def _normalize(self, audio: np.ndarray) -> np.ndarray:
        """Normalize audio to [-1, 1] range using peak normalization."""
        peak = np.abs(audio).max()
        if peak > 0:
            audio = audio / peak
        return audio

    def frames(
        self,
        audio: np.ndarray,
        sr: Optional[int] = None,
        fft_size: int = DEFAULT_FFT_SIZE,
        hop_length: Optional[int] = None,
    ) -> Iterator[AudioFrame]:
        """
        Slice audio into consecutive analysis frames.

        Args:
            audio: Mono audio array
            sr: Sample rate (defaults to target_sr)
            fft_size: Samples per frame and FFT size
            hop_length: Samples between frame starts (default: fft_size)

        Yields:
            AudioFrame with both the time-domain buffer and its dB spectrum
        """
        sr = sr or self.target_sr
        hop_length = hop_length or fft_size
        if len(audio) < fft_size:
            return

        for start in range(0, len(audio) - fft_size + 1, hop_length):
            buffer = np.asarray(audio[start : start + fft_size], dtype=np.float32)
            yield AudioFrame(
                time_domain=buffer,
                spectrum_db=magnitude_spectrum_db(buffer, fft_size),
                sample_rate=sr,
                fft_size=fft_size,
                timestamp_ms=start / sr * 1000.0,
            )

    def info(self, path: Union[str, Path]) -> Dict[str, Union[str, int, float]]:
        """
        Read file metadata without decoding the audio.

        Raises:
            ValueError: If file format not supported
            FileNotFoundError: If file doesn't exist
        """
        path = self._check_path(path)
        file_info = sf.info(str(path))
        return {
            "path": str(path),
            "duration": float(file_info.duration),
            "sample_rate": int(file_info.samplerate),
            "channels": int(file_info.channels),
            "format": file_info.format,
            "subtype": file_info.subtype,
        }
