"""Default decode facility: encoded bytes to float64 PCM."""
from __future__ import annotations
import io
import json
import logging
import shutil
import subprocess
import warnings as py_warnings
from pathlib import Path

import numpy as np
import soundfile as sf

from audioqc.errors import DecodeError
from audioqc.types import AudioBuffer

logger = logging.getLogger(__name__)


def _as_frames(samples: np.ndarray) -> np.ndarray:
    """Coerce decoded audio to a (n, channels) float64 array clipped to [-1, 1]."""
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim == 1:
        x = x[:, None]
    if x.ndim != 2:
        raise DecodeError("Decoded audio must be 1D or 2D array.")
    return np.clip(x, -1.0, 1.0)


def _decode_soundfile(data: bytes) -> tuple[np.ndarray, float, list[str]]:
    """Decode using soundfile (libsndfile) from an in-memory buffer."""
    with py_warnings.catch_warnings(record=True) as w:
        py_warnings.simplefilter("always")
        samples, fs = sf.read(io.BytesIO(data), always_2d=True, dtype="float64")
    warn_list = [str(wi.message) for wi in w]
    return samples, float(fs), warn_list


def _ffprobe_info(data: bytes) -> tuple[int, int]:
    """Return (sample_rate, channels) from ffprobe reading stdin."""
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        raise DecodeError("ffprobe not found for ffmpeg backend.", backend="ffmpeg")
    cmd = [
        ffprobe,
        "-v", "error",
        "-select_streams", "a:0",
        "-show_entries", "stream=sample_rate,channels",
        "-of", "json",
        "pipe:0",
    ]
    proc = subprocess.run(cmd, input=data, capture_output=True, check=False)
    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", errors="replace").strip()
        raise DecodeError(f"ffprobe failed: {stderr}", backend="ffmpeg")
    info = json.loads(proc.stdout.decode("utf-8", errors="replace") or "{}")
    streams = info.get("streams", [])
    if not streams:
        raise DecodeError("ffprobe reported no audio streams.", backend="ffmpeg")
    stream = streams[0]
    return int(stream["sample_rate"]), int(stream["channels"])


def _decode_ffmpeg(data: bytes) -> tuple[np.ndarray, float, list[str]]:
    """Decode using ffmpeg to raw float32 PCM over pipes."""
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise DecodeError("ffmpeg backend not available.", backend="ffmpeg")
    fs, ch = _ffprobe_info(data)
    cmd = [
        ffmpeg,
        "-v", "warning",
        "-i", "pipe:0",
        "-f", "f32le",
        "-acodec", "pcm_f32le",
        "-vn",
        "pipe:1",
    ]
    proc = subprocess.run(cmd, input=data, capture_output=True, check=False)
    warn_list = [
        line for line in proc.stderr.decode("utf-8", errors="replace").splitlines() if line.strip()
    ]
    if proc.returncode != 0:
        raise DecodeError("ffmpeg decode failed.", backend="ffmpeg")
    samples = np.frombuffer(proc.stdout, dtype=np.float32)
    if ch > 0:
        n = (samples.size // ch) * ch
        if n != samples.size:
            warn_list.append("ffmpeg: trimmed partial frame at end of stream.")
            samples = samples[:n]
        samples = samples.reshape(-1, ch)
    return samples.astype(np.float64), float(fs), warn_list


def decode_audio(data: bytes, filename: str | None = None) -> AudioBuffer:
    """
    Decode encoded file bytes into a per-channel float64 buffer.

    WAV, FLAC and AIFF go through soundfile; anything libsndfile rejects
    falls back to ffmpeg when installed. Any failure raises DecodeError.
    """
    warnings_list: list[str] = []
    backend = "soundfile"
    try:
        samples, fs, warn_list = _decode_soundfile(data)
        warnings_list.extend(warn_list)
    except (sf.LibsndfileError, RuntimeError, TypeError) as exc:
        logger.debug("soundfile could not decode %s: %s", filename, exc)
        warnings_list.append(f"soundfile decode failed: {exc}")
        backend = "ffmpeg"
        samples, fs, warn_list = _decode_ffmpeg(data)
        warnings_list.extend(warn_list)

    frames = _as_frames(samples)
    if frames.shape[0] == 0 or frames.shape[1] == 0:
        raise DecodeError(f"{filename or 'input'}: decoded zero samples.", backend=backend)
    logger.debug(
        "Decoded %s via %s: %d frames, %d ch, %.0f Hz",
        filename, backend, frames.shape[0], frames.shape[1], fs,
    )
    return AudioBuffer(
        samples=frames,
        fs=float(fs),
        duration=frames.shape[0] / float(fs),
        channels=int(frames.shape[1]),
        backend=backend,
        warnings=tuple(warnings_list),
    )


def load_audio(path: str) -> AudioBuffer:
    """Decode a local audio file."""
    return decode_audio(Path(path).read_bytes(), Path(path).name)
