from __future__ import annotations

import numpy as np
import pytest
import soundfile as sf

from audioqc.errors import DecodeError
from audioqc.io.audio import decode_audio, load_audio
from audioqc.types import AudioBuffer
from tests.conftest import tone, wav_bytes, wav_header


def test_decode_audio_stereo_from_bytes():
    fs = 48000
    mono = tone(0.1, fs, amp=0.1)
    stereo = np.stack([mono, mono * 0.5], axis=1)
    audio = decode_audio(wav_bytes(stereo, fs, subtype="FLOAT"), "tone.wav")
    assert audio.channels == 2
    assert audio.fs == 48000.0
    assert audio.backend == "soundfile"
    assert audio.samples.shape == (mono.size, 2)
    assert audio.duration == pytest.approx(0.1, abs=1e-4)
    assert np.allclose(audio.channel(1), mono * 0.5, atol=1e-6)


def test_load_audio_mono_is_two_dimensional(tmp_path):
    fs = 16000
    path = tmp_path / "mono.wav"
    sf.write(path, tone(0.25, fs), fs)
    audio = load_audio(str(path))
    assert audio.channels == 1
    assert audio.samples.ndim == 2
    assert np.max(np.abs(audio.samples)) <= 1.0


def test_decode_garbage_raises_decode_error():
    with pytest.raises(DecodeError):
        decode_audio(b"definitely not audio" * 10, "junk.wav")


def test_decode_zero_samples_raises_decode_error():
    with pytest.raises(DecodeError):
        decode_audio(wav_header(data_size=0), "empty.wav")


def test_audio_buffer_from_channels():
    buf = AudioBuffer.from_channels([np.zeros(10), np.ones(10)], 1000, backend="test")
    assert buf.channels == 2
    assert buf.duration == pytest.approx(0.01)
    assert np.all(buf.channel(1) == 1.0)
    with pytest.raises(ValueError):
        AudioBuffer.from_channels([np.zeros(10), np.ones(9)], 1000)
