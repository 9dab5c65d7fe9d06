from __future__ import annotations

import io
import struct
import sys
from pathlib import Path

import numpy as np
import soundfile as sf

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def tone(duration_s: float, fs: int, *, freq_hz: float = 440.0, amp: float = 0.5) -> np.ndarray:
    t = np.arange(int(round(duration_s * fs))) / fs
    return amp * np.sin(2.0 * np.pi * freq_hz * t)


def noise(duration_s: float, fs: int, *, amp: float = 1e-4, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return amp * rng.standard_normal(int(round(duration_s * fs)))


def bursts_with_gap(fs: int = 48000, *, gap_s: float = 3.0, bed_amp: float = 1e-4) -> np.ndarray:
    """1 s tone, `gap_s` of near-silence, 1 s tone, over a noise bed (none when bed_amp is 0)."""
    body = np.concatenate([
        tone(1.0, fs, freq_hz=300.0, amp=0.5),
        np.zeros(int(round(gap_s * fs))),
        tone(1.0, fs, freq_hz=300.0, amp=0.5),
    ])
    if bed_amp == 0:
        return body
    return body + noise(body.size / fs, fs, amp=bed_amp, seed=1)


def conversational_stereo(
    fs: int = 48000,
    *,
    turns: tuple = ((0, 2.0), (1, 2.0), (0, 2.0), (1, 2.0)),
    overlap_s: float = 0.0,
) -> np.ndarray:
    """
    Alternating speaker turns on separate channels over independent noise beds.

    With overlap_s > 0 the second speaker of each hand-over starts that many
    seconds before the first one stops.
    """
    total = sum(d for _, d in turns)
    n = int(round(total * fs))
    out = np.stack(
        [noise(total, fs, amp=1e-4, seed=10), noise(total, fs, amp=1e-4, seed=11)], axis=1
    )[:n]
    pos = 0.0
    for idx, (ch, dur) in enumerate(turns):
        start = pos - (overlap_s if idx else 0.0)
        a = int(round(start * fs))
        b = int(round((pos + dur) * fs))
        out[a:b, ch] += tone((b - a) / fs, fs, freq_hz=200.0 + 150.0 * ch, amp=0.25)
        pos += dur
    return out


def decaying_bursts(fs: int = 48000, *, rt60_s: float = 0.5, count: int = 3, spacing_s: float = 1.5) -> np.ndarray:
    """Noise bursts that decay exponentially at the given RT60, over a quiet bed."""
    rng = np.random.default_rng(7)
    n = int(round((0.2 + count * spacing_s) * fs))
    x = 1e-5 * rng.standard_normal(n)
    hold = int(round(0.05 * fs))
    tail = int(round(spacing_s * fs)) - hold
    t = np.arange(tail) / fs
    envelope = np.concatenate([np.ones(hold), 10.0 ** (-3.0 * t / rt60_s)])
    for k in range(count):
        start = int(round((0.2 + k * spacing_s) * fs))
        seg = envelope[:n - start]
        x[start:start + seg.size] += 0.5 * seg * rng.choice([-1.0, 1.0], size=seg.size)
    return x


def wav_bytes(samples: np.ndarray, fs: int = 48000, *, subtype: str = "PCM_24", fmt: str = "WAV") -> bytes:
    buf = io.BytesIO()
    sf.write(buf, samples, fs, format=fmt, subtype=subtype)
    return buf.getvalue()


def wav_header(
    *,
    tag: int = 1,
    channels: int = 1,
    fs: int = 48000,
    bits: int = 16,
    data_size: int = 0,
    subformat_tag: int | None = None,
    extra_chunks: bytes = b"",
) -> bytes:
    """Hand-built RIFF/WAVE header followed by a data chunk of `data_size` zero bytes."""
    block_align = channels * bits // 8
    fmt = struct.pack("<HHIIHH", tag, channels, fs, fs * block_align, block_align, bits)
    if subformat_tag is not None:
        guid_tail = b"\x00\x00\x00\x00\x10\x00\x80\x00\x00\xaa\x00\x38\x9b\x71"
        fmt += struct.pack("<HHI", 22, bits, 0) + struct.pack("<H", subformat_tag) + guid_tail
    chunks = b"fmt " + struct.pack("<I", len(fmt)) + fmt + extra_chunks
    chunks += b"data" + struct.pack("<I", data_size) + b"\x00" * data_size
    return b"RIFF" + struct.pack("<I", 4 + len(chunks)) + b"WAVE" + chunks


# MPEG-1 Layer III, 128 kbps, 44.1 kHz, joint stereo, no padding: 417-byte frames
MP3_FRAME_HEADER = bytes([0xFF, 0xFB, 0x90, 0x64])


def id3_tag(body_size: int) -> bytes:
    """ID3v2.4 tag header with a syncsafe size, followed by `body_size` zero bytes."""
    size = bytes([(body_size >> shift) & 0x7F for shift in (21, 14, 7, 0)])
    return b"ID3" + bytes([4, 0, 0]) + size + b"\x00" * body_size


def mp3_bytes(frames: int = 20, *, tag_size: int = 10) -> bytes:
    return id3_tag(tag_size) + (MP3_FRAME_HEADER + b"\x00" * 413) * frames
