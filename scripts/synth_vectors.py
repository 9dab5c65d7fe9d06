#!/usr/bin/env python
"""
Synthesize test vectors for AudioQC validation.

Generates WAV files with known level characteristics for manual checks.
"""
from __future__ import annotations
from pathlib import Path

import numpy as np
import soundfile as sf


def write_wav(path: Path, samples: np.ndarray, fs: int = 48000, subtype: str = "PCM_24") -> None:
    """Write mono (n,) or multichannel (n, ch) samples to WAV."""
    samples = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(path), samples, fs, subtype=subtype)


def gen_sine(freq_hz: float, duration_s: float, fs: int, amp: float = 1.0) -> np.ndarray:
    """Generate a sine wave."""
    t = np.arange(int(duration_s * fs)) / fs
    return amp * np.sin(2.0 * np.pi * freq_hz * t)


def gen_noise(duration_s: float, fs: int, amp: float, rng: np.random.Generator) -> np.ndarray:
    return amp * rng.standard_normal(int(duration_s * fs))


def db_to_linear(db: float) -> float:
    """Convert dB to linear amplitude."""
    return 10.0 ** (db / 20.0)


def gen_turns(turns: list[tuple[int, float]], fs: int, rng: np.random.Generator) -> np.ndarray:
    """Two-channel speech-like turns: (channel, seconds) bursts over a low noise bed."""
    total = sum(d for _, d in turns)
    out = np.stack([gen_noise(total, fs, 1e-4, rng), gen_noise(total, fs, 1e-4, rng)], axis=1)
    pos = 0
    for ch, dur in turns:
        burst = gen_sine(220.0 + 110.0 * ch, dur, fs, db_to_linear(-9.0))
        out[pos:pos + burst.size, ch] += burst
        pos += burst.size
    return out


def main():
    """Generate all test vectors."""
    base_dir = Path(__file__).parent.parent / "validation" / "vectors"
    fs = 48000
    rng = np.random.default_rng(42)

    print("Generating test vectors...")
    vectors = {
        # peak exactly at the -6 dBFS normalization target
        "v0001_sine_normalized": gen_sine(1000.0, 5.0, fs, db_to_linear(-6.0)),
        "v0002_silence": np.zeros(5 * fs),
        "v0003_gap_3s": np.concatenate([
            gen_sine(300.0, 1.0, fs, 0.5),
            np.zeros(3 * fs),
            gen_sine(300.0, 1.0, fs, 0.5),
        ]) + gen_noise(5.0, fs, 1e-4, rng),
        "v0004_clipped": np.clip(gen_sine(200.0, 2.0, fs, 1.5), -1.0, 1.0),
        "v0005_dual_identical": np.stack([gen_sine(440.0, 3.0, fs, 0.3)] * 2, axis=1),
        "v0006_conversational": gen_turns([(0, 2.0), (1, 2.0), (0, 2.0), (1, 2.0)], fs, rng),
    }
    for name, samples in vectors.items():
        path = base_dir / f"{name}.wav"
        write_wav(path, samples, fs)
        print(f"  Created: {path}")

    print(f"\nGenerated {len(vectors)} test vectors in: {base_dir}")


if __name__ == "__main__":
    main()
