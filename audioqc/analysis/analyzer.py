"""Level analysis: turns a decoded buffer into a LevelMetrics bundle."""
from __future__ import annotations
import logging

import numpy as np

from audioqc.analysis.config import build_analyzer_config
from audioqc.errors import AnalysisError
from audioqc.metrics.bleed import bleed_legacy, bleed_separation, detect_mic_bleed
from audioqc.metrics.blocks import activity_mask, activity_threshold_db, block_size, block_rms
from audioqc.metrics.clipping import detect_clipping
from audioqc.metrics.conversational import conversational_analysis
from audioqc.metrics.correlation import block_correlation
from audioqc.metrics.levels import normalization_status, peak_dbfs
from audioqc.metrics.noise import digital_silence, noise_floor_per_channel, overall_noise_floor
from audioqc.metrics.reverb import estimate_rt60
from audioqc.metrics.silence import detect_silence_segments
from audioqc.metrics.stereo import classify_stereo
from audioqc.types import AnalysisMode, AudioBuffer, LevelMetrics, StereoType

logger = logging.getLogger(__name__)


class LevelAnalyzer:
    """
    Compute level metrics for a decoded buffer.

    Peak, normalization, noise floor, digital silence and clipping are
    computed in every mode. Reverb, silence segmentation, stereo separation,
    mic bleed and the conversational bundle only run in experimental mode.
    """

    def __init__(self, config: dict | None = None):
        self.config = build_analyzer_config(config)

    def analyze(self, buffer: AudioBuffer, mode: AnalysisMode = AnalysisMode.FULL) -> LevelMetrics:
        mode = AnalysisMode(mode)
        x = self._validate(buffer)
        try:
            return self._analyze(x, float(buffer.fs), mode)
        except AnalysisError:
            raise
        except (ValueError, FloatingPointError, IndexError) as exc:
            raise AnalysisError(str(exc), analysis_type="level", original_error=exc) from exc

    def _validate(self, buffer: AudioBuffer) -> np.ndarray:
        x = np.asarray(buffer.samples, dtype=np.float64)
        if x.ndim == 1:
            x = x[:, None]
        if x.ndim != 2 or x.shape[0] == 0 or x.shape[1] == 0:
            raise AnalysisError("empty or malformed sample buffer", analysis_type="input")
        if not buffer.fs or buffer.fs <= 0:
            raise AnalysisError("sample rate must be positive", analysis_type="input")
        if not np.all(np.isfinite(x)):
            raise AnalysisError("buffer contains non-finite samples", analysis_type="input")
        return x

    def _analyze(self, x: np.ndarray, fs: float, mode: AnalysisMode) -> LevelMetrics:
        cfg = self.config
        nf_cfg = cfg["noise_floor"]
        logger.debug("Analyzing %d frames x %d ch at %.0f Hz (%s)", x.shape[0], x.shape[1], fs, mode.value)

        peak = peak_dbfs(x)
        normalization = normalization_status(peak, **cfg["normalization"])
        per_channel_nf = noise_floor_per_channel(
            x, fs,
            window_seconds=nf_cfg["window_seconds"],
            quiet_fraction=nf_cfg["quiet_fraction"],
            bin_db=nf_cfg["histogram_bin_db"],
        )
        noise_floor = overall_noise_floor(per_channel_nf)
        silence_flags = digital_silence(x, fs, window_seconds=nf_cfg["window_seconds"])
        clipping = detect_clipping(x, fs, **cfg["clipping"])

        if mode is not AnalysisMode.EXPERIMENTAL:
            return LevelMetrics(
                peak_db=peak,
                normalization=normalization,
                noise_floor_db=noise_floor,
                noise_floor_per_channel=per_channel_nf,
                digital_silence=silence_flags,
                clipping=clipping,
                mode=mode,
            )

        reverb_cfg = dict(cfg["reverb"])
        labels = reverb_cfg.pop("labels")
        reverb = estimate_rt60(x, fs, noise_floor_per_channel=per_channel_nf, labels=labels, **reverb_cfg)
        silence = detect_silence_segments(x, fs, noise_floor_db=noise_floor, peak_db=peak, **cfg["silence"])

        stereo = bleed = conversational = None
        if x.shape[1] == 2:
            stereo, bleed, conversational = self._stereo_metrics(x, fs, per_channel_nf)

        return LevelMetrics(
            peak_db=peak,
            normalization=normalization,
            noise_floor_db=noise_floor,
            noise_floor_per_channel=per_channel_nf,
            digital_silence=silence_flags,
            clipping=clipping,
            reverb=reverb,
            silence=silence,
            stereo_separation=stereo,
            mic_bleed=bleed,
            conversational=conversational,
            mode=mode,
        )

    def _stereo_metrics(self, x: np.ndarray, fs: float, per_channel_nf: list[float]):
        cfg = self.config
        stereo = classify_stereo(x, fs, block_seconds=cfg["block_seconds"], **cfg["stereo"])
        if stereo["stereo_type"] == StereoType.MONO.value:
            return stereo, None, None

        # one block pass shared by bleed and conversational metrics
        size = block_size(fs, cfg["block_seconds"])
        block_seconds = size / fs
        left, right = x[:, 0], x[:, 1]
        left_rms = block_rms(left, size)
        right_rms = block_rms(right, size)
        left_active = activity_mask(left_rms, activity_threshold_db(per_channel_nf[0], **cfg["activity"]))
        right_active = activity_mask(right_rms, activity_threshold_db(per_channel_nf[1], **cfg["activity"]))
        correlation = block_correlation(left, right, size)

        bleed_cfg = cfg["bleed"]
        legacy = bleed_legacy(
            left_rms, right_rms, left_active, right_active,
            threshold_db=bleed_cfg["old_threshold_db"],
        )
        separation = bleed_separation(
            left_rms, right_rms, correlation, left_active | right_active, block_seconds,
            separation_threshold_db=bleed_cfg["separation_threshold_db"],
            correlation_threshold=bleed_cfg["correlation_threshold"],
            confirmed_percentage_threshold=bleed_cfg["confirmed_percentage_threshold"],
            max_segments=bleed_cfg["max_segments"],
        )
        bleed = detect_mic_bleed(legacy, separation)

        conversational = None
        if stereo["stereo_type"] == StereoType.CONVERSATIONAL.value:
            conversational = conversational_analysis(
                x, fs,
                left_rms=left_rms,
                right_rms=right_rms,
                left_active=left_active,
                right_active=right_active,
                block_seconds=block_seconds,
                config={**cfg["conversational"], "dominance_ratio": cfg["stereo"]["dominance_ratio"]},
            )
        return stereo, bleed, conversational


def analyze_buffer(
    buffer: AudioBuffer,
    mode: AnalysisMode = AnalysisMode.FULL,
    config: dict | None = None,
) -> LevelMetrics:
    """Convenience wrapper around LevelAnalyzer."""
    return LevelAnalyzer(config).analyze(buffer, mode)
