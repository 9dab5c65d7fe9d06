"""Container header parsing for audio metadata without a full decode."""
from __future__ import annotations
import logging
import os
import struct
from pathlib import Path

from audioqc.errors import FormatError
from audioqc.types import AudioMetadata

logger = logging.getLogger(__name__)

# Uncompressed headers are front-loaded and fit in this prefix. Compressed
# formats can carry large tags (embedded cover art) before the first frame.
HEADER_PREFIX_BYTES = 100 * 1024
COMPRESSED_EXTENSIONS = frozenset({".mp1", ".mp2", ".mp3", ".flac"})

_WAVE_FORMAT_PCM = 0x0001
_WAVE_FORMAT_IEEE_FLOAT = 0x0003
_WAVE_FORMAT_EXTENSIBLE = 0xFFFE
_WAV_CODECS = {_WAVE_FORMAT_PCM: "pcm", _WAVE_FORMAT_IEEE_FLOAT: "float"}

_AIFC_CODECS = {
    b"NONE": "pcm",
    b"sowt": "pcm",
    b"twos": "pcm",
    b"fl32": "float",
    b"FL32": "float",
    b"fl64": "float",
    b"FL64": "float",
}

_MPEG_SAMPLE_RATES = {
    3: (44100, 48000, 32000),  # MPEG-1
    2: (22050, 24000, 16000),  # MPEG-2
    0: (11025, 12000, 8000),   # MPEG-2.5
}
_MPEG1_BITRATES = {
    3: (0, 32, 64, 96, 128, 160, 192, 224, 256, 288, 320, 352, 384, 416, 448),
    2: (0, 32, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320, 384),
    1: (0, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320),
}
_MPEG2_BITRATES = {
    3: (0, 32, 48, 56, 64, 80, 96, 112, 128, 144, 160, 176, 192, 224, 256),
    2: (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160),
    1: (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160),
}
_MPEG_LAYER_NAMES = {3: "mp1", 2: "mp2", 1: "mp3"}


def _require(data: bytes, end: int, what: str, filename: str | None) -> None:
    if len(data) < end:
        raise FormatError(f"truncated {what}", filename=filename, truncated=True)


def _parse_wav(data: bytes, filename: str | None, file_size: int) -> AudioMetadata:
    _require(data, 12, "RIFF header", filename)
    fmt = None
    data_offset = None
    data_size = None
    offset = 12
    while offset + 8 <= len(data):
        chunk_id = data[offset:offset + 4]
        (chunk_size,) = struct.unpack_from("<I", data, offset + 4)
        body = offset + 8
        if chunk_id == b"fmt ":
            _require(data, body + 16, "fmt chunk", filename)
            tag, channels, sample_rate, byte_rate, block_align, bits = struct.unpack_from(
                "<HHIIHH", data, body
            )
            if tag == _WAVE_FORMAT_EXTENSIBLE:
                if chunk_size < 40:
                    raise FormatError("malformed WAVE_FORMAT_EXTENSIBLE fmt chunk", filename=filename)
                _require(data, body + 26, "extensible fmt chunk", filename)
                (tag,) = struct.unpack_from("<H", data, body + 24)
            fmt = (tag, channels, sample_rate, byte_rate, block_align, bits)
        elif chunk_id == b"data" and fmt is not None:
            data_offset = body
            data_size = chunk_size
            break
        offset = body + chunk_size + (chunk_size & 1)

    if fmt is None:
        raise FormatError("truncated header: fmt chunk not found", filename=filename, truncated=True)
    tag, channels, sample_rate, byte_rate, block_align, bits = fmt
    if tag not in _WAV_CODECS:
        raise FormatError(f"unsupported WAV codec tag 0x{tag:04x}", filename=filename)
    if channels <= 0 or sample_rate <= 0 or block_align <= 0:
        raise FormatError("invalid WAV fmt chunk values", filename=filename)

    if data_offset is None:
        # data chunk lies beyond the prefix; estimate from the reported size
        if file_size <= offset or byte_rate <= 0:
            raise FormatError("truncated header: data chunk not found", filename=filename, truncated=True)
        data_offset = offset
        data_size = file_size - offset
    elif data_size == 0xFFFFFFFF or (file_size > len(data) and data_offset + data_size > file_size):
        data_size = max(0, file_size - data_offset)

    frames = data_size // block_align
    return AudioMetadata(
        file_type="wav",
        sample_rate=int(sample_rate),
        bit_depth=int(bits),
        channels=int(channels),
        duration=float(frames) / float(sample_rate),
        file_size=int(file_size),
        codec=_WAV_CODECS[tag],
    )


def _parse_flac(data: bytes, filename: str | None, file_size: int) -> AudioMetadata:
    _require(data, 42, "FLAC STREAMINFO block", filename)
    block_type = data[4] & 0x7F
    if block_type != 0:
        raise FormatError("FLAC stream does not start with STREAMINFO", filename=filename)
    packed = int.from_bytes(data[18:26], "big")
    sample_rate = packed >> 44
    channels = ((packed >> 41) & 0x07) + 1
    bits = ((packed >> 36) & 0x1F) + 1
    total_samples = packed & 0xFFFFFFFFF
    if sample_rate <= 0:
        raise FormatError("invalid FLAC sample rate", filename=filename)
    return AudioMetadata(
        file_type="flac",
        sample_rate=int(sample_rate),
        bit_depth=int(bits),
        channels=int(channels),
        duration=float(total_samples) / float(sample_rate),
        file_size=int(file_size),
        codec="flac",
    )


def _syncsafe(b: bytes) -> int:
    return (b[0] << 21) | (b[1] << 14) | (b[2] << 7) | b[3]


def _mpeg_header(data: bytes, pos: int) -> dict | None:
    """Decode a 4-byte MPEG audio frame header, or None if invalid."""
    (header,) = struct.unpack_from(">I", data, pos)
    if (header >> 21) & 0x7FF != 0x7FF:
        return None
    version = (header >> 19) & 0x03
    layer = (header >> 17) & 0x03
    bitrate_idx = (header >> 12) & 0x0F
    rate_idx = (header >> 10) & 0x03
    mode = (header >> 6) & 0x03
    if version == 1 or layer == 0 or bitrate_idx in (0, 15) or rate_idx == 3:
        return None
    table = _MPEG1_BITRATES if version == 3 else _MPEG2_BITRATES
    if layer == 3:
        samples_per_frame = 384
    elif layer == 1 and version != 3:
        samples_per_frame = 576
    else:
        samples_per_frame = 1152
    return {
        "version": version,
        "layer": layer,
        "bitrate_kbps": table[layer][bitrate_idx],
        "sample_rate": _MPEG_SAMPLE_RATES[version][rate_idx],
        "channels": 1 if mode == 3 else 2,
        "samples_per_frame": samples_per_frame,
    }


def _vbr_frame_count(data: bytes, pos: int, info: dict) -> int | None:
    if info["version"] == 3:
        side_info = 17 if info["channels"] == 1 else 32
    else:
        side_info = 9 if info["channels"] == 1 else 17
    xing = pos + 4 + side_info
    if len(data) >= xing + 12 and data[xing:xing + 4] in (b"Xing", b"Info"):
        (flags,) = struct.unpack_from(">I", data, xing + 4)
        if flags & 0x01:
            return struct.unpack_from(">I", data, xing + 8)[0]
    vbri = pos + 4 + 32
    if len(data) >= vbri + 18 and data[vbri:vbri + 4] == b"VBRI":
        return struct.unpack_from(">I", data, vbri + 14)[0]
    return None


def _parse_mpeg(data: bytes, filename: str | None, file_size: int) -> AudioMetadata:
    offset = 0
    if data[:3] == b"ID3":
        _require(data, 10, "ID3v2 tag header", filename)
        offset = 10 + _syncsafe(data[6:10])
        if data[5] & 0x10:
            offset += 10
        _require(data, offset + 4, "header: ID3v2 tag exceeds available bytes", filename)

    pos = offset
    info = None
    while pos + 4 <= len(data):
        if data[pos] == 0xFF and (data[pos + 1] & 0xE0) == 0xE0:
            info = _mpeg_header(data, pos)
            if info is not None:
                break
        pos += 1
    if info is None:
        raise FormatError("no MPEG audio frame found in header", filename=filename, truncated=True)

    frames = _vbr_frame_count(data, pos, info)
    if frames:
        duration = frames * info["samples_per_frame"] / float(info["sample_rate"])
    else:
        audio_bytes = max(0, file_size - pos)
        duration = audio_bytes * 8.0 / (info["bitrate_kbps"] * 1000.0)
    return AudioMetadata(
        file_type=_MPEG_LAYER_NAMES[info["layer"]],
        sample_rate=int(info["sample_rate"]),
        bit_depth="unknown",
        channels=int(info["channels"]),
        duration=float(duration),
        file_size=int(file_size),
        codec=_MPEG_LAYER_NAMES[info["layer"]],
    )


def _ieee_extended(b: bytes) -> float:
    """Decode an 80-bit IEEE 754 extended float (AIFF sample rate)."""
    exponent = ((b[0] & 0x7F) << 8) | b[1]
    mantissa = int.from_bytes(b[2:10], "big")
    if exponent == 0 and mantissa == 0:
        return 0.0
    value = mantissa * 2.0 ** (exponent - 16383 - 63)
    return -value if b[0] & 0x80 else value


def _parse_aiff(data: bytes, filename: str | None, file_size: int) -> AudioMetadata:
    _require(data, 12, "FORM header", filename)
    is_aifc = data[8:12] == b"AIFC"
    offset = 12
    while offset + 8 <= len(data):
        chunk_id = data[offset:offset + 4]
        (chunk_size,) = struct.unpack_from(">I", data, offset + 4)
        body = offset + 8
        if chunk_id == b"COMM":
            _require(data, body + 18, "COMM chunk", filename)
            channels, frames, bits = struct.unpack_from(">hIh", data, body)
            sample_rate = _ieee_extended(data[body + 8:body + 18])
            codec = "pcm"
            if is_aifc:
                _require(data, body + 22, "AIFC compression type", filename)
                compression = data[body + 18:body + 22]
                if compression not in _AIFC_CODECS:
                    raise FormatError(
                        f"unsupported AIFC compression type {compression!r}", filename=filename
                    )
                codec = _AIFC_CODECS[compression]
            if channels <= 0 or sample_rate <= 0:
                raise FormatError("invalid AIFF COMM chunk values", filename=filename)
            return AudioMetadata(
                file_type="aiff",
                sample_rate=int(round(sample_rate)),
                bit_depth=int(bits),
                channels=int(channels),
                duration=float(frames) / sample_rate,
                file_size=int(file_size),
                codec=codec,
            )
        offset = body + chunk_size + (chunk_size & 1)
    raise FormatError("truncated header: COMM chunk not found", filename=filename, truncated=True)


def read_metadata(data: bytes, filename: str | None = None, file_size: int | None = None) -> AudioMetadata:
    """
    Parse container metadata from file bytes or a header prefix.

    Args:
        data: Full file bytes or a prefix containing the header.
        filename: Name used in error messages.
        file_size: Reported size of the whole file; defaults to len(data).

    Returns:
        AudioMetadata for the file.

    Raises:
        FormatError: Truncated header, unknown signature or unsupported codec.
    """
    data = bytes(data)
    size = int(file_size) if file_size is not None else len(data)
    if len(data) < 4:
        raise FormatError("truncated header", filename=filename, truncated=True)

    if data[:4] == b"RIFF":
        _require(data, 12, "RIFF header", filename)
        if data[8:12] != b"WAVE":
            raise FormatError("RIFF container is not WAVE", filename=filename)
        meta = _parse_wav(data, filename, size)
    elif data[:4] == b"fLaC":
        meta = _parse_flac(data, filename, size)
    elif data[:4] == b"FORM":
        _require(data, 12, "FORM header", filename)
        if data[8:12] not in (b"AIFF", b"AIFC"):
            raise FormatError("FORM container is not AIFF", filename=filename)
        meta = _parse_aiff(data, filename, size)
    elif data[:3] == b"ID3" or (data[0] == 0xFF and (data[1] & 0xE0) == 0xE0):
        meta = _parse_mpeg(data, filename, size)
    else:
        raise FormatError("unrecognized container signature", filename=filename)

    logger.debug(
        "Parsed %s header for %s: %d Hz, %s bit, %d ch, %.3f s",
        meta.file_type, filename, meta.sample_rate, meta.bit_depth, meta.channels, meta.duration,
    )
    return meta


def header_read_limit(filename: str) -> int | None:
    """Bytes needed for metadata: the prefix, or None (whole file) for compressed formats."""
    if Path(filename).suffix.lower() in COMPRESSED_EXTENSIONS:
        return None
    return HEADER_PREFIX_BYTES


def read_metadata_file(path: str, *, prefix_bytes: int | None = HEADER_PREFIX_BYTES) -> AudioMetadata:
    """Read metadata from a local file, loading only the header prefix when it suffices."""
    file_size = os.path.getsize(path)
    name = Path(path).name
    with open(path, "rb") as f:
        data = f.read() if prefix_bytes is None else f.read(prefix_bytes)
        try:
            return read_metadata(data, name, file_size)
        except FormatError as exc:
            if not exc.truncated or len(data) >= file_size:
                raise
            logger.debug("Header of %s extends past %d bytes; reading whole file", name, len(data))
            data += f.read()
    return read_metadata(data, name, file_size)


def metadata_from_filename(filename: str, file_size: int = 0) -> AudioMetadata:
    """Placeholder metadata for files whose bytes are never read."""
    suffix = Path(filename).suffix.lower().lstrip(".")
    return AudioMetadata(
        file_type=suffix or "unknown",
        sample_rate=0,
        bit_depth="unknown",
        channels=0,
        duration=0.0,
        file_size=int(file_size),
    )
