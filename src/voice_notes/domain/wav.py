import struct
from collections.abc import Iterable

WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8
PCM_FORMAT = 1
FMT_CHUNK_SIZE = 16

# RIFF id, chunk size, WAVE, fmt id, fmt size, format, channels, rate,
# byte rate, block align, bits per sample, data id, data size
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


class EmptyRecordingError(ValueError):
    pass


class InvalidWavError(ValueError):
    pass


def build_wav_header(sample_rate: int, channels: int, data_length: int) -> bytes:
    block_align = channels * BYTES_PER_SAMPLE
    return _HEADER.pack(
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        FMT_CHUNK_SIZE,
        PCM_FORMAT,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_length,
    )


def encode_wav(frames: Iterable[bytes], sample_rate: int, channels: int) -> bytes:
    payload = b"".join(frames)
    if not payload:
        raise EmptyRecordingError("No audio data recorded")
    return build_wav_header(sample_rate, channels, len(payload)) + payload


def decode_wav(data: bytes) -> tuple[bytes, int, int]:
    if len(data) < WAV_HEADER_SIZE:
        raise InvalidWavError(f"File too short for a WAV header ({len(data)} bytes)")

    (
        riff,
        chunk_size,
        wave,
        fmt,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_id,
        data_length,
    ) = _HEADER.unpack_from(data)

    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_id != b"data":
        raise InvalidWavError("Missing RIFF/WAVE/fmt/data chunk identifiers")
    if fmt_size != FMT_CHUNK_SIZE or audio_format != PCM_FORMAT or bits_per_sample != BITS_PER_SAMPLE:
        raise InvalidWavError("Only canonical 16-bit linear PCM is supported")
    if block_align != channels * BYTES_PER_SAMPLE or byte_rate != sample_rate * block_align:
        raise InvalidWavError("Inconsistent block align or byte rate")
    if chunk_size != 36 + data_length or len(data) != WAV_HEADER_SIZE + data_length:
        raise InvalidWavError("Chunk sizes do not match the payload length")

    return data[WAV_HEADER_SIZE:], sample_rate, channels


def pcm_duration_seconds(data_length: int, sample_rate: int, channels: int) -> float:
    return data_length / (sample_rate * channels * BYTES_PER_SAMPLE)
