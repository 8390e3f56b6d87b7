"""
Audio decoding, windowing and compression for upload.

The completion endpoint accepts inline audio only up to a few megabytes per
request, so recordings are cut into fixed windows (600 s by default), each
downmixed, resampled to 16 kHz, quantized to 16-bit and MP3-encoded.
"""

from __future__ import annotations

import functools
import io
from typing import Callable, Iterator, Optional, Tuple

import numpy as np
import soundfile as sf

from domain.models import AudioChunk
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import AudioDecodeError, ChunkTooLargeError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.AUDIO)

Encoder = Callable[[np.ndarray, int], bytes]


def encode_mp3(
    samples: np.ndarray,
    sample_rate: int,
    compression_level: float = Defaults.AUDIO_MP3_COMPRESSION_LEVEL,
) -> bytes:
    """Encode mono int16 samples as a constant-bitrate MP3 stream."""
    buffer = io.BytesIO()
    sf.write(
        buffer,
        samples,
        sample_rate,
        format="MP3",
        subtype="MPEG_LAYER_III",
        compression_level=compression_level,
        bitrate_mode="CONSTANT",
    )
    return buffer.getvalue()


def to_mono(frames: np.ndarray) -> np.ndarray:
    """Average all channels of a ``(frames, channels)`` array."""
    if frames.ndim == 1:
        return frames.astype(np.float32, copy=False)
    return frames.mean(axis=1, dtype=np.float32)


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear-interpolation resampling of a mono signal."""
    if source_rate == target_rate or samples.size == 0:
        return samples
    target_len = int(round(samples.size * target_rate / source_rate))
    if target_len <= 0:
        return np.zeros(0, dtype=np.float32)
    source_t = np.arange(samples.size, dtype=np.float64) / source_rate
    target_t = np.arange(target_len, dtype=np.float64) / target_rate
    return np.interp(target_t, source_t, samples).astype(np.float32)


def quantize_int16(samples: np.ndarray) -> np.ndarray:
    """Float [-1, 1] to 16-bit signed PCM (clipped)."""
    return (np.clip(samples, -1.0, 1.0) * 32767.0).astype(np.int16)


class AudioChunker:
    """Cuts a recording into upload-sized, compressed AudioChunks.

    Chunks cover the source start-to-end with no gaps or overlaps; exactly
    one chunk is flagged ``is_final``. There is a single compression pass:
    a chunk that is still over budget is a fatal error.
    """

    def __init__(
        self,
        window_seconds: float = Defaults.AUDIO_CHUNK_SECONDS,
        max_chunk_bytes: int = Defaults.AUDIO_MAX_CHUNK_BYTES,
        target_sample_rate: int = Defaults.AUDIO_TARGET_SAMPLE_RATE,
        encoder: Optional[Encoder] = None,
        mime_type: str = Defaults.AUDIO_MIME_TYPE,
        epsilon: float = Defaults.DURATION_EPSILON,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self._window_seconds = window_seconds
        self._max_chunk_bytes = max_chunk_bytes
        self._target_rate = target_sample_rate
        self._encoder = encoder or encode_mp3
        self._mime_type = mime_type
        self._epsilon = epsilon

    @classmethod
    def from_settings(cls, settings) -> "AudioChunker":
        return cls(
            window_seconds=settings.audio_chunk_seconds,
            max_chunk_bytes=settings.audio_max_chunk_bytes,
            target_sample_rate=settings.audio_target_sample_rate,
            encoder=functools.partial(
                encode_mp3, compression_level=settings.audio_mp3_compression_level
            ),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def decode(self, audio_path: str) -> Tuple[np.ndarray, int]:
        """Decode the whole file to float32 PCM ``(frames, channels)``.

        Raises:
            AudioDecodeError: Unsupported container/codec or unreadable file.
        """
        try:
            frames, sample_rate = sf.read(audio_path, dtype="float32", always_2d=True)
        except (RuntimeError, OSError, ValueError, TypeError) as exc:
            logger.error("audio_decode_failed", path=audio_path, error=str(exc))
            raise AudioDecodeError(
                f"Could not decode audio file: {exc}",
                context={"path": audio_path},
            ) from exc
        logger.info(
            "audio_decoded",
            path=audio_path,
            sample_rate=sample_rate,
            channels=frames.shape[1],
            duration_seconds=round(frames.shape[0] / sample_rate, 3),
        )
        return frames, sample_rate

    def iter_chunks(self, audio_path: str) -> Iterator[AudioChunk]:
        """Lazily yield compressed chunks for *audio_path*."""
        frames, sample_rate = self.decode(audio_path)
        yield from self.iter_pcm_chunks(frames, sample_rate)

    def iter_pcm_chunks(self, frames: np.ndarray, sample_rate: int) -> Iterator[AudioChunk]:
        """Yield compressed chunks for already-decoded PCM."""
        total_frames = frames.shape[0]
        total_seconds = total_frames / sample_rate
        window_frames = max(int(round(self._window_seconds * sample_rate)), 1)

        index = 0
        offset = 0
        while offset < total_frames:
            window = frames[offset: offset + window_frames]
            if window.shape[0] == 0:
                break

            start_seconds = offset / sample_rate
            duration_seconds = window.shape[0] / sample_rate

            pcm = quantize_int16(resample(to_mono(window), sample_rate, self._target_rate))
            data = self._encoder(pcm, self._target_rate)
            if not data:
                logger.info("audio_chunk_empty", index=index, start_seconds=start_seconds)
                break
            if len(data) > self._max_chunk_bytes:
                logger.error(
                    "audio_chunk_too_large",
                    index=index,
                    size_bytes=len(data),
                    max_bytes=self._max_chunk_bytes,
                )
                raise ChunkTooLargeError(len(data), self._max_chunk_bytes, index)

            is_final = start_seconds + duration_seconds >= total_seconds - self._epsilon
            chunk = AudioChunk(
                index=index,
                data=data,
                size_bytes=len(data),
                start_seconds=start_seconds,
                duration_seconds=duration_seconds,
                is_final=is_final,
                total_duration_seconds=total_seconds,
                mime_type=self._mime_type,
            )
            logger.info(
                "audio_chunk_encoded",
                index=index,
                start_seconds=round(start_seconds, 3),
                duration_seconds=round(duration_seconds, 3),
                size_bytes=len(data),
                is_final=is_final,
            )
            yield chunk

            index += 1
            offset += window.shape[0]
