import asyncio
import logging
import os
from collections.abc import AsyncIterator

import janus
import numpy as np
import sounddevice as sd

logger = logging.getLogger(__name__)

QUEUE_MAX_FRAMES = 200


def float_to_pcm16(samples: np.ndarray, gain: float = 1.0) -> bytes:
    scaled = np.clip(samples * gain, -1.0, 1.0)
    return (scaled * 32767).astype(np.int16).tobytes()


class SounddeviceCapture:
    def __init__(
        self,
        device: str | int | None = None,
        sample_rate: int = 16000,
        channels: int = 1,
        frame_duration_ms: int = 50,
        gain: float = 1.0,
    ) -> None:
        self._device = device or None
        self._sample_rate = sample_rate
        self._channels = channels
        self._frame_duration_ms = frame_duration_ms
        self._frame_size = int(sample_rate * frame_duration_ms / 1000)
        self._gain = gain
        self._stream: sd.InputStream | None = None
        self._queue: janus.Queue[bytes] | None = None
        self._dropped_frames = 0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def frame_size(self) -> int:
        return self._frame_size

    async def start(self) -> None:
        self._queue = janus.Queue(maxsize=QUEUE_MAX_FRAMES)
        self._dropped_frames = 0
        queue = self._queue

        def audio_callback(indata: np.ndarray, frames: int, time_info, status) -> None:
            if status:
                logger.warning("Audio capture status: %s", status)
            try:
                queue.sync_q.put_nowait(float_to_pcm16(indata, self._gain))
            except janus.SyncQueueFull:
                self._dropped_frames += 1
            except (janus.SyncQueueShutDown, RuntimeError):
                pass

        device = self._resolve_device()
        self._stream = sd.InputStream(
            device=device,
            samplerate=self._sample_rate,
            channels=self._channels,
            dtype="float32",
            blocksize=self._frame_size,
            callback=audio_callback,
        )
        self._stream.start()
        logger.info(
            "Audio capture started (device=%s, rate=%d, channels=%d, frame=%dms)",
            device, self._sample_rate, self._channels, self._frame_duration_ms,
        )

    async def stop(self) -> None:
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            logger.info("Audio capture stopped")
        if self._dropped_frames:
            logger.warning("Dropped %d audio frames (queue full)", self._dropped_frames)
        if self._queue:
            self._queue.close()
            await self._queue.wait_closed()
            self._queue = None

    async def read_frames(self) -> AsyncIterator[bytes]:
        queue = self._queue
        if not queue:
            return
        while True:
            try:
                frame = await asyncio.wait_for(queue.async_q.get(), timeout=1.0)
                yield frame
            except asyncio.TimeoutError:
                if self._queue is None:
                    break
                continue
            except (janus.AsyncQueueShutDown, RuntimeError):
                break

    def _resolve_device(self) -> str | int | None:
        if self._device is None:
            return None
        if isinstance(self._device, int):
            return self._device
        try:
            return int(self._device)
        except ValueError:
            pass
        for i, dev in enumerate(sd.query_devices()):
            if self._device.lower() in dev["name"].lower() and dev["max_input_channels"] > 0:
                logger.info("Resolved device '%s' -> %d (%s)", self._device, i, dev["name"])
                return i
        os.environ["PIPEWIRE_NODE"] = self._device
        logger.info("Device '%s' not in PortAudio, set PIPEWIRE_NODE for PipeWire routing", self._device)
        return None
