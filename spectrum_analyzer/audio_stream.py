"""Audio input streaming via PyAudio callbacks (float32, interleaved frames)."""

import logging
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pyaudio

from . import config
from .errors import DeviceError

logger = logging.getLogger(__name__)

_STATUS_NAMES: Dict[int, str] = {
    pyaudio.paInputUnderflow: "input underflow",
    pyaudio.paInputOverflow: "input overflow",
}


class AudioInputStream:
    """Open an input device and deliver each driver buffer to ``on_frame``.

    Frames are flat float32 arrays interleaved across ``CHANNELS`` channels.
    ``on_frame`` runs on the PortAudio thread and must not block.
    """

    def __init__(
        self,
        on_frame: Callable[[np.ndarray], object],
        CHUNK: int = config.BUFFER_SIZE,
        input_device_index: Optional[int] = None,
    ) -> None:
        """Query the device, then open and start a callback-driven stream."""
        self.on_frame: Callable[[np.ndarray], object] = on_frame
        self.CHUNK: int = CHUNK
        self.RATE: int = 0
        self.CHANNELS: int = 0
        self.input_device_name: Optional[str] = None
        self.callbacks: int = 0
        self.status_events: int = 0
        self._pending_status: int = 0
        self.p = pyaudio.PyAudio()
        try:
            self.__select_device(input_device_index)
            self.__open_stream()
        except Exception:
            self.__terminate()
            raise

    def get_params(self) -> Dict[str, int]:
        """Return ``{"RATE","CHUNK","CHANNELS"}`` mapping."""
        return {"RATE": self.RATE, "CHUNK": self.CHUNK, "CHANNELS": self.CHANNELS}

    @staticmethod
    def list_input_devices() -> List[Dict]:
        """Return info dicts of devices with at least one input channel."""
        p = pyaudio.PyAudio()
        devices: List[Dict] = []
        try:
            for k in range(p.get_device_count()):
                dev = p.get_device_info_by_index(k)
                if int(dev["maxInputChannels"]) > 0:
                    devices.append(dev)
        finally:
            p.terminate()
        return devices

    def __select_device(self, input_device_index: Optional[int]) -> None:
        """Use the given device index, or the host's default input device."""
        try:
            if input_device_index is None:
                dev = self.p.get_default_input_device_info()
            else:
                dev = self.p.get_device_info_by_index(input_device_index)
        except (IOError, OSError, ValueError) as exc:
            raise DeviceError(f"No input device available: {exc}") from exc

        device_name = dev["name"]
        if type(device_name) is bytes:
            device_name = device_name.decode("cp932")  # for windows
        self.input_device_index: int = int(dev["index"])
        self.input_device_name = device_name
        self.RATE = int(dev["defaultSampleRate"])
        self.CHANNELS = int(dev["maxInputChannels"])
        if self.CHANNELS < 1 or self.RATE <= 0:
            raise DeviceError(
                f"Device {device_name!r} has no supported input configuration "
                f"(channels={self.CHANNELS}, rate={self.RATE})"
            )
        logger.info(
            "Input device: %s (index %d, RATE %d, CHANNELS %d, CHUNK %d)",
            self.input_device_name,
            self.input_device_index,
            self.RATE,
            self.CHANNELS,
            self.CHUNK,
        )

    def __open_stream(self) -> None:
        """Open a float32 callback stream on the selected device and start it."""
        try:
            self.stream = self.p.open(
                format=pyaudio.paFloat32,
                channels=self.CHANNELS,
                rate=self.RATE,
                input=True,
                output=False,
                frames_per_buffer=self.CHUNK,
                input_device_index=self.input_device_index,
                stream_callback=self._callback,
            )
        except (IOError, OSError, ValueError) as exc:
            raise DeviceError(f"Could not open input stream: {exc}") from exc
        self.stream.start_stream()

    def _callback(
        self,
        in_data: Optional[bytes],
        frame_count: int,
        time_info: Dict[str, float],
        status_flags: int,
    ) -> Tuple[None, int]:
        """PortAudio callback: copy the buffer out and hand it off."""
        self.callbacks += 1
        if status_flags:
            # reported later by log_status(); no I/O on the audio thread
            self._pending_status |= status_flags
            self.status_events += 1
        if in_data is not None:
            # PortAudio reuses its buffer after we return, so copy.
            self.on_frame(np.frombuffer(in_data, dtype=np.float32).copy())
        return (None, pyaudio.paContinue)

    def log_status(self) -> int:
        """Log status flags raised since the last call; return those flags."""
        flags, self._pending_status = self._pending_status, 0
        if flags:
            names = [n for flag, n in _STATUS_NAMES.items() if flags & flag]
            logger.warning(
                "Audio stream status: %s (%d callbacks flagged so far)",
                ", ".join(names) or flags,
                self.status_events,
            )
        return flags

    def is_active(self) -> bool:
        """True while PortAudio is still delivering buffers."""
        stream = getattr(self, "stream", None)
        return bool(stream is not None and stream.is_active())

    def __terminate(self) -> None:
        """Stop and release the stream and the PyAudio host."""
        stream = getattr(self, "stream", None)
        if stream is not None:
            try:
                if stream.is_active():
                    stream.stop_stream()
                stream.close()
            except (IOError, OSError) as exc:
                logger.debug("Stream close error: %s", exc)
            self.stream = None
        if self.p is not None:
            self.p.terminate()
            self.p = None

    def close(self) -> None:
        """Close resources."""
        self.__terminate()

    def __enter__(self) -> "AudioInputStream":
        """Context enter."""
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Context exit."""
        self.__terminate()
