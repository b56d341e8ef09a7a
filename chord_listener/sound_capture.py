"""
Microphone capture through sounddevice.
"""
import logging
import queue
import threading

import sounddevice as sd

from chord_listener.common import RATE, CHANNELS, BLOCK_SIZE
from chord_listener.errors import AcquisitionError
from chord_listener.producers import AudioProducer

logger = logging.getLogger("chord_listener.sound_capture")


def _permission_error(e):
    return AcquisitionError(
        f"Microphone permission denied: {e}. "
        "On macOS: System Settings > Privacy & Security > Microphone")


class SoundDeviceProducer(AudioProducer):
    """
    Microphone producer backed by a sounddevice input stream.

    The PortAudio callback only copies samples into a queue; a single
    delivery thread hands them to the registered callback, so slow processing
    never blocks the audio thread.
    """

    def __init__(self, sample_rate=RATE, block_size=BLOCK_SIZE, device=None, channels=CHANNELS):
        super().__init__(sample_rate)
        self.block_size = block_size
        self.device = device
        self.channels = channels
        self._stream = None
        self._queue = queue.Queue()
        self._worker = None
        self._running = threading.Event()

    def _audio_callback(self, indata, frames, time_info, status):
        """PortAudio callback: copy the first channel and enqueue it."""
        if status:
            logger.debug("Input stream status: %s", status)
        self._queue.put(indata[:, 0].copy())

    def _delivery_loop(self):
        while self._running.is_set():
            try:
                samples = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            if samples is None:
                break
            try:
                self._deliver(samples)
            except Exception:
                logger.exception("Chunk callback failed")

    def acquire(self):
        if self._stream is not None:
            return
        self._queue = queue.Queue()
        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                device=self.device,
                channels=self.channels,
                dtype='float32',
                callback=self._audio_callback,
            )
        except PermissionError as e:
            raise _permission_error(e) from e
        except (sd.PortAudioError, OSError, ValueError) as e:
            raise AcquisitionError(f"Could not open audio input: {e}") from e

        try:
            stream.start()
        except (sd.PortAudioError, OSError) as e:
            stream.close()
            if isinstance(e, PermissionError):
                raise _permission_error(e) from e
            raise AcquisitionError(f"Could not start audio input: {e}") from e

        self._stream = stream
        self._running.set()
        self._worker = threading.Thread(target=self._delivery_loop, name="audio-delivery", daemon=True)
        self._worker.start()
        logger.info("Audio input started: %s Hz, %s samples per chunk", self.sample_rate, self.block_size)

    def release(self):
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except sd.PortAudioError as e:
            logger.warning("Error closing audio input: %s", e)

        self._running.clear()
        self._queue.put(None)
        worker, self._worker = self._worker, None
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=1.0)
        logger.info("Audio input released")


def list_input_devices():
    """
    List audio input devices.

    Returns:
        list of (device_id, name, max_input_channels, is_default) tuples
    """
    devices = sd.query_devices()
    default_input = sd.default.device[0]
    return [
        (i, device['name'], device['max_input_channels'], i == default_input)
        for i, device in enumerate(devices)
        if device['max_input_channels'] > 0
    ]
