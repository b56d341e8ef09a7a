"""
Detection pipeline: turns a stream of audio chunks into smoothed chord results.

Pipeline per delivered chunk:
1. Queue the chunk until a full analysis frame is available
2. Measure frame RMS and drop frames below the loudness floor
3. Extract the frame's chroma and rotate it onto a C-referenced vector
4. Average chroma vectors over the smoothing window
5. When a window closes, match the mean against the chord templates and
   extract the dominant notes
"""
import logging
import threading
import time

from chord_listener.accumulator import FrameAccumulator
from chord_listener.chroma import rotate_chroma, extract_dominant_notes
from chord_listener.config import DetectorConfig
from chord_listener.errors import AcquisitionError, FrameExtractionError
from chord_listener.features import create_extractor
from chord_listener.result import DetectionResult, INITIALIZING, ACTIVE, IDLE
from chord_listener.smoothing import SmoothingAggregator, passes_loudness_gate
from chord_listener.templates import build_chord_templates, detect_chord

logger = logging.getLogger("chord_listener.pipeline")


class DetectionPipeline:
    """
    One detection session over an audio producer.

    Lifecycle: idle -> start() -> active -> stop() -> idle. The current
    result survives stop() and is replaced by a blank result on the next
    successful start().

    Chunk callbacks, start() and stop() may run on different threads;
    pipeline state is guarded by a lock. Feature extraction runs outside the
    lock, and its output is dropped if the session ended in the meantime.
    """

    def __init__(self, producer, config=None, extractor_factory=create_extractor,
                 output_handler=None, clock=time.monotonic):
        """
        Args:
            producer: AudioProducer delivering sample chunks
            config: DetectorConfig, dict, argparse namespace or None
            extractor_factory: callable(config, sample_rate) returning an
                object with rms(frame) and chroma(frame)
            output_handler: OutputHandler receiving results and state changes
            clock: callable returning monotonic time in seconds
        """
        if not isinstance(config, DetectorConfig):
            config = DetectorConfig(config)
        self.producer = producer
        self.config = config
        self.output_handler = output_handler
        self.templates = build_chord_templates()
        self._extractor_factory = extractor_factory
        self._clock = clock

        self._lock = threading.Lock()
        self.state = IDLE
        self._session = 0
        self._extractor = None
        self._result = DetectionResult()

        self.accumulator = FrameAccumulator(config.buffer_size)
        self.aggregator = SmoothingAggregator(config.smoothing_interval, clock=clock)

        # Diagnostics
        self.frames_processed = 0
        self.frames_gated = 0
        self.frames_failed = 0

    @property
    def is_active(self):
        return self.state == ACTIVE

    def current_result(self):
        """Latest DetectionResult; readable in any state."""
        with self._lock:
            return self._result

    def start(self):
        """
        Start a session.

        Raises:
            AcquisitionError: the extractor or the audio producer could not be
                initialized. The pipeline stays idle.
        """
        with self._lock:
            if self.state != IDLE:
                return
            self.state = INITIALIZING
        self._notify_state(INITIALIZING)

        try:
            extractor = self._create_extractor()
            self.producer.set_callback(self.on_chunk)
            self._acquire_producer()
        except AcquisitionError as e:
            self.producer.set_callback(None)
            with self._lock:
                self.state = IDLE
            logger.error("Could not start detection: %s", e)
            self._notify_state(IDLE)
            raise

        with self._lock:
            self._session += 1
            self._extractor = extractor
            self.accumulator.reset()
            self.aggregator.reset(self._clock())
            self._result = DetectionResult()
            self.frames_processed = 0
            self.frames_gated = 0
            self.frames_failed = 0
            self.state = ACTIVE
        logger.info("Detection started (%s Hz, frame size %s)",
                    self.producer.sample_rate, self.config.buffer_size)
        self._notify_state(ACTIVE)

    def _create_extractor(self):
        try:
            return self._extractor_factory(self.config, self.producer.sample_rate)
        except AcquisitionError:
            raise
        except Exception as e:
            raise AcquisitionError(f"Feature extractor unavailable: {e}") from e

    def _acquire_producer(self):
        try:
            self.producer.acquire()
        except AcquisitionError:
            raise
        except Exception as e:
            raise AcquisitionError(f"Audio input unavailable: {e}") from e

    def stop(self):
        """Stop the session and release the producer. No-op when idle."""
        with self._lock:
            if self.state != ACTIVE:
                return
            self.state = IDLE
            self._extractor = None
            self.accumulator.reset()
            self.aggregator.reset(self._clock())

        self.producer.set_callback(None)
        self.producer.release()
        logger.info("Detection stopped after %s frames (%s below loudness floor, %s failed)",
                    self.frames_processed, self.frames_gated, self.frames_failed)
        self._notify_state(IDLE)

    def on_chunk(self, samples):
        """Chunk-arrival callback registered with the producer."""
        with self._lock:
            if self.state != ACTIVE:
                return
            session = self._session
            extractor = self._extractor
            self.accumulator.push(samples)
            frame = self.accumulator.try_emit_frame()

        if frame is not None:
            self._process_frame(frame, extractor, session)

    def _process_frame(self, frame, extractor, session):
        chroma = None
        try:
            rms = extractor.rms(frame)
            loud = passes_loudness_gate(rms, self.config.loudness_floor)
            if loud:
                chroma = extractor.chroma(frame)
                if len(chroma) != 12:
                    raise FrameExtractionError(f"Expected 12 chroma bins, got {len(chroma)}")
        except FrameExtractionError as e:
            logger.warning("Skipping frame: %s", e)
            self._count_failure(session)
            return
        except Exception:
            logger.exception("Feature extraction failed, skipping frame")
            self._count_failure(session)
            return

        with self._lock:
            if self.state != ACTIVE or self._session != session:
                logger.debug("Discarding frame from an ended session")
                return
            if not loud:
                self.frames_gated += 1
                logger.debug("Frame below loudness floor (RMS=%.4f)", rms)
                return

            self.aggregator.accept(rotate_chroma(chroma, self.config.pitch_shift))
            self.frames_processed += 1
            mean = self.aggregator.maybe_flush(self._clock())
            if mean is None:
                return

            chord, score = detect_chord(mean, self.templates)
            notes = extract_dominant_notes(mean, self.config.note_threshold)
            self._result = DetectionResult.detected(chord, notes, score, mean)
            result = self._result

        logger.debug("Detected %s (%.3f)", result.chord, result.score)
        self._notify_result(result)

    def _count_failure(self, session):
        with self._lock:
            if self._session == session:
                self.frames_failed += 1

    def _notify_state(self, state):
        if self.output_handler is not None:
            self.output_handler.state_changed(state, self.current_result())

    def _notify_result(self, result):
        if self.output_handler is not None:
            self.output_handler.result_updated(result)
