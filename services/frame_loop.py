"""
Detection Loop: the frame-capture-and-detect cycle of a recognition session.

    idle → initializing → detecting ⇄ evaluating
                  ↘            ↘
                    stopped ←── stop() / frame source failure

One worker thread consumes batches() (a lazy generator of (frame, faces)
per cycle) and dispatches every detected face to the registered callbacks
before the next frame is read, so cycles never overlap.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple

import cv2
import numpy as np

from services.errors import InitializationError, DetectionError

logger = logging.getLogger(__name__)

BOX_COLOR = (0, 255, 0)   # BGR
NO_FACES_MESSAGE = "No faces detected. Please position yourself in front of the camera."


class LoopState(Enum):
    IDLE = 'idle'
    INITIALIZING = 'initializing'
    DETECTING = 'detecting'
    EVALUATING = 'evaluating'
    STOPPED = 'stopped'


class DetectionLoop:
    """
    Owns the frame source and detector for the length of one session.

    Responsibilities:
        - Acquire frame source + detector on start(), fail fast if either is missing
        - Run detection cycles on a worker thread
        - Annotate the latest frame and keep it as JPEG for previews
        - Dispatch DetectedFace objects to callbacks
        - Guarantee no callback fires once stop() has returned
    """

    def __init__(self, frame_source, detector, frame_interval: float = 0.0,
                 join_timeout: float = 3.0, jpeg_quality: int = 80):
        self.frame_source = frame_source
        self.detector = detector
        self.frame_interval = frame_interval
        self.join_timeout = join_timeout
        self.jpeg_quality = jpeg_quality

        self.state = LoopState.IDLE
        self.message = "Start the session to begin detection."
        self.last_error: Optional[str] = None
        self.latest_jpeg: Optional[bytes] = None
        self.frame_count = 0
        self.detection_errors = 0
        self.last_detection_error: Optional[DetectionError] = None

        self._callbacks: List[Callable] = []
        self._lock = threading.RLock()
        self._release_lock = threading.Lock()
        self.stop_event = threading.Event()
        self.worker: Optional[threading.Thread] = None
        self._source_held = False
        self._detector_held = False

    @property
    def running(self) -> bool:
        return self.worker is not None and self.worker.is_alive()

    def add_detection_callback(self, callback: Callable) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def start(self) -> None:
        """
        Acquire the frame source and detector, then start detecting.

        Raises:
            InitializationError: camera or model unavailable; the loop ends up
                stopped and the caller must call start() again
        """
        if self.running:
            return

        self.state = LoopState.INITIALIZING
        self.last_error = None
        self.message = "Loading face detection model..."

        try:
            if not self.detector.acquire():
                raise InitializationError("Face detection model failed to load")
            self._detector_held = True

            self.frame_source.acquire()
            self._source_held = True
        except Exception as e:
            error = e if isinstance(e, InitializationError) else InitializationError(str(e))
            logger.error(f"❌ Recognition loop init failed: {error}")
            self._release_resources()
            self._mark_stopped(str(error))
            raise error from e

        self.stop_event.clear()
        self.state = LoopState.DETECTING
        self.message = "Camera started. Face detection active."
        self.worker = threading.Thread(target=self._run, name="detection-loop", daemon=True)
        self.worker.start()
        logger.info("Detection loop started")

    def stop(self) -> None:
        """Cancel the next cycle, wait for the current one, release the camera."""
        with self._lock:
            self.stop_event.set()
            self._callbacks.clear()
            if self.state != LoopState.STOPPED:
                self.state = LoopState.STOPPED
                self.message = "Face detection stopped."

        if self.worker and self.worker.is_alive() and self.worker is not threading.current_thread():
            self.worker.join(timeout=self.join_timeout)
            if self.worker.is_alive():
                logger.warning("Detection cycle still running after stop, camera released anyway")
        self.worker = None

        self._release_resources()
        logger.info("Detection loop stopped")

    def batches(self) -> Iterator[Tuple[np.ndarray, list]]:
        """
        Yield (frame, faces) once per detection cycle until stopped.

        Ends when stop() is called or the frame source stops delivering.
        A failing detect call is logged and yields an empty face list.
        """
        while not self.stop_event.is_set():
            frame = self.frame_source.read()
            if frame is None:
                if not self.stop_event.is_set():
                    self.last_error = "Frame source stopped delivering frames"
                    logger.error(f"❌ {self.last_error}")
                return

            try:
                faces = self.detector.detect(frame)
            except Exception as e:
                self.last_detection_error = DetectionError(str(e))
                self.detection_errors += 1
                logger.error(f"Face detection error: {self.last_detection_error}")
                faces = []

            self.frame_count += 1
            yield frame, faces

    def _run(self) -> None:
        for frame, faces in self.batches():
            with self._lock:
                if self.stop_event.is_set():
                    break
                self.state = LoopState.EVALUATING
                self._annotate(frame, faces)
                self._dispatch(faces)
                self.state = LoopState.DETECTING

            if self.frame_interval and self.stop_event.wait(self.frame_interval):
                break

        # frame source failed on its own, not through stop()
        if not self.stop_event.is_set():
            with self._lock:
                self.stop_event.set()
                self._callbacks.clear()
            self._release_resources()
            self._mark_stopped(self.last_error)

    def _dispatch(self, faces) -> None:
        if faces:
            self.message = f"Detected {len(faces)} face(s)"
        else:
            self.message = NO_FACES_MESSAGE

        for face in faces:
            for callback in list(self._callbacks):
                try:
                    callback(face)
                except Exception as e:
                    logger.error(f"Detection callback error: {e}", exc_info=True)

    def _annotate(self, frame, faces) -> None:
        if not isinstance(frame, np.ndarray):
            return
        try:
            canvas = frame.copy()
            for face in faces:
                box = face.box
                x1, y1 = int(box.x_min), int(box.y_min)
                x2, y2 = int(box.x_min + box.width), int(box.y_min + box.height)
                cv2.rectangle(canvas, (x1, y1), (x2, y2), BOX_COLOR, 2)
            ok, buf = cv2.imencode('.jpg', canvas, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
            if ok:
                self.latest_jpeg = buf.tobytes()
        except cv2.error as e:
            logger.warning(f"Frame annotation failed: {e}")

    def _release_resources(self) -> None:
        with self._release_lock:
            if self._source_held:
                self._source_held = False
                self.frame_source.release()
            if self._detector_held:
                self._detector_held = False
                self.detector.release()

    def _mark_stopped(self, error: Optional[str]) -> None:
        with self._lock:
            self.state = LoopState.STOPPED
            if error:
                self.last_error = error
                self.message = f"Face detection stopped: {error}"

    def get_stats(self) -> dict:
        return {
            'state': self.state.value,
            'message': self.message,
            'frames': self.frame_count,
            'detection_errors': self.detection_errors,
            'last_detection_error': str(self.last_detection_error) if self.last_detection_error else None,
            'last_error': self.last_error,
            'detector': self.detector.get_stats(),
        }
