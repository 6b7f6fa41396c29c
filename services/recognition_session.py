"""
Recognition Session: ties detection, debouncing, matching and recording together.

    DetectionLoop ──face──▶ RecognitionDebouncer ──last face──▶ evaluate()
                                                                  │
                             MatchPolicy.match(face, roster) ◀────┘
                                   │ match            │ none
                                   ▼                  ▼
                     AttendanceRecorder.record    'no_match' event
                                   │
              banner + cooldown, refresh recent, 'attendance_recorded' event

Events are delivered to listeners as listener(event_name, payload).
"""

import logging
import threading
from typing import Callable, List, Optional

from engines.face_matching.policy import MatchPolicy, NormalizedScorePolicy
from services.attendance_recorder import AttendanceRecorder
from services.debouncer import RecognitionDebouncer, TimerScheduler
from services.errors import StoreError
from services.frame_loop import DetectionLoop, LoopState

logger = logging.getLogger(__name__)

EVENT_ATTENDANCE_RECORDED = 'attendance_recorded'
EVENT_NO_MATCH = 'no_match'
EVENT_RECOGNITION_ERROR = 'recognition_error'
EVENT_BANNER_CLEARED = 'banner_cleared'

NO_MATCH_MESSAGE = "Face not recognized. Please register first or try again."


class RecognitionSession:
    """
    One start-to-stop run of the attendance camera.

    Owns the roster snapshot, debounce and banner timers for its lifetime.
    The member store, frame source and detector are injected.
    """

    def __init__(self, store, frame_source, detector,
                 policy: Optional[MatchPolicy] = None,
                 debounce_seconds: float = 1.0,
                 banner_seconds: float = 5.0,
                 recent_limit: int = 10,
                 store_timeout: Optional[float] = None,
                 frame_interval: float = 0.0,
                 scheduler=None):
        self.store = store
        self.policy = policy or NormalizedScorePolicy()
        self.banner_seconds = banner_seconds
        self.recent_limit = recent_limit
        self.scheduler = scheduler or TimerScheduler()

        self.loop = DetectionLoop(frame_source, detector, frame_interval=frame_interval)
        self.debouncer = RecognitionDebouncer(self.evaluate, delay=debounce_seconds,
                                              scheduler=self.scheduler)
        self.recorder = AttendanceRecorder(store, timeout=store_timeout)

        self.roster: list = []
        self.recent: list = []
        self.recognized = None            # MatchResult shown on the banner
        self.last_error: Optional[str] = None
        self.last_message: Optional[str] = None

        self._listeners: List[Callable] = []
        self._banner_lock = threading.Lock()
        self._banner_timer = None
        self._banner_generation = 0

    # ------------------------------------------------------------------ control

    def add_listener(self, listener: Callable) -> None:
        self._listeners.append(listener)

    def start(self) -> None:
        """
        Load the roster and start the detection loop.

        Raises:
            StoreError: the roster could not be loaded
            InitializationError: camera or model unavailable
        """
        self.refresh_roster()
        self.refresh_recent()
        self.debouncer.open()
        self.loop.add_detection_callback(self.on_face_detected)
        self.loop.start()
        logger.info(
            f"Recognition session started: {len(self.roster)} members, "
            f"policy: {self.policy.name}"
        )

    def stop(self) -> None:
        """Cancel the pending attempt, stop detection, release the camera."""
        self.debouncer.close()
        self.loop.stop()
        self.debouncer.cancel()
        self._cancel_banner_timer()
        self.recorder.shutdown()
        logger.info("Recognition session stopped")

    @property
    def state(self) -> LoopState:
        return self.loop.state

    @property
    def active(self) -> bool:
        return self.loop.state not in (LoopState.IDLE, LoopState.STOPPED)

    # ------------------------------------------------------------------ data

    def refresh_roster(self) -> int:
        self.roster = list(self.store.list_members())
        return len(self.roster)

    def refresh_recent(self) -> list:
        try:
            self.recent = list(self.store.recent_attendance(self.recent_limit))
        except StoreError as e:
            logger.warning(f"Failed to load recent attendance: {e}")
        return self.recent

    # ------------------------------------------------------------------ pipeline

    def on_face_detected(self, face) -> None:
        self.debouncer.submit(face)

    def evaluate(self, face):
        """
        Run one recognition attempt for the latest detected face.

        Returns:
            AttendanceRecord on a recorded match, otherwise None
        """
        if not self.roster:
            return None

        result = self.policy.match(face, self.roster)
        if result is None:
            self.last_message = NO_MATCH_MESSAGE
            logger.info("Face not recognized")
            self._emit(EVENT_NO_MATCH, {'message': NO_MATCH_MESSAGE})
            return None

        member = result.member
        try:
            record = self.recorder.record(member.id)
        except StoreError as e:
            self.last_error = str(e)
            self._emit(EVENT_RECOGNITION_ERROR, {'error': str(e), 'member_id': member.id})
            return None

        self.last_message = f"Welcome, {member.name}!"
        self._show_banner(result)
        self.refresh_recent()
        self._emit(EVENT_ATTENDANCE_RECORDED, {
            'member_id': member.id,
            'member_name': member.name,
            'score': round(result.score, 3),
            'policy': self.policy.name,
            'record': record.to_dict() if hasattr(record, 'to_dict') else record,
        })
        return record

    # ------------------------------------------------------------------ banner

    def _show_banner(self, result) -> None:
        with self._banner_lock:
            if self._banner_timer is not None:
                self._banner_timer.cancel()
            self._banner_generation += 1
            self.recognized = result
            self._banner_timer = self.scheduler.schedule(
                self.banner_seconds, self._clear_banner, self._banner_generation
            )

    def _clear_banner(self, generation: int) -> None:
        with self._banner_lock:
            if generation != self._banner_generation:
                return
            self.recognized = None
            self._banner_timer = None
        self._emit(EVENT_BANNER_CLEARED, {})

    def _cancel_banner_timer(self) -> None:
        with self._banner_lock:
            if self._banner_timer is not None:
                self._banner_timer.cancel()
                self._banner_timer = None
            self._banner_generation += 1

    def _emit(self, event: str, payload: dict) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception as e:
                logger.error(f"Session listener error ({event}): {e}")

    # ------------------------------------------------------------------ status

    def status(self) -> dict:
        recognized = self.recognized
        return {
            'state': self.loop.state.value,
            'message': self.loop.message,
            'last_message': self.last_message,
            'last_error': self.last_error or self.loop.last_error,
            'recognizing': self.debouncer.recognizing,
            'recognized': recognized.to_dict() if recognized else None,
            'policy': self.policy.name,
            'roster_size': len(self.roster),
            'recent_attendance': [r.to_dict() for r in self.recent],
            'detection': self.loop.get_stats(),
        }


class SessionManager:
    """Keeps at most one recognition session alive at a time."""

    def __init__(self, session_factory: Callable[[], RecognitionSession]):
        self.session_factory = session_factory
        self.current: Optional[RecognitionSession] = None
        self._listeners: List[Callable] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: Callable) -> None:
        self._listeners.append(listener)

    def start(self) -> RecognitionSession:
        """Start a fresh session; returns the running one if already active."""
        with self._lock:
            if self.current is not None and self.current.active:
                return self.current
            session = self.session_factory()
            for listener in self._listeners:
                session.add_listener(listener)
            self.current = session
        session.start()
        return session

    def stop(self) -> bool:
        with self._lock:
            session = self.current
        if session is None or not session.active:
            return False
        session.stop()
        return True

    def status(self) -> dict:
        session = self.current
        if session is None:
            return {'state': LoopState.IDLE.value, 'message': "No recognition session running."}
        return session.status()
