"""
Shared fakes for service and API tests: member store, manual scheduler,
scripted frame source and detector.
"""

import itertools
import threading
from datetime import datetime, timedelta

import numpy as np
import pytest

from engines.face_detection.detector import DetectedFace, BoundingBox
from engines.face_matching.signature import FaceSignature
from services.errors import InitializationError, StoreError
from services.models import Member, AttendanceRecord


class FakeMemberStore:
    """In-memory member store with switchable failures."""

    def __init__(self, members=None):
        self.members = list(members or [])
        self.records = []
        self.fail_writes = False
        self.fail_reads = False
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1, 9, 0, 0)

    def list_members(self):
        if self.fail_reads:
            raise StoreError("database unavailable")
        return list(self.members)

    def get_member(self, member_id):
        return next((m for m in self.members if m.id == member_id), None)

    def create_member(self, name, email=None, face_signature=None, status='active'):
        if self.fail_writes:
            raise StoreError("insert failed")
        member = Member(id=f"m{next(self._ids)}", name=name, email=email,
                        face_signature=face_signature, status=status,
                        created_at=self._clock)
        self.members.append(member)
        return member

    def update_member_face_signature(self, member_id, face_signature):
        member = self.get_member(member_id)
        if member:
            member.face_signature = face_signature
        return member

    def update_member_photo(self, member_id, photo_url):
        member = self.get_member(member_id)
        if member:
            member.photo_url = photo_url
        return member

    def record_attendance(self, member_id):
        if self.fail_writes:
            raise StoreError("insert failed")
        self._clock += timedelta(seconds=1)
        record = AttendanceRecord(id=f"a{next(self._ids)}", member_id=member_id,
                                  check_in_time=self._clock)
        self.records.append(record)
        return record

    def recent_attendance(self, limit=10):
        if self.fail_reads:
            raise StoreError("database unavailable")
        return sorted(self.records, key=lambda r: r.check_in_time, reverse=True)[:limit]

    def member_attendance(self, member_id):
        return [r for r in self.recent_attendance(len(self.records)) if r.member_id == member_id]

    def daily_attendance_count(self):
        return len(self.records)


class ManualScheduler:
    """Scheduler whose timers only fire when the test advances the clock."""

    class Handle:
        def __init__(self, due, fn, args):
            self.due = due
            self.fn = fn
            self.args = args
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def schedule(self, delay, fn, *args):
        handle = self.Handle(self.now + delay, fn, args)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled and h.due > self.now]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.handles.remove(handle)
            self.now = handle.due
            handle.fn(*handle.args)
        self.now = target


class FakeFrameSource:
    """Delivers `frames` blank frames (forever when None), counts releases."""

    def __init__(self, frames=None, fail_acquire=False):
        self.frames = frames
        self.fail_acquire = fail_acquire
        self.acquired = 0
        self.released = 0
        self.reads = 0

    def acquire(self):
        if self.fail_acquire:
            raise InitializationError("Camera permission denied")
        self.acquired += 1

    def read(self):
        if self.frames is not None and self.reads >= self.frames:
            return None
        self.reads += 1
        return np.zeros((48, 64, 3), dtype=np.uint8)

    def release(self):
        self.released += 1


class FakeDetector:
    """Returns the same faces for every frame; can block or raise on demand."""

    def __init__(self, faces=None, load_ok=True, error=None):
        self.faces = list(faces or [])
        self.load_ok = load_ok
        self.error = error
        self.gate = None               # threading.Event to hold detect() mid-cycle
        self.entered = threading.Event()
        self.calls = 0
        self.released = 0
        self.available = False

    def acquire(self):
        self.available = self.load_ok
        return self.load_ok

    def release(self):
        self.released += 1
        self.available = False

    def detect(self, frame):
        self.calls += 1
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return list(self.faces)

    def get_stats(self):
        return {'available': self.available, 'calls': self.calls}


def make_face(width, height, x=0.0, y=0.0, score=0.95):
    return DetectedFace(box=BoundingBox(x_min=x, y_min=y, width=width, height=height), score=score)


def make_member(member_id, name, width=None, height=None):
    signature = FaceSignature(width=width, height=height) if width is not None else None
    return Member(id=member_id, name=name, face_signature=signature)


@pytest.fixture
def store():
    return FakeMemberStore()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def frame_source():
    return FakeFrameSource()


@pytest.fixture
def detector():
    return FakeDetector()


@pytest.fixture
def face_factory():
    return make_face


@pytest.fixture
def member_factory():
    return make_member


@pytest.fixture
def make_source():
    return FakeFrameSource


@pytest.fixture
def make_detector():
    return FakeDetector
