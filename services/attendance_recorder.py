"""
Attendance Recorder: writes a confirmed match to the member store.
Store failures surface as StoreError; nothing is retried or rolled back.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Optional

from services.errors import StoreError

logger = logging.getLogger(__name__)


class AttendanceRecorder:
    """
    Records check-ins through the member store.

    With timeout set, the store call runs on a worker thread and an expiry is
    reported as StoreError. The abandoned call may still complete in the
    background.
    """

    def __init__(self, store, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1) if timeout else None

    def record(self, member_id):
        """
        Record attendance for a member.

        Returns:
            AttendanceRecord created by the store

        Raises:
            StoreError: the store call failed or timed out
        """
        try:
            if self._executor is None:
                record = self.store.record_attendance(member_id)
            else:
                future = self._executor.submit(self.store.record_attendance, member_id)
                record = future.result(timeout=self.timeout)
        except FutureTimeout:
            logger.error(f"Attendance write for member {member_id} timed out after {self.timeout}s")
            raise StoreError(f"Attendance write timed out after {self.timeout}s")
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Attendance marking error: {e}")
            raise StoreError(str(e)) from e

        logger.info(f"✅ Attendance recorded for member {member_id}")
        return record

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
