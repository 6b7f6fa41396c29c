"""Recognition metrics for the dashboard."""

import logging

logger = logging.getLogger(__name__)


def recognition_metrics(store) -> dict:
    """
    Summarize registration coverage and today's attendance.

    Raises:
        StoreError: propagated from the member store
    """
    members = store.list_members()
    with_faces = [m for m in members if m.face_signature is not None]
    total = len(members)

    return {
        'total_members': total,
        'registered_faces': len(with_faces),
        'registration_rate': round(len(with_faces) / total, 3) if total else 0.0,
        'today_attendance': store.daily_attendance_count(),
    }
