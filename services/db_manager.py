"""
Database Manager for FaceRoll
Member store backed by PostgreSQL, using psycopg2.
"""

import psycopg2
import psycopg2.extras
import json
import logging
import uuid
from datetime import datetime, timedelta

from services.errors import StoreError, ValidationError
from services.models import Member, AttendanceRecord, STATUS_ACTIVE

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS members (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        email TEXT,
        face_signature JSONB,
        status TEXT NOT NULL DEFAULT 'active',
        photo_url TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE TABLE IF NOT EXISTS attendance (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        member_id UUID NOT NULL REFERENCES members(id) ON DELETE CASCADE,
        check_in_time TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE INDEX IF NOT EXISTS attendance_check_in_idx ON attendance (check_in_time DESC);
"""


def local_day_bounds(now=None):
    """Start and end of the current calendar day in local time (tz-aware)."""
    now = (now or datetime.now()).astimezone()
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def is_member_id(value) -> bool:
    """Member ids are UUIDs; anything else can never name a stored member."""
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


class DBManager:
    def __init__(self, database_url):
        """Initialize database connection"""
        self.database_url = database_url
        self.conn = None
        self.connect()

    def connect(self):
        """Establish database connection"""
        try:
            self.conn = psycopg2.connect(self.database_url)
            logger.info("Database connection established")
        except psycopg2.Error as e:
            logger.error(f"Database connection failed: {e}")
            raise StoreError(f"Database connection failed: {e}") from e

    def close(self):
        """Close database connection"""
        if self.conn:
            self.conn.close()
            logger.info("Database connection closed")

    def execute_query(self, query, params=None, fetch=True, commit=False):
        """Execute a database query"""
        try:
            with self.conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(query, params)

                if commit:
                    self.conn.commit()

                if fetch:
                    return cursor.fetchall()
                return None

        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error(f"Database error: {e}")
            raise StoreError(str(e)) from e

    def init_schema(self):
        """Create tables if they do not exist yet"""
        self.execute_query(SCHEMA, fetch=False, commit=True)
        logger.info("Database schema ready")

    # ==================== MEMBER OPERATIONS ====================

    def list_members(self):
        """Get all members, ordered by name"""
        rows = self.execute_query("SELECT * FROM members ORDER BY name")
        return [Member.from_row(r) for r in rows]

    def get_member(self, member_id):
        """Get member by ID"""
        if not is_member_id(member_id):
            return None
        results = self.execute_query("SELECT * FROM members WHERE id = %s", (member_id,))
        return Member.from_row(results[0]) if results else None

    def create_member(self, name, email=None, face_signature=None, status=STATUS_ACTIVE):
        """Add new member"""
        query = """
            INSERT INTO members (name, email, face_signature, status)
            VALUES (%s, %s, %s, %s)
            RETURNING *
        """
        signature_json = json.dumps(face_signature.to_dict()) if face_signature else None
        result = self.execute_query(
            query,
            (name, email or None, signature_json, status),
            commit=True
        )
        member = Member.from_row(result[0])
        logger.info(f"Created member {member.name} (ID: {member.id})")
        return member

    def update_member_face_signature(self, member_id, face_signature):
        """Replace a member's stored face signature"""
        if not is_member_id(member_id):
            return None
        query = """
            UPDATE members SET face_signature = %s, updated_at = NOW()
            WHERE id = %s
            RETURNING *
        """
        signature_json = json.dumps(face_signature.to_dict()) if face_signature else None
        result = self.execute_query(query, (signature_json, member_id), commit=True)
        return Member.from_row(result[0]) if result else None

    def update_member_photo(self, member_id, photo_url):
        """Store the public path of a member's registration photo"""
        if not is_member_id(member_id):
            return None
        query = """
            UPDATE members SET photo_url = %s, updated_at = NOW()
            WHERE id = %s
            RETURNING *
        """
        result = self.execute_query(query, (photo_url, member_id), commit=True)
        return Member.from_row(result[0]) if result else None

    # ==================== ATTENDANCE OPERATIONS ====================

    def record_attendance(self, member_id):
        """Append a check-in for a member. No deduplication."""
        if not is_member_id(member_id):
            raise ValidationError(f"Invalid member id: {member_id}")
        query = """
            INSERT INTO attendance (member_id)
            VALUES (%s)
            RETURNING id, member_id, check_in_time
        """
        result = self.execute_query(query, (member_id,), commit=True)
        return AttendanceRecord.from_row(result[0])

    def recent_attendance(self, limit=10):
        """Latest check-ins, newest first, with member names"""
        query = """
            SELECT a.id, a.member_id, a.check_in_time, m.name AS member_name
            FROM attendance a
            LEFT JOIN members m ON a.member_id = m.id
            ORDER BY a.check_in_time DESC
            LIMIT %s
        """
        return [AttendanceRecord.from_row(r) for r in self.execute_query(query, (limit,))]

    def member_attendance(self, member_id):
        """All check-ins of one member, newest first"""
        if not is_member_id(member_id):
            return []
        query = """
            SELECT id, member_id, check_in_time
            FROM attendance
            WHERE member_id = %s
            ORDER BY check_in_time DESC
        """
        return [AttendanceRecord.from_row(r) for r in self.execute_query(query, (member_id,))]

    def daily_attendance_count(self, now=None):
        """Number of check-ins during the current local calendar day"""
        start, end = local_day_bounds(now)
        query = """
            SELECT COUNT(*) AS count FROM attendance
            WHERE check_in_time >= %s AND check_in_time < %s
        """
        result = self.execute_query(query, (start, end))
        return int(result[0]['count']) if result else 0
