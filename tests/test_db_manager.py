"""
Tests for DBManager with a mocked psycopg2 connection.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from engines.face_matching.signature import FaceSignature
from services import db_manager as db_module
from services.db_manager import DBManager, local_day_bounds
from services.errors import StoreError, ValidationError

ALICE_ID = '6f1c2a7e-3d4b-4c5a-9e8f-1a2b3c4d5e6f'


@pytest.fixture
def conn():
    connection = MagicMock()
    cursor = connection.cursor.return_value.__enter__.return_value
    cursor.fetchall.return_value = []
    return connection


@pytest.fixture
def cursor(conn):
    return conn.cursor.return_value.__enter__.return_value


@pytest.fixture
def db(conn):
    with patch.object(db_module.psycopg2, 'connect', return_value=conn):
        yield DBManager('postgresql://test')


class TestConnection:
    def test_connect_failure_raises_store_error(self):
        with patch.object(db_module.psycopg2, 'connect',
                          side_effect=psycopg2.OperationalError('refused')):
            with pytest.raises(StoreError, match='refused'):
                DBManager('postgresql://nowhere')

    def test_query_failure_rolls_back(self, db, conn, cursor):
        cursor.execute.side_effect = psycopg2.DatabaseError('boom')
        with pytest.raises(StoreError):
            db.list_members()
        conn.rollback.assert_called_once()


class TestMembers:
    def test_list_members(self, db, cursor):
        cursor.fetchall.return_value = [
            {'id': 'a1', 'name': 'Alice', 'email': None, 'status': 'active',
             'face_signature': {'xMin': 1, 'yMin': 2, 'width': 100, 'height': 110},
             'photo_url': None, 'created_at': datetime(2024, 1, 1)},
            {'id': 'b2', 'name': 'Bob', 'face_signature': None},
        ]
        members = db.list_members()
        assert [m.name for m in members] == ['Alice', 'Bob']
        assert members[0].face_signature == FaceSignature(width=100, height=110, x_min=1, y_min=2)
        assert members[1].face_signature is None
        assert 'ORDER BY name' in cursor.execute.call_args.args[0]

    def test_create_member_serializes_signature(self, db, conn, cursor):
        cursor.fetchall.return_value = [{'id': 'n1', 'name': 'New', 'email': 'n@x.io',
                                         'face_signature': {'width': 90, 'height': 95}}]
        member = db.create_member('New', 'n@x.io', FaceSignature(width=90, height=95))
        params = cursor.execute.call_args.args[1]
        assert params[0] == 'New'
        assert json.loads(params[2])['width'] == 90
        conn.commit.assert_called_once()
        assert member.id == 'n1'

    def test_get_member_missing(self, db):
        assert db.get_member(ALICE_ID) is None

    def test_list_members_survives_bad_signature(self, db, cursor):
        cursor.fetchall.return_value = [
            {'id': 'a1', 'name': 'Alice', 'face_signature': {'width': 0, 'height': 10}},
            {'id': 'b2', 'name': 'Bob', 'face_signature': [1, 2]},
            {'id': 'c3', 'name': 'Cy', 'face_signature': {'width': 80, 'height': 90}},
        ]
        members = db.list_members()
        assert [m.has_face_signature for m in members] == [False, False, True]


class TestMalformedIds:
    def test_lookups_skip_the_database(self, db, cursor):
        assert db.get_member('abc') is None
        assert db.member_attendance('abc') == []
        assert db.update_member_face_signature('abc', FaceSignature(10, 10)) is None
        assert db.update_member_photo('abc', '/uploads/faces/abc.jpg') is None
        cursor.execute.assert_not_called()

    def test_record_attendance_rejects_id(self, db, cursor):
        with pytest.raises(ValidationError):
            db.record_attendance('x')
        cursor.execute.assert_not_called()

    def test_api_reports_unknown_member(self, db, tmp_path):
        from app import create_app
        from config import Config

        class TestConfig(Config):
            TESTING = True
            UPLOAD_DIR = str(tmp_path)

        client = create_app(TestConfig, db=db, session_factory=lambda: None,
                            signature_capture=MagicMock()).test_client()
        assert client.get('/api/members/abc').status_code == 404
        assert client.post('/api/attendance', json={'member_id': 'x'}).status_code == 404
        assert client.get('/api/members/abc/attendance').get_json() == {'records': []}


class TestAttendance:
    def test_record_attendance(self, db, cursor):
        ts = datetime(2024, 3, 1, 8, 30)
        cursor.fetchall.return_value = [{'id': 'r1', 'member_id': ALICE_ID, 'check_in_time': ts}]
        record = db.record_attendance(ALICE_ID)
        assert record.member_id == ALICE_ID
        assert record.check_in_time == ts
        assert 'INSERT INTO attendance' in cursor.execute.call_args.args[0]

    def test_recent_attendance_newest_first(self, db, cursor):
        db.recent_attendance(5)
        query, params = cursor.execute.call_args.args
        assert 'ORDER BY a.check_in_time DESC' in query
        assert params == (5,)

    def test_daily_count_uses_local_day(self, db, cursor):
        cursor.fetchall.return_value = [{'count': 4}]
        assert db.daily_attendance_count() == 4
        start, end = cursor.execute.call_args.args[1]
        assert (end - start).days == 1
        assert start.hour == 0 and start.minute == 0


class TestLocalDayBounds:
    def test_bounds_contain_now(self):
        now = datetime(2024, 5, 17, 15, 42, tzinfo=timezone.utc)
        start, end = local_day_bounds(now)
        assert start <= now < end
        assert start.tzinfo is not None
