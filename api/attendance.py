"""Attendance API: recent check-ins, daily count, manual check-in"""
from flask import Blueprint, request, jsonify, current_app

from services.attendance_recorder import AttendanceRecorder
from services.errors import StoreError, ValidationError

attendance_bp = Blueprint('attendance', __name__)


@attendance_bp.route('/recent', methods=['GET'])
def get_recent_attendance():
    try:
        limit = int(request.args.get('limit', current_app.config['RECENT_ATTENDANCE_LIMIT']))
    except ValueError:
        raise ValidationError("limit must be an integer")
    try:
        records = current_app.db.recent_attendance(limit)
        return jsonify({"records": [r.to_dict() for r in records]})
    except StoreError as e:
        return jsonify({"error": str(e)}), 503


@attendance_bp.route('/today/count', methods=['GET'])
def get_today_count():
    try:
        return jsonify({"count": current_app.db.daily_attendance_count()})
    except StoreError as e:
        return jsonify({"error": str(e)}), 503


@attendance_bp.route('/', methods=['POST'])
def mark_attendance():
    """Manual check-in for a known member"""
    data = request.get_json(silent=True) or {}
    member_id = data.get('member_id')
    if not member_id:
        raise ValidationError("member_id is required")
    try:
        db = current_app.db
        if not db.get_member(member_id):
            return jsonify({"error": "Member not found"}), 404
        record = AttendanceRecorder(db).record(member_id)
        return jsonify({"record": record.to_dict()}), 201
    except StoreError as e:
        return jsonify({"error": str(e)}), 503
