"""Recognition API: start/stop the attendance camera, poll its status"""
import logging
from flask import Blueprint, jsonify, current_app, Response

from services.errors import InitializationError, StoreError

logger = logging.getLogger(__name__)
recognition_bp = Blueprint('recognition', __name__)


@recognition_bp.route('/start', methods=['POST'])
def start_session():
    try:
        session = current_app.sessions.start()
        return jsonify({"status": session.status()})
    except InitializationError as e:
        return jsonify({"error": str(e)}), 503
    except StoreError as e:
        return jsonify({"error": f"Failed to load members: {e}"}), 503


@recognition_bp.route('/stop', methods=['POST'])
def stop_session():
    stopped = current_app.sessions.stop()
    return jsonify({"stopped": stopped, "status": current_app.sessions.status()})


@recognition_bp.route('/status', methods=['GET'])
def session_status():
    return jsonify({"status": current_app.sessions.status()})


@recognition_bp.route('/roster/refresh', methods=['POST'])
def refresh_roster():
    session = current_app.sessions.current
    if session is None or not session.active:
        return jsonify({"error": "No recognition session running"}), 409
    try:
        return jsonify({"roster_size": session.refresh_roster()})
    except StoreError as e:
        return jsonify({"error": str(e)}), 503


@recognition_bp.route('/frame', methods=['GET'])
def latest_frame():
    """Latest annotated camera frame as JPEG"""
    session = current_app.sessions.current
    if session is None or session.loop.latest_jpeg is None:
        return jsonify({"error": "No frame available"}), 404
    return Response(session.loop.latest_jpeg, mimetype='image/jpeg')
