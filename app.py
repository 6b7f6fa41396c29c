"""
FaceRoll Backend - Main Application
Face-recognition attendance: member registration, recognition sessions
and check-in history.
"""

import os
import logging
from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

logger = logging.getLogger(__name__)

socketio = SocketIO()


def configure_logging(config=Config):
    """Stream + file logging, configured once at process start."""
    log_dir = os.path.dirname(config.LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(config.LOG_FILE),
            logging.StreamHandler()
        ]
    )


def build_session_factory(db, config=Config):
    """Each call wires a fresh camera, detector and policy into a new session."""
    from engines.face_detection.detector import FaceDetector
    from engines.face_matching.policy import build_policy
    from services.frame_source import CameraSource
    from services.recognition_session import RecognitionSession

    def factory():
        return RecognitionSession(
            store=db,
            frame_source=CameraSource(config.CAMERA_INDEX, config.FRAME_WIDTH, config.FRAME_HEIGHT),
            detector=FaceDetector(model_name=config.DETECTOR_MODEL,
                                  gpu_id=config.DETECTOR_GPU_ID,
                                  min_score=config.DETECTION_MIN_SCORE),
            policy=build_policy(config.MATCH_POLICY,
                                threshold=config.MATCH_THRESHOLD,
                                max_difference=config.LEGACY_MAX_DIFFERENCE,
                                normalization=config.COMPARATOR_NORMALIZATION),
            debounce_seconds=config.DEBOUNCE_SECONDS,
            banner_seconds=config.BANNER_COOLDOWN_SECONDS,
            recent_limit=config.RECENT_ATTENDANCE_LIMIT,
            store_timeout=config.STORE_TIMEOUT_SECONDS,
            frame_interval=config.FRAME_INTERVAL_SECONDS,
        )

    return factory


def _broadcast(event, payload):
    """Push session events to browser clients on the /stream namespace."""
    socketio.emit(event, payload, namespace='/stream')


def create_app(config=Config, db=None, session_factory=None, signature_capture=None):
    """
    Build the Flask app.

    db, session_factory and signature_capture default to the PostgreSQL
    store, camera-backed sessions and an InsightFace capture helper.
    """
    from engines.face_detection import FaceDetector, SignatureCapture
    from services.errors import ValidationError
    from services.recognition_session import SessionManager

    app = Flask(__name__)
    app.config.from_object(config)
    app.url_map.strict_slashes = False  # Allow both /api/members and /api/members/

    CORS(app, resources={r"/*": {"origins": "*"}})
    socketio.init_app(app, cors_allowed_origins="*")

    if db is None:
        from services.db_manager import DBManager
        db = DBManager(config.DATABASE_URL)
        db.init_schema()
    app.db = db

    app.sessions = SessionManager(session_factory or build_session_factory(db, config))
    app.sessions.add_listener(_broadcast)

    app.signature_capture = signature_capture or SignatureCapture(
        FaceDetector(model_name=config.DETECTOR_MODEL,
                     gpu_id=config.DETECTOR_GPU_ID,
                     min_score=config.DETECTION_MIN_SCORE)
    )

    from api.members import members_bp
    from api.attendance import attendance_bp
    from api.recognition import recognition_bp
    from api.stats import stats_bp

    app.register_blueprint(members_bp, url_prefix='/api/members')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')
    app.register_blueprint(recognition_bp, url_prefix='/api/recognition')
    app.register_blueprint(stats_bp, url_prefix='/api/stats')

    # Serve uploaded registration photos
    @app.route('/uploads/<path:filename>')
    def serve_uploads(filename):
        return send_from_directory(os.path.abspath(app.config['UPLOAD_DIR']), filename)

    @app.route('/api')
    def api_info():
        return jsonify({
            "message": "FaceRoll Backend API",
            "version": "1.0.0",
            "status": "online"
        })

    @app.errorhandler(ValidationError)
    def validation_error(error):
        body = {"error": str(error)}
        if error.details:
            body["details"] = error.details
        return jsonify(body), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal error: {error}")
        return jsonify({"error": "Internal server error"}), 500

    @app.route('/health')
    def health():
        try:
            count = app.db.daily_attendance_count()
            return jsonify({
                "status": "healthy",
                "database": "connected",
                "today_attendance": count
            })
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return jsonify({
                "status": "unhealthy",
                "error": str(e)
            }), 500

    return app


def main():
    configure_logging(Config)
    app = create_app(Config)
    logger.info(f"FaceRoll backend on {Config.HOST}:{Config.PORT} (policy: {Config.MATCH_POLICY})")
    try:
        socketio.run(app, host=Config.HOST, port=Config.PORT, allow_unsafe_werkzeug=True)
    finally:
        app.sessions.stop()
        app.db.close()


if __name__ == '__main__':
    main()
