"""Members API: registration with face signature capture"""
import os
import base64
import binascii
import logging
from flask import Blueprint, request, jsonify, current_app

from services.errors import StoreError, ValidationError
from services.models import ensure_valid_member, signature_from_payload, STATUS_ACTIVE

logger = logging.getLogger(__name__)
members_bp = Blueprint('members', __name__)


def _decode_photo(photo):
    """Accept a bare base64 string or a data URL."""
    if not isinstance(photo, str):
        raise ValidationError("Invalid face data: photo must be a base64 string")
    if ',' in photo:
        photo = photo.split(',', 1)[1]
    try:
        return base64.b64decode(photo, validate=True)
    except (ValueError, binascii.Error) as e:
        raise ValidationError(f"Invalid face data: {e}") from e


def _capture_from_photo(image_bytes):
    capture = current_app.signature_capture
    if not capture.available and not capture.detector.acquire():
        return None, (jsonify({"error": "Face detection model unavailable"}), 503)
    try:
        signature = capture.capture_bytes(image_bytes)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if signature is None:
        raise ValidationError("No face detected. Please ensure your face is clearly visible.")
    return signature, None


def _save_photo(member_id, image_bytes):
    face_dir = os.path.join(current_app.config['UPLOAD_DIR'], 'faces')
    os.makedirs(face_dir, exist_ok=True)
    filename = f"{member_id}.jpg"
    with open(os.path.join(face_dir, filename), 'wb') as f:
        f.write(image_bytes)
    return f"/uploads/faces/{filename}"


@members_bp.route('/', methods=['GET'])
def get_members():
    try:
        members = current_app.db.list_members()
        search = request.args.get('search', '').strip().lower()
        if search:
            members = [m for m in members if
                       search in m.name.lower() or search in (m.email or '').lower()]
        return jsonify({"members": [m.to_dict() for m in members]})
    except StoreError as e:
        return jsonify({"error": str(e)}), 503


@members_bp.route('/<member_id>', methods=['GET'])
def get_member(member_id):
    try:
        member = current_app.db.get_member(member_id)
        if not member:
            return jsonify({"error": "Member not found"}), 404
        return jsonify({"member": member.to_dict()})
    except StoreError as e:
        return jsonify({"error": str(e)}), 503


@members_bp.route('/', methods=['POST'])
def add_member():
    """
    Register a member.

    Body: name, optional email, and either face_signature (detection box)
    or photo (base64 image the signature is captured from).
    """
    data = request.get_json(silent=True) or {}
    name = str(data.get('name') or '').strip()
    email = str(data.get('email') or '').strip() or None
    status = data.get('status', STATUS_ACTIVE)

    ensure_valid_member(name, email, status)

    image_bytes = None
    if data.get('face_signature'):
        signature = signature_from_payload(data['face_signature'])
    elif data.get('photo'):
        image_bytes = _decode_photo(data['photo'])
        signature, error = _capture_from_photo(image_bytes)
        if error:
            return error
    else:
        raise ValidationError("Please capture a face image before submitting.")

    try:
        member = current_app.db.create_member(name, email, signature, status=status)
        if image_bytes:
            try:
                photo_url = _save_photo(member.id, image_bytes)
                member = current_app.db.update_member_photo(member.id, photo_url) or member
            except OSError as e:
                logger.warning(f"Error saving photo for member {member.id}: {e}")
        return jsonify({"message": "Member registered", "member": member.to_dict()}), 201
    except StoreError as e:
        return jsonify({"error": str(e)}), 503


@members_bp.route('/<member_id>/face-signature', methods=['PUT'])
def update_face_signature(member_id):
    data = request.get_json(silent=True) or {}
    signature = signature_from_payload(data.get('face_signature'))
    try:
        member = current_app.db.update_member_face_signature(member_id, signature)
        if not member:
            return jsonify({"error": "Member not found"}), 404
        return jsonify({"member": member.to_dict()})
    except StoreError as e:
        return jsonify({"error": str(e)}), 503


@members_bp.route('/<member_id>/attendance', methods=['GET'])
def get_member_attendance(member_id):
    try:
        records = current_app.db.member_attendance(member_id)
        return jsonify({"records": [r.to_dict() for r in records]})
    except StoreError as e:
        return jsonify({"error": str(e)}), 503
