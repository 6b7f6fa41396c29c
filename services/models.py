"""
Member and attendance records as the rest of the app sees them.
Rows coming back from the store are converted with from_row().
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from engines.face_matching.signature import FaceSignature, parse_signature
from services.errors import ValidationError

logger = logging.getLogger(__name__)

STATUS_ACTIVE = 'active'
STATUS_INACTIVE = 'inactive'
MEMBER_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MIN_NAME_LENGTH = 2


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


@dataclass
class Member:
    id: Optional[str]
    name: str
    email: Optional[str] = None
    face_signature: Optional[FaceSignature] = None
    status: str = STATUS_ACTIVE
    photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def has_face_signature(self) -> bool:
        return self.face_signature is not None

    @classmethod
    def from_row(cls, row: dict) -> 'Member':
        member_id = str(row['id']) if row.get('id') is not None else None
        try:
            signature = parse_signature(row.get('face_signature'))
        except ValueError as e:
            # unusable signature: the member stays listed but is never matched
            logger.warning(f"Ignoring malformed face signature for member {member_id}: {e}")
            signature = None
        return cls(
            id=member_id,
            name=row['name'],
            email=row.get('email'),
            face_signature=signature,
            status=row.get('status') or STATUS_ACTIVE,
            photo_url=row.get('photo_url'),
            created_at=row.get('created_at'),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'face_signature': self.face_signature.to_dict() if self.face_signature else None,
            'has_face_signature': self.has_face_signature,
            'status': self.status,
            'photo_url': self.photo_url,
            'created_at': _iso(self.created_at),
        }


@dataclass
class AttendanceRecord:
    id: Optional[str]
    member_id: str
    check_in_time: datetime
    member_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> 'AttendanceRecord':
        return cls(
            id=str(row['id']) if row.get('id') is not None else None,
            member_id=str(row['member_id']),
            check_in_time=row['check_in_time'],
            member_name=row.get('member_name'),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'member_id': self.member_id,
            'member_name': self.member_name,
            'check_in_time': _iso(self.check_in_time),
        }


def validate_member_data(name, email=None, status=STATUS_ACTIVE) -> List[str]:
    """Return a list of validation messages; empty when the input is fine."""
    errors = []
    if not name or not str(name).strip():
        errors.append("Name is required")
    elif len(str(name).strip()) < MIN_NAME_LENGTH:
        errors.append(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if email and not EMAIL_RE.match(str(email)):
        errors.append("Invalid email address")
    if status not in MEMBER_STATUSES:
        errors.append(f"Status must be one of {', '.join(MEMBER_STATUSES)}")
    return errors


def ensure_valid_member(name, email=None, status=STATUS_ACTIVE) -> None:
    """Raise ValidationError listing every problem with the input."""
    errors = validate_member_data(name, email, status)
    if errors:
        raise ValidationError("Validation failed", details=errors)


def signature_from_payload(data) -> FaceSignature:
    """Parse a posted face signature, reporting problems as ValidationError."""
    try:
        return FaceSignature.from_dict(data)
    except ValueError as e:
        raise ValidationError(f"Invalid face data: {e}") from e
