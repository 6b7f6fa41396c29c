"""
Face Signature: geometric descriptor stored per member.
Width, height and position of the last captured detection box. Stands in
for a real facial embedding; see comparator.py for how two are scored.
"""

import json
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FaceSignature:
    """Detection box captured at registration time."""
    width: float
    height: float
    x_min: float = 0.0
    y_min: float = 0.0

    def to_dict(self) -> dict:
        # camelCase keys match what the member table already holds
        return {
            'xMin': self.x_min,
            'yMin': self.y_min,
            'width': self.width,
            'height': self.height,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'FaceSignature':
        """
        Build a signature from a stored/posted dict.

        Accepts camelCase (xMin) or snake_case (x_min) position keys; an extra
        'score' key from a raw detection box is ignored.

        Raises:
            ValueError: width/height missing, non-numeric or not positive
        """
        if not isinstance(data, dict):
            raise ValueError(f"Unsupported signature type: {type(data)}")
        try:
            width = float(data['width'])
            height = float(data['height'])
        except (KeyError, TypeError, ValueError):
            raise ValueError("Signature needs numeric 'width' and 'height'")
        if width <= 0 or height <= 0:
            raise ValueError("Signature width and height must be positive")

        x_min = data.get('xMin', data.get('x_min', 0.0))
        y_min = data.get('yMin', data.get('y_min', 0.0))
        return cls(width=width, height=height,
                   x_min=float(x_min or 0.0), y_min=float(y_min or 0.0))


def parse_signature(raw) -> Optional[FaceSignature]:
    """
    Coerce whatever the store hands back into a FaceSignature.

    Args:
        raw: FaceSignature, dict, JSON string, or None

    Returns:
        FaceSignature, or None when raw is empty
    """
    if raw is None or raw == '' or raw == {}:
        return None
    if isinstance(raw, FaceSignature):
        return raw
    if isinstance(raw, str):
        raw = json.loads(raw)
    return FaceSignature.from_dict(raw)
