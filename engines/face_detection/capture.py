"""
Signature Capture: turns a registration photo into a stored face signature.
Uses FaceDetector for the detection, keeps the largest face.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from engines.face_detection.detector import FaceDetector
from engines.face_matching.signature import FaceSignature

logger = logging.getLogger(__name__)


class SignatureCapture:
    """
    Generates face signatures for member registration.

    Responsibilities:
        - Decode uploaded image bytes
        - Single-frame capture (largest face)
    """

    def __init__(self, detector: FaceDetector):
        self.detector = detector

    @property
    def available(self) -> bool:
        return self.detector.available

    def capture(self, frame: np.ndarray) -> Optional[FaceSignature]:
        """
        Capture a signature from a single image.
        Uses the largest face if multiple are found.

        Returns:
            FaceSignature, or None if no face found
        """
        if not self.available:
            logger.warning("SignatureCapture: detector not available")
            return None

        faces = self.detector.detect(frame)
        if not faces:
            return None

        largest = max(faces, key=lambda f: f.box.area)
        return largest.to_signature()

    def capture_bytes(self, image_bytes: bytes) -> Optional[FaceSignature]:
        """Decode JPEG/PNG bytes with OpenCV and capture from the result."""
        nparr = np.frombuffer(image_bytes, np.uint8)
        frame = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
        if frame is None:
            raise ValueError("Could not decode image")
        return self.capture(frame)
