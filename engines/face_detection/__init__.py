"""
Face Detection Engine
Provides face detection (boxes + confidence) using InsightFace and
signature capture for registration.

Usage:
    from engines.face_detection import FaceDetector, SignatureCapture

    detector = FaceDetector(gpu_id=0)
    detector.acquire()
    faces = detector.detect(frame)
    signature = SignatureCapture(detector).capture(frame)
"""

from engines.face_detection.detector import FaceDetector, DetectedFace, BoundingBox
from engines.face_detection.capture import SignatureCapture

__all__ = [
    'FaceDetector', 'DetectedFace', 'BoundingBox',
    'SignatureCapture',
]
