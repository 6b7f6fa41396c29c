"""
Face Detector: InsightFace detection-model wrapper.
Handles face detection in frames, returning structured DetectedFace objects.
GPU-accelerated via ONNX Runtime CUDA provider with CPU fallback.

The model is not loaded at construction: the recognition session calls
acquire() when it starts and release() when it stops.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from engines.face_matching.signature import FaceSignature

logger = logging.getLogger(__name__)

# Lazy import: InsightFace may not be installed in all environments
try:
    from insightface.app import FaceAnalysis
    INSIGHTFACE_AVAILABLE = True
except ImportError:
    INSIGHTFACE_AVAILABLE = False
    logger.warning("InsightFace not installed, face detection unavailable")


@dataclass
class BoundingBox:
    """Axis-aligned detection box in pixel coordinates (top-left + size)."""
    x_min: float
    y_min: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def to_dict(self) -> dict:
        return {'xMin': self.x_min, 'yMin': self.y_min,
                'width': self.width, 'height': self.height}


@dataclass
class DetectedFace:
    """A face detected in one frame. Never persisted directly."""
    box: BoundingBox
    score: float = 0.0       # Detection confidence in [0, 1]

    @property
    def width(self) -> float:
        return self.box.width

    @property
    def height(self) -> float:
        return self.box.height

    def to_signature(self) -> FaceSignature:
        """Freeze this detection into a storable signature (registration)."""
        return FaceSignature(width=self.box.width, height=self.box.height,
                             x_min=self.box.x_min, y_min=self.box.y_min)

    def to_dict(self) -> dict:
        return {
            'box': self.box.to_dict(),
            'score': round(self.score, 3),
        }


class FaceDetector:
    """
    Detects faces in images using an InsightFace detection model.

    Responsibilities:
        - Load the model on acquire() with GPU/CPU fallback
        - Detect faces and report boxes with confidence scores
        - Drop the model on release()

    Does NOT match faces; see engines.face_matching.
    """

    def __init__(self, model_name: str = 'buffalo_l', gpu_id: int = 0,
                 det_size: tuple = (640, 640), min_score: float = 0.0):
        self.model_name = model_name
        self.gpu_id = gpu_id
        self.det_size = det_size
        self.min_score = min_score
        self.app = None

    @property
    def available(self) -> bool:
        return self.app is not None

    def acquire(self) -> bool:
        """Load the model. Tries GPU first, falls back to CPU. Returns availability."""
        if self.available:
            return True
        if not INSIGHTFACE_AVAILABLE:
            logger.error("FaceDetector: InsightFace is not installed")
            return False

        provider_options = [
            ['CUDAExecutionProvider', 'CPUExecutionProvider'],
            ['CPUExecutionProvider'],
        ]
        for providers in provider_options:
            try:
                self.app = FaceAnalysis(name=self.model_name, providers=providers,
                                        allowed_modules=['detection'])
                self.app.prepare(ctx_id=self.gpu_id, det_size=self.det_size)
                logger.info(f"FaceDetector: {self.model_name} loaded with {providers}")
                return True
            except Exception as e:
                logger.warning(f"FaceDetector init failed with {providers}: {e}")
                self.app = None
        logger.error("FaceDetector: could not initialize with any provider")
        return False

    def release(self) -> None:
        if self.app is not None:
            logger.info(f"FaceDetector: {self.model_name} released")
        self.app = None

    def detect(self, frame: np.ndarray) -> List[DetectedFace]:
        """
        Detect all faces in a BGR frame.

        Args:
            frame: BGR image (numpy array, OpenCV format)

        Returns:
            List of DetectedFace, possibly empty. Model errors propagate to
            the caller.
        """
        if not self.available:
            return []

        results = []
        for face in self.app.get(frame):
            x1, y1, x2, y2 = (float(v) for v in face.bbox[:4])
            score = float(getattr(face, 'det_score', 0.0))
            if score < self.min_score:
                continue
            results.append(DetectedFace(
                box=BoundingBox(x_min=x1, y_min=y1, width=x2 - x1, height=y2 - y1),
                score=score,
            ))
        return results

    def get_stats(self) -> dict:
        return {
            'available': self.available,
            'model': self.model_name,
            'gpu_id': self.gpu_id,
            'det_size': self.det_size,
            'min_score': self.min_score,
        }
