"""
Camera frame source wrapping an OpenCV VideoCapture.
acquire() opens the device, read() returns one BGR frame, release() closes it.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from services.errors import InitializationError

logger = logging.getLogger(__name__)


class CameraSource:
    """Frame source backed by a local capture device or stream URL."""

    def __init__(self, device=0, width: int = 640, height: int = 480):
        self.device = device
        self.width = width
        self.height = height
        self.cap = None

    @property
    def opened(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def acquire(self) -> None:
        """Open the capture device. Raises InitializationError if it won't open."""
        cap = cv2.VideoCapture(self.device)
        if not cap.isOpened():
            cap.release()
            raise InitializationError(
                f"Camera {self.device} failed to open; check permissions or "
                f"whether another app is using it"
            )
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap = cap
        logger.info(f"Camera {self.device} opened ({self.width}x{self.height})")

    def read(self) -> Optional[np.ndarray]:
        """Next frame, or None when the device stops delivering."""
        if self.cap is None:
            return None
        ret, frame = self.cap.read()
        if not ret:
            return None
        return frame

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info(f"Camera {self.device} released")
