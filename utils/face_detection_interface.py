"""
Face Detection Interface Module

This module defines an abstract interface for face detection implementations,
so the emotion pipeline can be driven by MediaPipe or by a test double
interchangeably.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Tuple
import numpy as np
from dataclasses import dataclass


@dataclass
class FaceDetectionResult:
    """
    Standardized face detection result.

    Landmarks are normalized image coordinates (x, y in [0, 1]) in the
    468-point face mesh topology, so the metrics extractor can consume them
    directly.
    """
    landmarks: np.ndarray  # Normalized landmarks (N, 2) or (N, 3) array
    bounding_box: Optional[Tuple[int, int, int, int]] = None  # (left, top, width, height) in pixels
    confidence: float = 1.0  # Detection confidence (0-1)
    frame_size: Optional[Tuple[int, int]] = None  # (width, height) of the source frame


class FaceDetectorInterface(ABC):
    """
    Abstract interface for face detection implementations.
    """

    @abstractmethod
    def detect_faces(self, image: np.ndarray) -> List[FaceDetectionResult]:
        """
        Detect faces in an image.

        Args:
            image: BGR image array (OpenCV format)

        Returns:
            List of FaceDetectionResult objects, one per detected face
            (empty when no face is visible)
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if this face detection method is available and configured.
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """
        Get the name of this face detection method (e.g. "mediapipe").
        """
        pass

    def close(self) -> None:
        """
        Clean up resources. Override if needed.
        """
        pass
