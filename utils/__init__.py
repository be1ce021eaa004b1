"""
Utilities package for Robo Face Emotion Engine.

This package contains the landmark metrics extractor, the rule-based emotion
classifier, avatar expression targets, and the face detection and video
source adapters used by the live pipeline.

The MediaPipe detector is not imported here; import
utils.mediapipe_detector directly when live capture is needed.
"""

from .face_metrics import FaceMetrics, EmotionState, InsufficientLandmarksError
from .face_detection_interface import FaceDetectorInterface, FaceDetectionResult
from .metrics_extractor import MetricsExtractor
from .emotion_classifier import EmotionClassifier, LastFaceSeen, monotonic_ms
from .avatar_expression import AvatarExpression, expression_for

__all__ = [
    'FaceMetrics',
    'EmotionState',
    'InsufficientLandmarksError',
    'FaceDetectorInterface',
    'FaceDetectionResult',
    'MetricsExtractor',
    'EmotionClassifier',
    'LastFaceSeen',
    'monotonic_ms',
    'AvatarExpression',
    'expression_for',
]
