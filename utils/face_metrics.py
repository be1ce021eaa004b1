"""
Face Metrics Model

Per-frame feature vector produced by the metrics extractor and the closed set
of emotion labels produced by the emotion classifier. Both are immutable
snapshots handed to consumers (HTTP API, avatar renderer).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class EmotionState(Enum):
    """Emotion labels shown by the robot face."""
    IDLE = "Idle"
    SLEEP = "Sleep"
    NEUTRAL = "Neutral"
    HAPPY = "Happy"
    ANGRY = "Angry"
    SURPRISED = "Surprised"
    CURIOUS = "Curious"
    WINK = "Wink"
    ANNOYED = "Annoyed"  # Published for clients; no classifier rule maps to it yet


class InsufficientLandmarksError(ValueError):
    """Raised when a landmark set lacks an index the extractor needs."""

    def __init__(self, supplied: int, required: int):
        self.supplied = supplied
        self.required = required
        super().__init__(
            f"Landmark set has {supplied} points; at least {required} are required "
            f"(highest index used is {required - 1}; 468-point face mesh expected)"
        )


@dataclass(frozen=True)
class FaceMetrics:
    """
    Geometric summary of one face in one frame.

    When is_face_detected is False every other field is zero/False and carries
    no meaning.
    """
    is_face_detected: bool = False
    left_eye_openness: float = 0.0  # Eye aspect ratio
    right_eye_openness: float = 0.0
    mouth_openness: float = 0.0  # Mouth aspect ratio
    eyebrow_vertical_pos: float = 0.0  # Brow y minus eye-top y; negative = raised
    head_yaw: float = 0.0  # Ratio-scaled, roughly -100..100
    head_pitch: float = 0.0
    head_roll: float = 0.0  # Degrees
    is_smiling: bool = False
    is_surprised: bool = False

    @property
    def avg_eye_openness(self) -> float:
        return (self.left_eye_openness + self.right_eye_openness) / 2.0

    @classmethod
    def no_face(cls) -> "FaceMetrics":
        return cls(is_face_detected=False)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys for JSON responses."""
        return {
            "isFaceDetected": self.is_face_detected,
            "leftEyeOpenness": self.left_eye_openness,
            "rightEyeOpenness": self.right_eye_openness,
            "avgEyeOpenness": self.avg_eye_openness,
            "mouthOpenness": self.mouth_openness,
            "eyebrowVerticalPos": self.eyebrow_vertical_pos,
            "headYaw": self.head_yaw,
            "headPitch": self.head_pitch,
            "headRoll": self.head_roll,
            "isSmiling": self.is_smiling,
            "isSurprised": self.is_surprised,
        }
