"""
Metrics Extractor Module

Turns one face's MediaPipe face-mesh landmarks into a FaceMetrics feature
vector: eye aspect ratios, mouth aspect ratio, eyebrow height, and a coarse
head pose (yaw/pitch as distance ratios, roll as the inter-eye angle).

Landmarks are expected in normalized image coordinates, but every ratio metric
is scale-invariant, so pixel coordinates give the same ratios. Only x and y
are used; a z column is ignored.
"""

import math
from typing import Optional, Sequence

import numpy as np

import config
from utils.face_detection_interface import FaceDetectionResult
from utils.face_metrics import FaceMetrics, InsufficientLandmarksError


class MetricsExtractor:
    """
    Stateless landmark -> FaceMetrics converter.

    Usage:
        extractor = MetricsExtractor()
        metrics = extractor.extract(landmarks)      # None -> no face
        metrics = extractor.extract_first(faces)    # first face only
    """

    # Eye aspect ratio points, ordered p1..p6 (p1/p4 horizontal corners)
    LEFT_EYE_EAR = (33, 160, 158, 133, 153, 144)
    RIGHT_EYE_EAR = (362, 385, 387, 263, 373, 380)

    MOUTH_LEFT = 78
    MOUTH_RIGHT = 308
    MOUTH_TOP = 13
    MOUTH_BOTTOM = 14

    LEFT_BROW = 105
    LEFT_EYE_TOP = 159
    RIGHT_BROW = 334
    RIGHT_EYE_TOP = 386

    NOSE_TIP = 1
    LEFT_EYE_INNER = 133
    RIGHT_EYE_INNER = 362
    FOREHEAD = 10
    CHIN = 152

    SMILE_MIN_MAR = 0.1
    SURPRISE_MIN_MAR = 0.4
    SURPRISE_MIN_EAR = 0.35

    REQUIRED_INDICES = frozenset(
        LEFT_EYE_EAR + RIGHT_EYE_EAR
        + (MOUTH_LEFT, MOUTH_RIGHT, MOUTH_TOP, MOUTH_BOTTOM)
        + (LEFT_BROW, LEFT_EYE_TOP, RIGHT_BROW, RIGHT_EYE_TOP)
        + (NOSE_TIP, LEFT_EYE_INNER, RIGHT_EYE_INNER, FOREHEAD, CHIN)
    )
    MIN_LANDMARKS = max(REQUIRED_INDICES) + 1

    def __init__(self, epsilon: Optional[float] = None):
        """
        Args:
            epsilon: Distances below this count as zero (default: config.LANDMARK_EPSILON)
        """
        self.epsilon = float(config.LANDMARK_EPSILON if epsilon is None else epsilon)

    def extract(self, landmarks) -> FaceMetrics:
        """
        Compute metrics for a single face.

        Args:
            landmarks: (N, 2) or (N, 3) array-like of landmark coordinates,
                       or None when no face was detected

        Returns:
            FaceMetrics with is_face_detected=True, or FaceMetrics.no_face()
            for None / an empty set

        Raises:
            InsufficientLandmarksError: a required index is missing
            ValueError: the landmarks are not a 2-D array of finite coordinates
        """
        if landmarks is None:
            return FaceMetrics.no_face()
        pts = np.asarray(landmarks, dtype=np.float64)
        if pts.size == 0:
            return FaceMetrics.no_face()
        if pts.ndim != 2 or pts.shape[1] < 2:
            raise ValueError(f"Expected landmarks of shape (N, 2) or (N, 3), got {pts.shape}")
        if pts.shape[0] < self.MIN_LANDMARKS:
            raise InsufficientLandmarksError(pts.shape[0], self.MIN_LANDMARKS)
        pts = pts[:, :2]
        if not np.isfinite(pts).all():
            raise ValueError("Landmark x/y coordinates must be finite numbers")

        left_ear = self._eye_aspect_ratio(pts, self.LEFT_EYE_EAR)
        right_ear = self._eye_aspect_ratio(pts, self.RIGHT_EYE_EAR)
        mar = self._mouth_aspect_ratio(pts)

        left_brow = pts[self.LEFT_BROW, 1] - pts[self.LEFT_EYE_TOP, 1]
        right_brow = pts[self.RIGHT_BROW, 1] - pts[self.RIGHT_EYE_TOP, 1]
        brow = (left_brow + right_brow) / 2.0

        yaw, pitch, roll = self._head_pose(pts)

        # Right corner above the lower-lip point reads as an upturned mouth
        corner_up = pts[self.MOUTH_RIGHT, 1] < pts[self.MOUTH_BOTTOM, 1]

        return FaceMetrics(
            is_face_detected=True,
            left_eye_openness=left_ear,
            right_eye_openness=right_ear,
            mouth_openness=mar,
            eyebrow_vertical_pos=float(brow),
            head_yaw=yaw,
            head_pitch=pitch,
            head_roll=roll,
            is_smiling=bool(mar > self.SMILE_MIN_MAR and corner_up),
            is_surprised=bool(mar > self.SURPRISE_MIN_MAR and left_ear > self.SURPRISE_MIN_EAR),
        )

    def extract_first(self, faces: Optional[Sequence]) -> FaceMetrics:
        """Compute metrics for the first landmark set in faces; empty -> no face."""
        if faces is None or len(faces) == 0:
            return FaceMetrics.no_face()
        return self.extract(faces[0])

    def from_detections(self, results: Optional[Sequence[FaceDetectionResult]]) -> FaceMetrics:
        """Compute metrics for the first FaceDetectionResult; empty -> no face."""
        if not results:
            return FaceMetrics.no_face()
        return self.extract(results[0].landmarks)

    def _ratio(self, numerator: float, denominator: float) -> float:
        if denominator < self.epsilon:
            return 0.0
        return float(numerator / denominator)

    @staticmethod
    def _dist(pts: np.ndarray, a: int, b: int) -> float:
        dx = pts[a, 0] - pts[b, 0]
        dy = pts[a, 1] - pts[b, 1]
        return math.hypot(dx, dy)

    def _eye_aspect_ratio(self, pts: np.ndarray, idx: Sequence[int]) -> float:
        p1, p2, p3, p4, p5, p6 = idx
        vertical = self._dist(pts, p2, p6) + self._dist(pts, p3, p5)
        horizontal = self._dist(pts, p1, p4)
        return self._ratio(vertical, 2.0 * horizontal)

    def _mouth_aspect_ratio(self, pts: np.ndarray) -> float:
        vertical = self._dist(pts, self.MOUTH_TOP, self.MOUTH_BOTTOM)
        horizontal = self._dist(pts, self.MOUTH_LEFT, self.MOUTH_RIGHT)
        return self._ratio(vertical, horizontal)

    def _head_pose(self, pts: np.ndarray):
        """Return (yaw, pitch, roll). Yaw/pitch are ratio * 100, roll is degrees."""
        d_left = self._dist(pts, self.NOSE_TIP, self.LEFT_EYE_INNER)
        d_right = self._dist(pts, self.NOSE_TIP, self.RIGHT_EYE_INNER)
        yaw = self._ratio(d_right - d_left, d_right + d_left) * 100.0

        d_top = self._dist(pts, self.NOSE_TIP, self.FOREHEAD)
        d_bottom = self._dist(pts, self.NOSE_TIP, self.CHIN)
        pitch = self._ratio(d_bottom - d_top, d_bottom + d_top) * 100.0

        dx = pts[self.RIGHT_EYE_INNER, 0] - pts[self.LEFT_EYE_INNER, 0]
        dy = pts[self.RIGHT_EYE_INNER, 1] - pts[self.LEFT_EYE_INNER, 1]
        roll = math.degrees(math.atan2(dy, dx))
        return yaw, pitch, float(roll)
