"""
Emotion Classifier Module

Rule-based mapping from a FaceMetrics vector to an EmotionState. Rules are
checked in a fixed order and the first match wins. The only memory is the
time a face was last seen, used to tell Idle from Sleep when no face is in
view. Time is always supplied by the caller in milliseconds.

Not thread-safe: one writer per classifier (and per LastFaceSeen cell).
"""

import time
from dataclasses import dataclass
from typing import Optional

import config
from utils.face_metrics import EmotionState, FaceMetrics


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds, for callers without their own frame clock."""
    return time.monotonic() * 1000.0


@dataclass
class LastFaceSeen:
    """Single-writer cell holding when a face was last classified (ms)."""
    timestamp_ms: float


class EmotionClassifier:
    """
    Classifies one frame's metrics into an EmotionState.

    Usage:
        classifier = EmotionClassifier(now_ms=monotonic_ms())
        state = classifier.classify(metrics, monotonic_ms())
    """

    IDLE_THRESHOLD_MS = 2000.0  # Kept for clients; no separate idle bucket

    EYES_CLOSED_MAX = 0.12
    WINK_MIN_ASYMMETRY = 0.25
    MOUTH_OPEN_MIN = 0.35
    EYES_WIDE_MIN = 0.38
    EYES_RELAXED_MAX = 0.25
    BROW_NOT_RAISED_MIN = -0.025
    MOUTH_TIGHT_MAX = 0.2
    YAW_CURIOUS_MIN = 12.0
    PITCH_CURIOUS_MIN = 8.0
    BROW_RAISED_MAX = -0.065

    def __init__(
        self,
        now_ms: Optional[float] = None,
        last_seen: Optional[LastFaceSeen] = None,
        sleep_threshold_ms: Optional[float] = None,
    ):
        """
        Args:
            now_ms: Construction time; the last-seen time starts here (default: monotonic_ms())
            last_seen: Existing cell to read and update instead of creating one
            sleep_threshold_ms: No-face duration above which the label is Sleep
                                (default: config.EMOTION_SLEEP_THRESHOLD_MS)
        """
        if last_seen is None:
            last_seen = LastFaceSeen(monotonic_ms() if now_ms is None else float(now_ms))
        self.last_seen = last_seen
        self.sleep_threshold_ms = float(
            config.EMOTION_SLEEP_THRESHOLD_MS if sleep_threshold_ms is None else sleep_threshold_ms
        )

    @property
    def last_face_seen_ms(self) -> float:
        return self.last_seen.timestamp_ms

    def reset(self, now_ms: float) -> None:
        """Forget the previous face; the no-face timer restarts at now_ms."""
        self.last_seen.timestamp_ms = float(now_ms)

    def classify(self, metrics: FaceMetrics, now_ms: float) -> EmotionState:
        """
        Classify one frame.

        Args:
            metrics: Feature vector for this frame
            now_ms: Current time in milliseconds (same clock as construction)

        Returns:
            EmotionState; never raises
        """
        if not metrics.is_face_detected:
            elapsed = now_ms - self.last_seen.timestamp_ms
            if elapsed > self.sleep_threshold_ms:
                return EmotionState.SLEEP
            return EmotionState.IDLE

        self.last_seen.timestamp_ms = float(now_ms)

        avg_eye = metrics.avg_eye_openness
        mouth = metrics.mouth_openness
        brow = metrics.eyebrow_vertical_pos
        is_mouth_open = mouth > self.MOUTH_OPEN_MIN

        if avg_eye < self.EYES_CLOSED_MAX:
            return EmotionState.SLEEP
        if abs(metrics.left_eye_openness - metrics.right_eye_openness) > self.WINK_MIN_ASYMMETRY:
            return EmotionState.WINK
        # Derived from raw ratios; metrics.is_surprised uses different thresholds
        if is_mouth_open and avg_eye > self.EYES_WIDE_MIN:
            return EmotionState.SURPRISED
        if metrics.is_smiling or (is_mouth_open and avg_eye < self.EYES_RELAXED_MAX):
            return EmotionState.HAPPY
        if brow > self.BROW_NOT_RAISED_MIN and mouth < self.MOUTH_TIGHT_MAX:
            return EmotionState.ANGRY
        if (abs(metrics.head_yaw) > self.YAW_CURIOUS_MIN
                or abs(metrics.head_pitch) > self.PITCH_CURIOUS_MIN
                or brow < self.BROW_RAISED_MAX):
            return EmotionState.CURIOUS
        return EmotionState.NEUTRAL
