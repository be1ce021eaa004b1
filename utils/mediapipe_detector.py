"""
MediaPipe Face Landmarker Implementation

FaceDetectorInterface backed by the MediaPipe Tasks Face Landmarker in VIDEO
running mode. It returns the face mesh landmarks (468 mesh points plus 10 iris
points) in normalized coordinates, exactly as the metrics extractor expects
them. The model bundle is fetched once with ensure_model_file().
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional

import cv2
import mediapipe as mp
import numpy as np
import requests
from mediapipe.tasks.python import vision
from mediapipe.tasks.python.core.base_options import BaseOptions

import config
from utils.emotion_classifier import monotonic_ms
from utils.face_detection_interface import FaceDetectorInterface, FaceDetectionResult

logger = logging.getLogger(__name__)


def ensure_model_file(path: Optional[str] = None, url: Optional[str] = None) -> Path:
    """
    Return the path of the Face Landmarker model, downloading it if missing.

    Args:
        path: Where the .task bundle lives (default: config.FACE_LANDMARKER_MODEL_PATH)
        url: Where to download it from (default: config.FACE_LANDMARKER_MODEL_URL)

    Raises:
        requests.RequestException: the download failed; nothing is written
    """
    model_path = Path(path or config.FACE_LANDMARKER_MODEL_PATH)
    if model_path.is_file():
        return model_path

    url = url or config.FACE_LANDMARKER_MODEL_URL
    logger.info("Downloading face landmarker model from %s to %s", url, model_path)
    response = requests.get(url, timeout=config.MODEL_DOWNLOAD_TIMEOUT_SEC)
    response.raise_for_status()

    model_path.parent.mkdir(parents=True, exist_ok=True)
    partial = model_path.with_name(model_path.name + ".part")
    partial.write_bytes(response.content)
    partial.replace(model_path)
    return model_path


def _clamp_confidence(value: float) -> float:
    return max(0.01, min(0.99, float(value)))


class MediaPipeFaceDetector(FaceDetectorInterface):
    """
    MediaPipe Face Landmarker detector.

    Only one face is tracked; the emotion pipeline ignores any others.
    VIDEO mode needs strictly increasing timestamps, so each call gets the
    detector clock value or last timestamp + 1, whichever is larger.
    """

    def __init__(
        self,
        model_path: Optional[str] = None,
        min_detection_confidence: float = 0.5,
        min_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        clock: Callable[[], float] = monotonic_ms,
    ):
        """
        Args:
            model_path: Face Landmarker .task bundle (downloaded when missing)
            min_detection_confidence: Minimum confidence for face detection (0-1)
            min_presence_confidence: Minimum face presence score before re-detecting (0-1)
            min_tracking_confidence: Minimum confidence for landmark tracking (0-1)
            clock: Millisecond clock used for VIDEO-mode timestamps
        """
        self.model_path = ensure_model_file(model_path)
        self._clock = clock
        self._last_timestamp_ms = -1

        options = vision.FaceLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(self.model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_faces=1,
            min_face_detection_confidence=_clamp_confidence(min_detection_confidence),
            min_face_presence_confidence=_clamp_confidence(min_presence_confidence),
            min_tracking_confidence=_clamp_confidence(min_tracking_confidence),
            output_face_blendshapes=False,
        )
        self.landmarker = vision.FaceLandmarker.create_from_options(options)
        self._available = True
        logger.info("Face landmarker ready (model=%s)", self.model_path)

    def _next_timestamp_ms(self) -> int:
        ts = max(self._last_timestamp_ms + 1, int(self._clock()))
        self._last_timestamp_ms = ts
        return ts

    def detect_faces(self, image: np.ndarray) -> List[FaceDetectionResult]:
        """
        Detect the face in a BGR frame.

        Returns:
            A one-element list, or an empty list when no face is found

        Raises:
            RuntimeError: the detector has been closed
        """
        if not self._available:
            raise RuntimeError("MediaPipe face detector is closed")
        if image is None or image.size == 0:
            return []

        rgb_image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        height, width = image.shape[:2]
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_image)

        result = self.landmarker.detect_for_video(mp_image, self._next_timestamp_ms())
        if not result.face_landmarks:
            return []
        return [self._to_result(face, width, height) for face in result.face_landmarks]

    @staticmethod
    def _to_result(face_landmarks, width: int, height: int) -> FaceDetectionResult:
        landmarks = np.array([[lm.x, lm.y, lm.z] for lm in face_landmarks], dtype=np.float32)

        x_px = landmarks[:, 0] * width
        y_px = landmarks[:, 1] * height
        left = int(np.min(x_px))
        top = int(np.min(y_px))
        return FaceDetectionResult(
            landmarks=landmarks,
            bounding_box=(left, top, int(np.max(x_px)) - left, int(np.max(y_px)) - top),
            confidence=1.0,  # Landmarker reports no per-face score
            frame_size=(width, height),
        )

    def is_available(self) -> bool:
        return self._available

    def get_name(self) -> str:
        return "mediapipe"

    def close(self) -> None:
        """Release the landmarker. Safe to call twice."""
        if not self._available:
            return
        self._available = False
        self.landmarker.close()
        logger.debug("Face landmarker closed")
