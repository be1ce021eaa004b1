"""
Emotion State Detector.

Runs the live robot-face pipeline: capture a frame -> mirror it (selfie view) ->
detect the face (MediaPipe) -> extract FaceMetrics from the first face ->
classify an EmotionState -> publish the latest snapshot for GET /emotion/state
and the optional update callback.

Each frame is classified on its own; the classifier's "last face seen" time is
the only memory carried between frames. The capture thread is the single
writer of the classifier; readers only ever see whole snapshots.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import cv2
import numpy as np

import config
from services.emotion_request_tracker import is_idle
from utils.avatar_expression import expression_for
from utils.emotion_classifier import EmotionClassifier, monotonic_ms
from utils.face_detection_interface import FaceDetectorInterface
from utils.face_metrics import EmotionState, FaceMetrics, InsufficientLandmarksError
from utils.metrics_extractor import MetricsExtractor
from utils.video_source_handler import VideoSourceHandler, VideoSourceType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmotionSnapshot:
    """Metrics and label for one processed frame."""
    metrics: FaceMetrics
    emotion: EmotionState
    timestamp_ms: float  # Clock value the frame was classified with
    frame_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "emotion": self.emotion.value,
            "faceDetected": self.metrics.is_face_detected,
            "metrics": self.metrics.to_dict(),
            "avatar": expression_for(self.emotion).to_dict(),
            "timestampMs": self.timestamp_ms,
            "frameIndex": self.frame_index,
        }


class EmotionStateDetector:
    """
    Live emotion detector.

    Usage:
        detector = EmotionStateDetector()
        detector.start_detection(source_type=VideoSourceType.WEBCAM)

        # In a loop or callback:
        snapshot = detector.get_current_state()
        print(snapshot.emotion.value)
    """

    def __init__(
        self,
        face_detector: Optional[FaceDetectorInterface] = None,
        classifier: Optional[EmotionClassifier] = None,
        update_callback: Optional[Callable[[EmotionSnapshot], None]] = None,
        mirror: Optional[bool] = None,
        lightweight_mode: Optional[bool] = None,
        clock: Callable[[], float] = monotonic_ms,
    ):
        """
        Initialize the emotion state detector.

        Args:
            face_detector: Detector to use (default: MediaPipeFaceDetector from config)
            classifier: Classifier to use (default: new EmotionClassifier started at clock())
            update_callback: Optional callback called with every new snapshot
            mirror: Flip frames horizontally before detection (default: config.MIRROR_FRAMES)
            lightweight_mode: Lower webcam resolution (default: config.LIGHTWEIGHT_MODE)
            clock: Millisecond clock used to timestamp frames
        """
        self.lightweight_mode = config.LIGHTWEIGHT_MODE if lightweight_mode is None else bool(lightweight_mode)
        self.mirror = config.MIRROR_FRAMES if mirror is None else bool(mirror)
        self._clock = clock

        if face_detector is None:
            # Deferred import: mediapipe is heavy and only needed for live capture
            from utils.mediapipe_detector import MediaPipeFaceDetector
            face_detector = MediaPipeFaceDetector(
                min_detection_confidence=config.MIN_FACE_CONFIDENCE,
                min_presence_confidence=config.MIN_FACE_PRESENCE_CONFIDENCE,
                min_tracking_confidence=config.MIN_TRACKING_CONFIDENCE,
                clock=clock,
            )
        self.face_detector = face_detector
        self.detection_method = face_detector.get_name()

        self.extractor = MetricsExtractor()
        self.classifier = classifier if classifier is not None else EmotionClassifier(now_ms=clock())
        self.video_handler = VideoSourceHandler()

        self.current_state: Optional[EmotionSnapshot] = None
        self.update_callback = update_callback
        self.consecutive_no_face_frames = 0
        self._frame_count = 0
        self._loop_count = 0
        self._frame_budget = 1.0 / config.TARGET_FPS

        # Threading and control
        self.detection_thread: Optional[threading.Thread] = None
        self.is_running = False
        self.lock = threading.Lock()
        self._closed = False

        # Performance tracking
        self.fps_counter = deque(maxlen=30)
        self.last_frame_time = time.time()

    def start_detection(
        self,
        source_type: VideoSourceType = VideoSourceType.WEBCAM,
        source_path: Optional[str] = None,
    ) -> bool:
        """
        Start emotion detection from a video source.

        Args:
            source_type: Type of video source (WEBCAM, FILE, STREAM)
            source_path: Path to video file or stream URL (required for FILE/STREAM)

        Returns:
            bool: True if detection started successfully, False otherwise
        """
        if self._closed:
            logger.warning("Emotion detector is closed; create a new one to start again")
            return False
        if self.is_running:
            self.stop_detection()

        self.consecutive_no_face_frames = 0
        self._frame_count = 0
        self._loop_count = 0
        self.fps_counter.clear()
        self.classifier.reset(self._clock())
        with self.lock:
            self.current_state = None

        if not self.video_handler.initialize_source(source_type, source_path, lightweight=self.lightweight_mode):
            logger.warning("Failed to initialize video source %s (path=%s)", source_type, source_path)
            return False

        # Verify we can read frames; first webcam frames can be black or delayed
        ok = False
        for _ in range(12):
            ok, frame = self.video_handler.read_frame()
            if ok and frame is not None:
                break
            time.sleep(0.04)
        if not ok:
            logger.warning("Video source initialized but cannot read frames")
            self.video_handler.release()
            return False

        logger.info("Emotion detection started: source_type=%s, source_path=%s, method=%s",
                    source_type.value, source_path, self.detection_method)

        self.is_running = True
        self.detection_thread = threading.Thread(target=self._detection_loop, daemon=True)
        self.detection_thread.start()
        return True

    def stop_detection(self) -> None:
        """Stop the capture thread and release the video source.

        The face detector stays open, so start_detection() can run again.
        """
        self.is_running = False

        if self.detection_thread and self.detection_thread.is_alive():
            self.detection_thread.join(timeout=2.0)
        self.detection_thread = None

        self.video_handler.release()

    def close(self) -> None:
        """Stop detection and release the face detector. The instance is unusable afterwards."""
        self.stop_detection()
        if not self._closed:
            self._closed = True
            self.face_detector.close()

    def get_current_state(self) -> Optional[EmotionSnapshot]:
        """
        Get the latest snapshot (thread-safe).

        Returns:
            EmotionSnapshot if a frame has been processed, None otherwise
        """
        with self.lock:
            return self.current_state

    def get_fps(self) -> float:
        """
        Get the current capture FPS (frames read per second).

        Returns:
            float: Average FPS over last 30 frames
        """
        if not self.fps_counter:
            return 0.0
        return float(np.mean(self.fps_counter))

    def process_frame(self, frame: np.ndarray, now_ms: Optional[float] = None) -> Optional[EmotionSnapshot]:
        """
        Detect, extract and classify a single frame, then publish the result.

        Args:
            frame: BGR image frame
            now_ms: Frame time in milliseconds (default: the detector clock)

        Returns:
            The published EmotionSnapshot, or None for an unusable frame
        """
        if frame is None or not isinstance(frame, np.ndarray) or frame.size == 0 or frame.ndim < 2:
            return None
        if now_ms is None:
            now_ms = self._clock()

        if self.mirror:
            frame = cv2.flip(frame, 1)

        face_results = self.face_detector.detect_faces(frame)
        try:
            metrics = self.extractor.from_detections(face_results)
        except InsufficientLandmarksError as e:
            logger.warning("Ignoring face from %s: %s", self.detection_method, e)
            metrics = FaceMetrics.no_face()

        if metrics.is_face_detected:
            self.consecutive_no_face_frames = 0
        else:
            self.consecutive_no_face_frames += 1

        emotion = self.classifier.classify(metrics, now_ms)
        self._frame_count += 1
        snapshot = EmotionSnapshot(
            metrics=metrics,
            emotion=emotion,
            timestamp_ms=float(now_ms),
            frame_index=self._frame_count,
        )
        self._publish(snapshot)
        return snapshot

    def _publish(self, snapshot: EmotionSnapshot) -> None:
        with self.lock:
            self.current_state = snapshot

        if config.EMOTION_DIAGNOSTIC_LOGGING and snapshot.frame_index % config.EMOTION_DIAGNOSTIC_LOG_INTERVAL == 0:
            logger.info("emotion_diagnostic %s", snapshot.to_dict())

        if self.update_callback:
            try:
                self.update_callback(snapshot)
            except Exception as e:
                logger.warning("Error in update callback: %s", e)

    def _detection_loop(self) -> None:
        """
        Main detection loop running in a separate thread.

        Reads the newest frame, processes it and sleeps off the rest of the
        frame budget. Frames that arrive while a frame is processed are dropped
        by the one-frame capture buffer.
        """
        misses = 0
        while self.is_running:
            try:
                ret, frame = self.video_handler.read_frame()

                if not ret:
                    misses += 1
                    if misses > int(config.TARGET_FPS * 2):  # ~2s without frames
                        misses = 0
                        if not self._recover_source():
                            break
                    time.sleep(self._frame_budget)
                    continue
                misses = 0

                started = time.time()
                self._record_frame_time(started)

                # Nobody is polling the state: process every 4th frame only
                if is_idle(config.STATE_POLL_IDLE_SEC):
                    self._loop_count += 1
                    if self._loop_count % 4 != 0:
                        time.sleep(self._frame_budget)
                        continue

                self.process_frame(frame)

                elapsed = time.time() - started
                if 0 <= elapsed < self._frame_budget:
                    time.sleep(self._frame_budget - elapsed)

            except Exception as e:
                logger.warning("Error in detection loop: %s", e)
                time.sleep(0.1)

    def _record_frame_time(self, now: float) -> None:
        """FPS counts every frame read, including frames skipped by the idle throttle."""
        frame_time = now - self.last_frame_time
        self.last_frame_time = now
        if frame_time > 0:
            self.fps_counter.append(1.0 / frame_time)

    def _recover_source(self) -> bool:
        """React to a source that stopped delivering frames. Returns False to end the loop."""
        source_type = self.video_handler.source_type
        if source_type == VideoSourceType.FILE:
            logger.info("Video file finished")
            self.is_running = False
            return False
        if source_type == VideoSourceType.WEBCAM:
            logger.warning("Webcam not providing frames, reinitializing")
            self.video_handler.initialize_source(
                VideoSourceType.WEBCAM, None, lightweight=self.lightweight_mode,
            )
        else:
            logger.warning("Video source %s not providing frames", source_type)
        return True
