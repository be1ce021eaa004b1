"""
Flask routes for Robo Face Emotion Engine.

Handles config, one-shot landmark analysis (POST /emotion/analyze), and the
live detector lifecycle: start/stop/state/debug.
"""

import logging
import math
import threading
from typing import Optional

from flask import Blueprint, request, jsonify

from services.emotion_request_tracker import update_last_request, reset as reset_request_tracker
from utils.avatar_expression import expression_for
from utils.emotion_classifier import EmotionClassifier, monotonic_ms
from utils.face_metrics import InsufficientLandmarksError
from utils.helpers import build_config_response
from utils.metrics_extractor import MetricsExtractor
import config

logger = logging.getLogger(__name__)

# Create a blueprint for better organization
api = Blueprint('api', __name__)

# Global live detector instance (singleton).
# EmotionStateDetector is imported lazily in start_emotion_detection to defer loading mediapipe/cv2.
emotion_detector = None  # type: Optional["EmotionStateDetector"]

# Landmark analysis endpoint: one extractor, one classifier, serialized by a lock
# (the classifier is single-writer and waitress serves requests on several threads).
# The classifier is bound to one time base: client timestampMs values or the
# server's monotonic clock, fixed by the first classified request.
CLIENT_CLOCK = "client"
SERVER_CLOCK = "server"

_extractor = MetricsExtractor()
_analysis_classifier: Optional[EmotionClassifier] = None
_analysis_clock: Optional[str] = None
_analysis_lock = threading.Lock()


def _get_analysis_classifier(now_ms: float, clock: str) -> EmotionClassifier:
    """Return the analysis classifier, creating it on first call (lazy init)."""
    global _analysis_classifier, _analysis_clock
    if _analysis_classifier is None:
        _analysis_classifier = EmotionClassifier(now_ms=now_ms)
        _analysis_clock = clock
    return _analysis_classifier


def _finite_ms(value) -> Optional[float]:
    """JSON number as a finite float, or None (bools, strings, NaN, overflow)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    return value if math.isfinite(value) else None


def reset_analysis_classifier() -> None:
    """Drop the analysis classifier; the next request starts a fresh one."""
    global _analysis_classifier, _analysis_clock
    with _analysis_lock:
        _analysis_classifier = None
        _analysis_clock = None


# ============================================================================
# Configuration Routes
# ============================================================================

@api.route("/config/all", methods=["GET"])
def get_all_config():
    """
    Get all non-secret configuration in one response.

    Returns:
        JSON: faceDetection, emotion, avatar and diagnostics sections
    """
    return jsonify(build_config_response())


@api.route("/config/emotion", methods=["GET"])
def get_emotion_config():
    """
    Get emotion classification thresholds.

    Returns:
        JSON: {
            "sleepThresholdMs": 10000,
            "idleThresholdMs": 2000,
            "landmarkEpsilon": 1e-6
        }
    """
    return jsonify(config.get_emotion_config())


# ============================================================================
# Landmark Analysis Routes
# ============================================================================

@api.route("/emotion/analyze", methods=["POST"])
def analyze_landmarks():
    """
    Classify one frame of landmarks supplied by the client.

    Request Body:
        {
            "landmarks": [[x, y], ...] or [[x, y, z], ...] or null (no face),
            "timestampMs": optional frame time in ms (default: server monotonic clock)
        }

    All requests between two POST /emotion/reset calls must use the same time
    base: either every request sends timestampMs or none does. The first
    classified request decides; a request using the other one gets 409.

    Returns:
        JSON: {
            "emotion": "Neutral",
            "metrics": {...},
            "avatar": {...}
        }
    """
    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    timestamp = data.get("timestampMs")
    if timestamp is not None:
        timestamp = _finite_ms(timestamp)
        if timestamp is None:
            return jsonify({"error": "timestampMs must be a finite number"}), 400

    try:
        metrics = _extractor.extract(data.get("landmarks"))
    except InsufficientLandmarksError as e:
        return jsonify({"error": "Insufficient landmarks", "details": str(e)}), 422
    except (ValueError, TypeError) as e:
        return jsonify({"error": "Invalid landmarks", "details": str(e)}), 400

    clock = CLIENT_CLOCK if timestamp is not None else SERVER_CLOCK
    now_ms = timestamp if timestamp is not None else monotonic_ms()
    with _analysis_lock:
        if _analysis_clock is not None and _analysis_clock != clock:
            return jsonify({
                "error": "Mixed clocks",
                "details": f"This session uses the {_analysis_clock} clock; "
                           "send timestampMs consistently or POST /emotion/reset first",
            }), 409
        emotion = _get_analysis_classifier(now_ms, clock).classify(metrics, now_ms)

    return jsonify({
        "emotion": emotion.value,
        "metrics": metrics.to_dict(),
        "avatar": expression_for(emotion).to_dict(),
    })


@api.route("/emotion/reset", methods=["POST"])
def reset_analysis():
    """
    Reset the analysis classifier (forget when a face was last seen).

    Returns:
        JSON: {"success": true}
    """
    reset_analysis_classifier()
    return jsonify({"success": True})


# ============================================================================
# Live Emotion Detection Routes
# ============================================================================

@api.route("/emotion/start", methods=["POST"])
def start_emotion_detection():
    """
    Start live emotion detection from a video source.

    Request Body:
        {
            "sourceType": "webcam" | "file" | "stream",
            "sourcePath": "path or URL for file/stream sources"
        }

    Returns:
        JSON: {
            "success": true,
            "message": "Emotion detection started from webcam",
            "detectionMethod": "mediapipe"
        }
    """
    global emotion_detector
    # Lazy import: defer loading emotion_state_detector (mediapipe, cv2) until first start
    from emotion_state_detector import EmotionStateDetector
    from utils.video_source_handler import VideoSourceType

    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400

    data = request.get_json(silent=True) or {}
    source_type_str = str(data.get("sourceType", "webcam")).lower()
    source_path = data.get("sourcePath")

    source_type_map = {t.value: t for t in VideoSourceType}
    source_type = source_type_map.get(source_type_str)
    if not source_type:
        return jsonify({
            "error": f"Invalid sourceType: {source_type_str}. Must be 'webcam', 'file', or 'stream'"
        }), 400

    try:
        if emotion_detector:
            emotion_detector.close()
            emotion_detector = None

        detector = EmotionStateDetector()
        if not detector.start_detection(source_type, source_path):
            detector.close()
            return jsonify({
                "error": "Failed to start detection. Check video source."
            }), 500

        emotion_detector = detector
        update_last_request()
        return jsonify({
            "success": True,
            "message": f"Emotion detection started from {source_type_str}",
            "detectionMethod": detector.detection_method,
        })

    except Exception as e:
        logger.warning("Failed to start emotion detection: %s", e)
        return jsonify({
            "error": "Failed to start emotion detection",
            "details": str(e)
        }), 500


@api.route("/emotion/stop", methods=["POST"])
def stop_emotion_detection():
    """
    Stop live emotion detection.

    Returns:
        JSON: {
            "success": true,
            "message": "Emotion detection stopped"
        }
    """
    global emotion_detector

    try:
        if emotion_detector:
            emotion_detector.close()
            emotion_detector = None
        reset_request_tracker()
        return jsonify({
            "success": True,
            "message": "Emotion detection stopped"
        })

    except Exception as e:
        return jsonify({
            "error": "Failed to stop emotion detection",
            "details": str(e)
        }), 500


@api.route("/emotion/state", methods=["GET"])
def get_emotion_state():
    """
    Get the latest emotion snapshot from the live detector.

    Returns:
        JSON: {
            "emotion": "Happy",
            "faceDetected": true,
            "metrics": {...},
            "avatar": {...},
            "timestampMs": 123456.0,
            "frameIndex": 42
        }
    """
    if not emotion_detector:
        return jsonify({"error": "Emotion detection not started"}), 404

    update_last_request()
    state = emotion_detector.get_current_state()
    if state is None:
        return jsonify({"error": "No frame processed yet"}), 404
    return jsonify(state.to_dict())


@api.route("/emotion/debug", methods=["GET"])
def get_emotion_debug():
    """
    Get debug information about live emotion detection.

    Returns:
        JSON: running flag, detector name, FPS and the latest label
    """
    if not emotion_detector:
        return jsonify({
            "error": "Emotion detection not started",
            "detector_running": False
        }), 404

    try:
        state = emotion_detector.get_current_state()
        debug_info = {
            "detector_running": emotion_detector.is_running,
            "detection_method": emotion_detector.detection_method,
            "fps": emotion_detector.get_fps(),
            "has_state": state is not None,
            "consecutive_no_face": emotion_detector.consecutive_no_face_frames,
            "last_face_seen_ms": emotion_detector.classifier.last_face_seen_ms,
        }
        if state:
            debug_info.update({
                "emotion": state.emotion.value,
                "face_detected": state.metrics.is_face_detected,
                "frame_index": state.frame_index,
            })
        return jsonify(debug_info)

    except Exception as e:
        return jsonify({
            "error": "Failed to get debug info",
            "details": str(e)
        }), 500


def register_routes(app):
    """Attach all API routes to the Flask app."""
    app.register_blueprint(api)
