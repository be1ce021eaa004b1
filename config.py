"""
=============================================================================
CONFIGURATION FOR ROBO FACE EMOTION ENGINE (config.py)
=============================================================================

WHAT THIS FILE DOES (in plain language):
----------------------------------------
This file holds ALL configurable settings for the project in one place. Other
files read from it. Values come from the environment (e.g. your .env file or
system variables), so you can tune thresholds or the server port without
changing code.

MAIN GROUPS OF SETTINGS:
------------------------
  1. Face detection    - MediaPipe confidence, mirroring, frame rate.
  2. Emotion           - Sleep threshold and the geometry epsilon.
  3. Diagnostics       - Optional throttled logging of per-frame metrics.
  4. Server            - Host, port, and debug mode for the web server.

HOW VALUES ARE CHOSEN:
---------------------
  - Environment variables (e.g. EMOTION_SLEEP_THRESHOLD_MS) override everything.
  - If an env var is not set, we use the default the robot face shipped with.
=============================================================================
"""

import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


# ============================================================================
# FACE DETECTION (how we get landmarks from video)
# ============================================================================
# MediaPipe Face Landmarker (Tasks API) is the only detector. Confidence values
# are clamped to 0.01-0.99 by the detector itself.
# ----------------------------------------------------------------------------
MIN_FACE_CONFIDENCE: float = float(os.getenv("MIN_FACE_CONFIDENCE", "0.5"))
MIN_FACE_PRESENCE_CONFIDENCE: float = float(os.getenv("MIN_FACE_PRESENCE_CONFIDENCE", "0.5"))
MIN_TRACKING_CONFIDENCE: float = float(os.getenv("MIN_TRACKING_CONFIDENCE", "0.5"))

# Face Landmarker model bundle. Downloaded from FACE_LANDMARKER_MODEL_URL on
# first use when the file does not exist yet.
FACE_LANDMARKER_MODEL_PATH: str = os.getenv(
    "FACE_LANDMARKER_MODEL_PATH",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "models", "face_landmarker.task"),
)
FACE_LANDMARKER_MODEL_URL: str = os.getenv(
    "FACE_LANDMARKER_MODEL_URL",
    "https://storage.googleapis.com/mediapipe-models/"
    "face_landmarker/face_landmarker/float16/latest/face_landmarker.task",
)
MODEL_DOWNLOAD_TIMEOUT_SEC: float = float(os.getenv("MODEL_DOWNLOAD_TIMEOUT_SEC", "60"))

# Mirror frames horizontally before detection (front camera / selfie view), so
# "left" and "right" match what the user sees on screen.
MIRROR_FRAMES: bool = _env_bool("MIRROR_FRAMES", "true")

# Lightweight mode: lower webcam resolution for old computers.
LIGHTWEIGHT_MODE: bool = _env_bool("LIGHTWEIGHT_MODE", "false")

# Frame budget for the capture loop. Frames arriving faster are not queued;
# the camera buffer holds only the latest one.
TARGET_FPS: float = max(1.0, float(os.getenv("TARGET_FPS", "30")))

# ============================================================================
# EMOTION CLASSIFICATION
# ============================================================================
# No face for longer than this (strictly greater) -> Sleep; otherwise Idle.
EMOTION_SLEEP_THRESHOLD_MS: float = float(os.getenv("EMOTION_SLEEP_THRESHOLD_MS", "10000"))
# Reported to clients only. The classifier has no separate idle bucket.
EMOTION_IDLE_THRESHOLD_MS: float = float(os.getenv("EMOTION_IDLE_THRESHOLD_MS", "2000"))

# Distances below this are treated as zero; the ratio using them becomes 0.
LANDMARK_EPSILON: float = float(os.getenv("LANDMARK_EPSILON", "1e-6"))

# ============================================================================
# Emotion diagnostic logging (off by default)
# ============================================================================
# When True, the live pipeline logs the raw metrics and label every N frames
# to help with threshold tuning.
EMOTION_DIAGNOSTIC_LOGGING: bool = _env_bool("EMOTION_DIAGNOSTIC_LOGGING", "false")
# Log every N frames (e.g. 30 = once per second at 30 fps).
EMOTION_DIAGNOSTIC_LOG_INTERVAL: int = max(1, int(os.getenv("EMOTION_DIAGNOSTIC_LOG_INTERVAL", "30")))

# Seconds without a GET /emotion/state before the loop throttles to every 4th frame.
STATE_POLL_IDLE_SEC: float = float(os.getenv("STATE_POLL_IDLE_SEC", "60"))

# ============================================================================
# Application Configuration
# ============================================================================
FLASK_PORT: int = int(os.getenv("FLASK_PORT", "5000"))
FLASK_DEBUG: bool = _env_bool("FLASK_DEBUG", "false")
FLASK_HOST: str = os.getenv("FLASK_HOST", "0.0.0.0")

# ============================================================================
# Helper Functions
# ============================================================================

def warn_invalid_config() -> None:
    """
    Print warnings for settings that cannot work as intended.
    Call from app startup. Does not raise.
    """
    import sys
    problems = []
    if EMOTION_SLEEP_THRESHOLD_MS <= 0:
        problems.append("EMOTION_SLEEP_THRESHOLD_MS must be positive")
    if EMOTION_IDLE_THRESHOLD_MS > EMOTION_SLEEP_THRESHOLD_MS:
        problems.append("EMOTION_IDLE_THRESHOLD_MS is larger than EMOTION_SLEEP_THRESHOLD_MS")
    if LANDMARK_EPSILON <= 0:
        problems.append("LANDMARK_EPSILON must be positive")
    for name, value in (("MIN_FACE_CONFIDENCE", MIN_FACE_CONFIDENCE),
                        ("MIN_FACE_PRESENCE_CONFIDENCE", MIN_FACE_PRESENCE_CONFIDENCE),
                        ("MIN_TRACKING_CONFIDENCE", MIN_TRACKING_CONFIDENCE)):
        if not 0.0 < value < 1.0:
            problems.append(f"{name} should be between 0 and 1 (got {value})")
    if problems:
        print("Config warning:", "; ".join(problems), file=sys.stderr)


def get_emotion_config() -> dict:
    """
    Get emotion classification settings for GET /config/emotion.

    Returns:
        dict: thresholds in milliseconds and the geometry epsilon
    """
    return {
        "sleepThresholdMs": EMOTION_SLEEP_THRESHOLD_MS,
        "idleThresholdMs": EMOTION_IDLE_THRESHOLD_MS,
        "landmarkEpsilon": LANDMARK_EPSILON,
    }


def get_face_detection_config() -> dict:
    """
    Get face detection settings.

    Returns:
        dict: detector name, confidences and frame handling options
    """
    return {
        "method": "mediapipe",
        "minFaceConfidence": MIN_FACE_CONFIDENCE,
        "minFacePresenceConfidence": MIN_FACE_PRESENCE_CONFIDENCE,
        "minTrackingConfidence": MIN_TRACKING_CONFIDENCE,
        "mirrorFrames": MIRROR_FRAMES,
        "lightweightMode": LIGHTWEIGHT_MODE,
        "targetFps": TARGET_FPS,
    }
