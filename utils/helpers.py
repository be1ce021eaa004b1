"""
Helper utility functions.

This module contains reusable utility functions used throughout the application.
"""

from typing import Any, Dict, List

import config
from utils.avatar_expression import expression_for
from utils.face_metrics import EmotionState


def build_config_response() -> Dict[str, Any]:
    """
    Build a complete configuration response dictionary.

    This function aggregates all configuration settings into a single
    dictionary for the /config/all endpoint.

    Returns:
        dict: Complete configuration dictionary
    """
    return {
        "faceDetection": config.get_face_detection_config(),
        "emotion": {
            **config.get_emotion_config(),
            "labels": emotion_labels(),
        },
        "avatar": {e.value: expression_for(e).to_dict() for e in EmotionState},
        "diagnostics": {
            "enabled": config.EMOTION_DIAGNOSTIC_LOGGING,
            "logInterval": config.EMOTION_DIAGNOSTIC_LOG_INTERVAL,
        },
    }


def emotion_labels() -> List[str]:
    """All published emotion labels, in declaration order."""
    return [e.value for e in EmotionState]
