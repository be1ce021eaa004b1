"""
Frame sources for the live emotion pipeline.

A source is a webcam, a local video file or a network stream (RTSP/HTTP),
all read through one OpenCV capture. Live sources are opened with a one-frame
buffer so the detection loop always sees the newest frame.
"""

import logging
import sys
from enum import Enum
from typing import Dict, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Requested webcam capture size; the driver may pick the closest it supports
WEBCAM_SIZE = (1280, 720)
WEBCAM_SIZE_LIGHTWEIGHT = (640, 360)
WEBCAM_FPS = 30
CAMERA_INDICES = (0, 1, 2)


class VideoSourceType(Enum):
    WEBCAM = "webcam"
    FILE = "file"
    STREAM = "stream"


def _camera_backends():
    if sys.platform == "win32":
        return (cv2.CAP_DSHOW, cv2.CAP_MSMF, cv2.CAP_ANY)
    return (cv2.CAP_ANY,)


def _open_first_camera() -> Optional[cv2.VideoCapture]:
    """First camera that both opens and delivers a frame, or None."""
    for backend in _camera_backends():
        for index in CAMERA_INDICES:
            cap = cv2.VideoCapture(index, backend)
            if cap.isOpened() and cap.read()[0]:
                logger.debug("Camera %d opened (backend=%s)", index, backend)
                return cap
            cap.release()
    return None


def _open_capture(source_type: VideoSourceType, source_path: Optional[str], lightweight: bool) -> cv2.VideoCapture:
    if source_type == VideoSourceType.WEBCAM:
        cap = _open_first_camera() or cv2.VideoCapture(0)
        width, height = WEBCAM_SIZE_LIGHTWEIGHT if lightweight else WEBCAM_SIZE
        settings = {
            cv2.CAP_PROP_FRAME_WIDTH: width,
            cv2.CAP_PROP_FRAME_HEIGHT: height,
            cv2.CAP_PROP_FPS: WEBCAM_FPS,
            cv2.CAP_PROP_BUFFERSIZE: 1,
        }
    elif source_type == VideoSourceType.STREAM:
        cap = cv2.VideoCapture(source_path)
        settings = {cv2.CAP_PROP_BUFFERSIZE: 1}
    else:
        cap = cv2.VideoCapture(source_path)
        settings = {}

    if cap.isOpened():
        for prop, value in settings.items():
            cap.set(prop, value)
    return cap


class VideoSourceHandler:
    """
    Owns at most one open capture.

    Usage:
        handler = VideoSourceHandler()
        if handler.initialize_source(VideoSourceType.FILE, "clip.mp4"):
            ok, frame = handler.read_frame()
    """

    def __init__(self):
        self.cap: Optional[cv2.VideoCapture] = None
        self.source_type: Optional[VideoSourceType] = None
        self.source_path: Optional[str] = None

    def initialize_source(
        self,
        source_type: VideoSourceType,
        source_path: Optional[str] = None,
        lightweight: bool = False,
    ) -> bool:
        """
        Close any open source and open a new one.

        Args:
            source_type: WEBCAM, FILE or STREAM
            source_path: File path or stream URL; required unless source_type is WEBCAM
            lightweight: Ask the webcam for 640x360 instead of 1280x720

        Returns:
            True if the capture is open
        """
        self.release()
        if not isinstance(source_type, VideoSourceType):
            logger.warning("Unsupported video source type: %r", source_type)
            return False
        if source_type != VideoSourceType.WEBCAM and not source_path:
            logger.warning("A %s source needs a source_path", source_type.value)
            return False

        try:
            cap = _open_capture(source_type, source_path, lightweight)
        except cv2.error as e:
            logger.warning("OpenCV could not open %s source %s: %s", source_type.value, source_path, e)
            return False

        if not cap.isOpened():
            cap.release()
            logger.warning("Could not open %s source %s", source_type.value, source_path)
            return False

        self.cap = cap
        self.source_type = source_type
        self.source_path = source_path
        return True

    def is_open(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def read_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Next BGR frame as (True, frame), or (False, None) when nothing was read."""
        if not self.is_open():
            return False, None
        ok, frame = self.cap.read()
        if not ok or frame is None:
            return False, None
        return True, frame

    def get_properties(self) -> Dict[str, float]:
        """Size, fps and frame count (-1 for live sources) of the open source; {} when closed."""
        if not self.is_open():
            return {}
        is_file = self.source_type == VideoSourceType.FILE
        return {
            "width": int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": self.cap.get(cv2.CAP_PROP_FPS),
            "frame_count": int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT)) if is_file else -1,
        }

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
        self.cap = None
        self.source_type = None
        self.source_path = None

    def __del__(self):
        self.release()
