"""
Landmark sources: camera frame -> list of HandPose.

MediaPipeLandmarkSource wraps OpenCV capture and the MediaPipe Tasks
HandLandmarker. ReplayLandmarkSource plays back prepared pose sequences so
the stabilizer and quiz logic can run without a camera.
"""

import time
import urllib.request
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from fingerquiz.detectors.finger_counter import HandPose
from fingerquiz.utils.errors import SensorUnavailable, TransientFrameError


HAND_LANDMARKER_MODEL_URL = 'https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task'
HAND_LANDMARKER_MODEL_PATH = Path(__file__).parent.parent / 'models' / 'hand_landmarker.task'


def ensure_model_downloaded(model_path: Optional[Path] = None) -> str:
    """Download the hand landmarker model if not present."""
    model_path = Path(model_path) if model_path else HAND_LANDMARKER_MODEL_PATH
    if model_path.exists():
        return str(model_path)

    model_path.parent.mkdir(parents=True, exist_ok=True)
    print("📥 Downloading hand landmarker model...")
    try:
        urllib.request.urlretrieve(HAND_LANDMARKER_MODEL_URL, str(model_path))
    except OSError as e:
        raise SensorUnavailable(f"Failed to download hand landmarker model: {e}") from e
    print(f"✓ Model downloaded to {model_path}")
    return str(model_path)


class LandmarkSource:
    """Capability interface used by the quiz loop."""

    def open(self):
        pass

    def next_frame(self) -> Tuple[Optional[np.ndarray], List[HandPose]]:
        """Return (frame_bgr or None, hands). Raises TransientFrameError for a bad frame."""
        raise NotImplementedError

    def close(self):
        pass


class MediaPipeLandmarkSource(LandmarkSource):
    def __init__(self, config, camera_idx: Optional[int] = None):
        self.config = config
        self.camera_idx = config.get('camera', 'index', default=0) if camera_idx is None else camera_idx
        self.flip_horizontal = config.get('display', 'flip_horizontal', default=True)
        self.cap = None
        self.hand_landmarker = None
        self.use_gpu = False
        self._last_ts_ms = 0

    def open(self):
        """Open camera and model. Any failure here is fatal for the session."""
        camera_width = self.config.get('camera', 'width', default=640)
        camera_height = self.config.get('camera', 'height', default=480)
        camera_fps = self.config.get('camera', 'fps', default=30)

        self.cap = cv2.VideoCapture(self.camera_idx)
        if not self.cap.isOpened():
            self.close()
            raise SensorUnavailable(f"Could not open camera {self.camera_idx}")

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, camera_width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, camera_height)
        self.cap.set(cv2.CAP_PROP_FPS, camera_fps)

        actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        actual_fps = self.cap.get(cv2.CAP_PROP_FPS)
        print(f"✓ Camera initialized: {actual_width}x{actual_height} @ {actual_fps:.1f} FPS")

        try:
            self.hand_landmarker = self._create_landmarker()
        except SensorUnavailable:
            self.close()
            raise

    def _create_landmarker(self):
        try:
            from mediapipe.tasks.python import vision as mp_vision
            from mediapipe.tasks.python.core.base_options import BaseOptions
        except ImportError as e:
            raise SensorUnavailable(f"MediaPipe is not available: {e}") from e

        detection_conf = self.config.get('performance', 'min_detection_confidence', default=0.5)
        tracking_conf = self.config.get('performance', 'min_tracking_confidence', default=0.5)
        max_hands = self.config.get('performance', 'max_hands', default=2)
        use_gpu = self.config.get('performance', 'use_gpu', default=True)
        model_path = ensure_model_downloaded(self.config.get('performance', 'model_path', default='') or None)

        delegates = [BaseOptions.Delegate.GPU, BaseOptions.Delegate.CPU] if use_gpu else [BaseOptions.Delegate.CPU]
        last_error = None
        for delegate in delegates:
            try:
                options = mp_vision.HandLandmarkerOptions(
                    base_options=BaseOptions(model_asset_path=model_path, delegate=delegate),
                    running_mode=mp_vision.RunningMode.VIDEO,
                    num_hands=max_hands,
                    min_hand_detection_confidence=detection_conf,
                    min_tracking_confidence=tracking_conf,
                )
                landmarker = mp_vision.HandLandmarker.create_from_options(options)
                self.use_gpu = delegate == BaseOptions.Delegate.GPU
                print(f"✓ MediaPipe HandLandmarker initialized with {'GPU' if self.use_gpu else 'CPU'} (max_hands={max_hands})")
                return landmarker
            except (RuntimeError, ValueError, OSError) as e:
                print(f"⚠ HandLandmarker init failed on {delegate}: {e}")
                last_error = e
        raise SensorUnavailable(f"Could not initialize hand landmarker: {last_error}")

    def _next_timestamp_ms(self) -> int:
        # VIDEO mode needs strictly increasing timestamps
        ts = int(time.monotonic() * 1000)
        if ts <= self._last_ts_ms:
            ts = self._last_ts_ms + 1
        self._last_ts_ms = ts
        return ts

    def next_frame(self) -> Tuple[Optional[np.ndarray], List[HandPose]]:
        import mediapipe as mp

        if self.cap is None or self.hand_landmarker is None:
            raise SensorUnavailable("Landmark source is not open")

        ret, frame_bgr = self.cap.read()
        if not ret or frame_bgr is None:
            raise TransientFrameError("Failed to read frame")

        if self.flip_horizontal:
            frame_bgr = cv2.flip(frame_bgr, 1)

        try:
            frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
            mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
            results = self.hand_landmarker.detect_for_video(mp_image, self._next_timestamp_ms())
        except (cv2.error, RuntimeError, ValueError) as e:
            raise TransientFrameError(f"Hand detection failed: {e}") from e

        poses = []
        handedness = results.handedness or []
        for i, hand_landmarks in enumerate(results.hand_landmarks or []):
            label = handedness[i][0].category_name.lower() if i < len(handedness) and handedness[i] else None
            poses.append(HandPose.from_landmarks(hand_landmarks, handedness=label))
        return frame_bgr, poses

    def close(self):
        if self.cap is not None:
            try:
                self.cap.release()
            except cv2.error as e:
                print(f"⚠ Error releasing camera: {e}")
            self.cap = None

        if self.hand_landmarker is not None:
            try:
                self.hand_landmarker.close()
            except RuntimeError as e:
                print(f"⚠ Error closing hand landmarker: {e}")
            self.hand_landmarker = None


class ReplayLandmarkSource(LandmarkSource):
    """
    Plays back a fixed sequence of frames, each a list of HandPose.
    An entry that is an Exception instance is raised as a failed frame.
    When the sequence ends `exhausted` becomes True and empty frames follow.
    """

    def __init__(self, frames: Iterable[Sequence[HandPose]], frame_shape: Tuple[int, int, int] = (480, 640, 3)):
        self._frames = list(frames)
        self._pos = 0
        self.frame_shape = frame_shape
        self.opened = False

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._frames)

    def open(self):
        self.opened = True

    def next_frame(self) -> Tuple[Optional[np.ndarray], List[HandPose]]:
        if not self.opened:
            raise SensorUnavailable("Replay source is not open")
        if self.exhausted:
            return None, []
        item = self._frames[self._pos]
        self._pos += 1
        if isinstance(item, Exception):
            raise TransientFrameError(str(item))
        return np.zeros(self.frame_shape, dtype=np.uint8), list(item)

    def close(self):
        self.opened = False


__all__ = [
    'ensure_model_downloaded',
    'LandmarkSource',
    'MediaPipeLandmarkSource',
    'ReplayLandmarkSource',
]
