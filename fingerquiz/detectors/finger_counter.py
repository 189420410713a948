"""
Finger counting from hand landmarks.

One HandPose (21 MediaPipe landmarks, normalized 0..1) yields a count of
extended fingers in 0..5. Counts from every detected hand are summed, so two
hands can produce 6..10. No left/right identity is used for counting.
"""

import numpy as np
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from fingerquiz.utils.math_utils import landmarks_to_array, euclidean


# MediaPipe Hand Landmark indices
LANDMARK_NAMES = {
    'WRIST': 0,
    'THUMB_CMC': 1, 'THUMB_MCP': 2, 'THUMB_IP': 3, 'THUMB_TIP': 4,
    'INDEX_MCP': 5, 'INDEX_PIP': 6, 'INDEX_DIP': 7, 'INDEX_TIP': 8,
    'MIDDLE_MCP': 9, 'MIDDLE_PIP': 10, 'MIDDLE_DIP': 11, 'MIDDLE_TIP': 12,
    'RING_MCP': 13, 'RING_PIP': 14, 'RING_DIP': 15, 'RING_TIP': 16,
    'PINKY_MCP': 17, 'PINKY_PIP': 18, 'PINKY_DIP': 19, 'PINKY_TIP': 20,
}

NUM_LANDMARKS = 21

# (tip, pip) per non-thumb finger
FINGER_JOINTS = {
    'index': (LANDMARK_NAMES['INDEX_TIP'], LANDMARK_NAMES['INDEX_PIP']),
    'middle': (LANDMARK_NAMES['MIDDLE_TIP'], LANDMARK_NAMES['MIDDLE_PIP']),
    'ring': (LANDMARK_NAMES['RING_TIP'], LANDMARK_NAMES['RING_PIP']),
    'pinky': (LANDMARK_NAMES['PINKY_TIP'], LANDMARK_NAMES['PINKY_PIP']),
}

DEFAULT_EXTENSION_MARGIN = 1.10


@dataclass
class HandPose:
    """
    One detected hand for one frame.
    `points` has shape (21, 3) with columns (x, y, z), normalized to the frame.
    """
    points: np.ndarray
    handedness: Optional[str] = None  # informational only

    def __post_init__(self):
        self.points = np.asarray(self.points, dtype=float)
        if self.points.shape != (NUM_LANDMARKS, 3):
            raise ValueError(
                f"HandPose needs {NUM_LANDMARKS} landmarks of (x, y, z), got shape {self.points.shape}"
            )

    @classmethod
    def from_landmarks(cls, landmarks: Iterable, handedness: Optional[str] = None) -> 'HandPose':
        """Build from any iterable of objects exposing .x/.y(/.z)."""
        return cls(points=landmarks_to_array(landmarks), handedness=handedness)

    def point(self, name: str) -> np.ndarray:
        return self.points[LANDMARK_NAMES[name]]


@dataclass(frozen=True)
class FingerExtensionState:
    """Extended/not extended per finger for one HandPose."""
    thumb: bool = False
    index: bool = False
    middle: bool = False
    ring: bool = False
    pinky: bool = False

    @property
    def count(self) -> int:
        return sum((self.thumb, self.index, self.middle, self.ring, self.pinky))


def is_finger_extended(pose: HandPose, finger_name: str, margin: float = DEFAULT_EXTENSION_MARGIN) -> bool:
    """
    Radial test for index..pinky: the tip must be farther from the wrist than
    the PIP joint by `margin`. Works for upright, sideways and tilted hands.
    Distances use the image plane (x, y).
    """
    tip_idx, pip_idx = FINGER_JOINTS[finger_name]
    wrist = pose.points[LANDMARK_NAMES['WRIST'], :2]
    dist_tip = float(euclidean(pose.points[tip_idx, :2], wrist))
    dist_pip = float(euclidean(pose.points[pip_idx, :2], wrist))
    return dist_tip > dist_pip * margin


def is_thumb_extended(pose: HandPose) -> bool:
    # Image y grows downwards: tip above IP joint means extended.
    return bool(pose.point('THUMB_TIP')[1] < pose.point('THUMB_IP')[1])


def finger_extension_state(pose: HandPose, margin: float = DEFAULT_EXTENSION_MARGIN) -> FingerExtensionState:
    return FingerExtensionState(
        thumb=is_thumb_extended(pose),
        index=is_finger_extended(pose, 'index', margin),
        middle=is_finger_extended(pose, 'middle', margin),
        ring=is_finger_extended(pose, 'ring', margin),
        pinky=is_finger_extended(pose, 'pinky', margin),
    )


def count_extended_fingers(pose: HandPose, margin: float = DEFAULT_EXTENSION_MARGIN) -> int:
    """Number of extended fingers on one hand (0..5)."""
    return finger_extension_state(pose, margin).count


def count_fingers(poses: Sequence[HandPose], margin: float = DEFAULT_EXTENSION_MARGIN) -> int:
    """
    Raw gesture sample for one frame: extended fingers summed over all hands.
    No hands is a valid steady state and counts as 0.
    """
    return sum(count_extended_fingers(pose, margin) for pose in poses)


__all__ = [
    'LANDMARK_NAMES',
    'NUM_LANDMARKS',
    'DEFAULT_EXTENSION_MARGIN',
    'HandPose',
    'FingerExtensionState',
    'is_finger_extended',
    'is_thumb_extended',
    'finger_extension_state',
    'count_extended_fingers',
    'count_fingers',
]
