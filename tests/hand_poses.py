"""Synthetic MediaPipe-style hand poses for tests."""

import math
import os
import sys

import numpy as np

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fingerquiz.detectors.finger_counter import HandPose


# Direction of each finger from the wrist, degrees away from "straight up"
FINGER_ANGLES = {'index': -15.0, 'middle': -5.0, 'ring': 5.0, 'pinky': 15.0}
FINGER_BASE = {'index': 5, 'middle': 9, 'ring': 13, 'pinky': 17}

# Radial distance from the wrist of MCP, PIP, DIP, TIP
EXTENDED_RADII = (0.15, 0.22, 0.27, 0.31)
CURLED_RADII = (0.15, 0.20, 0.17, 0.14)

# Thumb CMC, MCP, IP, TIP offsets from the wrist for an upright hand (y grows down)
THUMB_EXTENDED = ((-0.05, -0.05), (-0.10, -0.09), (-0.13, -0.13), (-0.15, -0.17))
THUMB_FOLDED = ((-0.05, -0.05), (-0.09, -0.08), (-0.08, -0.12), (-0.04, -0.10))

ALL_FINGERS = ('index', 'middle', 'ring', 'pinky')


def _rotate(dx, dy, angle_deg):
    a = math.radians(angle_deg)
    return (dx * math.cos(a) - dy * math.sin(a), dx * math.sin(a) + dy * math.cos(a))


def make_pose(extended=(), thumb=False, angle_deg=0.0, wrist=(0.5, 0.85), scale=1.0, handedness=None):
    """
    Build a HandPose with the given fingers extended.
    `angle_deg` rotates the whole hand around the wrist (90 = pointing sideways).
    """
    pts = np.zeros((21, 3), dtype=float)
    pts[0, :2] = wrist

    for name, finger_angle in FINGER_ANGLES.items():
        radii = EXTENDED_RADII if name in extended else CURLED_RADII
        ux, uy = math.sin(math.radians(finger_angle)), -math.cos(math.radians(finger_angle))
        for j, r in enumerate(radii):
            dx, dy = _rotate(ux * r * scale, uy * r * scale, angle_deg)
            pts[FINGER_BASE[name] + j, :2] = (wrist[0] + dx, wrist[1] + dy)

    for j, (ox, oy) in enumerate(THUMB_EXTENDED if thumb else THUMB_FOLDED):
        dx, dy = _rotate(ox * scale, oy * scale, angle_deg)
        pts[1 + j, :2] = (wrist[0] + dx, wrist[1] + dy)

    return HandPose(points=pts, handedness=handedness)


def hand_showing(n, **kwargs):
    """One hand showing n fingers (0..5): index first, thumb last."""
    if not 0 <= n <= 5:
        raise ValueError("one hand shows 0..5 fingers")
    fingers = ALL_FINGERS[:min(n, 4)]
    return make_pose(extended=fingers, thumb=(n == 5), **kwargs)
