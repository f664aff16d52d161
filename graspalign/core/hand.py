"""
per-frame snapshot of a tracked hand.

joint table layout (dense index = finger * 4 + bone):
  finger: thumb(0), index(1), middle(2), ring(3), pinky(4)
  bone:   metacarpal(0), proximal(1), intermediate(2), distal(3)

the tracked point of each bone is its distal ("next") joint, so the four
points of a finger run knuckle → fingertip. the same (finger, bone) index
must be used at grasp start and on every later frame, otherwise the solve
silently pairs the wrong joints.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from .config import NUM_BONES, NUM_FINGERS, NUM_JOINTS


class Finger(IntEnum):
    THUMB = 0
    INDEX = 1
    MIDDLE = 2
    RING = 3
    PINKY = 4


class Bone(IntEnum):
    METACARPAL = 0
    PROXIMAL = 1
    INTERMEDIATE = 2
    DISTAL = 3


def joint_index(finger: int, bone: int) -> int:
    """dense index into a 20-entry joint table."""
    if not (0 <= finger < NUM_FINGERS and 0 <= bone < NUM_BONES):
        raise IndexError(f"joint ({finger}, {bone}) outside {NUM_FINGERS}x{NUM_BONES} layout")
    return int(finger) * NUM_BONES + int(bone)


def as_joint_array(points) -> np.ndarray:
    """
    normalise joint positions to a float64 [20, 3] array.

    accepts either the dense [20, 3] layout or the nested [5, 4, 3] one.
    """
    arr = np.asarray(points, dtype=np.float64)
    if arr.shape == (NUM_FINGERS, NUM_BONES, 3):
        arr = arr.reshape(NUM_JOINTS, 3)
    if arr.shape != (NUM_JOINTS, 3):
        raise ValueError(
            f"expected joint positions of shape ({NUM_JOINTS}, 3) or "
            f"({NUM_FINGERS}, {NUM_BONES}, 3), got {arr.shape}"
        )
    return arr


# mediapipe 21-landmark layout: wrist(0), then 4 per finger from the base
#   thumb: CMC(1) MCP(2) IP(3) tip(4)
#   index..pinky: MCP PIP DIP tip
# the distal joints of the 4 bones are exactly landmarks 1-20 in order.
_NUM_LANDMARKS = 21
_WRIST = 0


@dataclass
class Hand:
    """one tracked hand: stable id + world-space joint table."""
    id: int
    joints: np.ndarray  # [5, 4, 3] world positions

    def __post_init__(self):
        self.joints = as_joint_array(self.joints).reshape(NUM_FINGERS, NUM_BONES, 3)

    @classmethod
    def from_landmarks(cls, hand_id: int, landmarks: np.ndarray) -> Hand:
        """build from mediapipe world landmarks [21, 3] (wrist is dropped)."""
        landmarks = np.asarray(landmarks, dtype=np.float64)
        if landmarks.shape != (_NUM_LANDMARKS, 3):
            raise ValueError(f"expected landmarks of shape ({_NUM_LANDMARKS}, 3), got {landmarks.shape}")
        return cls(hand_id, landmarks[_WRIST + 1:])

    def joint(self, finger: int, bone: int) -> np.ndarray:
        joint_index(finger, bone)  # bounds check
        return self.joints[finger, bone]

    def joint_positions(self) -> np.ndarray:
        """[20, 3] view in dense joint order."""
        return self.joints.reshape(NUM_JOINTS, 3)
