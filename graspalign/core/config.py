"""
tuning constants for the holding-pose solve.

joint layout follows the tracked skeleton: 5 fingers × 4 bones, where the
tracked point of each bone is its distal ("next") joint.
"""

from dataclasses import dataclass, field

import numpy as np


# ============================================================
# skeleton layout
# ============================================================

NUM_FINGERS = 5             # thumb, index, middle, ring, pinky
NUM_BONES = 4               # metacarpal, proximal, intermediate, distal
NUM_JOINTS = NUM_FINGERS * NUM_BONES  # 20 reference points per hand


# ============================================================
# solve configuration
# ============================================================

DEFAULT_JOINT_WEIGHT = 1.0  # every tracked joint gets equal influence
                            # regardless of finger or bone

MIN_TOTAL_WEIGHT = 1e-12    # accumulated weight at or below this counts as
                            # "no pairs": solve returns identity instead of
                            # dividing by zero

DEGENERATE_COVARIANCE_EPS = 1e-12  # cross-covariance entries below this fraction of
                                   # sqrt(Σw|ref - ref0|² · Σw|live - live0|²)
                                   # mean no rotational information: a single pair
                                   # or fully coincident points. solve keeps
                                   # identity rotation and only aligns centroids


def _uniform_weights() -> np.ndarray:
    return np.full((NUM_FINGERS, NUM_BONES), DEFAULT_JOINT_WEIGHT, dtype=np.float64)


@dataclass
class HoldingPoseConfig:
    """
    per-object configuration for the holding-pose controller.

    joint_weights is indexed [finger, bone]. the default is uniform; a
    heavier palm-proximal weighting can be passed in without touching the
    solver.
    """
    joint_weights: np.ndarray = field(default_factory=_uniform_weights)
    min_total_weight: float = MIN_TOTAL_WEIGHT

    def __post_init__(self):
        weights = np.asarray(self.joint_weights, dtype=np.float64)
        if weights.shape != (NUM_FINGERS, NUM_BONES):
            raise ValueError(
                f"joint_weights must have shape ({NUM_FINGERS}, {NUM_BONES}), got {weights.shape}"
            )
        if not np.all(np.isfinite(weights)) or np.any(weights < 0):
            raise ValueError("joint_weights must be finite and non-negative")
        if self.min_total_weight < 0:
            raise ValueError(f"min_total_weight must be >= 0, got {self.min_total_weight}")
        self.joint_weights = weights

    def flat_weights(self) -> np.ndarray:
        """weights in dense joint order (finger * NUM_BONES + bone)."""
        return self.joint_weights.reshape(NUM_JOINTS)
