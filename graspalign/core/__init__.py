"""Core solver, reference store, and grasp lifecycle."""

from .config import NUM_BONES, NUM_FINGERS, NUM_JOINTS, HoldingPoseConfig
from .errors import (
    GraspContractError,
    HandAlreadyGraspingError,
    HandNotGraspingError,
    SolverStateError,
)
from .transforms import RigidTransform
from .hand import Bone, Finger, Hand, joint_index
from .reference_points import ReferencePointPool, ReferencePointStore, ReferencePointTable
from .kabsch import AlignmentResult, KabschSolver, rigid_align
from .holding_pose import HoldingPoseController
from .grasped_object import GraspedObject

__all__ = [
    "NUM_BONES",
    "NUM_FINGERS",
    "NUM_JOINTS",
    "HoldingPoseConfig",
    "GraspContractError",
    "HandAlreadyGraspingError",
    "HandNotGraspingError",
    "SolverStateError",
    "RigidTransform",
    "Bone",
    "Finger",
    "Hand",
    "joint_index",
    "ReferencePointPool",
    "ReferencePointStore",
    "ReferencePointTable",
    "AlignmentResult",
    "KabschSolver",
    "rigid_align",
    "HoldingPoseController",
    "GraspedObject",
]
