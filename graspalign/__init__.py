"""
graspalign - holding pose for rigid objects grasped by tracked hands

Every grasping hand freezes its 20 joint positions in the object's local
frame at grasp start. Each frame, a weighted Kabsch solve over all
(local reference, live joint) pairs gives the single rotation + translation
that best satisfies every hand at once.

Pieces:
- core.reference_points: per-hand reference tables, pooled, re-keyable
- core.kabsch: streaming and batch Kabsch alignment
- core.holding_pose: store + solver glue
- core.grasped_object: grasp / release / tracking-loss event handling
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .core import (
    AlignmentResult,
    GraspedObject,
    Hand,
    HoldingPoseController,
    KabschSolver,
    ReferencePointStore,
    RigidTransform,
    rigid_align,
)

__all__ = [
    "__version__",
    "AlignmentResult",
    "GraspedObject",
    "Hand",
    "HoldingPoseController",
    "KabschSolver",
    "ReferencePointStore",
    "RigidTransform",
    "rigid_align",
]
