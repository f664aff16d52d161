"""
rigid transforms for the grasped body's frame.

quaternions are [w, x, y, z] throughout graspalign; scipy stores them
scalar-last, so conversions reorder at the boundary.
"""

from __future__ import annotations

from typing import Union

import numpy as np
from scipy.spatial.transform import Rotation


def quat_wxyz_to_xyzw(q: np.ndarray) -> np.ndarray:
    w, x, y, z = q
    return np.array([x, y, z, w], dtype=np.float64)


def quat_xyzw_to_wxyz(q: np.ndarray) -> np.ndarray:
    x, y, z, w = q
    return np.array([w, x, y, z], dtype=np.float64)


class RigidTransform:
    """
    position + orientation of a rigid body (unit scale).

    maps body-local points to world: p_world = R · p_local + position.
    """

    def __init__(self, position=None, rotation: Rotation | None = None):
        self.position = np.zeros(3) if position is None else np.asarray(position, dtype=np.float64).reshape(3)
        self.rotation = Rotation.identity() if rotation is None else rotation

    @classmethod
    def identity(cls) -> RigidTransform:
        return cls()

    @classmethod
    def from_quaternion(cls, position, quat_wxyz) -> RigidTransform:
        """build from position and a [w, x, y, z] quaternion (normalised by scipy)."""
        quat = quat_wxyz_to_xyzw(np.asarray(quat_wxyz, dtype=np.float64))
        return cls(position, Rotation.from_quat(quat))

    @classmethod
    def from_rotation_matrix(cls, position, R: np.ndarray) -> RigidTransform:
        return cls(position, Rotation.from_matrix(np.asarray(R, dtype=np.float64)))

    @classmethod
    def from_matrix(cls, M: np.ndarray) -> RigidTransform:
        """build from a 4×4 homogeneous matrix (the 3×3 block must be a rotation)."""
        M = np.asarray(M, dtype=np.float64)
        if M.shape != (4, 4):
            raise ValueError(f"expected a 4x4 matrix, got {M.shape}")
        return cls(M[:3, 3], Rotation.from_matrix(M[:3, :3]))

    @property
    def quaternion(self) -> np.ndarray:
        """orientation as [w, x, y, z]."""
        return quat_xyzw_to_wxyz(self.rotation.as_quat())

    @property
    def rotation_matrix(self) -> np.ndarray:
        return self.rotation.as_matrix()

    def matrix(self) -> np.ndarray:
        """4×4 TRS matrix with unit scale."""
        M = np.eye(4)
        M[:3, :3] = self.rotation.as_matrix()
        M[:3, 3] = self.position
        return M

    def inverse(self) -> RigidTransform:
        inv_rot = self.rotation.inv()
        return RigidTransform(-inv_rot.apply(self.position), inv_rot)

    def inverse_matrix(self) -> np.ndarray:
        """world → local matrix; what the reference store expects at grasp start."""
        return self.inverse().matrix()

    def apply(self, points) -> np.ndarray:
        """transform one [3] point or a batch [N, 3] of points from local to world."""
        points = np.asarray(points, dtype=np.float64)
        return self.rotation.apply(points) + self.position

    def compose(self, other: RigidTransform) -> RigidTransform:
        """self ∘ other: apply other first, then self."""
        return RigidTransform(self.apply(other.position), self.rotation * other.rotation)

    def __repr__(self) -> str:
        return f"RigidTransform(position={self.position.tolist()}, quaternion={self.quaternion.tolist()})"


TransformLike = Union[RigidTransform, np.ndarray]


def as_affine(transform: TransformLike) -> np.ndarray:
    """accept a RigidTransform or a raw 4×4 matrix and return the 4×4 matrix."""
    if isinstance(transform, RigidTransform):
        return transform.matrix()
    M = np.asarray(transform, dtype=np.float64)
    if M.shape != (4, 4):
        raise ValueError(f"expected a 4x4 transform matrix, got {M.shape}")
    return M


def transform_points(M: np.ndarray, points: np.ndarray) -> np.ndarray:
    """
    apply the affine 3×4 part of M to [N, 3] points.

    the projective row is ignored, matching how rigid transforms are stored.
    """
    return points @ M[:3, :3].T + M[:3, 3]
