"""
kabsch rigid alignment: best rotation + translation mapping reference
points onto live points.

two entry points:

1. KabschSolver: streaming, one pass. reset() → add_pair() × N → solve().
   used every frame by the holding-pose controller, where pairs arrive hand
   by hand, joint by joint.

2. rigid_align(): batch, two pass, for callers that already hold both point
   sets as arrays. also solves for scale (umeyama) when asked.

math overview:
  x_i ∈ R^3 : reference points (body-local, recorded at grasp start)
  y_i ∈ R^3 : live points (current world joint positions)
  w_i ≥ 0   : per-pair weights
  minimize  Σ w_i ||R·x_i + t - y_i||²   over R ∈ SO(3), t ∈ R^3

  1. weighted centroids: c_x = Σw·x / W, c_y = Σw·y / W
  2. cross-covariance: H = Σ w (y - c_y)(x - c_x)ᵀ
                         = Σ w·y·xᵀ - W·c_y·c_xᵀ       (single-pass form)
  3. SVD: H = U Σ Vᵀ
  4. rotation: R = U Vᵀ; if det(R) < 0 it is a reflection, so negate the
     column of U for the smallest singular value and recompute
  5. translation: t = c_y - R·c_x

the streaming sums are taken relative to the first pair added (x0, y0),
so the single-pass subtraction in step 2 works on hand-scale offsets
even when the body sits far from the world origin.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import torch
from scipy.spatial.transform import Rotation

from graspalign.logging_utils import get_logger

from .config import DEFAULT_JOINT_WEIGHT, DEGENERATE_COVARIANCE_EPS, MIN_TOTAL_WEIGHT
from .errors import SolverStateError
from .transforms import RigidTransform, quat_xyzw_to_wxyz

logger = get_logger(__name__)


@dataclass
class AlignmentResult:
    """
    rotation then translation maps every reference point onto its live point
    with minimum weighted squared error.

    rms_error is the weighted RMS residual of the fit (same units as the
    input points), zero for an empty solve.
    """
    rotation: np.ndarray      # [3, 3], det = +1
    translation: np.ndarray   # [3]
    total_weight: float = 0.0
    pair_count: int = 0
    rms_error: float = 0.0

    @classmethod
    def identity(cls) -> AlignmentResult:
        return cls(np.eye(3), np.zeros(3))

    @property
    def quaternion(self) -> np.ndarray:
        """rotation as [w, x, y, z]."""
        return quat_xyzw_to_wxyz(Rotation.from_matrix(self.rotation).as_quat())

    def apply(self, points) -> np.ndarray:
        """map one [3] point or [N, 3] points from reference space to live space."""
        points = np.asarray(points, dtype=np.float64)
        return points @ self.rotation.T + self.translation

    def as_transform(self) -> RigidTransform:
        return RigidTransform.from_rotation_matrix(self.translation, self.rotation)


def _check_weight(weight: float) -> float:
    weight = float(weight)
    if not np.isfinite(weight) or weight < 0:
        raise ValueError(f"pair weight must be finite and non-negative, got {weight}")
    return weight


def _proper_rotation(H: np.ndarray) -> Tuple[np.ndarray, bool]:
    """
    nearest proper rotation for cross-covariance H (rows: live, cols: reference).

    returns (R, corrected) where corrected is True when the unconstrained
    optimum was a reflection.
    """
    U, S, Vt = torch.linalg.svd(torch.from_numpy(H))  # S sorted descending
    R = U @ Vt

    corrected = bool(torch.det(R) < 0)
    if corrected:
        # flip the axis of the smallest singular value
        U = U.clone()
        U[:, -1] = -U[:, -1]
        R = U @ Vt

    return R.numpy(), corrected


class KabschSolver:
    """
    streaming weighted kabsch solver.

    state machine:
      Empty        → after reset() (a new solver starts here)
      Accumulating → after at least one add_pair()
    solve() is valid in both and does not change state. once solved, the
    accumulator is consumed: adding more pairs without reset() raises
    SolverStateError, since it would mix two frames.
    """

    def __init__(self, min_total_weight: float = MIN_TOTAL_WEIGHT):
        self.min_total_weight = min_total_weight
        self.reset()

    def reset(self) -> None:
        """zero the accumulator. call once per frame before adding pairs."""
        # sums are taken relative to the first pair (x0, y0) so that bodies
        # far from the world origin do not cancel away the covariance
        self._origin_ref = None   # x0
        self._origin_live = None  # y0
        self._weight = 0.0
        self._sum_ref = np.zeros(3)            # Σ w·(x - x0)
        self._sum_live = np.zeros(3)           # Σ w·(y - y0)
        self._sum_live_ref = np.zeros((3, 3))  # Σ w·(y - y0)(x - x0)ᵀ
        self._sum_sq_ref = 0.0                 # Σ w·|x - x0|²
        self._sum_sq_live = 0.0                # Σ w·|y - y0|²
        self._count = 0
        self._solved = False

    @property
    def is_empty(self) -> bool:
        return self._count == 0

    @property
    def pair_count(self) -> int:
        return self._count

    @property
    def total_weight(self) -> float:
        return self._weight

    def _check_open(self) -> None:
        if self._solved:
            raise SolverStateError("accumulator already solved this cycle; call reset() before adding pairs")

    def add_pair(self, reference, live, weight: float = DEFAULT_JOINT_WEIGHT) -> None:
        """fold one (reference, live) correspondence into the running sums."""
        self._check_open()
        weight = _check_weight(weight)
        x = np.asarray(reference, dtype=np.float64).reshape(3)
        y = np.asarray(live, dtype=np.float64).reshape(3)
        if self._origin_ref is None:
            self._origin_ref, self._origin_live = x.copy(), y.copy()
        x = x - self._origin_ref
        y = y - self._origin_live

        self._weight += weight
        self._sum_ref += weight * x
        self._sum_live += weight * y
        self._sum_live_ref += weight * np.outer(y, x)
        self._sum_sq_ref += weight * float(x @ x)
        self._sum_sq_live += weight * float(y @ y)
        self._count += 1

    def add_pairs(self, references, lives, weights=None) -> None:
        """
        fold N correspondences at once. same sums as N add_pair() calls.

        args:
          references: [N, 3] reference points
          lives: [N, 3] live points
          weights: [N] weights, or None for DEFAULT_JOINT_WEIGHT each
        """
        self._check_open()
        X = np.asarray(references, dtype=np.float64).reshape(-1, 3)
        Y = np.asarray(lives, dtype=np.float64).reshape(-1, 3)
        if X.shape != Y.shape:
            raise ValueError(f"references {X.shape} and lives {Y.shape} must match")

        if weights is None:
            w = np.full(len(X), DEFAULT_JOINT_WEIGHT)
        else:
            w = np.asarray(weights, dtype=np.float64).reshape(-1)
            if w.shape != (len(X),):
                raise ValueError(f"expected {len(X)} weights, got {w.shape}")
            if not np.all(np.isfinite(w)) or np.any(w < 0):
                raise ValueError("pair weights must be finite and non-negative")

        if len(X) == 0:
            return
        if self._origin_ref is None:
            self._origin_ref, self._origin_live = X[0].copy(), Y[0].copy()
        X = X - self._origin_ref
        Y = Y - self._origin_live

        self._weight += float(w.sum())
        self._sum_ref += w @ X
        self._sum_live += w @ Y
        self._sum_live_ref += (Y * w[:, None]).T @ X
        self._sum_sq_ref += float(w @ np.einsum("ij,ij->i", X, X))
        self._sum_sq_live += float(w @ np.einsum("ij,ij->i", Y, Y))
        self._count += len(X)

    def solve(self) -> AlignmentResult:
        """
        decompose the accumulated covariance into rotation + translation.

        zero total weight gives the identity result. a single pair or fully
        coincident points carry no rotational information, so the rotation
        stays identity and only centroids are aligned. collinear points give
        some proper rotation that fits them (not unique).
        """
        self._solved = True
        W = self._weight

        if W <= self.min_total_weight:
            logger.debug("solve with no weighted pairs (%d added), returning identity", self._count)
            result = AlignmentResult.identity()
            result.pair_count = self._count
            result.total_weight = W
            return result

        # centroid offsets from the first pair
        d_ref = self._sum_ref / W
        d_live = self._sum_live / W
        c_ref = self._origin_ref + d_ref
        c_live = self._origin_live + d_live
        H = self._sum_live_ref - W * np.outer(d_live, d_ref)

        # centered spread of both sets, for the residual
        spread_ref = max(self._sum_sq_ref - W * float(d_ref @ d_ref), 0.0)
        spread_live = max(self._sum_sq_live - W * float(d_live @ d_live), 0.0)

        # |H_ij| <= sqrt(Σw|x - x0|² · Σw|y - y0|²), so this floor is relative
        # to the size of H itself and independent of where the body sits
        noise_floor = DEGENERATE_COVARIANCE_EPS * np.sqrt(self._sum_sq_ref * self._sum_sq_live)
        if np.max(np.abs(H)) <= noise_floor:
            R = np.eye(3)
            logger.debug("cross-covariance is degenerate (%d pairs), keeping identity rotation", self._count)
        else:
            R, corrected = _proper_rotation(H)
            if corrected:
                logger.debug("reflection in best-fit map corrected to proper rotation")

        t = c_live - R @ c_ref

        # Σ w|y_c - R x_c|² = Σ w|y_c|² + Σ w|x_c|² - 2 tr(Rᵀ H)
        sq_err = max(spread_live + spread_ref - 2.0 * float(np.sum(R * H)), 0.0)
        rms = float(np.sqrt(sq_err / W))

        return AlignmentResult(R, t, total_weight=W, pair_count=self._count, rms_error=rms)


def rigid_align(src, dst, weights=None, with_scale: bool = False):
    """
    solve for optimal (similarity) transform: min_{s,R,t} Σ w·||s·R·src + t - dst||²
    returns (scale s, rotation R ∈ SO(3), translation t) via SVD (kabsch/umeyama).

    algorithm:
      1. weighted centroids, center both point clouds: X = src - μ_src, Y = dst - μ_dst
      2. cross-covariance: C = Σ w·Y·Xᵀ / W
      3. SVD: C = UΣVᵀ
      4. rotation: R = U·D·Vᵀ, D = diag(1, 1, sign(det(UVᵀ)))
      5. scale: s = tr(ΣD) / var(X)  [if with_scale=True, else 1]
      6. translation: t = μ_dst - s·R·μ_src

    args:
      src: [N, 3] source points (numpy array or torch tensor)
      dst: [N, 3] target points
      weights: [N] non-negative weights, or None for uniform
      with_scale: if True, solve for scale; else rigid only

    returns:
      (s, R, t) as torch tensors when src is a tensor, numpy otherwise
    """
    as_numpy = not isinstance(src, torch.Tensor)
    src = torch.as_tensor(np.asarray(src) if as_numpy else src, dtype=torch.float64)
    dst = torch.as_tensor(np.asarray(dst) if not isinstance(dst, torch.Tensor) else dst,
                          dtype=torch.float64, device=src.device)
    assert src.shape == dst.shape, f"src {tuple(src.shape)} and dst {tuple(dst.shape)} must match"
    assert src.ndim == 2 and src.shape[1] == 3, f"expected [N, 3] points, got {tuple(src.shape)}"

    if weights is None:
        w = torch.ones(src.shape[0], dtype=torch.float64, device=src.device)
    else:
        w = torch.as_tensor(np.asarray(weights) if not isinstance(weights, torch.Tensor) else weights,
                            dtype=torch.float64, device=src.device).reshape(-1)
        if w.shape[0] != src.shape[0] or bool((w < 0).any()):
            raise ValueError("weights must be non-negative with one entry per point")

    W = w.sum()
    if float(W) <= MIN_TOTAL_WEIGHT:
        s, R, t = torch.tensor(1.0, dtype=torch.float64), torch.eye(3, dtype=torch.float64), torch.zeros(3, dtype=torch.float64)
        return (float(s), R.numpy(), t.numpy()) if as_numpy else (s, R, t)

    # step 1: center both point clouds
    mu_src = (w[:, None] * src).sum(dim=0) / W
    mu_dst = (w[:, None] * dst).sum(dim=0) / W
    X = src - mu_src
    Y = dst - mu_dst

    # step 2: cross-covariance (rows: dst, cols: src)
    C = (w[:, None] * Y).t() @ X / W

    # step 3: SVD
    U, S, Vt = torch.linalg.svd(C)

    # step 4: rotation with reflection fix on the smallest singular value
    d = torch.ones(3, dtype=torch.float64, device=src.device)
    if torch.det(U @ Vt) < 0:
        d[-1] = -1.0
    R = U @ torch.diag(d) @ Vt

    # step 5: scale (optional)
    if with_scale:
        var_src = (w * (X ** 2).sum(dim=1)).sum() / W
        s = ((S * d).sum() / var_src.clamp(min=1e-12)).clamp(min=1e-8)
    else:
        s = torch.tensor(1.0, dtype=torch.float64, device=src.device)

    # step 6: translation
    t = mu_dst - s * (R @ mu_src)

    if as_numpy:
        return float(s), R.cpu().numpy(), t.cpu().numpy()
    return s, R, t
