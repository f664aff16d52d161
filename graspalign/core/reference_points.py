"""
per-hand reference points in the grasped body's local frame.

when a hand starts grasping, each of its 20 joint positions is pushed
through the body's inverse transform and stored. those local points are
never recomputed while the grasp continues: the body's shape relative to
the hand is frozen at grasp time and all later motion is attributed to the
hand, which the kabsch solve then compensates for.

tables are pooled per store. a typical object sees 0-2 concurrent grasps,
so the pool settles at a couple of tables and grasp start/end stops
allocating.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import numpy as np

from graspalign.logging_utils import get_logger

from .config import NUM_JOINTS
from .errors import HandAlreadyGraspingError, HandNotGraspingError
from .hand import as_joint_array, joint_index
from .transforms import TransformLike, as_affine, transform_points

logger = get_logger(__name__)


class ReferencePointTable:
    """
    fixed-size table of local-space joint positions for one grasping hand.

    local_points is [20, 3] in dense (finger, bone) order. every slot is
    written in one go by populate(); a released table is NaN-filled so stale
    reads are visible instead of silently plausible.
    """

    def __init__(self):
        self.hand_id: Optional[int] = None
        self.local_points = np.full((NUM_JOINTS, 3), np.nan)
        self.inverse_transform = np.eye(4)

    def populate(self, hand_id: int, world_points, inverse_transform: TransformLike) -> None:
        """overwrite all slots from world joint positions and the body's inverse transform."""
        M = as_affine(inverse_transform)
        # computed before any slot is touched, so a bad input leaves the table as it was
        local = transform_points(M, as_joint_array(world_points))

        self.local_points[:] = local
        self.inverse_transform = M.copy()
        self.hand_id = hand_id

    def get(self, finger: int, bone: int) -> np.ndarray:
        # copy: the table is overwritten in place when the pool reuses it
        return self.local_points[joint_index(finger, bone)].copy()

    def clear(self) -> None:
        self.hand_id = None
        self.local_points.fill(np.nan)
        self.inverse_transform = np.eye(4)

    def __repr__(self) -> str:
        return f"ReferencePointTable(hand_id={self.hand_id})"


class ReferencePointPool:
    """
    free list of reference tables.

    scoped to one store; sharing a pool between objects updated on
    different threads would need a lock.
    """

    def __init__(self):
        self._free: List[ReferencePointTable] = []
        self.allocated = 0  # tables ever created by this pool

    def acquire(self) -> ReferencePointTable:
        if self._free:
            return self._free.pop()
        self.allocated += 1
        return ReferencePointTable()

    def release(self, table: ReferencePointTable) -> None:
        table.clear()
        self._free.append(table)

    def __len__(self) -> int:
        return len(self._free)


class ReferencePointStore:
    """
    active reference tables keyed by current hand id.

    all methods are called from the single per-frame update path; there is
    no locking.
    """

    def __init__(self, pool: Optional[ReferencePointPool] = None):
        self.pool = pool if pool is not None else ReferencePointPool()
        self._tables: Dict[int, ReferencePointTable] = {}

    def begin_grasp(self, hand_id: int, world_joint_positions,
                    object_inverse_transform: TransformLike) -> ReferencePointTable:
        """
        start tracking a hand: store its joints in the body's local frame.

        args:
          hand_id: tracking id of the grasping hand
          world_joint_positions: [20, 3] or [5, 4, 3] world joint positions
          object_inverse_transform: world → body-local transform at grasp start
            (RigidTransform or 4×4 matrix)

        returns:
          the populated table (owned by this store; do not keep it past end_grasp)
        """
        if hand_id in self._tables:
            raise HandAlreadyGraspingError(hand_id)

        reused = len(self.pool) > 0
        table = self.pool.acquire()
        try:
            table.populate(hand_id, world_joint_positions, object_inverse_transform)
        except Exception:
            self.pool.release(table)
            raise

        self._tables[hand_id] = table
        logger.debug("hand %s began grasp (%s table, %d active)",
                     hand_id, "pooled" if reused else "new", len(self._tables))
        return table

    def transfer(self, old_id: int, new_id: int) -> None:
        """re-key a table to a new hand id; same storage, no recomputation."""
        if old_id not in self._tables:
            raise HandNotGraspingError(old_id)
        if old_id == new_id:
            return
        if new_id in self._tables:
            raise HandAlreadyGraspingError(new_id)

        table = self._tables.pop(old_id)
        table.hand_id = new_id
        self._tables[new_id] = table
        logger.debug("hand %s transferred to id %s", old_id, new_id)

    def get_table(self, hand_id: int) -> ReferencePointTable:
        try:
            return self._tables[hand_id]
        except KeyError:
            raise HandNotGraspingError(hand_id) from None

    def get_local_point(self, hand_id: int, finger: int, bone: int) -> np.ndarray:
        return self.get_table(hand_id).get(finger, bone)

    def get_local_points(self, hand_id: int) -> np.ndarray:
        """read-only [20, 3] view of a hand's local points."""
        view = self.get_table(hand_id).local_points.view()
        view.flags.writeable = False
        return view

    def end_grasp(self, hand_id: int) -> None:
        """stop tracking a hand and return its table to the pool."""
        try:
            table = self._tables.pop(hand_id)
        except KeyError:
            raise HandNotGraspingError(hand_id) from None
        self.pool.release(table)
        logger.debug("hand %s ended grasp (%d active, %d pooled)",
                     hand_id, len(self._tables), len(self.pool))

    @property
    def hand_ids(self) -> List[int]:
        return list(self._tables)

    def __contains__(self, hand_id: int) -> bool:
        return hand_id in self._tables

    def __len__(self) -> int:
        return len(self._tables)
