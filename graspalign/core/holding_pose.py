"""
holding pose: the body pose that best agrees with every grasping hand.

glues the reference store to the kabsch solver. each grasping hand
contributes 20 pairs (body-local reference point, live world joint); the
solve maps local points to world, so its rotation and translation are the
body's target world orientation and position. the physics backend decides
how to drive the body there.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from graspalign.logging_utils import get_logger

from .config import HoldingPoseConfig
from .errors import GraspContractError
from .hand import Hand
from .kabsch import AlignmentResult, KabschSolver
from .reference_points import ReferencePointPool, ReferencePointStore
from .transforms import RigidTransform

logger = get_logger(__name__)

FrameProvider = Callable[[], RigidTransform]


class HoldingPoseController:
    """
    per-object holding-pose controller.

    frame_provider returns the body's current world transform; it is read
    when a hand starts grasping to freeze that hand's reference points.
    """

    def __init__(self, frame_provider: FrameProvider,
                 config: Optional[HoldingPoseConfig] = None,
                 pool: Optional[ReferencePointPool] = None):
        self.frame_provider = frame_provider
        self.config = config or HoldingPoseConfig()
        self.store = ReferencePointStore(pool)
        self.solver = KabschSolver(min_total_weight=self.config.min_total_weight)

    def add_hand(self, hand: Hand) -> None:
        """freeze the hand's joints in the body's current local frame."""
        body = self.frame_provider()
        self.store.begin_grasp(hand.id, hand.joint_positions(), body.inverse_matrix())

    def remove_hand(self, hand_id: int) -> None:
        self.store.end_grasp(hand_id)

    def transfer_hand_id(self, old_id: int, new_id: int) -> None:
        self.store.transfer(old_id, new_id)

    def is_holding(self, hand_id: int) -> bool:
        return hand_id in self.store

    @property
    def hand_ids(self) -> List[int]:
        return self.store.hand_ids

    def get_holding_pose(self, hands: Iterable[Hand]) -> AlignmentResult:
        """
        solve for the body pose given this frame's grasping hands.

        every hand must have been added (or transferred onto its current id)
        and appear at most once. with no hands the result is the identity.
        """
        hands = list(hands)
        ids = [hand.id for hand in hands]
        if len(set(ids)) != len(ids):
            raise GraspContractError(f"hand ids passed to one solve must be unique, got {ids}")

        self.solver.reset()
        weights = self.config.flat_weights()

        for hand in hands:
            local = self.store.get_local_points(hand.id)
            self.solver.add_pairs(local, hand.joint_positions(), weights)

        result = self.solver.solve()
        logger.debug("holding pose from %d pairs: rms %.6f", result.pair_count, result.rms_error)
        return result
