"""
grasp lifecycle for one rigid object.

the grasp-detection layer decides when hands grasp, release, lose tracking,
regain tracking under a new id, or time out; this class reacts to those
events, keeps the reference store in step, and produces one holding pose
per frame while at least one tracked hand is grasping.

hand states while grasping:
  tracked   → contributes pairs to every solve
  untracked → keeps its reference table, contributes nothing, and either
              comes back (regained tracking, possibly with a new id) or
              times out (treated as a release)
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Set, Union

from graspalign.logging_utils import get_logger

from .errors import HandAlreadyGraspingError, HandNotGraspingError
from .hand import Hand
from .holding_pose import FrameProvider, HoldingPoseController
from .kabsch import AlignmentResult

logger = get_logger(__name__)

HandOrId = Union[Hand, int]


def _hand_id(hand: HandOrId) -> int:
    return hand.id if isinstance(hand, Hand) else int(hand)


class GraspedObject:
    """
    grasp bookkeeping + holding-pose solve for one object.

    args:
      frame_provider: returns the body's current RigidTransform
      controller: holding-pose controller to use (default: a fresh one on frame_provider)
      on_pose: optional callback receiving each frame's AlignmentResult
    """

    def __init__(self, frame_provider: FrameProvider,
                 controller: Optional[HoldingPoseController] = None,
                 on_pose: Optional[Callable[[AlignmentResult], None]] = None):
        self.controller = controller or HoldingPoseController(frame_provider)
        self.on_pose = on_pose
        self._grasping: List[int] = []   # grasp order
        self._untracked: Set[int] = set()

    # ------------------------------------------------------------
    # queries
    # ------------------------------------------------------------

    @property
    def is_being_grasped(self) -> bool:
        return len(self._grasping) > 0

    @property
    def grasping_hand_count(self) -> int:
        return len(self._grasping)

    @property
    def untracked_hand_count(self) -> int:
        return len(self._untracked)

    @property
    def grasping_hands(self) -> List[int]:
        return list(self._grasping)

    @property
    def tracked_grasping_hands(self) -> List[int]:
        return [h for h in self._grasping if h not in self._untracked]

    @property
    def untracked_grasping_hands(self) -> List[int]:
        return [h for h in self._grasping if h in self._untracked]

    def is_being_grasped_by_hand(self, hand_id: int) -> bool:
        return hand_id in self._grasping

    # ------------------------------------------------------------
    # lifecycle events
    # ------------------------------------------------------------

    def on_hand_grasp(self, hand: Hand) -> None:
        if hand.id in self._grasping:
            raise HandAlreadyGraspingError(hand.id)
        self.controller.add_hand(hand)
        self._grasping.append(hand.id)
        logger.debug("grasp by hand %s (%d grasping)", hand.id, len(self._grasping))

    def on_hands_hold(self, hands: Iterable[Hand]) -> Optional[AlignmentResult]:
        """
        per-frame update with the tracked grasping hands.

        returns None without solving when no hands are given.
        """
        hands = list(hands)
        if not hands:
            return None
        for hand in hands:
            if hand.id not in self._grasping or hand.id in self._untracked:
                raise HandNotGraspingError(hand.id)

        result = self.controller.get_holding_pose(hands)
        if self.on_pose is not None:
            self.on_pose(result)
        return result

    def on_hand_release(self, hand: HandOrId) -> None:
        hand_id = _hand_id(hand)
        if hand_id not in self._grasping:
            raise HandNotGraspingError(hand_id)
        self.controller.remove_hand(hand_id)
        self._grasping.remove(hand_id)
        self._untracked.discard(hand_id)
        logger.debug("hand %s released (%d grasping)", hand_id, len(self._grasping))

    def on_hand_lost_tracking(self, hand: HandOrId) -> None:
        hand_id = _hand_id(hand)
        if hand_id not in self._grasping:
            raise HandNotGraspingError(hand_id)
        self._untracked.add(hand_id)
        logger.debug("hand %s lost tracking while grasping", hand_id)

    def on_hand_regained_tracking(self, new_hand: Hand, old_id: int) -> None:
        """an untracked grasping hand is back, possibly under a new id."""
        if old_id not in self._untracked:
            raise HandNotGraspingError(old_id)
        if new_hand.id != old_id and new_hand.id in self._grasping:
            raise HandAlreadyGraspingError(new_hand.id)

        self.controller.transfer_hand_id(old_id, new_hand.id)
        self._grasping[self._grasping.index(old_id)] = new_hand.id
        self._untracked.discard(old_id)
        logger.debug("hand %s regained tracking as %s", old_id, new_hand.id)

    def on_hand_timeout(self, hand: HandOrId) -> None:
        """untracked too long: no longer grasping."""
        hand_id = _hand_id(hand)
        logger.debug("hand %s timed out while untracked", hand_id)
        self.on_hand_release(hand_id)
