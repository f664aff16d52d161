"""
test suite for grasp lifecycle events on a grasped object.

walks through grasp → lose tracking → regain with new id → timeout, and
checks bookkeeping, store state, and the poses emitted along the way.
"""

import numpy as np
import pytest

from graspalign.core import (
    GraspContractError,
    GraspedObject,
    Hand,
    HandAlreadyGraspingError,
    HandNotGraspingError,
    RigidTransform,
)


@pytest.fixture
def obj():
    return GraspedObject(RigidTransform.identity)


def test_grasp_and_release(obj, make_hand):
    hand = make_hand(1)
    assert not obj.is_being_grasped

    obj.on_hand_grasp(hand)
    assert obj.is_being_grasped
    assert obj.grasping_hand_count == 1
    assert obj.is_being_grasped_by_hand(1)
    assert obj.controller.is_holding(1)

    obj.on_hand_release(hand)
    assert not obj.is_being_grasped
    assert not obj.controller.is_holding(1)
    assert len(obj.controller.store.pool) == 1


def test_double_grasp_rejected(obj, make_hand):
    hand = make_hand(1)
    obj.on_hand_grasp(hand)
    with pytest.raises(HandAlreadyGraspingError):
        obj.on_hand_grasp(hand)


def test_hold_emits_pose(make_hand):
    poses = []
    obj = GraspedObject(RigidTransform.identity, on_pose=poses.append)
    hand = make_hand(1)
    obj.on_hand_grasp(hand)

    result = obj.on_hands_hold([Hand(1, hand.joint_positions() + np.array([0.0, 0.0, 0.05]))])

    assert len(poses) == 1 and poses[0] is result
    np.testing.assert_allclose(result.translation, [0.0, 0.0, 0.05], atol=1e-6)


def test_hold_with_no_hands_does_not_solve(make_hand):
    poses = []
    obj = GraspedObject(RigidTransform.identity, on_pose=poses.append)
    assert obj.on_hands_hold([]) is None
    assert poses == []


def test_lost_and_regained_tracking_with_new_id(obj, make_hand):
    a = make_hand(1, center=[-0.1, 0.0, 0.0])
    b = make_hand(2, center=[0.1, 0.0, 0.0])
    obj.on_hand_grasp(a)
    obj.on_hand_grasp(b)

    obj.on_hand_lost_tracking(a)
    assert obj.untracked_hand_count == 1
    assert obj.tracked_grasping_hands == [2]
    assert obj.untracked_grasping_hands == [1]
    assert obj.grasping_hand_count == 2

    # untracked hand cannot be used for the solve
    with pytest.raises(HandNotGraspingError):
        obj.on_hands_hold([a, b])
    result = obj.on_hands_hold([b])
    assert result.pair_count == 20

    # back under a new id: same reference table, no recomputation
    table = obj.controller.store.get_table(1)
    obj.on_hand_regained_tracking(Hand(9, a.joint_positions()), old_id=1)

    assert obj.grasping_hands == [9, 2]
    assert obj.untracked_hand_count == 0
    assert obj.controller.store.get_table(9) is table
    result = obj.on_hands_hold([Hand(9, a.joint_positions()), b])
    assert result.pair_count == 40
    np.testing.assert_allclose(result.rotation, np.eye(3), atol=1e-6)


def test_regained_tracking_same_id(obj, make_hand):
    hand = make_hand(4)
    obj.on_hand_grasp(hand)
    obj.on_hand_lost_tracking(4)
    obj.on_hand_regained_tracking(hand, old_id=4)

    assert obj.tracked_grasping_hands == [4]


def test_regain_requires_untracked_hand(obj, make_hand):
    hand = make_hand(1)
    obj.on_hand_grasp(hand)
    with pytest.raises(HandNotGraspingError):
        obj.on_hand_regained_tracking(Hand(2, hand.joints), old_id=1)


def test_regain_onto_grasping_id_rejected(obj, make_hand):
    a, b = make_hand(1), make_hand(2)
    obj.on_hand_grasp(a)
    obj.on_hand_grasp(b)
    obj.on_hand_lost_tracking(1)

    with pytest.raises(HandAlreadyGraspingError):
        obj.on_hand_regained_tracking(Hand(2, a.joints), old_id=1)
    assert obj.untracked_grasping_hands == [1]


def test_timeout_releases_hand(obj, make_hand):
    hand = make_hand(3)
    obj.on_hand_grasp(hand)
    obj.on_hand_lost_tracking(hand)
    obj.on_hand_timeout(hand)

    assert not obj.is_being_grasped
    assert obj.untracked_hand_count == 0
    assert not obj.controller.is_holding(3)


def test_events_for_unknown_hand(obj):
    with pytest.raises(HandNotGraspingError):
        obj.on_hand_release(1)
    with pytest.raises(HandNotGraspingError):
        obj.on_hand_lost_tracking(1)
    with pytest.raises(HandNotGraspingError):
        obj.on_hand_timeout(1)


def test_hold_rejects_repeated_hand(obj, make_hand):
    hand = make_hand(1)
    obj.on_hand_grasp(hand)

    with pytest.raises(GraspContractError):
        obj.on_hands_hold([hand, hand])
    assert obj.is_being_grasped_by_hand(1), "a rejected hold must not change grasp state"
