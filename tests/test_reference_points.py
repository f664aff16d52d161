"""
test suite for the per-hand reference point store.

covers local-frame conversion, id transfer, pooling, and contract errors.
"""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from graspalign.core import (
    Finger,
    Bone,
    HandAlreadyGraspingError,
    HandNotGraspingError,
    ReferencePointPool,
    ReferencePointStore,
    RigidTransform,
    joint_index,
)


@pytest.fixture
def body():
    return RigidTransform(
        position=[0.5, 1.0, -0.25],
        rotation=Rotation.from_euler("yx", [60, 15], degrees=True),
    )


@pytest.fixture
def world_points(rng):
    return rng.normal(scale=0.05, size=(20, 3)) + np.array([0.5, 1.0, -0.2])


def test_begin_grasp_stores_local_points(body, world_points):
    store = ReferencePointStore()
    table = store.begin_grasp(5, world_points, body.inverse_matrix())

    assert table.hand_id == 5
    assert 5 in store and len(store) == 1
    # local points mapped back through the body transform give the world points
    np.testing.assert_allclose(body.apply(table.local_points), world_points, atol=1e-12)


def test_begin_grasp_accepts_transform_and_nested_layout(body, world_points):
    store = ReferencePointStore()
    store.begin_grasp(1, world_points.reshape(5, 4, 3), body.inverse())

    expected = body.inverse().apply(world_points)
    np.testing.assert_allclose(store.get_local_points(1), expected, atol=1e-12)


def test_get_local_point_uses_finger_bone_index(body, world_points):
    store = ReferencePointStore()
    store.begin_grasp(3, world_points, body.inverse_matrix())

    local = store.get_local_point(3, Finger.RING, Bone.INTERMEDIATE)
    idx = joint_index(Finger.RING, Bone.INTERMEDIATE)

    assert idx == 14
    np.testing.assert_allclose(local, body.inverse().apply(world_points[idx]), atol=1e-12)


def test_begin_grasp_twice_is_a_contract_error(body, world_points):
    store = ReferencePointStore()
    store.begin_grasp(5, world_points, body.inverse_matrix())

    with pytest.raises(HandAlreadyGraspingError):
        store.begin_grasp(5, world_points, body.inverse_matrix())


def test_transfer_moves_table(body, world_points):
    """after begin(5) and transfer(5, 7), id 7 sees the original points and 5 is gone."""
    store = ReferencePointStore()
    table = store.begin_grasp(5, world_points, body.inverse_matrix())
    before = store.get_local_point(5, Finger.INDEX, Bone.DISTAL).copy()

    store.transfer(5, 7)

    np.testing.assert_array_equal(store.get_local_point(7, Finger.INDEX, Bone.DISTAL), before)
    assert store.get_table(7) is table, "transfer must move storage, not copy it"
    assert table.hand_id == 7
    with pytest.raises(HandNotGraspingError):
        store.get_local_point(5, Finger.INDEX, Bone.DISTAL)
    assert store.pool.allocated == 1


def test_transfer_errors(body, world_points):
    store = ReferencePointStore()
    store.begin_grasp(1, world_points, body.inverse_matrix())
    store.begin_grasp(2, world_points, body.inverse_matrix())

    with pytest.raises(HandNotGraspingError):
        store.transfer(9, 10)
    with pytest.raises(HandAlreadyGraspingError):
        store.transfer(1, 2)

    store.transfer(1, 1)  # no-op
    assert sorted(store.hand_ids) == [1, 2]


def test_lookup_without_grasp_raises():
    store = ReferencePointStore()
    with pytest.raises(HandNotGraspingError):
        store.get_local_point(42, 0, 0)
    with pytest.raises(HandNotGraspingError):
        store.end_grasp(42)


def test_end_grasp_returns_table_to_pool(body, world_points):
    store = ReferencePointStore()
    table = store.begin_grasp(5, world_points, body.inverse_matrix())
    store.end_grasp(5)

    assert 5 not in store
    assert len(store.pool) == 1
    assert table.hand_id is None
    assert np.all(np.isnan(table.local_points)), "released table should read as stale"


def test_pooled_table_is_fully_overwritten(body, rng):
    """reuse after end_grasp: every slot comes from the new hand."""
    store = ReferencePointStore()
    first = rng.normal(size=(20, 3))
    second = rng.normal(size=(20, 3)) + 10.0

    t1 = store.begin_grasp(1, first, body.inverse_matrix())
    store.end_grasp(1)
    t2 = store.begin_grasp(2, second, body.inverse_matrix())

    assert t1 is t2, "second grasp should reuse the pooled table"
    assert store.pool.allocated == 1
    assert not np.any(np.isnan(t2.local_points))
    np.testing.assert_allclose(body.apply(t2.local_points), second, atol=1e-9)
    for f in range(5):
        for b in range(4):
            np.testing.assert_allclose(
                store.get_local_point(2, f, b),
                body.inverse().apply(second[joint_index(f, b)]),
                atol=1e-9,
            )


def test_bad_points_leave_store_untouched(body):
    store = ReferencePointStore()
    with pytest.raises(ValueError):
        store.begin_grasp(1, np.zeros((19, 3)), body.inverse_matrix())

    assert 1 not in store
    assert len(store.pool) == 1, "table taken for the failed grasp goes back to the pool"


def test_bad_transform_rejected(world_points):
    store = ReferencePointStore()
    with pytest.raises(ValueError):
        store.begin_grasp(1, world_points, np.eye(3))


def test_local_points_view_is_read_only(body, world_points):
    store = ReferencePointStore()
    store.begin_grasp(1, world_points, body.inverse_matrix())
    view = store.get_local_points(1)

    with pytest.raises(ValueError):
        view[0, 0] = 0.0


def test_local_point_is_a_copy(body, world_points):
    """writing to a returned point, or reusing its table, leaves the other untouched."""
    store = ReferencePointStore()
    store.begin_grasp(1, world_points, body.inverse_matrix())
    stored = store.get_local_points(1)[joint_index(Finger.THUMB, Bone.DISTAL)].copy()

    point = store.get_local_point(1, Finger.THUMB, Bone.DISTAL)
    point[:] = 99.0
    np.testing.assert_array_equal(store.get_local_point(1, Finger.THUMB, Bone.DISTAL), stored)

    held = store.get_local_point(1, Finger.THUMB, Bone.DISTAL)
    store.end_grasp(1)
    store.begin_grasp(2, world_points + 1.0, np.eye(4))  # reuses the released table
    np.testing.assert_array_equal(held, stored, err_msg="held point changed after its table was reused")


def test_shared_pool_between_stores(body, world_points):
    pool = ReferencePointPool()
    a = ReferencePointStore(pool)
    b = ReferencePointStore(pool)

    a.begin_grasp(1, world_points, body.inverse_matrix())
    a.end_grasp(1)
    b.begin_grasp(1, world_points, body.inverse_matrix())

    assert pool.allocated == 1
    assert 1 in b and 1 not in a
