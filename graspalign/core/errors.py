"""
contract violations raised by the grasp store and solver.

these indicate the grasp-tracking layer and this core disagree about which
hands are grasping. numerical degeneracies are never raised; they resolve
to fallback results inside the solver.
"""


class GraspContractError(RuntimeError):
    """caller misuse of the grasp lifecycle or solve cycle."""


class HandNotGraspingError(GraspContractError):
    """hand id has no active reference table."""

    def __init__(self, hand_id: int):
        super().__init__(f"hand {hand_id} is not grasping (no active reference table)")
        self.hand_id = hand_id


class HandAlreadyGraspingError(GraspContractError):
    """hand id already owns an active reference table."""

    def __init__(self, hand_id: int):
        super().__init__(f"hand {hand_id} is already grasping")
        self.hand_id = hand_id


class SolverStateError(GraspContractError):
    """solve cycle used out of order (pairs added after solve without reset)."""
