"""Enumerations used within the `lbfgsb_pool` library."""

from enum import IntEnum


class BoundType(IntEnum):
    """Enumerates the constraint codes of the variables.

    The codes are stored per variable in the `nbd` buffer of an
    [`LbfgsbProblem`][lbfgsb_pool.LbfgsbProblem] and are consumed by the
    optimization routine. Their values follow the classic L-BFGS-B convention.
    """

    UNBOUNDED = 0
    "The variable is unbounded."

    LOWER = 1
    "The variable has only a lower bound."

    BOTH = 2
    "The variable has both a lower and an upper bound."

    UPPER = 3
    "The variable has only an upper bound."


class TaskCode(IntEnum):
    """Enumerates the requests returned by an optimization routine.

    After each reverse-communication step the routine reports what it needs
    next. `FG` and `NEW_X` ask the driver to continue, all other codes except
    `START` are terminal.
    """

    START = 0
    "Initial state, set by a reset of the routine."

    FG = 1
    "The routine requests the function value and gradient at the current point."

    NEW_X = 2
    "The routine has accepted a new iterate."

    CONVERGENCE = 3
    "The routine has converged."

    ABNORMAL = 4
    "The routine terminated without satisfying its convergence criteria."

    ERROR = 5
    "The routine detected an error in its input."

    STOP = 6
    "The run was stopped on request of the driver."

    @property
    def is_terminal(self) -> bool:
        """Whether the code ends an optimization run.

        Returns:
            `True` if the driver must not call the routine again.
        """
        return self not in {TaskCode.START, TaskCode.FG, TaskCode.NEW_X}
