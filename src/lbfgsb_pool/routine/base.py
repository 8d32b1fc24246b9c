"""This module defines the abstract base class for optimization routines."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lbfgsb_pool._problem import LbfgsbProblem
    from lbfgsb_pool.config import LbfgsbParameter
    from lbfgsb_pool.enums import TaskCode


class Routine(ABC):
    """Abstract Base Class for reverse-communication optimization routines.

    A routine performs an optimization in steps. Each call to
    [`setulb`][lbfgsb_pool.routine.base.Routine.setulb] advances the internal
    algorithm until it needs something from its driver, and then returns a
    [`TaskCode`][lbfgsb_pool.TaskCode] describing the request:

    - `FG`: The driver must compute the objective and its gradient at the
      current variables of the problem, store them in the problem, and call
      `setulb` again.
    - `NEW_X`: A new iterate was accepted. The driver may call `setulb` again
      to continue, or `abort` to stop.
    - Any other code is terminal.

    A routine keeps its algorithm state between calls. That state belongs to a
    single run: it is discarded by
    [`reset`][lbfgsb_pool.routine.base.Routine.reset], and a routine object
    must never be driven by two runs at the same time. Pools therefore hold one
    routine object per slot.

    Subclasses must implement:
    - `reset`:  To discard the state of a previous run.
    - `setulb`: To perform one reverse-communication step.
    - `abort`:  To tear down a run that is suspended mid-way.
    - `task`:   To report the current task code.
    """

    @abstractmethod
    def reset(self) -> None:
        """Discard all state and prepare for a new run.

        After a reset the task code is `START`.
        """

    @abstractmethod
    def setulb(
        self, problem: LbfgsbProblem, parameter: LbfgsbParameter
    ) -> TaskCode:
        """Perform one reverse-communication step.

        The routine reads the variables, objective value, gradient and bounds
        from `problem`. It may overwrite the variables and, when the run
        terminates, the objective value and gradient.

        Args:
            problem:   The problem buffers.
            parameter: The parameters of the run.

        Returns:
            The new task code.
        """

    @abstractmethod
    def abort(self) -> None:
        """Stop a run that is in progress.

        After an abort the task code is `STOP`. Aborting a routine that is not
        running has no effect other than setting the task code.
        """

    @property
    @abstractmethod
    def task(self) -> TaskCode:
        """The current task code."""

    @property
    def message(self) -> str:
        """A description of the current state of the routine.

        Returns:
            The message, empty by default.
        """
        return ""

    @property
    def nfev(self) -> int:
        """The number of evaluations requested in the current run.

        Returns:
            The number of `FG` requests, zero by default.
        """
        return 0
