"""The optimization instance driving a single routine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lbfgsb_pool.enums import TaskCode

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

    from lbfgsb_pool._problem import LbfgsbProblem
    from lbfgsb_pool.config import LbfgsbParameter
    from lbfgsb_pool.routine import Routine

_LOGGER = logging.getLogger(__name__)

_DETAILED_IPRINT = 99


@dataclass(frozen=True, slots=True)
class LbfgsbResult:
    """The outcome of an optimization run.

    The arrays are copies of the problem buffers at the end of the run.

    Attributes:
        x:       The final variables.
        f:       The final objective value.
        g:       The final gradient.
        task:    The terminal task code.
        message: The termination message of the routine.
        nit:     The number of accepted iterates.
        nfev:    The number of objective evaluations.
        slot:    The index of the instance that performed the run.
    """

    x: NDArray[np.float64]
    f: float
    g: NDArray[np.float64]
    task: TaskCode
    message: str
    nit: int
    nfev: int
    slot: int

    @property
    def converged(self) -> bool:
        """Whether the run terminated by convergence.

        Returns:
            `True` if the terminal task code is `CONVERGENCE`.
        """
        return self.task == TaskCode.CONVERGENCE


class LbfgsbInstance:
    """Drives one optimization routine through complete runs.

    An instance owns a single [`Routine`][lbfgsb_pool.routine.Routine] object
    and implements the reverse-communication loop on top of it. It is not safe
    to call [`advance`][lbfgsb_pool.LbfgsbInstance.advance] from two threads at
    once, a [`LbfgsbPool`][lbfgsb_pool.LbfgsbPool] guarantees that.
    """

    def __init__(self, slot: int, routine: Routine) -> None:
        """Initialize the instance.

        Args:
            slot:    The index of the instance within its pool.
            routine: The routine driven by this instance.
        """
        self._slot = slot
        self._routine = routine

    @property
    def slot(self) -> int:
        """The index of the instance within its pool."""
        return self._slot

    def advance(
        self, problem: LbfgsbProblem, parameter: LbfgsbParameter
    ) -> LbfgsbResult:
        """Run an optimization to completion.

        The routine is reset and then called repeatedly. When it requests an
        evaluation, the evaluator of the problem is called to update the
        objective value and gradient. When it reports a new iterate, the run
        continues, unless the `max_iterations` limit of the parameters is
        reached. Any other task code ends the run.

        The problem buffers are updated in place and hold the final values
        when this method returns.

        Args:
            problem:   The problem to optimize.
            parameter: The parameters of the run.

        Returns:
            The result of the run.

        Raises:
            Exception: Any exception raised by the evaluator, unchanged. The
                       routine is aborted before the exception propagates.
        """
        routine = self._routine
        routine.reset()
        nit = 0
        message: str | None = None
        _LOGGER.debug(
            "Instance %d: starting run with %d variables", self._slot, problem.n
        )

        while True:
            task = routine.setulb(problem, parameter)
            if task == TaskCode.FG:
                try:
                    problem.f = float(problem.eval_fn(problem.x, problem.g))
                except Exception:
                    _LOGGER.debug("Instance %d: evaluator failed", self._slot)
                    routine.abort()
                    raise
            elif task == TaskCode.NEW_X:
                nit += 1
                self._report_iteration(problem, parameter, nit)
                if (
                    parameter.max_iterations is not None
                    and nit >= parameter.max_iterations
                ):
                    routine.abort()
                    message = f"STOP: maximum number of iterations ({nit}) reached"
                    break
            else:
                break

        if message is None:
            message = routine.message
        if parameter.iprint >= 0:
            _LOGGER.info(
                "Instance %d: %s after %d iterations, f = %g (%s)",
                self._slot,
                routine.task.name,
                nit,
                problem.f,
                message,
            )
        _LOGGER.debug(
            "Instance %d: run finished with %s", self._slot, routine.task.name
        )

        return LbfgsbResult(
            x=problem.x.copy(),
            f=float(problem.f),
            g=problem.g.copy(),
            task=routine.task,
            message=message,
            nit=nit,
            nfev=routine.nfev,
            slot=self._slot,
        )

    def _report_iteration(
        self, problem: LbfgsbProblem, parameter: LbfgsbParameter, nit: int
    ) -> None:
        if parameter.iprint >= _DETAILED_IPRINT:
            _LOGGER.debug(
                "Instance %d: iterate %d: x = %s, g = %s",
                self._slot,
                nit,
                problem.x,
                problem.g,
            )
        if parameter.iprint > 0 and nit % parameter.iprint == 0:
            _LOGGER.info(
                "Instance %d: iteration %d, f = %g, |proj g| = %g",
                self._slot,
                nit,
                problem.f,
                problem.projected_gradient_norm(),
            )
