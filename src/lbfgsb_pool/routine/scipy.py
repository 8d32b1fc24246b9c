"""This module implements a reverse-communication routine backed by SciPy."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, Literal

import numpy as np
from scipy.optimize import Bounds, OptimizeResult, minimize

from lbfgsb_pool.enums import BoundType, TaskCode
from lbfgsb_pool.exceptions import OptimizationAborted

from .base import Routine

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from lbfgsb_pool._problem import LbfgsbProblem
    from lbfgsb_pool.config import LbfgsbParameter

_LOGGER = logging.getLogger(__name__)

# SciPy requires finite limits, the largest C integer effectively disables them:
_NO_LIMIT: Final = int(np.iinfo(np.int32).max)
_JOIN_TIMEOUT: Final = 10.0


@dataclass(slots=True)
class _Request:
    kind: Literal["fg", "new_x", "done", "error"]
    x: NDArray[np.float64] | None = None
    result: OptimizeResult | None = None
    error: Exception | None = None


class _Abort:
    pass


_ABORT: Final = _Abort()


class SciPyRoutine(Routine):
    """Reverse-communication L-BFGS-B routine using SciPy.

    This routine runs
    [`scipy.optimize.minimize`](https://docs.scipy.org/doc/scipy/reference/optimize.minimize-lbfgsb.html)
    with the `L-BFGS-B` method. SciPy calls its objective function directly,
    which does not fit the reverse-communication protocol. Therefore, each run
    is executed on a private worker thread that hands every objective request
    back to the driver and suspends until the driver answers via
    [`setulb`][lbfgsb_pool.routine.scipy.SciPyRoutine.setulb].

    The worker thread, together with the queues used to exchange requests and
    replies, forms the private state of the routine. It is created when a run
    starts and discarded by [`reset`][lbfgsb_pool.routine.scipy.SciPyRoutine.reset],
    so no state leaks from one run into the next.

    The parameters map onto the SciPy options as follows: `m` sets `maxcor`,
    `factr` sets `ftol` to `factr` times the machine precision, `pgtol` sets
    `gtol`, and `maxls` is passed unchanged. The iteration and evaluation
    limits of SciPy are disabled.
    """

    def __init__(self) -> None:
        """Initialize the routine."""
        self._task = TaskCode.START
        self._message = ""
        self._nfev = 0
        self._worker: _Worker | None = None

    @property
    def task(self) -> TaskCode:
        """The current task code.

        See the [lbfgsb_pool.routine.base.Routine][] abstract base class.

        # noqa
        """
        return self._task

    @property
    def message(self) -> str:
        """A description of the current state of the routine.

        See the [lbfgsb_pool.routine.base.Routine][] abstract base class.

        # noqa
        """
        return self._message

    @property
    def nfev(self) -> int:
        """The number of evaluations requested in the current run.

        See the [lbfgsb_pool.routine.base.Routine][] abstract base class.

        # noqa
        """
        return self._nfev

    def reset(self) -> None:
        """Discard all state and prepare for a new run.

        See the [lbfgsb_pool.routine.base.Routine][] abstract base class.

        # noqa
        """
        self._discard_worker()
        self._task = TaskCode.START
        self._message = ""
        self._nfev = 0

    def setulb(
        self, problem: LbfgsbProblem, parameter: LbfgsbParameter
    ) -> TaskCode:
        """Perform one reverse-communication step.

        See the [lbfgsb_pool.routine.base.Routine][] abstract base class.

        # noqa
        """
        match self._task:
            case TaskCode.START:
                self._worker = _Worker(
                    problem.x.copy(), _get_bounds(problem), _get_options(parameter)
                )
                self._worker.start()
            case TaskCode.FG:
                assert self._worker is not None
                self._worker.reply((float(problem.f), problem.g.copy()))
            case TaskCode.NEW_X:
                assert self._worker is not None
                self._worker.reply(None)
            case _:
                return self._task

        assert self._worker is not None
        self._handle_request(self._worker.receive(), problem)
        return self._task

    def abort(self) -> None:
        """Stop a run that is in progress.

        See the [lbfgsb_pool.routine.base.Routine][] abstract base class.

        # noqa
        """
        self._discard_worker()
        self._task = TaskCode.STOP
        if not self._message:
            self._message = "STOP: aborted by the driver"

    def _handle_request(self, request: _Request, problem: LbfgsbProblem) -> None:
        match request.kind:
            case "fg":
                assert request.x is not None
                problem.x[:] = request.x
                self._nfev += 1
                self._task = TaskCode.FG
            case "new_x":
                assert request.x is not None
                problem.x[:] = request.x
                self._task = TaskCode.NEW_X
            case "done":
                result = request.result
                assert result is not None
                problem.x[:] = result.x
                problem.f = float(result.fun)
                problem.g[:] = result.jac
                self._message = str(result.message)
                self._task = (
                    TaskCode.CONVERGENCE if result.success else TaskCode.ABNORMAL
                )
                self._join_worker()
            case "error":
                self._message = f"ERROR: {request.error}"
                self._task = TaskCode.ERROR
                self._join_worker()

    def _discard_worker(self) -> None:
        if self._worker is not None:
            if self._task in {TaskCode.FG, TaskCode.NEW_X}:
                self._worker.reply(_ABORT)
            self._join_worker()

    def _join_worker(self) -> None:
        if self._worker is not None:
            self._worker.join()
            self._worker = None


class _Worker:
    def __init__(
        self,
        x0: NDArray[np.float64],
        bounds: Bounds | None,
        options: dict[str, Any],
    ) -> None:
        self._x0 = x0
        self._bounds = bounds
        self._options = options
        self._requests: queue.Queue[_Request] = queue.Queue(maxsize=1)
        self._replies: queue.Queue[Any] = queue.Queue(maxsize=1)
        self._thread = threading.Thread(target=self._run, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def receive(self) -> _Request:
        return self._requests.get()

    def reply(self, value: Any) -> None:  # noqa: ANN401
        self._replies.put(value)

    def join(self) -> None:
        self._thread.join(_JOIN_TIMEOUT)
        if self._thread.is_alive():
            _LOGGER.warning("SciPy worker thread did not finish in time")

    def _run(self) -> None:
        try:
            result = minimize(
                fun=self._function,
                x0=self._x0,
                method="L-BFGS-B",
                jac=True,
                bounds=self._bounds,
                callback=self._callback,
                options=self._options,
            )
        except OptimizationAborted:
            return
        except Exception as exc:  # noqa: BLE001
            # Reported to the driver as a terminal task code:
            self._requests.put(_Request(kind="error", error=exc))
            return
        self._requests.put(_Request(kind="done", result=result))

    def _request(self, request: _Request) -> Any:  # noqa: ANN401
        self._requests.put(request)
        reply = self._replies.get()
        if reply is _ABORT:
            raise OptimizationAborted
        return reply

    def _function(
        self, variables: NDArray[np.float64]
    ) -> tuple[float, NDArray[np.float64]]:
        function, gradient = self._request(_Request(kind="fg", x=variables.copy()))
        return function, gradient

    def _callback(self, xk: NDArray[np.float64]) -> None:
        self._request(_Request(kind="new_x", x=xk.copy()))


def _get_bounds(problem: LbfgsbProblem) -> Bounds | None:
    if np.all(problem.nbd == BoundType.UNBOUNDED):
        return None
    has_lower = (problem.nbd == BoundType.LOWER) | (problem.nbd == BoundType.BOTH)
    has_upper = (problem.nbd == BoundType.UPPER) | (problem.nbd == BoundType.BOTH)
    return Bounds(
        np.where(has_lower, problem.l, -np.inf),
        np.where(has_upper, problem.u, np.inf),
    )


def _get_options(parameter: LbfgsbParameter) -> dict[str, Any]:
    return {
        "maxcor": parameter.m,
        "ftol": parameter.factr * np.finfo(np.float64).eps,
        "gtol": parameter.pgtol,
        "maxls": parameter.maxls,
        "maxiter": _NO_LIMIT,
        "maxfun": _NO_LIMIT,
    }
