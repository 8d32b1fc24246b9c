"""The pool dispatching optimization runs to isolated instances."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Final

from lbfgsb_pool._instance import LbfgsbInstance
from lbfgsb_pool._problem import LbfgsbProblem
from lbfgsb_pool.config import LbfgsbParameter
from lbfgsb_pool.exceptions import PoolSaturatedError
from lbfgsb_pool.routine import Routine, SciPyRoutine

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import ArrayLike, NDArray

    from lbfgsb_pool._instance import LbfgsbResult
    from lbfgsb_pool._problem import BoundPair, Evaluator

_LOGGER = logging.getLogger(__name__)

MAX_INSTANCES: Final = 64
"""The number of instances in the default pool."""


class LbfgsbPool:
    """A fixed-size pool of isolated optimization instances.

    Optimization routines keep state across the steps of a run, so a routine
    object can serve only one run at a time. The pool owns a fixed number of
    [`LbfgsbInstance`][lbfgsb_pool.LbfgsbInstance] objects, each with its own
    routine, and assigns every incoming run to exactly one free instance. This
    allows up to `size` runs to proceed in parallel from different threads.

    Free instances are searched round-robin, starting just after the instance
    that was assigned last, so that load is spread over all instances. When no
    instance is free, the request fails immediately with a
    [`PoolSaturatedError`][lbfgsb_pool.PoolSaturatedError]; requests are never
    queued.

    The table of busy flags is protected by a single lock that is only held
    while searching for an instance and while releasing it, never during a run.
    Instances are released on every exit path of a run, including errors
    raised by the evaluator.
    """

    def __init__(
        self,
        size: int = MAX_INSTANCES,
        routine_factory: Callable[[], Routine] = SciPyRoutine,
    ) -> None:
        """Initialize the pool.

        Args:
            size:            The number of instances.
            routine_factory: Callable creating the routine of each instance.

        Raises:
            ValueError: If the size is smaller than one.
        """
        if size < 1:
            msg = f"the pool size must be at least one, got {size}"
            raise ValueError(msg)
        self._lock = threading.Lock()
        self._instances = tuple(
            LbfgsbInstance(slot, routine_factory()) for slot in range(size)
        )
        self._in_use = [False] * size
        self._last_id = 0

    @property
    def size(self) -> int:
        """The number of instances in the pool."""
        return len(self._instances)

    @property
    def busy_count(self) -> int:
        """The number of instances that are currently running."""
        with self._lock:
            return sum(self._in_use)

    @contextmanager
    def acquire(self) -> Iterator[LbfgsbInstance]:
        """Reserve a free instance for the duration of a `with` block.

        Yields:
            The reserved instance.

        Raises:
            PoolSaturatedError: If all instances are in use.
        """
        slot = self._claim()
        try:
            yield self._instances[slot]
        finally:
            self._release(slot)

    def run(
        self, problem: LbfgsbProblem, parameter: LbfgsbParameter | None = None
    ) -> LbfgsbResult:
        """Optimize a problem on a free instance.

        The problem buffers are updated in place. The calling thread blocks
        until the run terminates.

        Args:
            problem:   The problem to optimize.
            parameter: The parameters of the run, defaults are used if `None`.

        Returns:
            The result of the run.

        Raises:
            PoolSaturatedError: If all instances are in use.
        """
        if parameter is None:
            parameter = LbfgsbParameter()
        with self.acquire() as instance:
            return instance.advance(problem, parameter)

    def minimize(  # noqa: PLR0913
        self,
        x: ArrayLike,
        bounds: Sequence[BoundPair] | None,
        eval_fn: Evaluator,
        m: int = 5,
        factr: float = 1e1,
        pgtol: float = 1e-5,
        iprint: int = -1,
    ) -> NDArray[np.float64]:
        """Minimize a function and return the optimal variables.

        Args:
            x:       The initial variables.
            bounds:  Pairs of optional lower and upper bounds, one per
                     variable, or `None` if all variables are unbounded.
            eval_fn: The evaluator returning the objective and filling the
                     gradient.
            m:       The number of stored corrections.
            factr:   The function value tolerance factor.
            pgtol:   The projected gradient tolerance.
            iprint:  The verbosity level.

        Returns:
            The final variables.

        Raises:
            IndexError:         If the number of bounds does not match the
                                number of variables.
            PoolSaturatedError: If all instances are in use.
        """
        parameter = LbfgsbParameter(m=m, factr=factr, pgtol=pgtol, iprint=iprint)
        problem = LbfgsbProblem.build(x, eval_fn)
        if bounds is not None:
            if len(bounds) != problem.n:
                msg = f"expected {problem.n} bounds, got {len(bounds)}"
                raise IndexError(msg)
            problem.set_bounds(bounds)
        return self.run(problem, parameter).x

    def _claim(self) -> int:
        with self._lock:
            for _ in range(self.size):
                self._last_id = (self._last_id + 1) % self.size
                if not self._in_use[self._last_id]:
                    self._in_use[self._last_id] = True
                    _LOGGER.debug("Acquired instance %d", self._last_id)
                    return self._last_id
        _LOGGER.warning("All %d optimization instances are in use", self.size)
        raise PoolSaturatedError(self.size)

    def _release(self, slot: int) -> None:
        with self._lock:
            self._in_use[slot] = False
        _LOGGER.debug("Released instance %d", slot)


_DEFAULT_POOL: LbfgsbPool | None = None
_DEFAULT_POOL_LOCK = threading.Lock()


def get_default_pool() -> LbfgsbPool:
    """Return the process-wide pool used by [`lbfgsb`][lbfgsb_pool.lbfgsb].

    The pool is created on first use, with `MAX_INSTANCES` instances.

    Returns:
        The default pool.
    """
    global _DEFAULT_POOL  # noqa: PLW0603
    with _DEFAULT_POOL_LOCK:
        if _DEFAULT_POOL is None:
            _DEFAULT_POOL = LbfgsbPool(MAX_INSTANCES)
        return _DEFAULT_POOL


def lbfgsb(  # noqa: PLR0913
    x: ArrayLike,
    bounds: Sequence[BoundPair] | None,
    eval_fn: Evaluator,
    m: int = 5,
    factr: float = 1e1,
    pgtol: float = 1e-5,
    iprint: int = -1,
) -> NDArray[np.float64]:
    """Minimize a scalar function of one or more variables using L-BFGS-B.

    The run is executed on the default pool, see
    [`get_default_pool`][lbfgsb_pool.get_default_pool], and may be called from
    multiple threads at once.

    Example:
        ```py
        def eval_fn(x, g):
            g[:] = 2 * (x - 3.0)
            return float(((x - 3.0) ** 2).sum())

        x = lbfgsb([0.0], [(None, 1.0)], eval_fn)
        ```

    Args:
        x:       The initial variables.
        bounds:  Pairs of optional lower and upper bounds, one per variable, or
                 `None` if all variables are unbounded.
        eval_fn: The evaluator returning the objective and filling the gradient.
                 Raising an exception cancels the minimization.
        m:       The number of stored corrections.
        factr:   The function value tolerance factor.
        pgtol:   The projected gradient tolerance.
        iprint:  The verbosity level.

    Returns:
        The final variables.

    Raises:
        PoolSaturatedError: If all instances of the default pool are in use.
    """
    return get_default_pool().minimize(
        x, bounds, eval_fn, m=m, factr=factr, pgtol=pgtol, iprint=iprint
    )
