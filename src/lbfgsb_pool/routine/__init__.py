"""Reverse-communication optimization routines.

An optimization routine is the stateful engine that is driven by an
[`LbfgsbInstance`][lbfgsb_pool.LbfgsbInstance]. Routines inherit from the
[`Routine`][lbfgsb_pool.routine.base.Routine] abstract base class, which defines
the reverse-communication contract: each step returns a
[`TaskCode`][lbfgsb_pool.TaskCode] that tells the driver to evaluate the
objective, to continue after a new iterate, or to stop.

**Built-in Routines:**

* [`SciPyRoutine`][lbfgsb_pool.routine.scipy.SciPyRoutine]: Runs the L-BFGS-B
  algorithm of `scipy.optimize` on a private worker thread.
"""

from .base import Routine
from .scipy import SciPyRoutine

__all__ = [
    "Routine",
    "SciPyRoutine",
]
