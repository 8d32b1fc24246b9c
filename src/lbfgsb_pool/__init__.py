"""Concurrent bound-constrained optimization with L-BFGS-B.

The L-BFGS-B routine keeps its algorithm state between the steps of a run, so
a single routine cannot serve two optimizations at once. This package provides
a fixed-size [`LbfgsbPool`][lbfgsb_pool.LbfgsbPool] of isolated routine
instances and dispatches each optimization request to a free instance, failing
fast with a [`PoolSaturatedError`][lbfgsb_pool.PoolSaturatedError] when all are
busy.

The simplest entry point is the [`lbfgsb`][lbfgsb_pool.lbfgsb] function, which
uses a process-wide pool:

```py
from lbfgsb_pool import lbfgsb


def eval_fn(x, g):
    g[:] = 2.0 * (x - 3.0)
    return float(((x - 3.0) ** 2).sum())


x = lbfgsb([0.0], [(None, None)], eval_fn)
```
"""

from ._instance import LbfgsbInstance, LbfgsbResult
from ._pool import MAX_INSTANCES, LbfgsbPool, get_default_pool, lbfgsb
from ._problem import Bound, Evaluator, LbfgsbProblem, encode_bound
from .config import LbfgsbParameter
from .enums import BoundType, TaskCode
from .exceptions import LbfgsbError, OptimizationAborted, PoolSaturatedError

__all__ = [
    "MAX_INSTANCES",
    "Bound",
    "BoundType",
    "Evaluator",
    "LbfgsbError",
    "LbfgsbInstance",
    "LbfgsbParameter",
    "LbfgsbPool",
    "LbfgsbProblem",
    "LbfgsbResult",
    "OptimizationAborted",
    "PoolSaturatedError",
    "TaskCode",
    "encode_bound",
    "get_default_pool",
    "lbfgsb",
]
