"""Example of concurrent optimization of the Rosenbrock function.

This example minimizes the multi-dimensional Rosenbrock function from several
starting points at once. Each optimization runs in its own thread, and the
pool assigns each run to a separate, isolated L-BFGS-B instance.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from numpy.typing import NDArray

from lbfgsb_pool import LbfgsbParameter, LbfgsbPool, LbfgsbProblem, LbfgsbResult

DIM = 5
RUNS = 8


def rosenbrock(variables: NDArray[np.float64], gradient: NDArray[np.float64]) -> float:
    """Evaluate the Rosenbrock function and its gradient.

    Args:
        variables: The variables to evaluate.
        gradient:  The buffer receiving the gradient.

    Returns:
        The value of the function.
    """
    x, y = variables[:-1], variables[1:]
    gradient[:] = 0.0
    gradient[:-1] += -2.0 * (1.0 - x) - 400.0 * x * (y - x * x)
    gradient[1:] += 200.0 * (y - x * x)
    return float(((1.0 - x) ** 2 + 100.0 * (y - x * x) ** 2).sum())


def optimize(pool: LbfgsbPool, initial_values: NDArray[np.float64]) -> LbfgsbResult:
    """Run a single bounded optimization on the pool.

    Args:
        pool:           The pool to use.
        initial_values: The starting point.

    Returns:
        The optimization result.
    """
    problem = LbfgsbProblem.build(initial_values, rosenbrock)
    problem.set_bounds([(0.0, 2.0)] * DIM)
    return pool.run(problem, LbfgsbParameter(m=10, iprint=0))


def main() -> None:
    """Run the example and report the results."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    rng = np.random.default_rng(123)
    pool = LbfgsbPool(RUNS)
    starting_points = rng.uniform(0.2, 1.8, size=(RUNS, DIM))
    with ThreadPoolExecutor(max_workers=RUNS) as executor:
        results = list(executor.map(lambda x: optimize(pool, x), starting_points))
    for result in results:
        print(  # noqa: T201
            f"instance {result.slot:2d}: f = {result.f:.3e}, "
            f"{result.nit} iterations, {result.task.name}"
        )
        assert np.allclose(result.x, 1.0, atol=1e-2)


if __name__ == "__main__":
    main()
