from collections.abc import Callable
from typing import Any

import numpy as np
import pytest
from numpy.typing import NDArray

_Evaluator = Callable[[NDArray[np.float64], NDArray[np.float64]], float]


def _compute_distance_squared(
    variables: NDArray[np.float64],
    gradient: NDArray[np.float64],
    target: NDArray[np.float64],
) -> float:
    gradient[:] = 2.0 * (variables - target)
    return float(((variables - target) ** 2).sum())


@pytest.fixture(scope="session")
def quadratic() -> Callable[..., _Evaluator]:
    def _quadratic(target: Any = 3.0) -> _Evaluator:  # noqa: ANN401
        target_array = np.asarray(target, dtype=np.float64)

        def _evaluate(
            variables: NDArray[np.float64], gradient: NDArray[np.float64]
        ) -> float:
            return _compute_distance_squared(variables, gradient, target_array)

        return _evaluate

    return _quadratic


@pytest.fixture(scope="session")
def rosenbrock() -> _Evaluator:
    def _rosenbrock(
        variables: NDArray[np.float64], gradient: NDArray[np.float64]
    ) -> float:
        x, y = variables[:-1], variables[1:]
        gradient[:] = 0.0
        gradient[:-1] += -2.0 * (1.0 - x) - 400.0 * x * (y - x * x)
        gradient[1:] += 200.0 * (y - x * x)
        return float(((1.0 - x) ** 2 + 100.0 * (y - x * x) ** 2).sum())

    return _rosenbrock
