import numpy as np
import pytest

from lbfgsb_pool import Bound, BoundType, LbfgsbProblem, encode_bound


def _dummy(_x: np.ndarray, _g: np.ndarray) -> float:
    return 0.0


def test_problem_build() -> None:
    problem = LbfgsbProblem.build([1.0, 2.0, 3.0], _dummy)
    assert problem.n == 3
    assert problem.f == 0.0
    assert problem.x.dtype == np.float64
    assert np.all(problem.x == [1.0, 2.0, 3.0])
    for buffer in (problem.g, problem.l, problem.u):
        assert buffer.shape == (3,)
        assert np.all(buffer == 0.0)
    assert np.all(problem.nbd == BoundType.UNBOUNDED)
    assert problem.eval_fn is _dummy


def test_problem_build_copies_initial_values() -> None:
    initial_values = np.array([1.0, 2.0])
    problem = LbfgsbProblem.build(initial_values, _dummy)
    problem.x[0] = 10.0
    assert initial_values[0] == 1.0


@pytest.mark.parametrize(
    ("lower", "upper", "expected"),
    [
        (2.0, 5.0, BoundType.BOTH),
        (None, None, BoundType.UNBOUNDED),
        (2.0, None, BoundType.LOWER),
        (None, 5.0, BoundType.UPPER),
        (-np.inf, np.inf, BoundType.UNBOUNDED),
        (-np.inf, 5.0, BoundType.UPPER),
        (2.0, np.nan, BoundType.LOWER),
    ],
)
def test_encode_bound(
    lower: float | None, upper: float | None, expected: BoundType
) -> None:
    assert encode_bound(lower, upper) == expected


def test_set_bounds() -> None:
    problem = LbfgsbProblem.build(np.zeros(4), _dummy)
    problem.set_bounds([(2.0, 5.0), (None, None), (-1.0, None), (None, 7.0)])
    assert np.all(
        problem.nbd
        == [BoundType.BOTH, BoundType.UNBOUNDED, BoundType.LOWER, BoundType.UPPER]
    )
    assert problem.get_bound(0) == Bound(BoundType.BOTH, 2.0, 5.0)
    assert problem.get_bound(1) == Bound(BoundType.UNBOUNDED, None, None)
    assert problem.get_bound(2) == Bound(BoundType.LOWER, -1.0, None)
    assert problem.get_bound(3) == Bound(BoundType.UPPER, None, 7.0)


def test_set_bounds_ignores_residue() -> None:
    problem = LbfgsbProblem.build(np.zeros(1), _dummy)
    problem.set_bounds([(2.0, 5.0)])
    problem.set_bounds([(None, None)])
    # The old values remain stored, but do not affect the decoded bound:
    assert problem.l[0] == 2.0
    assert problem.u[0] == 5.0
    assert problem.get_bound(0) == Bound(BoundType.UNBOUNDED, None, None)


def test_set_bounds_partial() -> None:
    problem = LbfgsbProblem.build(np.zeros(3), _dummy)
    problem.set_bounds([(None, 1.0)])
    assert problem.get_bound(0) == Bound(BoundType.UPPER, None, 1.0)
    assert problem.get_bound(1).type == BoundType.UNBOUNDED
    assert problem.get_bound(2).type == BoundType.UNBOUNDED


def test_set_bounds_too_many() -> None:
    problem = LbfgsbProblem.build(np.zeros(2), _dummy)
    with pytest.raises(IndexError, match="out of range"):
        problem.set_bounds([(None, None)] * 3)


def test_problem_reset() -> None:
    problem = LbfgsbProblem.build([1.0, 2.0], _dummy)
    problem.g[:] = 1.0
    problem.set_bounds([(0.0, 1.0), (0.0, 1.0)])

    problem.reset(1)
    assert np.all(problem.x == [0.0, 2.0])
    assert np.all(problem.g == [0.0, 1.0])
    assert problem.get_bound(0).type == BoundType.UNBOUNDED
    assert problem.get_bound(1).type == BoundType.BOTH

    problem.reset(4)
    assert problem.n == 4
    for buffer in (problem.x, problem.g, problem.l, problem.u, problem.nbd):
        assert buffer.shape == (4,)
        assert np.all(buffer == 0)


def test_projected_gradient_norm() -> None:
    problem = LbfgsbProblem.build([1.0, 0.0], _dummy)
    problem.g[:] = [-4.0, 0.5]
    assert problem.projected_gradient_norm() == 4.0

    # The first variable sits at its upper bound, hence it cannot move:
    problem.set_bounds([(None, 1.0), (None, None)])
    assert problem.projected_gradient_norm() == 0.5
