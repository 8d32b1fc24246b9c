from collections.abc import Callable
from typing import Any

import numpy as np
import pytest

from lbfgsb_pool import LbfgsbParameter, LbfgsbProblem, TaskCode
from lbfgsb_pool.routine import SciPyRoutine

pytestmark = pytest.mark.timeout(30)


def _drive(
    routine: SciPyRoutine, problem: LbfgsbProblem, parameter: LbfgsbParameter
) -> list[TaskCode]:
    tasks = []
    while True:
        task = routine.setulb(problem, parameter)
        tasks.append(task)
        if task == TaskCode.FG:
            problem.f = problem.eval_fn(problem.x, problem.g)
        elif task != TaskCode.NEW_X:
            return tasks


def test_scipy_routine_start(quadratic: Callable[..., Any]) -> None:
    routine = SciPyRoutine()
    assert routine.task == TaskCode.START
    problem = LbfgsbProblem.build([0.0], quadratic())

    # The first request is always an evaluation at the initial point:
    assert routine.setulb(problem, LbfgsbParameter()) == TaskCode.FG
    assert routine.task == TaskCode.FG
    assert routine.nfev == 1
    assert problem.x[0] == 0.0
    routine.reset()


def test_scipy_routine_converges(quadratic: Callable[..., Any]) -> None:
    routine = SciPyRoutine()
    routine.reset()
    problem = LbfgsbProblem.build([0.0, 0.0], quadratic([3.0, -1.0]))

    tasks = _drive(routine, problem, LbfgsbParameter())

    assert tasks[0] == TaskCode.FG
    assert TaskCode.NEW_X in tasks
    assert tasks[-1] == TaskCode.CONVERGENCE
    assert routine.task == TaskCode.CONVERGENCE
    assert routine.nfev == tasks.count(TaskCode.FG)
    assert routine.message
    assert np.allclose(problem.x, [3.0, -1.0], atol=1e-4)
    assert np.max(np.abs(problem.g)) <= 1e-5


def test_scipy_routine_terminal_task_is_stable(quadratic: Callable[..., Any]) -> None:
    routine = SciPyRoutine()
    problem = LbfgsbProblem.build([0.0], quadratic())
    _drive(routine, problem, LbfgsbParameter())
    x = problem.x.copy()
    assert routine.setulb(problem, LbfgsbParameter()) == TaskCode.CONVERGENCE
    assert np.all(problem.x == x)


def test_scipy_routine_bounds(quadratic: Callable[..., Any]) -> None:
    routine = SciPyRoutine()
    problem = LbfgsbProblem.build([0.0, 0.0, 0.0], quadratic(3.0))
    problem.set_bounds([(None, 1.0), (4.0, None), (-1.0, 2.0)])

    tasks = _drive(routine, problem, LbfgsbParameter())

    assert tasks[-1] == TaskCode.CONVERGENCE
    assert np.allclose(problem.x, [1.0, 4.0, 2.0], atol=1e-6)


def test_scipy_routine_abort(quadratic: Callable[..., Any]) -> None:
    routine = SciPyRoutine()
    problem = LbfgsbProblem.build([0.0], quadratic())
    assert routine.setulb(problem, LbfgsbParameter()) == TaskCode.FG

    routine.abort()
    assert routine.task == TaskCode.STOP
    assert "aborted" in routine.message

    # The stopped routine does not resume:
    assert routine.setulb(problem, LbfgsbParameter()) == TaskCode.STOP


def test_scipy_routine_reset_after_abort(quadratic: Callable[..., Any]) -> None:
    routine = SciPyRoutine()
    parameter = LbfgsbParameter()

    problem1 = LbfgsbProblem.build([0.0], quadratic())
    tasks1 = _drive(routine, problem1, parameter)

    problem = LbfgsbProblem.build([0.0], quadratic())
    routine.reset()
    routine.setulb(problem, parameter)
    problem.f = problem.eval_fn(problem.x, problem.g)
    routine.setulb(problem, parameter)
    routine.abort()

    routine.reset()
    assert routine.task == TaskCode.START
    assert routine.nfev == 0
    assert routine.message == ""
    problem2 = LbfgsbProblem.build([0.0], quadratic())
    tasks2 = _drive(routine, problem2, parameter)

    assert tasks1 == tasks2
    assert np.all(problem1.x == problem2.x)


def test_scipy_routine_error(quadratic: Callable[..., Any]) -> None:
    routine = SciPyRoutine()
    problem = LbfgsbProblem.build([0.0], quadratic())
    # A lower bound above the upper bound is rejected by SciPy:
    problem.set_bounds([(2.0, 1.0)])

    assert routine.setulb(problem, LbfgsbParameter()) == TaskCode.ERROR
    assert routine.message.startswith("ERROR")
    assert routine.task.is_terminal


def test_task_code_is_terminal() -> None:
    assert not TaskCode.START.is_terminal
    assert not TaskCode.FG.is_terminal
    assert not TaskCode.NEW_X.is_terminal
    for task in (
        TaskCode.CONVERGENCE,
        TaskCode.ABNORMAL,
        TaskCode.ERROR,
        TaskCode.STOP,
    ):
        assert task.is_terminal
