"""The problem state exchanged with an optimization routine."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TypeAlias

import numpy as np
from numpy.typing import ArrayLike, NDArray

from lbfgsb_pool.enums import BoundType

Evaluator: TypeAlias = Callable[[NDArray[np.float64], NDArray[np.float64]], float]
"""Signature of an objective evaluator.

The evaluator receives the current variables and a gradient buffer. It returns
the objective value and fills the gradient buffer in place. Any exception it
raises aborts the optimization run.
"""

BoundPair: TypeAlias = tuple[float | None, float | None]


@dataclass(frozen=True, slots=True)
class Bound:
    """The decoded bound of a single variable.

    Attributes:
        type:  The constraint code of the variable.
        lower: The lower bound, or `None` if there is none.
        upper: The upper bound, or `None` if there is none.
    """

    type: BoundType
    lower: float | None
    upper: float | None


def _present(value: float | None) -> bool:
    return value is not None and bool(np.isfinite(value))


def encode_bound(lower: float | None, upper: float | None) -> BoundType:
    """Return the constraint code for an optional lower and upper bound.

    Non-finite values are treated as absent bounds.

    Args:
        lower: The lower bound, or `None`.
        upper: The upper bound, or `None`.

    Returns:
        The constraint code.
    """
    match _present(lower), _present(upper):
        case True, True:
            return BoundType.BOTH
        case True, False:
            return BoundType.LOWER
        case False, True:
            return BoundType.UPPER
    return BoundType.UNBOUNDED


class LbfgsbProblem:
    """Owns the numeric buffers of an optimization problem.

    The buffers are mutated in place by the optimization routine and by the
    evaluator while a run is in progress:

    - `x`:   The current variables.
    - `g`:   The gradient at `x`, written by the evaluator.
    - `f`:   The objective value at `x`.
    - `l`:   The lower bounds.
    - `u`:   The upper bounds.
    - `nbd`: The constraint codes, see [`BoundType`][lbfgsb_pool.BoundType].

    A problem must not be passed to two concurrent runs.
    """

    def __init__(
        self,
        x: NDArray[np.float64],
        g: NDArray[np.float64],
        l: NDArray[np.float64],  # noqa: E741
        u: NDArray[np.float64],
        nbd: NDArray[np.intc],
        eval_fn: Evaluator,
        f: float = 0.0,
    ) -> None:
        """Initialize the problem from existing buffers.

        Usually a problem is created with the [`build`][lbfgsb_pool.LbfgsbProblem.build]
        class method, which allocates the buffers.

        Args:
            x:       The initial variables.
            g:       The gradient buffer.
            l:       The lower bounds.
            u:       The upper bounds.
            nbd:     The constraint codes.
            eval_fn: The objective evaluator.
            f:       The initial objective value.
        """
        self.x = x
        self.g = g
        self.f = f
        self.l = l
        self.u = u
        self.nbd = nbd
        self.eval_fn = eval_fn

    @classmethod
    def build(cls, x: ArrayLike, eval_fn: Evaluator) -> LbfgsbProblem:
        """Create an unbounded problem with the given initial variables.

        Args:
            x:       The initial variables.
            eval_fn: The objective evaluator.

        Returns:
            A new problem object.
        """
        variables = np.array(x, dtype=np.float64, ndmin=1)
        n = variables.size
        return cls(
            x=variables,
            g=np.zeros(n, dtype=np.float64),
            l=np.zeros(n, dtype=np.float64),
            u=np.zeros(n, dtype=np.float64),
            nbd=np.full(n, BoundType.UNBOUNDED, dtype=np.intc),
            eval_fn=eval_fn,
        )

    @property
    def n(self) -> int:
        """The number of variables."""
        return int(self.x.size)

    def reset(self, length: int) -> None:
        """Clear the first `length` entries of all buffers.

        The buffers are grown if they are shorter than `length`.

        Args:
            length: The number of entries to clear.
        """
        if length > self.x.size:
            extra = length - self.x.size
            self.x = np.concatenate([self.x, np.zeros(extra, dtype=np.float64)])
            self.g = np.concatenate([self.g, np.zeros(extra, dtype=np.float64)])
            self.l = np.concatenate([self.l, np.zeros(extra, dtype=np.float64)])
            self.u = np.concatenate([self.u, np.zeros(extra, dtype=np.float64)])
            self.nbd = np.concatenate([self.nbd, np.zeros(extra, dtype=np.intc)])
        self.x[:length] = 0.0
        self.g[:length] = 0.0
        self.l[:length] = 0.0
        self.u[:length] = 0.0
        self.nbd[:length] = BoundType.UNBOUNDED

    def set_bounds(self, bounds: Iterable[BoundPair]) -> None:
        """Set the lower and upper bounds of the variables.

        Each entry is a `(lower, upper)` pair, where either value may be `None`
        to indicate that the variable has no bound on that side. Only the
        values of sides that are present are stored, the others retain their
        previous content.

        Args:
            bounds: The bounds, one pair per variable.

        Raises:
            IndexError: If more pairs are given than there are variables.
        """
        for idx, (lower, upper) in enumerate(bounds):
            if idx >= self.n:
                msg = f"bound index {idx} out of range for {self.n} variables"
                raise IndexError(msg)
            code = encode_bound(lower, upper)
            if code in {BoundType.LOWER, BoundType.BOTH}:
                self.l[idx] = lower
            if code in {BoundType.UPPER, BoundType.BOTH}:
                self.u[idx] = upper
            self.nbd[idx] = code

    def get_bound(self, index: int) -> Bound:
        """Decode the bound of a variable.

        Args:
            index: The index of the variable.

        Returns:
            The decoded bound.
        """
        code = BoundType(int(self.nbd[index]))
        return Bound(
            type=code,
            lower=(
                float(self.l[index])
                if code in {BoundType.LOWER, BoundType.BOTH}
                else None
            ),
            upper=(
                float(self.u[index])
                if code in {BoundType.UPPER, BoundType.BOTH}
                else None
            ),
        )

    def projected_gradient_norm(self) -> float:
        """Return the infinity norm of the projected gradient.

        Components that would move a variable beyond an active bound are
        truncated, in the same way the optimization routine measures
        convergence.

        Returns:
            The largest absolute component of the projected gradient.
        """
        if self.n == 0:
            return 0.0
        step = self.x - self.g
        has_lower = (self.nbd == BoundType.LOWER) | (self.nbd == BoundType.BOTH)
        has_upper = (self.nbd == BoundType.UPPER) | (self.nbd == BoundType.BOTH)
        step = np.where(has_lower, np.maximum(step, self.l), step)
        step = np.where(has_upper, np.minimum(step, self.u), step)
        return float(np.max(np.abs(step - self.x)))
