"""Configuration class for the L-BFGS-B parameters."""

from __future__ import annotations

from pydantic import (
    BaseModel,
    ConfigDict,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveInt,
)


class LbfgsbParameter(BaseModel):
    """Configuration class for the parameters of one optimization run.

    The parameters are passed to the optimization routine on every
    reverse-communication step, and are immutable for the duration of a run:

    - **`m`**: The maximum number of variable metric corrections stored in the
      limited memory matrix.
    - **`factr`**: The tolerance on the function value. The iteration stops
      when the relative reduction of the objective falls below
      `factr * epsmch`, where `epsmch` is the machine precision. Typical
      values are `1e12` for low accuracy, `1e7` for moderate accuracy and
      `1e1` for extremely high accuracy.
    - **`pgtol`**: The tolerance on the projected gradient. The iteration
      stops when the largest component of the projected gradient is at most
      `pgtol`.
    - **`iprint`**: The verbosity level. A negative value disables all output,
      zero reports only the termination, positive values also report the
      progress every `iprint` iterations, values of 99 and above report every
      iterate in detail.
    - **`maxls`**: The maximum number of line search steps per iteration.
    - **`max_iterations`**: An optional limit on the number of accepted
      iterates. By default the run continues until the routine terminates on
      its own.

    Attributes:
        m:              Number of stored corrections (default: 5).
        factr:          Function value tolerance factor (default: 1e1).
        pgtol:          Projected gradient tolerance (default: 1e-5).
        iprint:         Verbosity level (default: -1).
        maxls:          Maximum number of line search steps (default: 20).
        max_iterations: Maximum number of iterations (optional).
    """

    m: NonNegativeInt = 5
    factr: NonNegativeFloat = 1e1
    pgtol: NonNegativeFloat = 1e-5
    iprint: int = -1
    maxls: PositiveInt = 20
    max_iterations: PositiveInt | None = None

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        validate_default=True,
    )
