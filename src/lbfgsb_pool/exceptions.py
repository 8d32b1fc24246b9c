"""Exceptions raised within the `lbfgsb_pool` library."""


class LbfgsbError(Exception):
    """Base class of the errors raised by the library itself.

    Errors raised by a user supplied evaluator are not wrapped, they propagate
    to the caller unchanged.
    """


class PoolSaturatedError(LbfgsbError):
    """Raised when all instances of a pool are busy.

    The pool never queues a request, the caller may retry later.
    """

    def __init__(self, size: int) -> None:
        """Initialize the PoolSaturatedError exception.

        Args:
            size: The number of instances in the pool.
        """
        self.size = size
        super().__init__(f"All {size} optimization instances are in use")


class OptimizationAborted(Exception):  # noqa: N818
    """Raised inside a routine to unwind a run that was aborted by its driver.

    This exception is used internally and does not reach callers of the pool.
    """
