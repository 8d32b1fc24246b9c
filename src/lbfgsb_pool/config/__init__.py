"""Configuration classes for optimization runs.

The parameters of a run are stored in an immutable
[`LbfgsbParameter`][lbfgsb_pool.config.LbfgsbParameter] object. It is a
[Pydantic](https://docs.pydantic.dev/) model, hence values are validated on
construction:

```py
from lbfgsb_pool.config import LbfgsbParameter

parameter = LbfgsbParameter(m=10, pgtol=1e-8)
```
"""

from ._parameter_config import LbfgsbParameter

__all__ = [
    "LbfgsbParameter",
]
