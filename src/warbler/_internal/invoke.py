"""Call sync or async callables uniformly.

Page functions, route handlers, error handlers, and lifecycle hooks may
all be plain ``def`` or ``async def``. The await-if-needed check lives
here so callers never branch on it.
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *handler* and await the result if it is awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
