"""Small helpers shared by the cart adapters."""
import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable; collaborators may be sync or async."""
    if inspect.isawaitable(value):
        return await value
    return value
