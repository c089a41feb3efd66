"""Helpers for consuming live streams."""

from collections.abc import AsyncIterator
from typing import TypeVar

T = TypeVar("T")


async def first(stream: AsyncIterator[T]) -> T:
    """Return the first value of ``stream`` and close it.

    Raises:
        ValueError: If the stream ends without a value.
    """
    try:
        async for value in stream:
            return value
    finally:
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()
    raise ValueError("Stream ended without emitting a value")
