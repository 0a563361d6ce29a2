"""Confirmation policies for side-effecting workspace operations."""

from collections.abc import Awaitable, Callable

# (prompt) -> approved?
ConfirmationHandler = Callable[[str], Awaitable[bool]]


async def always_approve(message: str) -> bool:
    return True


async def always_decline(message: str) -> bool:
    return False
