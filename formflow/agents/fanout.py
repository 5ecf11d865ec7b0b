import asyncio
from collections.abc import Awaitable

from formflow.gateway.exceptions import GatewayError


async def gather_settled(calls: list[Awaitable[str]]) -> list[str | GatewayError]:
    """Run oracle calls concurrently and wait for every one to settle.

    Non-transient gateway failures are returned in place of the text so the
    caller can substitute a default. A transient failure that survived the
    retry budget, or any other exception, is raised once all calls are done.
    """
    results = await asyncio.gather(*calls, return_exceptions=True)
    for result in results:
        if isinstance(result, GatewayError) and result.transient:
            raise result
    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, GatewayError):
            raise result
    return [result for result in results]  # type: ignore[misc]
