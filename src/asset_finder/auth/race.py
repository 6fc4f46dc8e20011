"""Single-winner race over several awaitables."""

import asyncio
from typing import Any, Awaitable, Dict, Optional, Tuple


async def first_completed(
    sources: Dict[str, Awaitable[Any]],
    timeout: Optional[float] = None,
) -> Tuple[str, Any]:
    """Wait for whichever source settles first and tear the others down.

    Losing sources are cancelled and awaited before returning, so their cleanup
    (listener unsubscription, closing requests) has run by the time the caller
    sees the winner. If two sources finish in the same loop iteration the one
    listed first wins.

    Args:
        sources: Named awaitables to race
        timeout: Seconds before giving up, None to wait forever

    Returns:
        Tuple of (winning source name, its result)

    Raises:
        asyncio.TimeoutError: If no source settled within ``timeout``
        Exception: Whatever the winning source raised
    """
    tasks = {name: asyncio.ensure_future(aw) for name, aw in sources.items()}
    try:
        done, _ = await asyncio.wait(
            tasks.values(), timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for task in tasks.values():
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks.values(), return_exceptions=True)

    for name, task in tasks.items():
        if task in done:
            return name, task.result()

    raise asyncio.TimeoutError()
