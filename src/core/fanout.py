"""Run independent fetches concurrently and join on all of them."""

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional

logger = logging.getLogger("oeeecafe")


def gather_all(*calls: Callable[[], Any], max_workers: Optional[int] = None) -> list:
    """Run every call on its own worker and return results in call order.

    Fails fast: the first failure (in call order, among those already
    finished) is raised as soon as it is seen. Siblings still running are
    left to finish in the background and their results are dropped.
    """
    if not calls:
        return []

    executor = ThreadPoolExecutor(
        max_workers=max_workers or len(calls),
        thread_name_prefix="oeeecafe-fanout",
    )
    try:
        futures = [executor.submit(call) for call in calls]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in futures:
            if future in done and future.exception() is not None:
                error = future.exception()
                logger.debug(f"Fan-out failed with {type(error).__name__}; {len(pending)} still running")
                raise error
        return [future.result() for future in futures]
    finally:
        executor.shutdown(wait=False)
