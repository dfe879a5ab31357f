"""Throttled execution of blocking web3 calls."""

from __future__ import annotations

import asyncio
import random
from typing import Any, Callable, TypeVar

import backoff
from web3.exceptions import ProviderConnectionError

from ..settings import RevampSettings

T = TypeVar("T")


class ThrottledRpc:
    """Semaphore-bounded, jittered, retried RPC runner.

    Blocking web3 calls run in a worker thread so the event loop stays free.
    Only connection failures are retried; call reverts and decode errors
    surface immediately.
    """

    def __init__(self, settings: RevampSettings):
        self._sem = asyncio.Semaphore(settings.rpc_max_concurrent_calls)
        self._delay = settings.rpc_delay
        self._jitter = settings.rpc_jitter

    @backoff.on_exception(
        backoff.expo,
        (ProviderConnectionError,),
        max_time=30,
        jitter=backoff.full_jitter,
    )
    async def __call__(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        async with self._sem:
            try:
                return await asyncio.to_thread(fn, *args, **kwargs)
            finally:
                delay = self._delay + random.random() * self._jitter
                if delay > 0:
                    await asyncio.sleep(delay)
