"""
Stream stages for feature pipelines.

A stage takes an async iterator and returns an async iterator, so pipelines
are plain compositions: `pipe(source, map_(format_run), accumulate(...))`.
Pulling from the end of the chain drives the whole pipeline, which gives
backpressure: outside the accumulate stages, nothing is read faster than the
writer consumes it.
"""

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Iterator
from typing import Optional, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

Stage = Callable[[AsyncIterator], AsyncIterator]


class Accumulator(Protocol):
    """Full-stream reducer: sees every element before producing any output."""

    def accept(self, item) -> None: ...

    def results(self) -> Iterable: ...


def pipe(source: AsyncIterator, *stages: Stage) -> AsyncIterator:
    for stage in stages:
        source = stage(source)
    return source


async def from_iterable(items: Iterable[T]) -> AsyncIterator[T]:
    for item in items:
        yield item


async def chain(*sources: AsyncIterator[T]) -> AsyncIterator[T]:
    """Concatenate streams, draining each one in turn."""
    for source in sources:
        async for item in source:
            yield item


def map_(fn: Callable[[T], Optional[U]]) -> Stage:
    """One input to zero or one output; None drops the element."""

    async def stage(source: AsyncIterator[T]) -> AsyncIterator[U]:
        async for item in source:
            result = fn(item)
            if result is not None:
                yield result

    return stage


def flat_map(fn: Callable[[T], Iterable[U]]) -> Stage:
    """One input to any number of outputs."""

    async def stage(source: AsyncIterator[T]) -> AsyncIterator[U]:
        async for item in source:
            for result in fn(item):
                yield result

    return stage


def map_async(fn: Optional[Callable[[T], Awaitable[T]]], concurrency: int = 10) -> Stage:
    """
    Apply an async function with at most `concurrency` elements in flight.

    Output order matches input order regardless of completion order. An
    element whose function call raises is passed through unchanged. With
    fn=None the stage is a pass-through.
    """
    if concurrency < 1:
        raise ValueError("Concurrency must be positive")

    async def stage(source: AsyncIterator[T]) -> AsyncIterator[T]:
        if fn is None:
            async for item in source:
                yield item
            return

        pending: deque[tuple[T, asyncio.Future]] = deque()
        try:
            async for item in source:
                pending.append((item, asyncio.ensure_future(fn(item))))
                if len(pending) >= concurrency:
                    yield await _settle(*pending.popleft())
            while pending:
                yield await _settle(*pending.popleft())
        finally:
            for _, future in pending:
                future.cancel()

    return stage


async def _settle(item: T, future: asyncio.Future) -> T:
    try:
        return await future
    except Exception as e:
        logger.warning(f"Async stage failed for one element, passing it through: {e}")
        return item


def accumulate(accumulator: Accumulator) -> Stage:
    """Buffer the whole stream into accumulator, then emit its results."""

    async def stage(source: AsyncIterator) -> AsyncIterator:
        async for item in source:
            accumulator.accept(item)
        results: Iterator = iter(accumulator.results())
        for result in results:
            yield result

    return stage
