import asyncio
import typing

T = typing.TypeVar("T")


async def drain(
    aws: typing.Iterable[typing.Awaitable[T]],
) -> typing.AsyncGenerator[T, None]:
    """
    Schedules every awaitable at once and yields their results in
    completion order.

    If any of them raises, the rest are cancelled and the exception is
    propagated to the consumer.
    """
    pending: typing.Set["asyncio.Future[T]"] = {asyncio.ensure_future(aw) for aw in aws}
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                yield task.result()
    finally:
        for task in pending:
            task.cancel()
