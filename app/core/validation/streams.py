"""
Byte-stream utilities for the validation core.

Request bodies arrive as a lazily produced sequence of byte chunks that can
only be read once. This module provides:

- ``bounded_read``: forwards chunks, failing if the producer stalls for
  longer than the read timeout.
- ``drain``: consumes and discards a stream so the producer is never left
  blocked.
- ``reusable_source`` / ``with_reusable_source``: hands a consumer a source
  it may open once (single pass, no temporary storage) or several times
  (the body is spooled to a temporary file first). The temporary file is
  removed on every exit path.
"""

import asyncio
import logging
import os
import tempfile
from contextlib import aclosing, asynccontextmanager
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, Optional, TypeVar, Union

import aiofiles

from .errors import SpoolingError, StreamAlreadyConsumedError, StreamTimeoutError

logger = logging.getLogger(__name__)

ByteSource = AsyncIterable[bytes]

DEFAULT_READ_TIMEOUT = 20.0
DEFAULT_CHUNK_SIZE = 64 * 1024

R = TypeVar("R")


async def bounded_read(source: ByteSource, timeout: Optional[float] = DEFAULT_READ_TIMEOUT) -> AsyncIterator[bytes]:
    """
    Iterate over ``source``, waiting at most ``timeout`` seconds per chunk.

    Empty chunks are skipped. The upstream iterator is closed when this
    generator finishes, fails or is closed early.

    Raises:
        StreamTimeoutError: If the producer makes no progress in time
    """
    iterator = source.__aiter__()
    try:
        while True:
            try:
                chunk = await asyncio.wait_for(iterator.__anext__(), timeout)
            except StopAsyncIteration:
                return
            except asyncio.TimeoutError:
                raise StreamTimeoutError(timeout) from None
            if chunk:
                yield bytes(chunk)
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()


async def drain(source: ByteSource, timeout: Optional[float] = DEFAULT_READ_TIMEOUT) -> int:
    """
    Consume ``source`` to completion, discarding its contents.

    Returns:
        Number of bytes discarded
    """
    total = 0
    async with aclosing(bounded_read(source, timeout)) as chunks:
        async for chunk in chunks:
            total += len(chunk)
    return total


async def _read_file(path: Path, chunk_size: int) -> AsyncIterator[bytes]:
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                return
            yield chunk


async def _spool(source: ByteSource, path: Path, timeout: Optional[float]) -> int:
    written = 0
    try:
        async with aiofiles.open(path, "wb") as f:
            async with aclosing(bounded_read(source, timeout)) as chunks:
                async for chunk in chunks:
                    await f.write(chunk)
                    written += len(chunk)
    except OSError as e:
        logger.error("Failed to create file stream: %s", e, exc_info=True)
        raise SpoolingError(original_error=e) from e
    return written


class ReusableSource:
    """
    A request body that can be opened once per validation pass.

    Without a backing file the original stream is forwarded and may be
    opened exactly once. With a backing file every ``open`` returns a fresh
    stream over the spooled bytes.
    """

    def __init__(
        self,
        source: ByteSource,
        path: Optional[Path] = None,
        read_timeout: Optional[float] = DEFAULT_READ_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        self._source = source
        self._opened = False
        self.path = path
        self.read_timeout = read_timeout
        self.chunk_size = chunk_size

    @property
    def spooled(self) -> bool:
        return self.path is not None

    def open(self) -> AsyncIterator[bytes]:
        """
        Open a new stream over the body.

        Raises:
            StreamAlreadyConsumedError: If the body is not spooled and has
                already been opened
        """
        if self.path is not None:
            return _read_file(self.path, self.chunk_size)
        if self._opened:
            raise StreamAlreadyConsumedError()
        self._opened = True
        return bounded_read(self._source, self.read_timeout)


@asynccontextmanager
async def reusable_source(
    source: ByteSource,
    passes: int = 1,
    temp_dir: Optional[Union[str, Path]] = None,
    read_timeout: Optional[float] = DEFAULT_READ_TIMEOUT,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[ReusableSource]:
    """
    Scope a ``ReusableSource`` over ``source``.

    Args:
        source: One-shot byte source
        passes: How many times the consumer will open the body. A single
            pass forwards the stream directly; more than one spools the
            body to a temporary file before the block runs.
        temp_dir: Directory for the spool file (platform default if None)
        read_timeout: Seconds to wait for each upstream chunk
        chunk_size: Read size used when replaying the spool file

    Raises:
        SpoolingError: If the spool file cannot be created or written; the
            block is not entered
        StreamTimeoutError: If the producer stalls while spooling
    """
    if passes < 1:
        raise ValueError("passes must be at least 1")

    if passes == 1:
        yield ReusableSource(source, read_timeout=read_timeout, chunk_size=chunk_size)
        return

    try:
        fd, name = tempfile.mkstemp(prefix="validation-", suffix=".body", dir=temp_dir)
        os.close(fd)
    except OSError as e:
        logger.error("Failed to create temporary file: %s", e, exc_info=True)
        raise SpoolingError(original_error=e) from e

    path = Path(name)
    try:
        written = await _spool(source, path, read_timeout)
        logger.debug("Spooled %d bytes to %s", written, path)
        yield ReusableSource(source, path=path, read_timeout=read_timeout, chunk_size=chunk_size)
    finally:
        try:
            path.unlink()
            logger.debug("Removed spool file %s", path)
        except FileNotFoundError:
            pass


async def with_reusable_source(
    source: ByteSource,
    consumer: Callable[[ReusableSource], Awaitable[R]],
    passes: int = 1,
    **options
) -> R:
    """
    Run ``consumer`` against a reusable view of ``source``.

    The source is consumed exactly once whatever the number of passes, and
    any spool file is deleted once ``consumer`` returns or raises.
    """
    async with reusable_source(source, passes=passes, **options) as reusable:
        return await consumer(reusable)
