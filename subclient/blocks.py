"""Blocks: fetching single blocks and subscribing to streams of them.

A client is any object with an ``rpc`` attribute. That attribute provides the
coroutines ``block_hash(number)``, ``header(block_hash)``, ``finalized_head()``
and ``subscribe_{all,best,finalized}_block_headers()``. The subscription
coroutines resolve to async iterables of headers. A header exposes a ``number``
attribute and a ``hash()`` method.
"""

from __future__ import annotations

from typing import Any, AsyncIterable, AsyncIterator, Generic, Optional, TypeVar

ClientT = TypeVar("ClientT")


def _block_not_found(block_hash: Any) -> LookupError:
    return LookupError(f"block with hash {block_hash!r} not found")


class Block(Generic[ClientT]):
    """A block header together with the client it was obtained through."""

    def __init__(self, header: Any, client: ClientT) -> None:
        self._header = header
        self._client = client

    def hash(self) -> Any:
        """Return the block hash."""
        return self._header.hash()

    def number(self) -> int:
        """Return the block number."""
        return self._header.number

    def header(self) -> Any:
        """Return the entire block header."""
        return self._header

    @property
    def client(self) -> ClientT:
        return self._client

    def __repr__(self) -> str:
        return f"Block(number={self.number()!r}, hash={self.hash()!r})"


class BlocksClient(Generic[ClientT]):
    """A client for working with blocks."""

    def __init__(self, client: ClientT) -> None:
        self._client = client

    async def at(self, block_hash: Any = None) -> Block[ClientT]:
        """Return the block with ``block_hash``, or the latest block if it is None.

        Only blocks produced since the most recent runtime upgrade are
        guaranteed to be usable.
        """
        rpc = self._client.rpc
        if block_hash is None:
            block_hash = await rpc.block_hash(None)
            if block_hash is None:
                raise RuntimeError("node returned no hash for the latest block")
        header = await rpc.header(block_hash)
        if header is None:
            raise _block_not_found(block_hash)
        return Block(header, self._client)

    async def subscribe_all(self) -> AsyncIterator[Block[ClientT]]:
        """Subscribe to every new block the node imports."""
        sub = await self._client.rpc.subscribe_all_block_headers()
        return self._to_blocks(sub)

    async def subscribe_best(self) -> AsyncIterator[Block[ClientT]]:
        """Subscribe to new blocks imported onto the current best fork."""
        sub = await self._client.rpc.subscribe_best_block_headers()
        return self._to_blocks(sub)

    async def subscribe_finalized(self) -> AsyncIterator[Block[ClientT]]:
        """Subscribe to finalized blocks, with no block numbers skipped."""
        rpc = self._client.rpc
        # Take the last finalized block now so that every block after it is reported.
        last_hash = await rpc.finalized_head()
        last_header = await rpc.header(last_hash)
        last_number = None if last_header is None else last_header.number
        sub = await rpc.subscribe_finalized_block_headers()
        filled = subscribe_to_block_headers_filling_in_gaps(self._client, last_number, sub)
        return self._to_blocks(filled)

    async def _to_blocks(self, headers: AsyncIterable[Any]) -> AsyncIterator[Block[ClientT]]:
        async for header in headers:
            yield Block(header, self._client)


async def subscribe_to_block_headers_filling_in_gaps(
    client: Any,
    last_block_num: Optional[int],
    sub: AsyncIterable[Any],
) -> AsyncIterator[Any]:
    """Yield the headers from ``sub``, fetching any headers it skipped over.

    Each header is preceded by those numbered from one past the previously
    yielded block (or ``last_block_num``) up to, but not including, its own
    number. Headers the node cannot find are left out.
    """
    rpc = client.rpc
    async for header in sub:
        end = header.number
        start = end if last_block_num is None else last_block_num + 1
        for number in range(start, end):
            block_hash = await rpc.block_hash(number)
            previous = await rpc.header(block_hash)
            if previous is not None:
                yield previous
        last_block_num = end
        yield header