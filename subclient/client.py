"""Clients that bundle runtime details with access to constants and blocks.

:class:`OfflineClient` holds a fixed genesis hash, runtime version and
metadata, and needs no network access. :class:`OnlineClient` also holds an
RPC client and can keep its runtime details up to date as the node upgrades.

The RPC client given to :meth:`OnlineClient.from_rpc_client` provides these
coroutines: ``genesis_hash()``, ``runtime_version(at)``, ``metadata()`` and
``subscribe_runtime_version()``. The last one resolves to an async iterable
of runtime versions. It also provides whatever the block methods need (see
:mod:`subclient.blocks`).
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Optional

from .blocks import BlocksClient
from .constants import ConstantsClient
from .registry import RuntimeMetadataV14


class OfflineClient:
    """A client for offline-only work, built from known runtime details."""

    def __init__(
        self, genesis_hash: Any, runtime_version: Any, metadata: RuntimeMetadataV14
    ) -> None:
        self._genesis_hash = genesis_hash
        self._runtime_version = runtime_version
        self._metadata = metadata

    def genesis_hash(self) -> Any:
        """Return the genesis hash."""
        return self._genesis_hash

    def runtime_version(self) -> Any:
        """Return the runtime version."""
        return self._runtime_version

    def metadata(self) -> RuntimeMetadataV14:
        """Return the metadata used by this client."""
        return self._metadata

    def constants(self) -> ConstantsClient:
        """Access constants."""
        return ConstantsClient(self)

    def blocks(self) -> BlocksClient["OfflineClient"]:
        """Work with blocks."""
        return BlocksClient(self)

    def __repr__(self) -> str:
        return (
            f"OfflineClient(genesis_hash={self._genesis_hash!r}, "
            f"runtime_version={self._runtime_version!r})"
        )


@dataclass
class _State:
    genesis_hash: Any
    runtime_version: Any
    metadata: RuntimeMetadataV14
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class UpgradeError(Exception):
    """A runtime update could not be applied."""

    SAME_VERSION = "same_version"

    def __init__(self, kind: str = SAME_VERSION) -> None:
        super().__init__("the runtime version is the same as the current version")
        self.kind = kind


@dataclass(frozen=True)
class Update:
    """The runtime version and metadata seen after a runtime upgrade."""

    runtime_version: Any
    metadata: RuntimeMetadataV14


class OnlineClient:
    """A client that talks to a node and can follow its runtime upgrades.

    Copies made with :meth:`subscribe_to_updates` share this client's state,
    so an applied update is seen by all of them.
    """

    def __init__(self, rpc: Any, state: _State) -> None:
        self._rpc = rpc
        self._state = state

    @classmethod
    async def from_rpc_client(cls, rpc_client: Any) -> "OnlineClient":
        """Build a client, fetching genesis hash, runtime version and metadata."""
        results = await asyncio.gather(
            rpc_client.genesis_hash(),
            rpc_client.runtime_version(None),
            rpc_client.metadata(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        genesis_hash, runtime_version, metadata = results
        return cls(rpc_client, _State(genesis_hash, runtime_version, metadata))

    @property
    def rpc(self) -> Any:
        """The RPC client used to talk to the node."""
        return self._rpc

    def subscribe_to_updates(self) -> "ClientRuntimeUpdater":
        """Return an object that keeps this client's runtime up to date."""
        return ClientRuntimeUpdater(self)

    def metadata(self) -> RuntimeMetadataV14:
        """Return the metadata currently in use."""
        with self._state.lock:
            return self._state.metadata

    def genesis_hash(self) -> Any:
        """Return the genesis hash."""
        with self._state.lock:
            return self._state.genesis_hash

    def runtime_version(self) -> Any:
        """Return the current runtime version."""
        with self._state.lock:
            return self._state.runtime_version

    def offline(self) -> OfflineClient:
        """Return an offline client holding a snapshot of this client's details."""
        with self._state.lock:
            return OfflineClient(
                self._state.genesis_hash,
                self._state.runtime_version,
                self._state.metadata,
            )

    def constants(self) -> ConstantsClient:
        """Access constants."""
        return ConstantsClient(self)

    def blocks(self) -> BlocksClient["OnlineClient"]:
        """Work with blocks."""
        return BlocksClient(self)

    def _is_runtime_version_different(self, new: Any) -> bool:
        with self._state.lock:
            return self._state.runtime_version != new

    def _do_update(self, update: Update) -> None:
        with self._state.lock:
            self._state.metadata = update.metadata
            self._state.runtime_version = update.runtime_version

    def __repr__(self) -> str:
        return f"OnlineClient(rpc='RpcClient', inner={self._state!r})"


class ClientRuntimeUpdater:
    """Applies runtime updates to an :class:`OnlineClient`."""

    def __init__(self, client: OnlineClient) -> None:
        self._client = client

    def apply_update(self, update: Update) -> None:
        """Apply ``update``; raise :class:`UpgradeError` if its version is current."""
        if not self._client._is_runtime_version_different(update.runtime_version):
            raise UpgradeError(UpgradeError.SAME_VERSION)
        self._client._do_update(update)

    async def perform_runtime_updates(self) -> None:
        """Apply runtime updates until the subscription ends or fails.

        Updates carrying the current version are skipped: the node reports
        the current version when the subscription starts.
        """
        stream = await self.runtime_updates()
        while (update := await stream.next()) is not None:
            try:
                self.apply_update(update)
            except UpgradeError:
                pass

    async def runtime_updates(self) -> "RuntimeUpdaterStream":
        """Return a stream of updates, leaving it to the caller to apply them."""
        sub = await self._client.rpc.subscribe_runtime_version()
        return RuntimeUpdaterStream(sub, self._client)


class RuntimeUpdaterStream:
    """A stream of :class:`Update` values, one per reported runtime version."""

    def __init__(self, stream: AsyncIterable[Any], client: OnlineClient) -> None:
        self._stream: AsyncIterator[Any] = aiter(stream)
        self._client = client

    async def next(self) -> Optional[Update]:
        """Return the next update, or None once the subscription has ended."""
        try:
            runtime_version = await anext(self._stream)
        except StopAsyncIteration:
            return None
        metadata = await self._client.rpc.metadata()
        return Update(runtime_version=runtime_version, metadata=metadata)

    def __aiter__(self) -> "RuntimeUpdaterStream":
        return self

    async def __anext__(self) -> Update:
        update = await self.next()
        if update is None:
            raise StopAsyncIteration
        return update