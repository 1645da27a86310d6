# subclient

A small asynchronous client toolkit for Substrate-style chains. It has no
runtime dependencies.

- **`subclient.twox`**: `xxh64(data, seed)` and the hashes built on it,
  `twox_64`, `twox_128` and `twox_256` (8, 16 and 32 bytes: the
  little-endian xxHash64 digests under seeds 0, 1, 2, ... joined together).
- **`subclient.registry`**: an in-memory model of V14 runtime metadata. A
  `TypeRegistry` holds type definitions (`TypeDefComposite`,
  `TypeDefVariant`, `TypeDefSequence`, `TypeDefArray`, `TypeDefTuple`,
  `TypeDefPrimitive`, `TypeDefCompact`, `TypeDefBitSequence`) by numeric id;
  `reserve` and `define` let you build recursive types. `PalletMetadata`,
  `PalletStorageMetadata`, `StorageEntryMetadata`, `PalletConstantMetadata`,
  `ExtrinsicMetadata` and `RuntimeMetadataV14` refer to those ids.
- **`subclient.hashing`**: deterministic hashes of metadata items, for
  checking whether code written against one runtime still matches another:
  `get_metadata_hash`, `get_metadata_per_pallet_hash`, `get_pallet_hash`,
  `get_call_hash`, `get_constant_hash` and `get_storage_hash`. A missing
  pallet or item raises `NotFound` (a `LookupError`).
- **`subclient.constants`**: `StaticConstantAddress` (with an optional
  32-byte validation hash and a decoder), `DynamicConstantAddress` (built
  with `dynamic(pallet_name, constant_name)`, yielding a `DecodedValueThunk`
  of raw bytes), and a `ConstantsClient` that validates an address before
  decoding. A hash mismatch raises `IncompatibleConstantMetadata`.
- **`subclient.blocks`**: a `BlocksClient` that fetches a block by hash (or
  the latest block) and subscribes to all, best or finalized blocks. The
  finalized stream fills in any block numbers the node skipped, using
  `subscribe_to_block_headers_filling_in_gaps`.
- **`subclient.client`**: `OfflineClient` and `OnlineClient`, and
  `ClientRuntimeUpdater` / `RuntimeUpdaterStream` for keeping an online
  client's metadata and runtime version current as the node upgrades.

## Installing

```bash
pip install .
```

To run the tests:

```bash
pip install ".[test]"
pytest
```

## Hashing metadata

```python
from subclient.registry import (
    TypeRegistry, TypeDefPrimitive, Primitive,
    PalletMetadata, PalletConstantMetadata,
    ExtrinsicMetadata, RuntimeMetadataV14,
)
from subclient.hashing import get_metadata_hash, get_constant_hash

registry = TypeRegistry()
u64 = registry.add(TypeDefPrimitive(Primitive.U64))
u8 = registry.add(TypeDefPrimitive(Primitive.U8))

pallet = PalletMetadata(
    name="System",
    index=0,
    constants=[
        PalletConstantMetadata(
            name="BlockHashCount", type_id=u64, value=b"\x60\0\0\0\0\0\0\0"
        )
    ],
)
metadata = RuntimeMetadataV14(
    types=registry,
    pallets=[pallet],
    extrinsic=ExtrinsicMetadata(type_id=u8, version=4),
    type_id=u8,
)

print(get_metadata_hash(metadata).hex())
print(get_constant_hash(metadata, "System", "BlockHashCount").hex())
```

Hashes depend on the shape of types and on field and variant names, not on
type ids, so registries listing the same types in another order hash alike.
They don't depend on the order in which pallets are listed either, and
recursive types are handled.

## Reading constants

```python
from subclient.client import OfflineClient
from subclient.constants import StaticConstantAddress, dynamic
from subclient.hashing import get_constant_hash

client = OfflineClient(genesis_hash=b"\0" * 32, runtime_version=1, metadata=metadata)

address = StaticConstantAddress(
    pallet_name="System",
    constant_name="BlockHashCount",
    validation_hash=get_constant_hash(metadata, "System", "BlockHashCount"),
    decoder=lambda data, type_id, md: int.from_bytes(data, "little"),
)
print(client.constants().at(address))       # 96

thunk = client.constants().at(dynamic("System", "BlockHashCount"))
print(thunk.encoded())                       # the raw SCALE bytes
```

`address.unvalidated()` returns a copy that skips the hash check.

## Working with a node

`OnlineClient.from_rpc_client` takes any object that provides the RPC
coroutines the client needs: `genesis_hash()`, `runtime_version(at)`,
`metadata()`, `subscribe_runtime_version()`, and for blocks `block_hash(n)`,
`header(hash)`, `finalized_head()` and
`subscribe_{all,best,finalized}_block_headers()`. Headers need a `number`
attribute and a `hash()` method.

```python
from subclient.client import OnlineClient

async def run(rpc):
    api = await OnlineClient.from_rpc_client(rpc)

    async for block in await api.blocks().subscribe_finalized():
        print(block.number(), block.hash())
```

To apply runtime upgrades in the background:

```python
import asyncio

updater = api.subscribe_to_updates()
asyncio.create_task(updater.perform_runtime_updates())
```

`ClientRuntimeUpdater.apply_update` raises `UpgradeError` when the update
carries the runtime version the client already uses;
`perform_runtime_updates` skips such updates. `api.offline()` returns an
`OfflineClient` holding a snapshot of the current details.

## What it does not do

- It opens no connections: there is no WebSocket or HTTP transport, and you
  supply the RPC object yourself.
- It does not decode SCALE-encoded metadata or values; metadata is built in
  memory, and constant values are decoded by the decoder you give.
- It has no transaction signing or submission, storage queries, events or
  block bodies, and no command-line tool.