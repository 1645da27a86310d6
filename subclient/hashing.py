"""Deterministic hashes of runtime metadata, used to check compatibility.

Type hashes depend on the shape of types and on field and variant names.
They do not depend on type ids or type paths, so two registries that describe
the same types in a different order hash alike.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Iterable, Set

from .registry import (
    ExtrinsicMetadata,
    Field,
    PalletMetadata,
    RuntimeMetadataV14,
    StorageEntryMap,
    StorageEntryMetadata,
    StorageEntryPlain,
    TypeDef,
    TypeDefArray,
    TypeDefBitSequence,
    TypeDefCompact,
    TypeDefComposite,
    TypeDefPrimitive,
    TypeDefSequence,
    TypeDefTuple,
    TypeDefVariant,
    TypeRegistry,
    Variant,
)
from .twox import twox_256


class _TypeBeingHashed(IntEnum):
    COMPOSITE = 0
    VARIANT = 1
    SEQUENCE = 2
    ARRAY = 3
    TUPLE = 4
    PRIMITIVE = 5
    COMPACT = 6
    BIT_SEQUENCE = 7


# Returned for a type that has already been visited, so recursion terminates.
_RECURSION_MARKER = 123
_PALLET_SEED = 19


class NotFound(LookupError):
    """A pallet, or an item inside a pallet, does not exist in the metadata."""

    PALLET = "pallet"
    ITEM = "item"

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind} not found: {name}")
        self.kind = kind
        self.name = name


def _hash(data: bytes) -> bytes:
    return twox_256(data)


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


def _hash_hashes(a: bytes, b: bytes) -> bytes:
    return _hash(a + b)


class _TypeHasher:
    """Hashes types of one registry, remembering which ids it has visited."""

    def __init__(self, registry: TypeRegistry) -> None:
        self.registry = registry
        self.visited: Set[int] = set()

    def type_hash(self, type_id: int) -> bytes:
        if type_id in self.visited:
            return _hash(bytes([_RECURSION_MARKER]))
        self.visited.add(type_id)
        return self.type_def_hash(self.registry.resolve(type_id))

    def field_hash(self, field: Field) -> bytes:
        digest = self.type_hash(field.type_id)
        if field.name is not None:
            digest = _xor(digest, _hash(field.name.encode()))
        return digest

    def variant_hash(self, variant: Variant) -> bytes:
        digest = _hash(variant.name.encode())
        for field in variant.fields:
            digest = _hash_hashes(digest, self.field_hash(field))
        return digest

    def type_def_hash(self, type_def: TypeDef) -> bytes:
        if isinstance(type_def, TypeDefComposite):
            digest = _hash(bytes([_TypeBeingHashed.COMPOSITE]))
            for field in type_def.fields:
                digest = _hash_hashes(digest, self.field_hash(field))
            return digest
        if isinstance(type_def, TypeDefVariant):
            digest = _hash(bytes([_TypeBeingHashed.VARIANT]))
            for variant in type_def.variants:
                digest = _hash_hashes(digest, self.variant_hash(variant))
            return digest
        if isinstance(type_def, TypeDefSequence):
            digest = _hash(bytes([_TypeBeingHashed.SEQUENCE]))
            return _xor(digest, self.type_hash(type_def.type_param))
        if isinstance(type_def, TypeDefArray):
            header = bytes([_TypeBeingHashed.ARRAY]) + type_def.length.to_bytes(4, "big")
            return _xor(_hash(header), self.type_hash(type_def.type_param))
        if isinstance(type_def, TypeDefTuple):
            digest = _hash(bytes([_TypeBeingHashed.TUPLE]))
            for type_id in type_def.fields:
                digest = _hash_hashes(digest, self.type_hash(type_id))
            return digest
        if isinstance(type_def, TypeDefPrimitive):
            return _hash(bytes([_TypeBeingHashed.PRIMITIVE, type_def.primitive]))
        if isinstance(type_def, TypeDefCompact):
            digest = _hash(bytes([_TypeBeingHashed.COMPACT]))
            return _xor(digest, self.type_hash(type_def.type_param))
        if isinstance(type_def, TypeDefBitSequence):
            digest = _hash(bytes([_TypeBeingHashed.BIT_SEQUENCE]))
            digest = _xor(digest, self.type_hash(type_def.bit_order_type))
            return _xor(digest, self.type_hash(type_def.bit_store_type))
        raise TypeError(f"unknown type definition: {type_def!r}")

    def storage_entry_hash(self, entry: StorageEntryMetadata) -> bytes:
        digest = _hash(entry.name.encode())
        digest = _xor(digest, _hash(bytes([entry.modifier])))
        digest = _xor(digest, _hash(entry.default))
        entry_type = entry.entry_type
        if isinstance(entry_type, StorageEntryPlain):
            digest = _xor(digest, self.type_hash(entry_type.value_type))
        elif isinstance(entry_type, StorageEntryMap):
            for hasher in entry_type.hashers:
                digest = _hash_hashes(digest, bytes([hasher]) * 32)
            digest = _xor(digest, self.type_hash(entry_type.key))
            digest = _xor(digest, self.type_hash(entry_type.value))
        else:
            raise TypeError(f"unknown storage entry type: {entry_type!r}")
        return digest

    def extrinsic_hash(self, extrinsic: ExtrinsicMetadata) -> bytes:
        digest = self.type_hash(extrinsic.type_id)
        digest = _xor(digest, _hash(bytes([extrinsic.version])))
        for extension in extrinsic.signed_extensions:
            ext_digest = _hash(extension.identifier.encode())
            ext_digest = _xor(ext_digest, self.type_hash(extension.type_id))
            ext_digest = _xor(ext_digest, self.type_hash(extension.additional_signed))
            digest = _hash_hashes(digest, ext_digest)
        return digest


def _find_pallet(metadata: RuntimeMetadataV14, pallet_name: str) -> PalletMetadata:
    try:
        return metadata.pallet(pallet_name)
    except KeyError:
        raise NotFound(NotFound.PALLET, pallet_name) from None


def get_storage_hash(metadata: RuntimeMetadataV14, pallet_name: str, storage_name: str) -> bytes:
    """Return the hash of one storage entry; raise NotFound if it does not exist."""
    pallet = _find_pallet(metadata, pallet_name)
    if pallet.storage is None:
        raise NotFound(NotFound.ITEM, storage_name)
    entry = next((e for e in pallet.storage.entries if e.name == storage_name), None)
    if entry is None:
        raise NotFound(NotFound.ITEM, storage_name)
    return _TypeHasher(metadata.types).storage_entry_hash(entry)


def get_constant_hash(metadata: RuntimeMetadataV14, pallet_name: str, constant_name: str) -> bytes:
    """Return the hash of a constant's type; raise NotFound if it does not exist."""
    pallet = _find_pallet(metadata, pallet_name)
    constant = next((c for c in pallet.constants if c.name == constant_name), None)
    if constant is None:
        raise NotFound(NotFound.ITEM, constant_name)
    return _TypeHasher(metadata.types).type_hash(constant.type_id)


def get_call_hash(metadata: RuntimeMetadataV14, pallet_name: str, call_name: str) -> bytes:
    """Return the hash of one call variant; raise NotFound if it does not exist."""
    pallet = _find_pallet(metadata, pallet_name)
    if pallet.calls is None:
        raise NotFound(NotFound.ITEM, call_name)
    try:
        call_type = metadata.types.resolve(pallet.calls)
    except KeyError:
        raise NotFound(NotFound.ITEM, call_name) from None
    if not isinstance(call_type, TypeDefVariant):
        raise NotFound(NotFound.ITEM, call_name)
    variant = next((v for v in call_type.variants if v.name == call_name), None)
    if variant is None:
        raise NotFound(NotFound.ITEM, call_name)
    return _TypeHasher(metadata.types).variant_hash(variant)


def get_pallet_hash(registry: TypeRegistry, pallet: PalletMetadata) -> bytes:
    """Return the hash of a whole pallet: calls, events, constants, errors and storage."""
    digest = _hash(bytes([_PALLET_SEED]))
    hasher = _TypeHasher(registry)

    if pallet.calls is not None:
        digest = _xor(digest, hasher.type_hash(pallet.calls))
    if pallet.event is not None:
        digest = _xor(digest, hasher.type_hash(pallet.event))
    for constant in pallet.constants:
        digest = _xor(digest, _hash(constant.name.encode()))
        digest = _xor(digest, hasher.type_hash(constant.type_id))
    if pallet.error is not None:
        digest = _xor(digest, hasher.type_hash(pallet.error))
    if pallet.storage is not None:
        digest = _xor(digest, _hash(pallet.storage.prefix.encode()))
        for entry in pallet.storage.entries:
            digest = _hash_hashes(digest, hasher.storage_entry_hash(entry))
    return digest


def _sorted_pallet_hashes(registry: TypeRegistry, pallets: Iterable[PalletMetadata]) -> bytes:
    hashed = sorted(
        ((pallet.name, get_pallet_hash(registry, pallet)) for pallet in pallets),
        key=lambda item: item[0],
    )
    return b"".join(digest for _, digest in hashed)


def get_metadata_hash(metadata: RuntimeMetadataV14) -> bytes:
    """Return the hash of the whole metadata, independent of pallet order."""
    data = _sorted_pallet_hashes(metadata.types, metadata.pallets)
    data += _TypeHasher(metadata.types).extrinsic_hash(metadata.extrinsic)
    data += _TypeHasher(metadata.types).type_hash(metadata.type_id)
    return _hash(data)


def get_metadata_per_pallet_hash(metadata: RuntimeMetadataV14, pallets: Iterable[str]) -> bytes:
    """Return a hash over only the named pallets; names not present are ignored."""
    wanted = set(pallets)
    chosen = (pallet for pallet in metadata.pallets if pallet.name in wanted)
    return _hash(_sorted_pallet_hashes(metadata.types, chosen))