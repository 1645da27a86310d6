"""Runtime metadata model: a portable type registry plus pallet descriptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, Optional, Tuple, Union


class Primitive(IntEnum):
    """Primitive types, numbered in their canonical declaration order."""

    BOOL = 0
    CHAR = 1
    STR = 2
    U8 = 3
    U16 = 4
    U32 = 5
    U64 = 6
    U128 = 7
    U256 = 8
    I8 = 9
    I16 = 10
    I32 = 11
    I64 = 12
    I128 = 13
    I256 = 14


def _freeze(obj: object, name: str) -> None:
    object.__setattr__(obj, name, tuple(getattr(obj, name)))


@dataclass(frozen=True)
class Field:
    """A field of a composite type or variant."""

    type_id: int
    name: Optional[str] = None
    type_name: Optional[str] = None
    docs: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "docs")


@dataclass(frozen=True)
class Variant:
    """One variant of an enum-like type."""

    name: str
    fields: Tuple[Field, ...] = ()
    index: int = 0
    docs: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "fields")
        _freeze(self, "docs")


@dataclass(frozen=True)
class TypeDefComposite:
    fields: Tuple[Field, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "fields")


@dataclass(frozen=True)
class TypeDefVariant:
    variants: Tuple[Variant, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "variants")


@dataclass(frozen=True)
class TypeDefSequence:
    type_param: int


@dataclass(frozen=True)
class TypeDefArray:
    length: int
    type_param: int

    def __post_init__(self) -> None:
        if not 0 <= self.length < 2**32:
            raise ValueError(f"array length out of u32 range: {self.length}")


@dataclass(frozen=True)
class TypeDefTuple:
    fields: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "fields")


@dataclass(frozen=True)
class TypeDefPrimitive:
    primitive: Primitive

    def __post_init__(self) -> None:
        object.__setattr__(self, "primitive", Primitive(self.primitive))


@dataclass(frozen=True)
class TypeDefCompact:
    type_param: int


@dataclass(frozen=True)
class TypeDefBitSequence:
    bit_store_type: int
    bit_order_type: int


TypeDef = Union[
    TypeDefComposite,
    TypeDefVariant,
    TypeDefSequence,
    TypeDefArray,
    TypeDefTuple,
    TypeDefPrimitive,
    TypeDefCompact,
    TypeDefBitSequence,
]


class TypeRegistry:
    """A table of type definitions addressed by numeric id."""

    def __init__(self) -> None:
        self._types: list[Optional[TypeDef]] = []

    def reserve(self) -> int:
        """Allocate an id whose definition is supplied later (for recursive types)."""
        self._types.append(None)
        return len(self._types) - 1

    def define(self, type_id: int, type_def: TypeDef) -> None:
        """Fill in the definition of a previously reserved id."""
        if not 0 <= type_id < len(self._types):
            raise KeyError(type_id)
        if self._types[type_id] is not None:
            raise ValueError(f"type {type_id} is already defined")
        self._types[type_id] = type_def

    def add(self, type_def: TypeDef) -> int:
        """Register a definition and return its new id."""
        self._types.append(type_def)
        return len(self._types) - 1

    def resolve(self, type_id: int) -> TypeDef:
        """Return the definition for ``type_id``; raise KeyError if there is none."""
        if not 0 <= type_id < len(self._types):
            raise KeyError(type_id)
        type_def = self._types[type_id]
        if type_def is None:
            raise KeyError(type_id)
        return type_def

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, type_id: object) -> bool:
        return (
            isinstance(type_id, int)
            and 0 <= type_id < len(self._types)
            and self._types[type_id] is not None
        )

    def __iter__(self) -> Iterator[Tuple[int, TypeDef]]:
        return ((i, t) for i, t in enumerate(self._types) if t is not None)


class StorageEntryModifier(IntEnum):
    OPTIONAL = 0
    DEFAULT = 1


class StorageHasher(IntEnum):
    BLAKE2_128 = 0
    BLAKE2_256 = 1
    BLAKE2_128_CONCAT = 2
    TWOX_128 = 3
    TWOX_256 = 4
    TWOX_64_CONCAT = 5
    IDENTITY = 6


@dataclass(frozen=True)
class StorageEntryPlain:
    value_type: int


@dataclass(frozen=True)
class StorageEntryMap:
    hashers: Tuple[StorageHasher, ...]
    key: int
    value: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "hashers", tuple(StorageHasher(h) for h in self.hashers))


StorageEntryType = Union[StorageEntryPlain, StorageEntryMap]


@dataclass(frozen=True)
class StorageEntryMetadata:
    name: str
    modifier: StorageEntryModifier
    entry_type: StorageEntryType
    default: bytes = b""
    docs: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "modifier", StorageEntryModifier(self.modifier))
        object.__setattr__(self, "default", bytes(self.default))
        _freeze(self, "docs")


@dataclass(frozen=True)
class PalletStorageMetadata:
    prefix: str
    entries: Tuple[StorageEntryMetadata, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "entries")


@dataclass(frozen=True)
class PalletConstantMetadata:
    name: str
    type_id: int
    value: bytes = b""
    docs: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", bytes(self.value))
        _freeze(self, "docs")


@dataclass(frozen=True)
class PalletMetadata:
    """A pallet: its calls, events and errors are given as type ids."""

    name: str
    index: int = 0
    storage: Optional[PalletStorageMetadata] = None
    calls: Optional[int] = None
    event: Optional[int] = None
    constants: Tuple[PalletConstantMetadata, ...] = ()
    error: Optional[int] = None

    def __post_init__(self) -> None:
        _freeze(self, "constants")


@dataclass(frozen=True)
class SignedExtensionMetadata:
    identifier: str
    type_id: int
    additional_signed: int


@dataclass(frozen=True)
class ExtrinsicMetadata:
    type_id: int
    version: int
    signed_extensions: Tuple[SignedExtensionMetadata, ...] = ()

    def __post_init__(self) -> None:
        if not 0 <= self.version < 256:
            raise ValueError(f"extrinsic version out of u8 range: {self.version}")
        _freeze(self, "signed_extensions")


@dataclass(frozen=True)
class RuntimeMetadataV14:
    """Version 14 runtime metadata."""

    types: TypeRegistry
    pallets: Tuple[PalletMetadata, ...]
    extrinsic: ExtrinsicMetadata
    type_id: int
    _by_name: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        _freeze(self, "pallets")
        for pallet in self.pallets:
            self._by_name.setdefault(pallet.name, pallet)

    def pallet(self, name: str) -> PalletMetadata:
        """Return the first pallet called ``name``; raise KeyError if there is none."""
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(name) from None