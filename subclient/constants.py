"""Addresses of runtime constants and a client that looks them up.

A client is any object with a ``metadata()`` method that returns the
:class:`~subclient.registry.RuntimeMetadataV14` currently in use.

An address tells the client which constant to read and how to decode its
SCALE bytes. Its ``decode`` method takes ``(data, type_id, metadata)``.
A static address may also carry a validation hash. The hash is checked
against the node's metadata before the constant is decoded.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional, Protocol

from .hashing import NotFound, get_constant_hash
from .registry import PalletConstantMetadata, RuntimeMetadataV14

Decoder = Callable[[bytes, int, RuntimeMetadataV14], Any]

_HASH_LEN = 32


class IncompatibleConstantMetadata(ValueError):
    """The node's constant has a different shape from the one the address expects."""

    def __init__(self, pallet_name: str, constant_name: str) -> None:
        super().__init__(
            f"constant {pallet_name}::{constant_name} has incompatible metadata"
        )
        self.pallet_name = pallet_name
        self.constant_name = constant_name


class _ConstantAddress(Protocol):
    @property
    def pallet_name(self) -> str: ...

    @property
    def constant_name(self) -> str: ...

    @property
    def validation_hash(self) -> Optional[bytes]: ...

    def decode(self, data: bytes, type_id: int, metadata: RuntimeMetadataV14) -> Any: ...


class _MetadataSource(Protocol):
    def metadata(self) -> RuntimeMetadataV14: ...


@dataclass(frozen=True)
class DecodedValueThunk:
    """Raw SCALE bytes from the node, with what is needed to decode them later."""

    type_id: int
    metadata: RuntimeMetadataV14 = field(repr=False)
    scale_bytes: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "scale_bytes", bytes(self.scale_bytes))

    def encoded(self) -> bytes:
        """Return the SCALE encoded bytes handed back from the node."""
        return self.scale_bytes


@dataclass(frozen=True)
class StaticConstantAddress:
    """A constant address whose result type, and optionally its shape hash, is fixed."""

    pallet_name: str
    constant_name: str
    validation_hash: Optional[bytes]
    decoder: Decoder = field(repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.validation_hash is not None:
            digest = bytes(self.validation_hash)
            if len(digest) != _HASH_LEN:
                raise ValueError(
                    f"validation hash must be {_HASH_LEN} bytes, got {len(digest)}"
                )
            object.__setattr__(self, "validation_hash", digest)

    def unvalidated(self) -> "StaticConstantAddress":
        """Return a copy of this address that skips validation."""
        return replace(self, validation_hash=None)

    def decode(self, data: bytes, type_id: int, metadata: RuntimeMetadataV14) -> Any:
        return self.decoder(data, type_id, metadata)


@dataclass(frozen=True)
class DynamicConstantAddress:
    """A constant address built at run time; it yields a :class:`DecodedValueThunk`."""

    pallet_name: str
    constant_name: str

    @property
    def validation_hash(self) -> Optional[bytes]:
        return None

    def decode(
        self, data: bytes, type_id: int, metadata: RuntimeMetadataV14
    ) -> DecodedValueThunk:
        return DecodedValueThunk(type_id=type_id, metadata=metadata, scale_bytes=data)


def dynamic(pallet_name: str, constant_name: str) -> DynamicConstantAddress:
    """Construct a new dynamic constant lookup."""
    return DynamicConstantAddress(pallet_name, constant_name)


def _find_constant(
    metadata: RuntimeMetadataV14, pallet_name: str, constant_name: str
) -> PalletConstantMetadata:
    try:
        pallet = metadata.pallet(pallet_name)
    except KeyError:
        raise NotFound(NotFound.PALLET, pallet_name) from None
    for constant in pallet.constants:
        if constant.name == constant_name:
            return constant
    raise NotFound(NotFound.ITEM, constant_name)


class ConstantsClient:
    """A client for accessing constants."""

    def __init__(self, client: _MetadataSource) -> None:
        self._client = client

    def validate(self, address: _ConstantAddress) -> None:
        """Check the address against the node metadata if it carries a hash.

        Raise :class:`IncompatibleConstantMetadata` if the shapes differ and
        :class:`~subclient.hashing.NotFound` if the constant does not exist.
        """
        actual = address.validation_hash
        if actual is None:
            return
        expected = get_constant_hash(
            self._client.metadata(), address.pallet_name, address.constant_name
        )
        if actual != expected:
            raise IncompatibleConstantMetadata(address.pallet_name, address.constant_name)

    def at(self, address: _ConstantAddress) -> Any:
        """Return the constant at ``address``, decoded as the address dictates."""
        metadata = self._client.metadata()
        self.validate(address)
        constant = _find_constant(metadata, address.pallet_name, address.constant_name)
        return address.decode(constant.value, constant.type_id, metadata)