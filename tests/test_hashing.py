from dataclasses import replace

import pytest

from subclient.hashing import (
    NotFound,
    get_call_hash,
    get_constant_hash,
    get_metadata_hash,
    get_metadata_per_pallet_hash,
    get_pallet_hash,
    get_storage_hash,
)
from subclient.registry import (
    ExtrinsicMetadata,
    Field,
    PalletConstantMetadata,
    PalletMetadata,
    PalletStorageMetadata,
    Primitive,
    RuntimeMetadataV14,
    StorageEntryMap,
    StorageEntryMetadata,
    StorageEntryModifier,
    StorageEntryPlain,
    StorageHasher,
    TypeDefArray,
    TypeDefBitSequence,
    TypeDefCompact,
    TypeDefComposite,
    TypeDefSequence,
    TypeDefTuple,
    TypeDefPrimitive,
    TypeDefVariant,
    TypeRegistry,
    Variant,
)
from subclient.twox import twox_256


class _Types:
    """Registers each keyed type once, reserving its id before building it."""

    def __init__(self):
        self.registry = TypeRegistry()
        self._ids = {}

    def of(self, key, build):
        if key in self._ids:
            return self._ids[key]
        type_id = self.registry.reserve()
        self._ids[key] = type_id
        self.registry.define(type_id, build())
        return type_id

    def prim(self, primitive):
        return self.of(("prim", primitive), lambda: TypeDefPrimitive(primitive))


def _unit(t):
    return t.of("()", lambda: TypeDefTuple(()))


def _a(t):
    return t.of("A", lambda: TypeDefComposite((Field(_b(t), name="b"),)))


def _b(t):
    return t.of("B", lambda: TypeDefComposite((Field(_a(t), name="a"),)))


def _u8_array(t, length):
    return t.of(("array", length), lambda: TypeDefArray(length, t.prim(Primitive.U8)))


def _vec_u8(t):
    return t.of("Vec<u8>", lambda: TypeDefSequence(t.prim(Primitive.U8)))


def _account_id(t):
    return t.of("AccountId32", lambda: TypeDefComposite((Field(_u8_array(t, 32)),)))


def _digest_item(t):
    def build():
        pair_a = t.of("(i8,i16)", lambda: TypeDefTuple((t.prim(Primitive.I8), t.prim(Primitive.I16))))
        pair_b = t.of("(u32,u64)", lambda: TypeDefTuple((t.prim(Primitive.U32), t.prim(Primitive.U64))))
        nested = t.of("nested", lambda: TypeDefTuple((pair_a, pair_b)))
        compact = t.of("Compact<u8>", lambda: TypeDefCompact(t.prim(Primitive.U8)))
        lsb0 = t.of("Lsb0", lambda: TypeDefComposite(()))
        bitvec = t.of(
            "BitVec",
            lambda: TypeDefBitSequence(bit_store_type=t.prim(Primitive.U8), bit_order_type=lsb0),
        )
        return TypeDefVariant(
            (
                Variant("PreRuntime", (Field(_u8_array(t, 4)), Field(_vec_u8(t))), index=0),
                Variant("Other", (Field(_vec_u8(t)),), index=1),
                Variant("RuntimeEnvironmentUpdated", (Field(nested),), index=2),
                Variant("Index", (Field(compact),), index=3),
                Variant("BitSeq", (Field(bitvec),), index=4),
            )
        )

    return t.of("DigestItem", build)


def _metadata_test_type(t):
    return t.of(
        "MetadataTestType",
        lambda: TypeDefComposite(
            (
                Field(_a(t), name="recursive"),
                Field(_account_id(t), name="composite"),
                Field(_digest_item(t), name="type_def"),
            )
        ),
    )


def _call(t):
    return t.of(
        "Call",
        lambda: TypeDefVariant(
            (
                Variant("FillBlock", (Field(_account_id(t), name="ratio"),), index=0),
                Variant("Remark", (Field(_digest_item(t), name="remark"),), index=1),
            )
        ),
    )


def _triple(t):
    return t.of("(DigestItem,AccountId32,A)", lambda: TypeDefTuple((_digest_item(t), _account_id(t), _a(t))))


def _first(t):
    return PalletMetadata(name="First", calls=_metadata_test_type(t))


def _second(t):
    return PalletMetadata(name="Second", index=1, calls=_triple(t))


def _to_metadata(factories):
    t = _Types()
    pallets = tuple(factory(t) for factory in factories)
    unit = _unit(t)
    return RuntimeMetadataV14(
        types=t.registry,
        pallets=pallets,
        extrinsic=ExtrinsicMetadata(type_id=unit, version=0),
        type_id=unit,
    )


def test_different_pallet_index():
    metadata = _to_metadata([_first, _second])
    metadata_swap = _to_metadata(
        [lambda t: replace(_second(t), index=0), lambda t: replace(_first(t), index=1)]
    )
    assert get_metadata_hash(metadata) == get_metadata_hash(metadata_swap)


def test_recursive_type_terminates():
    metadata = _to_metadata([lambda t: PalletMetadata(name="Test", calls=_a(t))])
    digest = get_metadata_hash(metadata)
    assert len(digest) == 32
    assert digest == get_metadata_hash(metadata)


def test_recursive_types_different_order():
    metadata = _to_metadata(
        [
            lambda t: PalletMetadata(name="First", calls=_a(t)),
            lambda t: PalletMetadata(name="Second", index=1, calls=_b(t)),
        ]
    )
    metadata_swap = _to_metadata(
        [
            lambda t: PalletMetadata(name="Second", index=0, calls=_b(t)),
            lambda t: PalletMetadata(name="First", index=1, calls=_a(t)),
        ]
    )
    assert get_metadata_hash(metadata) == get_metadata_hash(metadata_swap)


def _staged_pallet(t, stage):
    storage = None
    if stage >= 1:
        storage = PalletStorageMetadata(
            prefix="Storage",
            entries=(
                StorageEntryMetadata(
                    name="BlockWeight",
                    modifier=StorageEntryModifier.DEFAULT,
                    entry_type=StorageEntryPlain(t.prim(Primitive.U8)),
                ),
            ),
        )
    calls = _call(t) if stage >= 2 else None
    event = _call(t) if stage >= 3 else None
    constants = ()
    if stage >= 4:
        constants = (
            PalletConstantMetadata(
                name="BlockHashCount", type_id=t.prim(Primitive.U64), value=bytes([96, 0, 0, 0])
            ),
        )
    error = _metadata_test_type(t) if stage >= 5 else None
    return PalletMetadata(
        name="Test", storage=storage, calls=calls, event=event, constants=constants, error=error
    )


@pytest.mark.parametrize("stage", range(5))
def test_pallet_hash_correctness(stage):
    lhs = _to_metadata([lambda t: _staged_pallet(t, stage)])
    rhs = _to_metadata([lambda t: _staged_pallet(t, stage + 1)])
    assert get_metadata_hash(lhs) != get_metadata_hash(rhs)


def test_metadata_per_pallet_hash_correctness():
    metadata_one = _to_metadata([_first])
    metadata_both = _to_metadata([_first, _second])

    digest = get_metadata_per_pallet_hash(metadata_one, ["First", "Second"])
    assert digest == get_metadata_per_pallet_hash(metadata_one, ["First"])

    assert get_metadata_per_pallet_hash(metadata_both, ["First"]) == digest

    assert get_metadata_per_pallet_hash(metadata_both, ["First", "Second"]) != digest


def test_per_pallet_hash_of_nothing_is_hash_of_empty_bytes():
    metadata = _to_metadata([_first])
    assert get_metadata_per_pallet_hash(metadata, []) == twox_256(b"")


def _to_hash(build):
    return get_metadata_hash(_to_metadata([lambda t: PalletMetadata(name="Test", calls=build(t))]))


def _enum(variants):
    def build(t):
        return t.of(
            "enum",
            lambda: TypeDefVariant(
                tuple(
                    Variant(name, tuple(Field(t.prim(p), name=field_name) for field_name, p in fields), index=i)
                    for i, (name, fields) in enumerate(variants)
                )
            ),
        )

    return build


def _struct(fields):
    def build(t):
        return t.of(
            "struct",
            lambda: TypeDefComposite(tuple(Field(t.prim(p), name=name) for name, p in fields)),
        )

    return build


def _struct_field_not_named_a(t):
    return t.of("StructFieldNotNamedA", lambda: TypeDefComposite((Field(_u8_array(t, 32)),)))


def _struct_field_not_named_second_b(t):
    # Register unrelated types first so the type ids differ from the other struct.
    t.prim(Primitive.U128)
    _vec_u8(t)
    return t.of("StructFieldNotNamedSecondB", lambda: TypeDefComposite((Field(_u8_array(t, 32)),)))


def test_enum_names_are_ignored():
    first_a = _enum([("First", [(None, Primitive.U8)])])
    first_b = _enum([("First", [(None, Primitive.U8)])])
    assert _to_hash(first_a) == _to_hash(first_b)


def test_struct_names_are_ignored():
    assert _to_hash(_struct_field_not_named_a) == _to_hash(_struct_field_not_named_second_b)


def test_variant_names_matter():
    first = _enum([("First", [(None, Primitive.U8)])])
    second = _enum([("Second", [(None, Primitive.U8)])])
    assert _to_hash(first) != _to_hash(second)


def test_enum_field_names_matter():
    named_a = _enum([("First", [("a", Primitive.U8)])])
    named_b = _enum([("First", [("b", Primitive.U8)])])
    assert _to_hash(named_a) != _to_hash(named_b)


def test_struct_field_names_matter():
    assert _to_hash(_struct([("a", Primitive.U32)])) != _to_hash(_struct([("b", Primitive.U32)]))


def test_variant_order_matters():
    ordered = _enum(
        [("First", []), ("Second", [(None, Primitive.U8)]), ("Third", [("named", Primitive.U8)])]
    )
    swapped = _enum(
        [("Second", [(None, Primitive.U8)]), ("First", []), ("Third", [("named", Primitive.U8)])]
    )
    assert _to_hash(ordered) != _to_hash(swapped)


def test_struct_field_order_matters():
    ordered = _struct([("a", Primitive.U32), ("b", Primitive.U32)])
    swapped = _struct([("b", Primitive.U32), ("a", Primitive.U32)])
    assert _to_hash(ordered) != _to_hash(swapped)


def test_array_length_matters():
    short = _to_hash(lambda t: _u8_array(t, 4))
    long = _to_hash(lambda t: _u8_array(t, 32))
    assert short != long


def _lookup_metadata(hasher=StorageHasher.BLAKE2_128_CONCAT):
    def test_pallet(t):
        return PalletMetadata(
            name="Test",
            calls=_call(t),
            storage=PalletStorageMetadata(
                prefix="Test",
                entries=(
                    StorageEntryMetadata(
                        name="Accounts",
                        modifier=StorageEntryModifier.OPTIONAL,
                        entry_type=StorageEntryMap(
                            hashers=(hasher,), key=_account_id(t), value=t.prim(Primitive.U64)
                        ),
                    ),
                ),
            ),
            constants=(
                PalletConstantMetadata(name="One", type_id=t.prim(Primitive.U64)),
                PalletConstantMetadata(name="Two", type_id=t.prim(Primitive.U64)),
                PalletConstantMetadata(name="Three", type_id=t.prim(Primitive.U32)),
            ),
        )

    def bare_pallet(t):
        return PalletMetadata(name="Bare", index=1, calls=_metadata_test_type(t))

    return _to_metadata([test_pallet, bare_pallet])


def test_storage_hash_depends_on_hasher():
    blake = get_storage_hash(_lookup_metadata(StorageHasher.BLAKE2_128_CONCAT), "Test", "Accounts")
    twox = get_storage_hash(_lookup_metadata(StorageHasher.TWOX_64_CONCAT), "Test", "Accounts")
    assert len(blake) == 32
    assert blake != twox


def test_storage_hash_not_found():
    metadata = _lookup_metadata()
    with pytest.raises(NotFound) as missing_pallet:
        get_storage_hash(metadata, "Nope", "Accounts")
    assert missing_pallet.value.kind == NotFound.PALLET
    with pytest.raises(NotFound) as missing_item:
        get_storage_hash(metadata, "Test", "Nope")
    assert missing_item.value.kind == NotFound.ITEM
    with pytest.raises(NotFound) as no_storage:
        get_storage_hash(metadata, "Bare", "Accounts")
    assert no_storage.value.kind == NotFound.ITEM


def test_constant_hash_depends_only_on_type():
    metadata = _lookup_metadata()
    one = get_constant_hash(metadata, "Test", "One")
    assert one == get_constant_hash(metadata, "Test", "Two")
    assert one != get_constant_hash(metadata, "Test", "Three")
    with pytest.raises(NotFound) as missing:
        get_constant_hash(metadata, "Test", "Four")
    assert missing.value.kind == NotFound.ITEM


def test_call_hash():
    metadata = _lookup_metadata()
    fill = get_call_hash(metadata, "Test", "FillBlock")
    assert len(fill) == 32
    assert fill != get_call_hash(metadata, "Test", "Remark")
    with pytest.raises(NotFound) as missing_call:
        get_call_hash(metadata, "Test", "Missing")
    assert missing_call.value.kind == NotFound.ITEM
    with pytest.raises(NotFound) as not_variant:
        get_call_hash(metadata, "Bare", "FillBlock")
    assert not_variant.value.kind == NotFound.ITEM
    with pytest.raises(NotFound) as missing_pallet:
        get_call_hash(metadata, "Nope", "FillBlock")
    assert missing_pallet.value.kind == NotFound.PALLET


def test_pallet_hash_independent_of_type_ids():
    forward = _to_metadata([_first])
    t = _Types()
    _b(t)
    _u8_array(t, 32)
    pallet = _first(t)
    assert get_pallet_hash(t.registry, pallet) == get_pallet_hash(forward.types, forward.pallets[0])


def test_pallet_hash_changes_with_error_type():
    metadata = _to_metadata(
        [lambda t: PalletMetadata(name="Test", error=_call(t)), lambda t: PalletMetadata(name="Other", error=_a(t))]
    )
    first, second = metadata.pallets
    assert get_pallet_hash(metadata.types, first) != get_pallet_hash(metadata.types, second)