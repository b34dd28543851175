import asyncio

import pytest

from pastebin.errors import GenerationExhausted, StorageError
from pastebin.identifiers import ALPHABET, IdentifierGenerator
from pastebin.models import PasteInput
from pastebin.storage import PasteStore


def _scripted(candidates):
    it = iter(candidates)
    return lambda length: next(it)


def test_generate_produces_alphanumeric_ids_of_configured_length():
    async def _never_exists(_):
        return False

    generator = IdentifierGenerator(_never_exists)
    ids = [asyncio.run(generator.generate()) for _ in range(20)]

    assert all(len(i) == 12 for i in ids)
    assert all(set(i) <= set(ALPHABET) for i in ids)
    assert len(set(ids)) == 20


def test_collisions_are_retried_and_ids_stay_distinct():
    taken = {"AAAAAAAAAAAA"}

    async def _exists(candidate):
        return candidate in taken

    generator = IdentifierGenerator(
        _exists,
        source=_scripted(["AAAAAAAAAAAA", "BBBBBBBBBBBB", "AAAAAAAAAAAA", "BBBBBBBBBBBB", "CCCCCCCCCCCC"]),
    )

    async def _run():
        first = await generator.generate()
        taken.add(first)
        second = await generator.generate()
        return first, second

    first, second = asyncio.run(_run())
    assert first == "BBBBBBBBBBBB"
    assert second == "CCCCCCCCCCCC"


def test_exhausted_attempts_raise_generation_exhausted():
    async def _always_exists(_):
        return True

    generator = IdentifierGenerator(_always_exists, max_attempts=3, source=lambda n: "Z" * n)

    with pytest.raises(GenerationExhausted) as exc:
        asyncio.run(generator.generate())

    assert exc.value.code == StorageError.ID_GENERATION_FAILED
    assert exc.value.attempts == 3


def test_short_ids_are_refused():
    async def _exists(_):
        return False

    with pytest.raises(ValueError):
        IdentifierGenerator(_exists, length=6)


def test_store_rerolls_against_existing_records(backend, clock):
    source = _scripted(["DUPLICATE123", "DUPLICATE123", "FRESHID12345"])
    store = PasteStore(backend, clock=clock)
    store.id_generator = IdentifierGenerator(store.exists, source=source)
    data = PasteInput(title="t", content="c", size=1)

    async def _run():
        first = await store.create(data)
        second = await store.create(data)
        return first, second

    first, second = asyncio.run(_run())
    assert first.id == "DUPLICATE123"
    assert second.id == "FRESHID12345"
    assert asyncio.run(store.get("DUPLICATE123")).content == "c"


def test_store_create_fails_when_ids_are_exhausted(backend, clock):
    store = PasteStore(backend, clock=clock)
    asyncio.run(store.create(PasteInput(title="t", content="c", size=1)))
    existing = next(iter(backend.store))[len("paste:"):]
    store.id_generator = IdentifierGenerator(store.exists, max_attempts=2, source=lambda n: existing)

    with pytest.raises(GenerationExhausted):
        asyncio.run(store.create(PasteInput(title="t", content="other", size=5)))

    assert asyncio.run(store.get(existing)).content == "c"
