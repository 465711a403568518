"""
Тесты выдачи short_id.
"""

import random
import re

import pytest
from unittest.mock import AsyncMock

from src.core.exceptions import AllocationExhausted
from src.services.short_id import SHORT_ID_ALPHABET, ShortIdAllocator, generate_short_id

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def test_generated_ids_are_url_safe():
    for _ in range(200):
        short_id = generate_short_id(6)
        assert len(short_id) == 6
        assert URL_SAFE.match(short_id)


def test_alphabet_size():
    assert len(set(SHORT_ID_ALPHABET)) == 64


def test_seeded_generation_is_reproducible():
    assert generate_short_id(8, random.Random(42)) == generate_short_id(8, random.Random(42))


async def test_first_free_candidate_is_returned():
    exists = AsyncMock(return_value=False)
    short_id = await ShortIdAllocator(exists=exists).allocate()

    assert len(short_id) == 6
    exists.assert_awaited_once_with(short_id)


async def test_collisions_are_retried():
    exists = AsyncMock(side_effect=[True, True, False])
    rng = random.Random(7)
    candidates = [generate_short_id(6, rng) for _ in range(3)]

    short_id = await ShortIdAllocator(exists=exists, rng=random.Random(7)).allocate()

    assert short_id == candidates[2]
    assert [call.args[0] for call in exists.await_args_list] == candidates
    assert exists.await_count == 3


async def test_exhausted_after_max_attempts():
    exists = AsyncMock(return_value=True)

    with pytest.raises(AllocationExhausted) as exc_info:
        await ShortIdAllocator(exists=exists).allocate()

    assert exists.await_count == 5
    assert exc_info.value.status_code == 500
    assert exc_info.value.detail == "Failed to generate unique ID"


async def test_custom_length_and_attempts():
    exists = AsyncMock(return_value=True)

    with pytest.raises(AllocationExhausted):
        await ShortIdAllocator(exists=exists, length=10, max_attempts=2).allocate()

    assert exists.await_count == 2
    assert all(len(call.args[0]) == 10 for call in exists.await_args_list)
