"""Tests for cross-tab cart sync"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from snackshop.cart import CartSync
from snackshop.errors import CartStorageError


@pytest.mark.asyncio
async def test_foreign_write_reloads(make_engine, sample_product):
    """Test a write from another tab is adopted"""
    tab_a = await make_engine(origin_id="tab-a")
    tab_b = await make_engine(origin_id="tab-b")
    sync_b = CartSync(tab_b)
    await sync_b.prime()

    await tab_a.add_item(sample_product, 2)
    await tab_a.apply_discount_code("SAVE10")

    assert tab_b.items == ()
    assert await sync_b.poll_once() is True
    assert tab_b.items == tab_a.items
    assert tab_b.global_discount_rate == Decimal("0.10")


@pytest.mark.asyncio
async def test_own_echo_is_ignored(make_engine, sample_product):
    """Test an engine does not reload on its own writes"""
    tab_a = await make_engine(origin_id="tab-a")
    sync_a = CartSync(tab_a)
    await sync_a.prime()
    tab_a.reload = AsyncMock()

    await tab_a.add_item(sample_product)
    await tab_a.update_quantity("chips-01", 4)

    assert await sync_a.poll_once() is False
    tab_a.reload.assert_not_awaited()
    assert tab_a.items[0].quantity == 4


@pytest.mark.asyncio
async def test_last_write_wins(make_engine, sample_product, plain_product):
    """Test concurrent edits are not merged: the latest stored cart is adopted"""
    tab_a = await make_engine(origin_id="tab-a")
    tab_b = await make_engine(origin_id="tab-b")
    sync_a = CartSync(tab_a)
    await sync_a.prime()

    await tab_a.add_item(sample_product)
    await tab_b.add_item(plain_product)

    assert await sync_a.poll_once() is True
    assert [item.id for item in tab_a.items] == ["soda-02"]


@pytest.mark.asyncio
async def test_prime_skips_history(make_engine, sample_product):
    """Test changes published before priming are not replayed"""
    tab_a = await make_engine(origin_id="tab-a")
    await tab_a.add_item(sample_product)

    tab_b = await make_engine(origin_id="tab-b")
    sync_b = CartSync(tab_b)
    await sync_b.prime()

    assert await sync_b.poll_once() is False
    assert len(tab_b.items) == 1


@pytest.mark.asyncio
async def test_other_keys_are_ignored(make_engine, sample_product, storage):
    """Test a different storage key does not affect this cart"""
    tab_a = await make_engine(origin_id="tab-a")
    sync_a = CartSync(tab_a)
    await sync_a.prime()

    other = await make_engine(origin_id="tab-x", storage_key="someone_else")
    await other.add_item(sample_product)

    assert await sync_a.poll_once() is False
    assert tab_a.items == ()


@pytest.mark.asyncio
async def test_feed_failure_is_not_fatal(make_engine):
    """Test an unreadable feed is logged and skipped"""
    tab_a = await make_engine(origin_id="tab-a")
    tab_a.storage.read_changes = AsyncMock(side_effect=CartStorageError("down"))
    sync_a = CartSync(tab_a)

    await sync_a.prime()
    assert await sync_a.poll_once() is False


@pytest.mark.asyncio
async def test_background_polling(make_engine, sample_product):
    """Test start/stop run the poll loop in the background"""
    tab_a = await make_engine(origin_id="tab-a")
    tab_b = await make_engine(origin_id="tab-b")
    sync_b = CartSync(tab_b, poll_interval=0.01)

    await sync_b.start()
    assert sync_b.running is True

    await tab_a.add_item(sample_product, 3)
    await asyncio.sleep(0.1)

    assert tab_b.get_item_count() == 3

    await sync_b.stop()
    assert sync_b.running is False
