"""Tests for archival snapshots, purge, restore and retention."""

from datetime import timedelta

import pytest

from fakes import Harness, make_record
from shared.errors import NotFoundError
from shared.models import GiftItem, GiftOrder


async def _uploaded(h: Harness, name: str) -> str:
    return await h.services.media.save(name, b"\x89PNG fake")


class TestArchive:
    @pytest.mark.asyncio
    async def test_reject_removes_media(self, harness: Harness) -> None:
        url = await _uploaded(harness, "photo.png")
        await harness.queue_repo.add(
            make_record("img", harness.clock(), type="image", file_path=url)
        )
        path = harness.services.media.resolve(url)
        assert path is not None and path.exists()

        await harness.services.queue.reject("img")

        assert not path.exists()
        history = await harness.services.history.list_history()
        assert history[0].outcome == "rejected"
        assert history[0].decision_at is not None

    @pytest.mark.asyncio
    async def test_complete_keeps_media(self, harness: Harness) -> None:
        url = await _uploaded(harness, "photo.png")
        await harness.queue_repo.add(
            make_record("img", harness.clock(), type="image", status="playing", file_path=url)
        )
        await harness.services.queue.complete("img")

        assert harness.services.media.resolve(url).exists()

    @pytest.mark.asyncio
    async def test_gift_entries_never_expire(self, harness: Harness) -> None:
        gift = GiftOrder(order_id="o1", table_number=4, items=[GiftItem("g1", "Rose", 2, 50)])
        await harness.queue_repo.add(
            make_record(
                "g", harness.clock(), type="gift", status="approved", gift_order=gift, amount=100
            )
        )
        await harness.queue_repo.add(make_record("t", harness.clock(), status="approved"))
        gift_entry = await harness.services.queue.complete("g")
        text_entry = await harness.services.queue.complete("t")

        assert gift_entry.expires_at is None
        assert gift_entry.metadata["table_number"] == 4
        assert gift_entry.metadata["gift_items"][0]["name"] == "Rose"
        assert text_entry.expires_at == harness.clock() + timedelta(days=2)


class TestPurge:
    @pytest.mark.asyncio
    async def test_delete_one(self, harness: Harness) -> None:
        url = await _uploaded(harness, "a.jpg")
        await harness.queue_repo.add(
            make_record("a", harness.clock(), type="image", status="approved", file_path=url)
        )
        entry = await harness.services.queue.complete("a")

        await harness.services.history.delete(entry.id)

        assert harness.history_repo.entries == {}
        assert not harness.services.media.resolve(url).exists()
        with pytest.raises(NotFoundError):
            await harness.services.history.delete(entry.id)

    @pytest.mark.asyncio
    async def test_delete_all_spares_media_still_queued(self, harness: Harness) -> None:
        url = await _uploaded(harness, "shared.jpg")
        await harness.queue_repo.add(
            make_record("a", harness.clock(), type="image", status="approved", file_path=url)
        )
        entry = await harness.services.queue.complete("a")
        restored = await harness.services.history.restore(entry.id)

        deleted = await harness.services.history.delete_all()

        assert deleted == 1
        assert restored.file_path == url
        assert harness.services.media.resolve(url).exists()

    @pytest.mark.asyncio
    async def test_retention_sweep(self, harness: Harness) -> None:
        await harness.queue_repo.add(make_record("t", harness.clock(), status="approved"))
        await harness.queue_repo.add(
            make_record(
                "g",
                harness.clock(),
                type="gift",
                status="approved",
                gift_order=GiftOrder(order_id="o", table_number=1, items=[GiftItem("i", "Cake")]),
            )
        )
        await harness.services.queue.complete("t")
        await harness.services.queue.complete("g")

        harness.clock.advance(3600)
        assert await harness.services.history.purge_expired() == 0

        harness.clock.advance(2 * 86400)
        assert await harness.services.history.purge_expired() == 1
        remaining = await harness.services.history.list_history()
        assert [e.type for e in remaining] == ["gift"]


class TestRestore:
    @pytest.mark.asyncio
    async def test_restore_round_trip(self, harness: Harness) -> None:
        url = await _uploaded(harness, "cake.png")
        original = make_record(
            "orig",
            harness.clock(),
            type="birthday",
            sender="Ploy",
            user_id="u9",
            text="HBD!",
            text_color="#f0f",
            social_type="ig",
            social_name="@ploy",
            file_path=url,
            amount=120,
            duration_seconds=20,
        )
        await harness.queue_repo.add(original)
        entry = await harness.services.queue.reject("orig")
        harness.clock.advance(60)

        restored = await harness.services.history.restore(entry.id)

        assert restored.id != "orig"
        assert restored.status == "pending"
        assert restored.received_at == harness.clock()
        assert (restored.type, restored.sender, restored.user_id) == ("birthday", "Ploy", "u9")
        assert (restored.text, restored.text_color) == ("HBD!", "#f0f")
        assert (restored.social_type, restored.social_name) == ("ig", "@ploy")
        assert restored.duration_seconds == 20
        assert restored.amount == 120
        queue = await harness.services.queue.list_queue()
        assert [r.id for r in queue] == [restored.id]

    @pytest.mark.asyncio
    async def test_restore_gift_order(self, harness: Harness) -> None:
        gift = GiftOrder(
            order_id="o7", table_number=3, items=[GiftItem("g", "Beer", 4, 80)], note="cheers"
        )
        await harness.queue_repo.add(
            make_record(
                "g", harness.clock(), type="gift", status="approved", gift_order=gift, amount=320
            )
        )
        entry = await harness.services.queue.complete("g")

        restored = await harness.services.history.restore(entry.id)

        assert restored.gift_order == GiftOrder(
            order_id="o7",
            table_number=3,
            items=[GiftItem("g", "Beer", 4, 80)],
            note="cheers",
            total_price=320,
        )

    @pytest.mark.asyncio
    async def test_restore_missing(self, harness: Harness) -> None:
        with pytest.raises(NotFoundError):
            await harness.services.history.restore(999)
