"""Tests for the realtime fan-out hub."""

import asyncio
from datetime import UTC, datetime

import pytest

from fakes import FakeSubscriber
from services.broadcaster import CLOSE_SEND_FAILED, Broadcaster


class SlowSubscriber(FakeSubscriber):
    async def send_json(self, data) -> None:
        await asyncio.sleep(1)


class FlakySubscriber(FakeSubscriber):
    """Fails its first send only."""

    async def send_json(self, data) -> None:
        if not self.fail:
            self.fail = True
            raise ConnectionError("reset by peer")
        self.messages.append(data)


class TestBroadcaster:
    @pytest.mark.asyncio
    async def test_publish_reaches_every_subscriber(self) -> None:
        hub = Broadcaster()
        subs = [FakeSubscriber(), FakeSubscriber()]
        for sub in subs:
            hub.subscribe(sub)

        delivered = await hub.publish("status", {"at": datetime(2026, 1, 1, tzinfo=UTC)})

        assert delivered == 2
        for sub in subs:
            assert sub.messages == [
                {"event": "status", "data": {"at": "2026-01-01T00:00:00+00:00"}}
            ]

    @pytest.mark.asyncio
    async def test_failed_subscriber_is_dropped(self) -> None:
        hub = Broadcaster()
        good, bad = FakeSubscriber(), FakeSubscriber(fail=True)
        hub.subscribe(good)
        hub.subscribe(bad)

        assert await hub.publish("ranking-update", {"ranks": []}) == 1
        assert hub.subscriber_count == 1
        assert await hub.publish("ranking-update", {"ranks": []}) == 1
        assert len(good.messages) == 2
        assert bad.close_code == CLOSE_SEND_FAILED
        assert good.close_code is None

    @pytest.mark.asyncio
    async def test_slow_subscriber_times_out(self) -> None:
        hub = Broadcaster(send_timeout=0.05)
        slow, fast = SlowSubscriber(), FakeSubscriber()
        hub.subscribe(slow)
        hub.subscribe(fast)

        assert await hub.publish("now-playing", {"id": "a"}) == 1
        assert hub.subscriber_count == 1
        assert slow.close_code == CLOSE_SEND_FAILED

    @pytest.mark.asyncio
    async def test_dropped_subscriber_is_closed_and_hears_nothing_more(self) -> None:
        hub = Broadcaster()
        flaky = FlakySubscriber()
        hub.subscribe(flaky)

        await hub.publish("status", {"n": 1})
        await hub.publish("now-playing", {"id": "a"})
        await hub.publish("status", {"n": 2})

        assert flaky.close_code == CLOSE_SEND_FAILED
        assert flaky.messages == []
        assert not hub.is_subscribed(flaky)

    @pytest.mark.asyncio
    async def test_no_replay_for_late_subscriber(self) -> None:
        hub = Broadcaster()
        await hub.publish("status", {"n": 1})
        late = FakeSubscriber()
        hub.subscribe(late)
        await hub.publish("status", {"n": 2})

        assert late.events("status") == [{"n": 2}]

    @pytest.mark.asyncio
    async def test_send_targets_one_subscriber(self) -> None:
        hub = Broadcaster()
        a, b = FakeSubscriber(), FakeSubscriber()
        hub.subscribe(a)
        hub.subscribe(b)

        assert await hub.send(a, "status", {"ok": True}) is True
        assert b.messages == []
