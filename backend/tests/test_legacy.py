"""Tests for legacy export normalization."""

from datetime import UTC, datetime, timedelta

import pytest

from fakes import FakeHistoryRepository, FakeRankingRepository
from shared.errors import ValidationError
from shared.legacy import normalize_history, normalize_ranking, parse_timestamp


class TestNormalizeHistory:
    def test_gift_era_shape(self) -> None:
        entry = normalize_history(
            {
                "giftId": "1712345678901",
                "giftName": "Rose x3",
                "senderName": "Beam",
                "amount": 150,
                "filePath": "/uploads/rose.png",
                "approvalDate": "2024-04-05T18:30:00.000Z",
                "status": "verified",
            },
            retention_seconds=172800,
        )

        assert entry.transaction_id == "1712345678901"
        assert entry.type == "gift"
        assert entry.content == "Rose x3"
        assert entry.sender == "Beam"
        assert entry.amount == 150
        assert entry.media_url == "/uploads/rose.png"
        assert entry.outcome == "approved"
        assert entry.decision_at == datetime(2024, 4, 5, 18, 30, tzinfo=UTC)
        assert entry.expires_at is None

    def test_camel_case_shape(self) -> None:
        entry = normalize_history(
            {
                "transactionId": "t-9",
                "type": "text",
                "sender": "Ploy",
                "price": 20,
                "status": "rejected",
                "content": "hello",
                "mediaUrl": None,
                "metadata": {"theme": "#fff", "social": {"type": "ig", "name": "@ploy"}},
                "approvalDate": "2024-04-05T10:00:00Z",
                "approvedBy": "admin",
                "rejectReason": "spam",
                "createdAt": "2024-04-05T10:00:00Z",
            },
            retention_seconds=3600,
        )

        assert entry.outcome == "rejected"
        assert entry.decided_by == "admin"
        assert entry.notes == "spam"
        assert entry.metadata["social"] == {"type": "ig", "name": "@ploy"}
        assert entry.expires_at == entry.created_at + timedelta(hours=1)

    @pytest.mark.parametrize(
        "raw",
        [
            {"type": "text", "status": "approved"},
            {"giftId": "x", "status": "pending"},
            {"transactionId": "y", "type": "hologram"},
            {"transactionId": "z", "type": "text", "price": "fifty"},
            {"transactionId": "z", "type": "text", "duration": "long"},
            {"giftId": "w", "metadata": {"tableNumber": "patio"}},
            {"transactionId": "v", "type": "text", "createdAt": "yesterday"},
        ],
    )
    def test_rejects_unusable_rows(self, raw) -> None:
        with pytest.raises(ValidationError):
            normalize_history(raw)


class TestNormalizeRanking:
    def test_name_keyed_row(self) -> None:
        assert normalize_ranking({"name": "Beam", "points": 80}) == ("Beam", "Beam", 80.0)

    def test_missing_identity(self) -> None:
        with pytest.raises(ValidationError):
            normalize_ranking({"points": 5})

    def test_non_numeric_points(self) -> None:
        with pytest.raises(ValidationError):
            normalize_ranking({"name": "Beam", "points": "lots"})


def test_parse_timestamp_forms() -> None:
    expected = datetime(2024, 1, 1, tzinfo=UTC)
    assert parse_timestamp("2024-01-01T00:00:00Z") == expected
    assert parse_timestamp("2024-01-01T00:00:00") == expected
    assert parse_timestamp(1704067200000) == expected
    assert parse_timestamp("") is None


class TestImport:
    @pytest.mark.asyncio
    async def test_bad_rows_are_skipped(self) -> None:
        from scripts.import_legacy import import_history, import_rankings

        history = FakeHistoryRepository()
        rows = [
            {"transactionId": "ok-1", "type": "text", "price": 20, "status": "approved"},
            {"transactionId": "bad", "type": "text", "price": "n/a", "status": "approved"},
            {"giftId": "ok-2", "giftName": "Rose", "amount": "40", "status": "verified"},
        ]
        assert await import_history(history, rows, dry_run=False) == 2
        assert {e.transaction_id for e in history.entries.values()} == {"ok-1", "ok-2"}
        assert await import_history(history, rows, dry_run=False) == 0

        rankings = FakeRankingRepository()
        ranking_rows = [{"name": "Beam", "points": 80}, {"name": "Ploy", "points": "?"}]
        assert await import_rankings(rankings, ranking_rows, dry_run=False) == 1
        assert rankings.entries["Beam"].points == 80
