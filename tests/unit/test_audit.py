"""Unit tests for the guardrail audit trail."""

from datetime import datetime, timedelta, timezone

import pytest

from compliance_ai.guardrails.audit import (
    AuditEntry,
    InMemoryAuditSink,
    JsonlAuditSink,
    ReviewDecision,
)
from compliance_ai.utils.exceptions import AuditSinkError

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_entry(request_id: str,
               minutes: int = 0,
               organization_id: str = "org-1",
               severity: str = "low",
               requires_review: bool = False) -> AuditEntry:
    return AuditEntry(
        request_id=request_id,
        action="allowed",
        severity=severity,
        original_prompt="Write a policy",
        sanitized_prompt=None,
        prompt_risk_score=0.0,
        pii_detected=False,
        pii_types=[],
        original_response=None,
        sanitized_response=None,
        response_risk_score=0.0,
        content_categories=[],
        moderation_flags={"pii": 0.1},
        requires_human_review=requires_review,
        organization_id=organization_id,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest.fixture
def jsonl_sink(tmp_path):
    return JsonlAuditSink(tmp_path / "audit" / "guardrails.jsonl")


class TestAuditEntry:

    @pytest.mark.unit
    def test_dict_conversion(self):
        entry = make_entry("req-1")
        entry.review_decision = ReviewDecision.APPROVED

        data = entry.to_dict()
        restored = AuditEntry.from_dict({"id": "abc", **data})

        assert data["timestamp"] == "2024-01-01T00:00:00+00:00"
        assert data["review_decision"] == "approved"
        assert restored == entry


class TestInMemoryAuditSink:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_query_filters_and_orders(self):
        sink = InMemoryAuditSink()
        await sink.record(make_entry("req-1", minutes=1))
        await sink.record(make_entry("req-2", minutes=2, severity="critical", requires_review=True))
        await sink.record(make_entry("req-3", minutes=3, organization_id="org-2"))

        newest_first = await sink.query()
        critical = await sink.query(severity="critical")
        for_review = await sink.query(requires_review=True)
        org_one = await sink.query(organization_id="org-1")

        assert [r["request_id"] for r in newest_first] == ["req-3", "req-2", "req-1"]
        assert [r["request_id"] for r in critical] == ["req-2"]
        assert [r["request_id"] for r in for_review] == ["req-2"]
        assert [r["request_id"] for r in org_one] == ["req-2", "req-1"]
        assert all("id" in r for r in newest_first)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_query_pagination(self):
        sink = InMemoryAuditSink()
        for i in range(5):
            await sink.record(make_entry(f"req-{i}", minutes=i))

        page = await sink.query(limit=2, offset=1)

        assert [r["request_id"] for r in page] == ["req-3", "req-2"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_submit_review(self):
        sink = InMemoryAuditSink()
        entry_id = await sink.record(make_entry("req-1", requires_review=True))

        entry = await sink.submit_review(entry_id, "officer@acme", "rejected", "unsafe")

        assert entry.review_decision == ReviewDecision.REJECTED
        assert entry.reviewed_by == "officer@acme"
        assert entry.review_notes == "unsafe"
        assert entry.reviewed_at is not None
        assert sink.get(entry_id) is entry

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_review_unknown_entry(self):
        with pytest.raises(AuditSinkError):
            await InMemoryAuditSink().submit_review("missing", "officer", ReviewDecision.APPROVED)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_decision(self):
        sink = InMemoryAuditSink()
        entry_id = await sink.record(make_entry("req-1"))

        with pytest.raises(ValueError):
            await sink.submit_review(entry_id, "officer", "maybe")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_oldest_entries_evicted(self):
        sink = InMemoryAuditSink(max_entries=3)
        first_id = await sink.record(make_entry("req-0"))
        for i in range(1, 5):
            await sink.record(make_entry(f"req-{i}", minutes=i))

        assert len(sink.entries) == 3
        assert sink.evicted == 2
        assert sink.get(first_id) is None
        assert [e.request_id for e in sink.entries] == ["req-2", "req-3", "req-4"]

    @pytest.mark.unit
    def test_max_entries_must_be_positive(self):
        with pytest.raises(ValueError):
            InMemoryAuditSink(max_entries=0)


class TestJsonlAuditSink:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_record_and_query(self, jsonl_sink):
        first = await jsonl_sink.record(make_entry("req-1", minutes=1))
        second = await jsonl_sink.record(make_entry("req-2", minutes=2))

        rows = await jsonl_sink.query()

        assert first != second
        assert [r["id"] for r in rows] == [second, first]
        assert jsonl_sink.path.read_text(encoding="utf-8").count("\n") == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_query_empty_trail(self, jsonl_sink):
        assert await jsonl_sink.query() == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_review_rewrites_entry(self, jsonl_sink):
        entry_id = await jsonl_sink.record(make_entry("req-1", requires_review=True))
        await jsonl_sink.record(make_entry("req-2", minutes=1))

        await jsonl_sink.submit_review(entry_id, "officer@acme", ReviewDecision.MODIFIED)

        rows = {r["id"]: r for r in await jsonl_sink.query()}
        assert rows[entry_id]["review_decision"] == "modified"
        assert rows[entry_id]["reviewed_by"] == "officer@acme"
        assert len(rows) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_review_unknown_entry(self, jsonl_sink):
        await jsonl_sink.record(make_entry("req-1"))

        with pytest.raises(AuditSinkError):
            await jsonl_sink.submit_review("missing", "officer", ReviewDecision.APPROVED)
