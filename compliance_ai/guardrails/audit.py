"""
Guardrail Audit Trail

Audit entries persisted for every guardrail check, the sink interface the
pipeline writes through, and in-memory / JSON-lines sink implementations
supporting log queries and human review decisions.
"""
import asyncio
import json
import logging
import uuid
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from ..utils.exceptions import AuditSinkError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 10_000


class ReviewDecision(str, Enum):
    """Outcome of a human review"""
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFIED = "modified"


@dataclass
class AuditEntry:
    """Represents one persisted guardrail check"""
    request_id: str
    action: str
    severity: str
    original_prompt: str
    sanitized_prompt: Optional[str]
    prompt_risk_score: float
    pii_detected: bool
    pii_types: List[str]
    original_response: Optional[str]
    sanitized_response: Optional[str]
    response_risk_score: float
    content_categories: List[str]
    moderation_flags: Dict[str, float]
    requires_human_review: bool
    organization_id: Optional[str] = None
    user_id: Optional[str] = None
    provider: Optional[str] = None
    model_name: Optional[str] = None
    ip_address: Optional[str] = None
    processing_time_ms: Optional[float] = None
    guardrail_type: str = "comprehensive"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Human review
    reviewed_by: Optional[str] = None
    review_decision: Optional[ReviewDecision] = None
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert entry to dictionary for serialization"""
        entry_dict = asdict(self)
        entry_dict['timestamp'] = self.timestamp.isoformat()
        entry_dict['review_decision'] = (
            self.review_decision.value if self.review_decision else None
        )
        entry_dict['reviewed_at'] = self.reviewed_at.isoformat() if self.reviewed_at else None
        return entry_dict

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEntry':
        """Create entry from dictionary"""
        data = dict(data)
        data.pop('id', None)
        data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        if data.get('review_decision'):
            data['review_decision'] = ReviewDecision(data['review_decision'])
        if data.get('reviewed_at'):
            data['reviewed_at'] = datetime.fromisoformat(data['reviewed_at'])
        return cls(**data)


class AuditSink(Protocol):
    """Durable destination for audit entries"""

    async def record(self, entry: AuditEntry) -> str:
        ...


class InMemoryAuditSink:
    """
    Process-local audit trail; also the default for tests.

    Holds at most ``max_entries`` entries, evicting the oldest first.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, AuditEntry]" = OrderedDict()
        self._lock = asyncio.Lock()
        self.evicted = 0

    async def record(self, entry: AuditEntry) -> str:
        async with self._lock:
            entry_id = str(uuid.uuid4())
            self._entries[entry_id] = entry
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self.evicted += 1
        return entry_id

    def get(self, entry_id: str) -> Optional[AuditEntry]:
        return self._entries.get(entry_id)

    @property
    def entries(self) -> List[AuditEntry]:
        return list(self._entries.values())

    async def query(self,
                    organization_id: Optional[str] = None,
                    severity: Optional[str] = None,
                    requires_review: Optional[bool] = None,
                    limit: int = 50,
                    offset: int = 0) -> List[Dict[str, Any]]:
        """Fetch audit entries, newest first"""
        async with self._lock:
            rows = [
                {"id": entry_id, **entry.to_dict()}
                for entry_id, entry in self._entries.items()
            ]
        return _filter_rows(rows, organization_id, severity, requires_review, limit, offset)

    async def submit_review(self,
                            entry_id: str,
                            reviewed_by: str,
                            decision: Union[ReviewDecision, str],
                            notes: Optional[str] = None) -> AuditEntry:
        """Attach a human review decision to an entry"""
        async with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                raise AuditSinkError(f"Audit entry not found: {entry_id}")
            _apply_review(entry, reviewed_by, decision, notes)

        logger.info(f"Human review submitted for {entry_id}: {entry.review_decision.value}")
        return entry


class JsonlAuditSink:
    """Append-only JSON-lines audit trail on local disk"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    async def record(self, entry: AuditEntry) -> str:
        entry_id = str(uuid.uuid4())
        line = json.dumps({"id": entry_id, **entry.to_dict()}, default=str)

        async with self._lock:
            try:
                await asyncio.to_thread(self._append, line)
            except OSError as e:
                raise AuditSinkError(f"Failed to write audit entry: {e}") from e

        return entry_id

    def _append(self, line: str):
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(line + "\n")

    def _read_rows(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path, 'r', encoding='utf-8') as f:
            return [json.loads(line) for line in f if line.strip()]

    async def query(self,
                    organization_id: Optional[str] = None,
                    severity: Optional[str] = None,
                    requires_review: Optional[bool] = None,
                    limit: int = 50,
                    offset: int = 0) -> List[Dict[str, Any]]:
        async with self._lock:
            rows = await asyncio.to_thread(self._read_rows)
        return _filter_rows(rows, organization_id, severity, requires_review, limit, offset)

    async def submit_review(self,
                            entry_id: str,
                            reviewed_by: str,
                            decision: Union[ReviewDecision, str],
                            notes: Optional[str] = None) -> AuditEntry:
        """Rewrite the matching line with the review decision attached"""
        async with self._lock:
            rows = await asyncio.to_thread(self._read_rows)
            for index, row in enumerate(rows):
                if row.get("id") == entry_id:
                    entry = AuditEntry.from_dict(row)
                    _apply_review(entry, reviewed_by, decision, notes)
                    rows[index] = {"id": entry_id, **entry.to_dict()}
                    break
            else:
                raise AuditSinkError(f"Audit entry not found: {entry_id}")

            lines = "".join(json.dumps(row, default=str) + "\n" for row in rows)
            await asyncio.to_thread(self.path.write_text, lines, "utf-8")

        logger.info(f"Human review submitted for {entry_id}: {entry.review_decision.value}")
        return entry


def _apply_review(entry: AuditEntry,
                  reviewed_by: str,
                  decision: Union[ReviewDecision, str],
                  notes: Optional[str]):
    entry.reviewed_by = reviewed_by
    entry.review_decision = ReviewDecision(decision)
    entry.review_notes = notes
    entry.reviewed_at = datetime.now(timezone.utc)


def _filter_rows(rows: List[Dict[str, Any]],
                 organization_id: Optional[str],
                 severity: Optional[str],
                 requires_review: Optional[bool],
                 limit: int,
                 offset: int) -> List[Dict[str, Any]]:
    if organization_id is not None:
        rows = [r for r in rows if r.get("organization_id") == organization_id]
    if severity is not None:
        rows = [r for r in rows if r.get("severity") == severity]
    if requires_review is not None:
        rows = [r for r in rows if r.get("requires_human_review") == requires_review]

    rows.sort(key=lambda r: r["timestamp"], reverse=True)
    return rows[offset:offset + limit]
