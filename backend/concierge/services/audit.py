"""Request audit trail stored as JSON lines.

One line per HTTP request: request id, client address, method, path, status
code, duration and the gate reason code when a request was denied.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


@dataclass(slots=True)
class AuditRecord:
    request_id: str
    method: str
    path: str
    status_code: int
    client_address: str
    reason_code: str | None = None
    user_agent: str | None = None
    duration_ms: float | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class AuditLogger:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def log(self, record: AuditRecord) -> None:
        payload = json.dumps(asdict(record), ensure_ascii=False, default=str)
        async with self._lock:
            await asyncio.to_thread(self._append_line, payload)

    def _append_line(self, payload: str) -> None:
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(payload)
            fh.write("\n")
