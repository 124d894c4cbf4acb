import json
from dataclasses import dataclass
from datetime import datetime

from burrow.database import Database
from burrow.events import AuditEvent, AuditType

SCHEMA = """
CREATE TABLE IF NOT EXISTS audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL,
    session_key TEXT NOT NULL,
    payload TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_audit_log_type ON audit_log(type);
"""


@dataclass
class AuditLogEntry:
    type: AuditType
    session_key: str
    payload: dict
    created_at: datetime


class AuditStore:
    def __init__(self, db: Database):
        self.db = db

    async def init_schema(self) -> None:
        await self.db.apply_schema(SCHEMA)

    async def record(self, event: AuditEvent) -> None:
        async with self.db.transaction() as conn:
            await conn.execute(
                "INSERT INTO audit_log (type, session_key, payload, created_at) VALUES (?, ?, ?, ?)",
                (
                    str(event.type),
                    event.session_key,
                    json.dumps(event.payload, ensure_ascii=False, default=str),
                    event.created_at.isoformat(),
                ),
            )

    async def recent(self, limit: int = 20, type: AuditType | None = None) -> list[AuditLogEntry]:
        if type:
            rows = await self.db.conn.execute_fetchall(
                "SELECT type, session_key, payload, created_at FROM audit_log "
                "WHERE type = ? ORDER BY id DESC LIMIT ?",
                (str(type), limit),
            )
        else:
            rows = await self.db.conn.execute_fetchall(
                "SELECT type, session_key, payload, created_at FROM audit_log ORDER BY id DESC LIMIT ?",
                (limit,),
            )
        return [
            AuditLogEntry(
                type=AuditType(row["type"]),
                session_key=row["session_key"],
                payload=json.loads(row["payload"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]
