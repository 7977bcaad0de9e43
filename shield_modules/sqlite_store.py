"""
SQLite threat store implementation
"""

import functools
import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

import aiosqlite

from exceptions import StorageError
from .records import (
    AdminAction,
    BlockedEntry,
    BlockStatus,
    DashboardStats,
    ThreatEvent,
    new_id,
    utcnow,
)
from .rule import SecurityRule, Severity
from .threat_store import ThreatStore


logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS security_rules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        rule_name TEXT NOT NULL,
        rule_type TEXT NOT NULL,
        pattern TEXT NOT NULL,
        severity TEXT NOT NULL,
        enabled INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS threat_logs (
        id TEXT PRIMARY KEY,
        ip_address TEXT NOT NULL,
        threat_type TEXT NOT NULL,
        severity TEXT NOT NULL,
        request_path TEXT,
        request_method TEXT,
        user_agent TEXT,
        payload TEXT NOT NULL,
        blocked INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_threat_logs_ip_created ON threat_logs (ip_address, created_at)",
    """
    CREATE TABLE IF NOT EXISTS blocked_ips (
        id TEXT PRIMARY KEY,
        ip_address TEXT NOT NULL UNIQUE,
        reason TEXT NOT NULL,
        threat_count INTEGER NOT NULL DEFAULT 1,
        status TEXT NOT NULL,
        blocked_at TEXT NOT NULL,
        approved_by TEXT,
        approved_at TEXT,
        metadata TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS admin_actions (
        id TEXT PRIMARY KEY,
        admin_id TEXT NOT NULL,
        action_type TEXT NOT NULL,
        ip_address TEXT NOT NULL,
        notes TEXT,
        created_at TEXT NOT NULL
    )
    """,
)


def _ts(value: datetime) -> str:
    # Fixed width UTC text so range comparisons are lexicographic
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _wrap_errors(method):
    """Turn driver errors into StorageError"""
    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        if self.db is None:
            raise StorageError(method.__name__, RuntimeError("store is not initialized"))
        try:
            return await method(self, *args, **kwargs)
        except aiosqlite.Error as exc:
            raise StorageError(method.__name__, exc) from exc
    return wrapper


class SQLiteStore(ThreatStore):
    """SQLite-based threat store"""

    def __init__(self, db_path: str = "cybershield.db"):
        self.db_path = db_path
        self.db = None

    async def initialize(self):
        """Initialize database connection and tables"""
        try:
            self.db = await aiosqlite.connect(self.db_path)
            self.db.row_factory = aiosqlite.Row
            await self._create_tables()
        except aiosqlite.Error as exc:
            raise StorageError("initialize", exc) from exc
        logger.info(f"Threat store ready at {self.db_path}")

    async def _create_tables(self):
        for statement in SCHEMA:
            await self.db.execute(statement)
        await self.db.commit()

    async def close(self):
        """Close database connection"""
        if self.db:
            await self.db.close()
            self.db = None

    @_wrap_errors
    async def add_rule(self, rule: SecurityRule) -> SecurityRule:
        cursor = await self.db.execute(
            "INSERT INTO security_rules (rule_name, rule_type, pattern, severity, enabled, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (rule.name, rule.rule_type, rule.pattern, rule.severity, int(rule.enabled), _ts(rule.created_at)),
        )
        await self.db.commit()
        rule.id = cursor.lastrowid
        return rule

    @_wrap_errors
    async def get_enabled_rules(self) -> List[SecurityRule]:
        cursor = await self.db.execute(
            "SELECT * FROM security_rules WHERE enabled = 1 ORDER BY id"
        )
        rows = await cursor.fetchall()
        return [self._row_to_rule(row) for row in rows]

    @_wrap_errors
    async def list_rules(self) -> List[SecurityRule]:
        cursor = await self.db.execute("SELECT * FROM security_rules ORDER BY id")
        rows = await cursor.fetchall()
        return [self._row_to_rule(row) for row in rows]

    @_wrap_errors
    async def record_event(self, event: ThreatEvent) -> ThreatEvent:
        await self.db.execute(
            "INSERT INTO threat_logs (id, ip_address, threat_type, severity, request_path, "
            "request_method, user_agent, payload, blocked, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                event.id,
                event.ip_address,
                event.threat_type,
                event.severity,
                event.request_path,
                event.request_method,
                event.user_agent,
                json.dumps(event.payload),
                int(event.blocked),
                _ts(event.created_at),
            ),
        )
        await self.db.commit()
        return event

    @_wrap_errors
    async def count_events(self, ip_address: str, since: datetime,
                           threat_type: Optional[str] = None) -> int:
        query = "SELECT COUNT(*) FROM threat_logs WHERE ip_address = ? AND created_at >= ?"
        params = [ip_address, _ts(since)]
        if threat_type is not None:
            query += " AND threat_type = ?"
            params.append(threat_type)

        cursor = await self.db.execute(query, params)
        row = await cursor.fetchone()
        return row[0]

    @_wrap_errors
    async def get_block(self, ip_address: str, status: Optional[str] = None) -> Optional[BlockedEntry]:
        query = "SELECT * FROM blocked_ips WHERE ip_address = ?"
        params = [ip_address]
        if status is not None:
            query += " AND status = ?"
            params.append(status)

        cursor = await self.db.execute(query, params)
        row = await cursor.fetchone()
        return self._row_to_block(row) if row else None

    @_wrap_errors
    async def upsert_block(self, ip_address: str, reason: str, repeat_reason: str,
                           metadata: dict) -> BlockedEntry:
        # Single statement, so concurrent blocks for one address cannot lose an increment
        await self.db.execute(
            "INSERT INTO blocked_ips (id, ip_address, reason, threat_count, status, blocked_at, metadata) "
            "VALUES (?, ?, ?, 1, ?, ?, ?) "
            "ON CONFLICT(ip_address) DO UPDATE SET "
            "threat_count = blocked_ips.threat_count + 1, "
            "reason = blocked_ips.reason || '; ' || ?",
            (
                new_id(),
                ip_address,
                reason,
                BlockStatus.BLOCKED.value,
                _ts(utcnow()),
                json.dumps(metadata),
                repeat_reason,
            ),
        )
        await self.db.commit()

        cursor = await self.db.execute("SELECT * FROM blocked_ips WHERE ip_address = ?", (ip_address,))
        row = await cursor.fetchone()
        return self._row_to_block(row)

    @_wrap_errors
    async def approve_block(self, ip_address: str, approver: str) -> Optional[BlockedEntry]:
        cursor = await self.db.execute(
            "UPDATE blocked_ips SET status = ?, approved_by = ?, approved_at = ? WHERE ip_address = ?",
            (BlockStatus.APPROVED.value, approver, _ts(utcnow()), ip_address),
        )
        await self.db.commit()
        if cursor.rowcount == 0:
            return None

        cursor = await self.db.execute("SELECT * FROM blocked_ips WHERE ip_address = ?", (ip_address,))
        row = await cursor.fetchone()
        return self._row_to_block(row)

    @_wrap_errors
    async def record_admin_action(self, action: AdminAction) -> AdminAction:
        await self.db.execute(
            "INSERT INTO admin_actions (id, admin_id, action_type, ip_address, notes, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (action.id, action.admin_id, action.action_type, action.ip_address,
             action.notes, _ts(action.created_at)),
        )
        await self.db.commit()
        return action

    @_wrap_errors
    async def list_events(self, limit: int = 50, offset: int = 0) -> List[ThreatEvent]:
        cursor = await self.db.execute(
            "SELECT * FROM threat_logs ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        rows = await cursor.fetchall()
        return [
            ThreatEvent(
                id=row["id"],
                ip_address=row["ip_address"],
                threat_type=row["threat_type"],
                severity=row["severity"],
                request_path=row["request_path"],
                request_method=row["request_method"],
                user_agent=row["user_agent"],
                payload=json.loads(row["payload"]),
                blocked=bool(row["blocked"]),
                created_at=_parse_ts(row["created_at"]),
            )
            for row in rows
        ]

    @_wrap_errors
    async def list_blocks(self, limit: int = 50, offset: int = 0) -> List[BlockedEntry]:
        cursor = await self.db.execute(
            "SELECT * FROM blocked_ips ORDER BY blocked_at DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        rows = await cursor.fetchall()
        return [self._row_to_block(row) for row in rows]

    @_wrap_errors
    async def dashboard_stats(self, today_start: datetime) -> DashboardStats:
        cursor = await self.db.execute(
            "SELECT "
            "(SELECT COUNT(*) FROM threat_logs), "
            "(SELECT COUNT(*) FROM blocked_ips WHERE status = ?), "
            "(SELECT COUNT(*) FROM threat_logs WHERE created_at >= ?), "
            "(SELECT COUNT(*) FROM threat_logs WHERE severity = ?)",
            (BlockStatus.BLOCKED.value, _ts(today_start), Severity.CRITICAL.value),
        )
        row = await cursor.fetchone()
        return DashboardStats(
            total_threats=row[0],
            blocked_ips=row[1],
            threats_today=row[2],
            critical_threats=row[3],
        )

    @staticmethod
    def _row_to_rule(row) -> SecurityRule:
        return SecurityRule(
            id=row["id"],
            name=row["rule_name"],
            rule_type=row["rule_type"],
            pattern=row["pattern"],
            severity=row["severity"],
            enabled=bool(row["enabled"]),
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _row_to_block(row) -> BlockedEntry:
        return BlockedEntry(
            id=row["id"],
            ip_address=row["ip_address"],
            reason=row["reason"],
            threat_count=row["threat_count"],
            status=row["status"],
            blocked_at=_parse_ts(row["blocked_at"]),
            approved_by=row["approved_by"],
            approved_at=_parse_ts(row["approved_at"]),
            metadata=json.loads(row["metadata"]),
        )
