"""
Persisted security records
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class BlockStatus(str, Enum):
    """Block list entry status"""
    BLOCKED = "blocked"
    # Reserved for an external review workflow, never set by the monitor
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"


BLOCKED_ACCESS_ATTEMPT = "Blocked IP Access Attempt"
FAILED_LOGIN_ATTEMPT = "Failed Login Attempt"
RATE_LIMIT_VIOLATION = "Rate Limit Violation"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class ThreatEvent:
    """Append-only record of a detected threat"""
    ip_address: str
    threat_type: str
    severity: str
    request_path: str
    request_method: str
    user_agent: Optional[str]
    payload: Dict[str, Any]
    blocked: bool
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ip_address": self.ip_address,
            "threat_type": self.threat_type,
            "severity": self.severity,
            "request_path": self.request_path,
            "request_method": self.request_method,
            "user_agent": self.user_agent,
            "payload": self.payload,
            "blocked": self.blocked,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class BlockedEntry:
    """Per-address block list entry"""
    ip_address: str
    reason: str
    threat_count: int = 1
    status: str = BlockStatus.BLOCKED.value
    metadata: Dict[str, Any] = field(default_factory=dict)
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    id: str = field(default_factory=new_id)
    blocked_at: datetime = field(default_factory=utcnow)

    @property
    def is_blocked(self) -> bool:
        return self.status == BlockStatus.BLOCKED.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ip_address": self.ip_address,
            "reason": self.reason,
            "threat_count": self.threat_count,
            "status": self.status,
            "blocked_at": self.blocked_at.isoformat(),
            "approved_by": self.approved_by,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "metadata": self.metadata,
        }


@dataclass
class AdminAction:
    """Audit record of an administrator action"""
    admin_id: str
    action_type: str
    ip_address: str
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "action_type": self.action_type,
            "ip_address": self.ip_address,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class DashboardStats:
    """Aggregate counts shown on the dashboard"""
    total_threats: int = 0
    blocked_ips: int = 0
    threats_today: int = 0
    critical_threats: int = 0

    def to_dict(self) -> dict:
        return {
            "totalThreats": self.total_threats,
            "blockedIPs": self.blocked_ips,
            "threatsToday": self.threats_today,
            "criticalThreats": self.critical_threats,
        }
