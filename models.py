"""
Data models for the CyberShield security monitor
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class ServerStats:
    """Server statistics"""
    total_requests: int = 0
    blocked_count: int = 0
    allowed_count: int = 0
    error_count: int = 0
    start_time: datetime = field(default_factory=datetime.now)


class AuthContext(BaseModel):
    """Authentication attempt metadata sent alongside a request"""
    event: Optional[str] = None
    status: Optional[str] = None
    identifier: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def is_login_precheck(self) -> bool:
        return self.event == "login" and self.status == "precheck"

    @property
    def is_login_failure(self) -> bool:
        return self.event == "login" and self.status == "failure"

    def to_json(self) -> str:
        """Compact JSON with unset fields dropped"""
        return json.dumps(self.model_dump(exclude_none=True), separators=(",", ":"), ensure_ascii=False)


class RequestDescriptor(BaseModel):
    """Request forwarded by the protected application"""
    model_config = ConfigDict(populate_by_name=True)

    url: str
    method: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    query_params: Optional[Dict[str, Any]] = Field(default=None, alias="queryParams")
    auth_context: Optional[AuthContext] = Field(default=None, alias="authContext")

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup"""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def raw_payload(self, include_auth: bool = False) -> Dict[str, Any]:
        """Payload stored with a threat event"""
        payload = {
            "headers": self.headers,
            "body": self.body,
            "queryParams": self.query_params,
        }
        if include_auth:
            payload["authContext"] = self.auth_context.model_dump(exclude_none=True) if self.auth_context else None
        return payload


class ThreatMatch(BaseModel):
    """A single detected threat"""
    type: str
    severity: str
    reason: str


class ThreatResult(BaseModel):
    """Verdict returned to the caller"""
    blocked: bool
    threats: List[ThreatMatch] = Field(default_factory=list)
    ip: str
    reason: Optional[str] = None
    message: Optional[str] = None
    timestamp: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
