"""
Security rule definitions
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    """Threat severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Severities that block on their own
BLOCKING_SEVERITIES = frozenset({Severity.HIGH.value, Severity.CRITICAL.value})

PATTERN_MATCH = "pattern_match"


@dataclass
class SecurityRule:
    """Pattern rule held in the rule store"""
    name: str
    pattern: str
    severity: str
    rule_type: str = PATTERN_MATCH
    enabled: bool = True
    id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    compiled: Optional[re.Pattern] = field(default=None, repr=False, compare=False)

    def compile(self) -> bool:
        """Compile the regex pattern"""
        try:
            self.compiled = re.compile(self.pattern, re.IGNORECASE)
            return True
        except re.error:
            self.compiled = None
            return False

    def match(self, data: str) -> bool:
        """Check if data matches the rule pattern"""
        return self.compiled is not None and self.compiled.search(data) is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rule_name": self.name,
            "rule_type": self.rule_type,
            "pattern": self.pattern,
            "severity": self.severity,
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat(),
        }
