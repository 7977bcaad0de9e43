"""
Threat Detection Engine
"""

import logging
from typing import List

from models import ThreatMatch
from .records import FAILED_LOGIN_ATTEMPT, RATE_LIMIT_VIOLATION
from .rule import PATTERN_MATCH, SecurityRule, Severity


logger = logging.getLogger(__name__)


class ThreatDetector:
    """Detect threats from rules and behavioral counts"""

    def evaluate_rules(self, rules: List[SecurityRule], test_data: str, user_agent: str) -> List[ThreatMatch]:
        """Evaluate rules in order against the request and the user agent"""
        threats = []

        for rule in rules:
            if rule.rule_type != PATTERN_MATCH:
                continue
            if rule.compiled is None and not rule.compile():
                logger.warning(f"Skipping rule {rule.name!r}: invalid pattern {rule.pattern!r}")
                continue

            if rule.match(test_data) or rule.match(user_agent):
                threats.append(ThreatMatch(
                    type=rule.name,
                    severity=rule.severity,
                    reason=f"Matched pattern: {rule.pattern}",
                ))

        return threats

    def failed_login_threat(self, attempts: int, threshold: int, window: str) -> ThreatMatch:
        severity = Severity.HIGH if attempts >= threshold else Severity.MEDIUM
        return ThreatMatch(
            type=FAILED_LOGIN_ATTEMPT,
            severity=severity.value,
            reason=f"{attempts} failed login attempts within {window}",
        )

    def rate_limit_threat(self, request_count: int) -> ThreatMatch:
        return ThreatMatch(
            type=RATE_LIMIT_VIOLATION,
            severity=Severity.HIGH.value,
            reason=f"{request_count} requests in last minute",
        )
