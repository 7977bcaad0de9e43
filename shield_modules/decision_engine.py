"""
Decision Engine - block list gating, classification and block state updates
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List

from config import Config
from models import RequestDescriptor, ThreatMatch, ThreatResult
from .context_extractor import ContextExtractor
from .records import BLOCKED_ACCESS_ATTEMPT, BlockStatus, ThreatEvent, utcnow
from .rule import BLOCKING_SEVERITIES, Severity
from .threat_detector import ThreatDetector
from .threat_store import ThreatStore
from .window_counters import WindowCounters


ACCESS_DENIED_REASON = "IP address is blocked"
ACCESS_DENIED_MESSAGE = "Access denied. Your IP has been blocked due to suspicious activity."
LOGIN_LOCKOUT_MESSAGE = "Too many failed login attempts. Contact an admin to unblock access."


def iso_timestamp(value: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix"""
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Decision:
    """Outcome of one evaluation"""
    result: ThreatResult
    status: int
    failed_login_count: int = 0
    request_count: int = 0

    @property
    def blocked(self) -> bool:
        return self.result.blocked


class DecisionEngine:
    """Evaluate a request descriptor and persist what the verdict leaves behind"""

    def __init__(self, store: ThreatStore, config: Config):
        self.store = store
        self.config = config
        self.context_extractor = ContextExtractor()
        self.threat_detector = ThreatDetector()
        self.counters = WindowCounters(store, config.request_window, config.failed_login_window)
        self.logger = logging.getLogger(__name__)

    async def evaluate(self, descriptor: RequestDescriptor, client_ip: str, user_agent: str) -> Decision:
        """Run the full pipeline for one request"""
        now = utcnow()

        # Step 1: Block list gate
        entry = await self.store.get_block(client_ip, status=BlockStatus.BLOCKED.value)
        if entry is not None:
            return await self._deny_blocked(descriptor, client_ip, user_agent)

        # Step 2: Login precheck never evaluates rules or writes state
        auth = descriptor.auth_context
        if auth is not None and auth.is_login_precheck:
            return Decision(result=ThreatResult(blocked=False, threats=[], ip=client_ip), status=200)

        # Step 3: Classification
        rules = await self.store.get_enabled_rules()
        threats = self.threat_detector.evaluate_rules(
            rules,
            self.context_extractor.build_test_data(descriptor),
            self.context_extractor.build_user_agent(user_agent),
        )

        request_count = await self.counters.request_count(client_ip, now)

        failed_login_count = 0
        if auth is not None and auth.is_login_failure:
            failed_login_count = await self.counters.failed_login_count(client_ip, now) + 1
            threats.append(self.threat_detector.failed_login_threat(
                failed_login_count,
                self.config.failed_login_threshold,
                self.config.failed_login_window_label,
            ))

        if request_count > self.config.rate_warn_threshold:
            threats.append(self.threat_detector.rate_limit_threat(request_count))

        # Step 4: Verdict
        lockout = failed_login_count >= self.config.failed_login_threshold
        should_block = self.should_block(threats, failed_login_count, request_count)

        # Step 5: Persist
        if threats:
            await self._persist(descriptor, client_ip, user_agent, threats, should_block)

        result = ThreatResult(
            blocked=should_block,
            threats=threats,
            ip=client_ip,
            message=LOGIN_LOCKOUT_MESSAGE if lockout else None,
            timestamp=iso_timestamp(now),
        )
        return Decision(
            result=result,
            status=403 if should_block else 200,
            failed_login_count=failed_login_count,
            request_count=request_count,
        )

    def should_block(self, threats: List[ThreatMatch], failed_login_count: int, request_count: int) -> bool:
        """Block on login lockout, any high or critical threat, or the request block threshold"""
        if failed_login_count >= self.config.failed_login_threshold:
            return True
        if any(threat.severity in BLOCKING_SEVERITIES for threat in threats):
            return True
        return request_count > self.config.rate_block_threshold

    async def _deny_blocked(self, descriptor: RequestDescriptor, client_ip: str, user_agent: str) -> Decision:
        await self.store.record_event(ThreatEvent(
            ip_address=client_ip,
            threat_type=BLOCKED_ACCESS_ATTEMPT,
            severity=Severity.HIGH.value,
            request_path=descriptor.url,
            request_method=descriptor.method,
            user_agent=user_agent,
            payload=descriptor.raw_payload(),
            blocked=True,
        ))
        self.logger.warning(f"Denied request from blocked address {client_ip}: {descriptor.method} {descriptor.url}")

        result = ThreatResult(
            blocked=True,
            ip=client_ip,
            reason=ACCESS_DENIED_REASON,
            message=ACCESS_DENIED_MESSAGE,
        )
        return Decision(result=result, status=403)

    async def _persist(self, descriptor: RequestDescriptor, client_ip: str, user_agent: str,
                       threats: List[ThreatMatch], should_block: bool):
        threat_dicts = [threat.model_dump() for threat in threats]
        threat_types = ", ".join(threat.type for threat in threats)

        payload = descriptor.raw_payload(include_auth=True)
        payload["threats"] = threat_dicts

        # Severity of the first threat, not the worst one
        await self.store.record_event(ThreatEvent(
            ip_address=client_ip,
            threat_type=threat_types,
            severity=threats[0].severity,
            request_path=descriptor.url,
            request_method=descriptor.method,
            user_agent=user_agent,
            payload=payload,
            blocked=should_block,
        ))

        if not should_block:
            return

        entry = await self.store.upsert_block(
            client_ip,
            reason=threat_types,
            repeat_reason=threats[0].type,
            metadata={"threats": threat_dicts},
        )
        self.logger.warning(
            f"Blocked {client_ip} ({threat_types}); threat count now {entry.threat_count}"
        )
