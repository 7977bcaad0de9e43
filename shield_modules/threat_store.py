"""
Threat store interfaces and the in-memory implementation
"""

import copy
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from .records import (
    AdminAction,
    BlockedEntry,
    BlockStatus,
    DashboardStats,
    ThreatEvent,
    utcnow,
)
from .rule import SecurityRule, Severity


class ThreatStore(ABC):
    """Abstract store for rules, threat events and the block list"""

    async def initialize(self):
        """Open connections and create schema"""

    async def close(self):
        """Release resources"""

    @abstractmethod
    async def add_rule(self, rule: SecurityRule) -> SecurityRule:
        """Insert a rule and return it with its id"""
        pass

    @abstractmethod
    async def get_enabled_rules(self) -> List[SecurityRule]:
        """Get enabled rules in stored order"""
        pass

    @abstractmethod
    async def list_rules(self) -> List[SecurityRule]:
        """Get all rules, enabled or not, in stored order"""
        pass

    @abstractmethod
    async def record_event(self, event: ThreatEvent) -> ThreatEvent:
        """Append a threat event"""
        pass

    @abstractmethod
    async def count_events(self, ip_address: str, since: datetime,
                           threat_type: Optional[str] = None) -> int:
        """Count events for an address created at or after `since`"""
        pass

    @abstractmethod
    async def get_block(self, ip_address: str, status: Optional[str] = None) -> Optional[BlockedEntry]:
        """Look up the block list entry for an address"""
        pass

    @abstractmethod
    async def upsert_block(self, ip_address: str, reason: str, repeat_reason: str,
                           metadata: dict) -> BlockedEntry:
        """Atomically create a blocked entry or bump an existing one.

        A new entry gets status ``blocked``, a threat count of 1 and
        ``reason``. An existing entry has its threat count incremented and
        ``repeat_reason`` appended to its reason; its status is left alone.
        """
        pass

    @abstractmethod
    async def approve_block(self, ip_address: str, approver: str) -> Optional[BlockedEntry]:
        """Flip an entry to approved and stamp approver and time"""
        pass

    @abstractmethod
    async def record_admin_action(self, action: AdminAction) -> AdminAction:
        """Append an admin action"""
        pass

    @abstractmethod
    async def list_events(self, limit: int = 50, offset: int = 0) -> List[ThreatEvent]:
        """Most recent threat events first"""
        pass

    @abstractmethod
    async def list_blocks(self, limit: int = 50, offset: int = 0) -> List[BlockedEntry]:
        """Most recently blocked addresses first"""
        pass

    @abstractmethod
    async def dashboard_stats(self, today_start: datetime) -> DashboardStats:
        """Aggregate counts for the dashboard"""
        pass


class MemoryStore(ThreatStore):
    """In-memory threat store"""

    def __init__(self):
        self.rules: List[SecurityRule] = []
        self.events: List[ThreatEvent] = []
        self.blocks: Dict[str, BlockedEntry] = {}
        self.admin_actions: List[AdminAction] = []
        self.next_rule_id = 1
        self.lock = threading.RLock()

    async def add_rule(self, rule: SecurityRule) -> SecurityRule:
        with self.lock:
            rule.id = self.next_rule_id
            self.next_rule_id += 1
            self.rules.append(rule)
            return rule

    async def get_enabled_rules(self) -> List[SecurityRule]:
        with self.lock:
            return [copy.copy(rule) for rule in self.rules if rule.enabled]

    async def list_rules(self) -> List[SecurityRule]:
        with self.lock:
            return [copy.copy(rule) for rule in self.rules]

    async def record_event(self, event: ThreatEvent) -> ThreatEvent:
        with self.lock:
            self.events.append(event)
            return event

    async def count_events(self, ip_address: str, since: datetime,
                           threat_type: Optional[str] = None) -> int:
        with self.lock:
            return sum(
                1 for event in self.events
                if event.ip_address == ip_address
                and event.created_at >= since
                and (threat_type is None or event.threat_type == threat_type)
            )

    async def get_block(self, ip_address: str, status: Optional[str] = None) -> Optional[BlockedEntry]:
        with self.lock:
            entry = self.blocks.get(ip_address)
            if entry is None or (status is not None and entry.status != status):
                return None
            return copy.deepcopy(entry)

    async def upsert_block(self, ip_address: str, reason: str, repeat_reason: str,
                           metadata: dict) -> BlockedEntry:
        with self.lock:
            entry = self.blocks.get(ip_address)
            if entry is None:
                entry = BlockedEntry(ip_address=ip_address, reason=reason, metadata=metadata)
                self.blocks[ip_address] = entry
            else:
                entry.threat_count += 1
                entry.reason = f"{entry.reason}; {repeat_reason}"
            return copy.deepcopy(entry)

    async def approve_block(self, ip_address: str, approver: str) -> Optional[BlockedEntry]:
        with self.lock:
            entry = self.blocks.get(ip_address)
            if entry is None:
                return None
            entry.status = BlockStatus.APPROVED.value
            entry.approved_by = approver
            entry.approved_at = utcnow()
            return copy.deepcopy(entry)

    async def record_admin_action(self, action: AdminAction) -> AdminAction:
        with self.lock:
            self.admin_actions.append(action)
            return action

    async def list_events(self, limit: int = 50, offset: int = 0) -> List[ThreatEvent]:
        with self.lock:
            ordered = sorted(self.events, key=lambda e: e.created_at, reverse=True)
            return [copy.deepcopy(event) for event in ordered[offset:offset + limit]]

    async def list_blocks(self, limit: int = 50, offset: int = 0) -> List[BlockedEntry]:
        with self.lock:
            ordered = sorted(self.blocks.values(), key=lambda b: b.blocked_at, reverse=True)
            return [copy.deepcopy(entry) for entry in ordered[offset:offset + limit]]

    async def dashboard_stats(self, today_start: datetime) -> DashboardStats:
        with self.lock:
            return DashboardStats(
                total_threats=len(self.events),
                blocked_ips=sum(1 for b in self.blocks.values() if b.is_blocked),
                threats_today=sum(1 for e in self.events if e.created_at >= today_start),
                critical_threats=sum(1 for e in self.events if e.severity == Severity.CRITICAL.value),
            )
