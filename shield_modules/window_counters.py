"""
Windowed behavioral counters
"""

from datetime import datetime, timedelta

from .records import FAILED_LOGIN_ATTEMPT
from .threat_store import ThreatStore


class WindowCounters:
    """Count prior threat events per address over trailing windows.

    Counts are range queries over stored threat events rather than live
    counters, so they only move once an address has a threat on record.
    """

    def __init__(self, store: ThreatStore, request_window: timedelta,
                 failed_login_window: timedelta):
        self.store = store
        self.request_window = request_window
        self.failed_login_window = failed_login_window

    async def request_count(self, ip_address: str, now: datetime) -> int:
        """Threat events for the address within the request window"""
        return await self.store.count_events(ip_address, now - self.request_window)

    async def failed_login_count(self, ip_address: str, now: datetime) -> int:
        """Prior failed logins for the address within the login window"""
        return await self.store.count_events(
            ip_address,
            now - self.failed_login_window,
            threat_type=FAILED_LOGIN_ATTEMPT,
        )
