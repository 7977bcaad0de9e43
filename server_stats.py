"""
Server Statistics module
"""

from datetime import datetime

from models import ServerStats


class StatsCollector:
    """Collect and manage server statistics"""

    def __init__(self, stats: ServerStats):
        self.stats = stats

    def increment_total(self):
        self.stats.total_requests += 1

    def increment_allowed(self):
        self.stats.allowed_count += 1

    def increment_blocked(self):
        self.stats.blocked_count += 1

    def increment_errors(self):
        self.stats.error_count += 1

    def record_verdict(self, blocked: bool):
        if blocked:
            self.increment_blocked()
        else:
            self.increment_allowed()

    def get_stats(self) -> dict:
        """Get current statistics as dictionary"""
        block_rate = 0.0
        if self.stats.total_requests > 0:
            block_rate = (self.stats.blocked_count / self.stats.total_requests) * 100

        uptime_seconds = (datetime.now() - self.stats.start_time).total_seconds()
        requests_per_sec = self.stats.total_requests / uptime_seconds if uptime_seconds > 0 else 0

        return {
            "total_requests": self.stats.total_requests,
            "allowed_count": self.stats.allowed_count,
            "blocked_count": self.stats.blocked_count,
            "error_count": self.stats.error_count,
            "block_rate": block_rate,
            "uptime_seconds": uptime_seconds,
            "requests_per_sec": requests_per_sec,
        }
