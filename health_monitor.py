"""
Health Monitor module - Health and status endpoints
"""

import time
from datetime import datetime

from sanic import Request

from monitor_server import MonitorServer
from response_builder import ResponseBuilder
from server_stats import StatsCollector


class HealthMonitor:
    """Monitor server health and provide status endpoints"""

    def __init__(self, server: MonitorServer, responder: ResponseBuilder, stats: StatsCollector):
        self.server = server
        self.responder = responder
        self.stats = stats

    async def handle_health(self, request: Request):
        """Handle health check endpoint"""
        uptime_seconds = (datetime.now() - self.server.stats.start_time).total_seconds()

        health = {
            "status": "healthy",
            "timestamp": int(time.time()),
            "store": self.server.config.store_backend,
            "uptime": uptime_seconds,
        }
        return self.responder.send_json(health)

    async def handle_status(self, request: Request):
        """Handle detailed status endpoint"""
        config = self.server.config
        rules = await self.server.store.list_rules()

        status = {
            "timestamp": int(time.time()),
            "server_stats": self.stats.get_stats(),
            "rules": {
                "total": len(rules),
                "enabled": sum(1 for rule in rules if rule.enabled),
            },
            "thresholds": {
                "failed_login_threshold": config.failed_login_threshold,
                "failed_login_window_seconds": config.failed_login_window.total_seconds(),
                "request_window_seconds": config.request_window.total_seconds(),
                "rate_warn_threshold": config.rate_warn_threshold,
                "rate_block_threshold": config.rate_block_threshold,
            },
            "config": {
                "debug_mode": config.debug,
                "port": config.port,
                "storage_failure_mode": config.storage_failure_mode,
            },
        }
        return self.responder.send_json(status)

    async def handle_stats(self, request: Request):
        """Handle statistics endpoint"""
        return self.responder.send_json(self.stats.get_stats())
