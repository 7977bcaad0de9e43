"""
Dashboard Handler module - Read endpoints and block list approval for the admin dashboard
"""

import logging
from datetime import datetime, timezone

from sanic import Request

from monitor_server import MonitorServer
from response_builder import ResponseBuilder
from shield_modules.records import AdminAction


DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500
SYSTEM_ADMIN_ID = "00000000-0000-0000-0000-000000000000"


class DashboardHandler:
    """Serve aggregate counts, recent threats and the block list"""

    def __init__(self, server: MonitorServer, responder: ResponseBuilder):
        self.server = server
        self.responder = responder
        self.logger = logging.getLogger(__name__)

    async def handle_stats(self, request: Request):
        if request.method == "OPTIONS":
            return self.responder.send_options()

        now = datetime.now(timezone.utc)
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        stats = await self.server.store.dashboard_stats(today_start)
        return self.responder.send_json(stats.to_dict())

    async def handle_threats(self, request: Request):
        if request.method == "OPTIONS":
            return self.responder.send_options()

        limit, offset = self._page(request)
        if limit is None:
            return self.responder.send_error(400, "limit and offset must be non-negative integers")

        events = await self.server.store.list_events(limit=limit, offset=offset)
        return self.responder.send_json({
            "threats": [event.to_dict() for event in events],
            "limit": limit,
            "offset": offset,
        })

    async def handle_blocked(self, request: Request):
        if request.method == "OPTIONS":
            return self.responder.send_options()

        limit, offset = self._page(request)
        if limit is None:
            return self.responder.send_error(400, "limit and offset must be non-negative integers")

        entries = await self.server.store.list_blocks(limit=limit, offset=offset)
        return self.responder.send_json({
            "blocked": [entry.to_dict() for entry in entries],
            "limit": limit,
            "offset": offset,
        })

    async def handle_approve(self, request: Request, ip: str):
        """Approve an unblock and record the admin action"""
        if request.method == "OPTIONS":
            return self.responder.send_options()

        data = request.json if request.body else None
        admin_id = SYSTEM_ADMIN_ID
        notes = None
        if isinstance(data, dict):
            admin_id = data.get("admin_id") or SYSTEM_ADMIN_ID
            notes = data.get("notes")

        entry = await self.server.store.approve_block(ip, admin_id)
        if entry is None:
            return self.responder.send_error(404, f"No block list entry for {ip}")

        await self.server.store.record_admin_action(AdminAction(
            admin_id=admin_id,
            action_type="unblock",
            ip_address=ip,
            notes=notes or f"Approved unblock for {ip}",
        ))
        self.logger.info(f"✅ Unblock approved for {ip} by {admin_id}")
        return self.responder.send_json(entry.to_dict())

    def _page(self, request: Request):
        try:
            limit = int(request.args.get("limit", DEFAULT_PAGE_SIZE))
            offset = int(request.args.get("offset", 0))
        except ValueError:
            return None, None
        if limit < 0 or offset < 0:
            return None, None
        return min(limit, MAX_PAGE_SIZE), offset
