"""
Monitor Handler module - Security monitor request handling
"""

import logging

from sanic import Request

from exceptions import RequestParseError, StorageError
from models import ThreatResult
from monitor_server import MonitorServer
from request_parser import RequestParser
from response_builder import ResponseBuilder
from server_stats import StatsCollector


STORE_UNAVAILABLE_MESSAGE = "Security checks are temporarily unavailable."


class MonitorHandler:
    """Handle security monitor requests"""

    def __init__(self, server: MonitorServer, parser: RequestParser,
                 responder: ResponseBuilder, stats: StatsCollector):
        self.server = server
        self.parser = parser
        self.responder = responder
        self.stats = stats
        self.logger = logging.getLogger(__name__)

    async def handle_monitor(self, request: Request):
        """Evaluate one forwarded request"""
        # Handle preflight OPTIONS request
        if request.method == "OPTIONS":
            return self.responder.send_options()

        self.stats.increment_total()
        client_ip = self.parser.extract_client_ip(request)

        try:
            descriptor = self.parser.parse_descriptor(request)
            user_agent = self.parser.extract_user_agent(request, descriptor)

            if self.server.config.debug:
                self.logger.info(
                    f"🔍 Monitor request: {descriptor.method} {descriptor.url} "
                    f"from {client_ip} (UA: {user_agent})"
                )

            decision = await self.server.engine.evaluate(descriptor, client_ip, user_agent)
        except RequestParseError as exc:
            self.stats.increment_errors()
            self.logger.warning(f"Rejected unparsable request from {client_ip}: {exc}")
            return self.responder.send_error()
        except StorageError as exc:
            self.stats.increment_errors()
            return self._handle_storage_failure(client_ip, exc)
        except Exception:
            self.stats.increment_errors()
            self.logger.exception("Security monitor error")
            return self.responder.send_error()

        self.stats.record_verdict(decision.blocked)

        if self.server.config.debug:
            threat_types = ", ".join(t.type for t in decision.result.threats) or "none"
            verdict = "BLOCKED" if decision.blocked else "ALLOWED"
            self.logger.info(f"{verdict} {client_ip} (threats: {threat_types})")

        return self.responder.send_result(decision.result, decision.status)

    def _handle_storage_failure(self, client_ip: str, exc: StorageError):
        """Apply the configured failure mode when the store is unavailable"""
        mode = self.server.config.storage_failure_mode
        self.logger.error(f"Threat store unavailable ({mode} mode) for {client_ip}: {exc}")

        if mode == "open":
            result = ThreatResult(blocked=False, ip=client_ip, message=STORE_UNAVAILABLE_MESSAGE)
            return self.responder.send_result(result, 200)
        if mode == "closed":
            result = ThreatResult(blocked=True, ip=client_ip, message=STORE_UNAVAILABLE_MESSAGE)
            return self.responder.send_result(result, 403)
        return self.responder.send_error()
