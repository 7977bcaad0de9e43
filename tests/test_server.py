"""Tests for the HTTP layer."""

import uuid
from collections.abc import AsyncIterator
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sanic import Sanic

from config import Config
from exceptions import StorageError
from main import create_app, teardown_server
from monitor_server import MonitorServer
from shield_modules.rule_loader import RuleLoader
from shield_modules.threat_store import MemoryStore

from conftest import add_events, add_rule

IP = "203.0.113.5"
MONITOR = "/security-monitor"


class UnavailableStore(MemoryStore):
    async def get_block(self, ip_address, status=None):
        raise StorageError("get_block", ConnectionError("database is down"))


def build_app(store: MemoryStore, **config_overrides) -> Sanic:
    config = Config(store_backend="memory", seed_default_rules=False, **config_overrides)
    server = MonitorServer(config, store)
    return create_app(server=server, name=f"monitor-{uuid.uuid4().hex[:8]}")


@pytest_asyncio.fixture
async def memory_store() -> AsyncIterator[MemoryStore]:
    store = MemoryStore()
    await RuleLoader().populate(store)
    yield store


@pytest.fixture
def app(memory_store: MemoryStore) -> Sanic:
    return build_app(memory_store)


def assert_cors(response) -> None:
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
    assert "Content-Type" in response.headers["Access-Control-Allow-Headers"]
    assert "Authorization" in response.headers["Access-Control-Allow-Headers"]


@pytest.mark.asyncio
class TestMonitorEndpoint:
    async def test_preflight(self, app: Sanic) -> None:
        _, response = await app.asgi_client.options(MONITOR)
        assert response.status == 200
        assert response.body == b""
        assert_cors(response)

    async def test_clean_request_is_allowed(self, app: Sanic) -> None:
        _, response = await app.asgi_client.post(
            MONITOR,
            json={"url": "/home", "method": "GET", "headers": {"user-agent": "Mozilla/5.0"}},
            headers={"X-Forwarded-For": f"{IP}, 10.0.0.1"},
        )
        assert response.status == 200
        assert response.json["blocked"] is False
        assert response.json["threats"] == []
        assert response.json["ip"] == IP
        assert "message" not in response.json
        assert_cors(response)

    async def test_attack_is_blocked(self, app: Sanic, memory_store: MemoryStore) -> None:
        _, response = await app.asgi_client.post(
            MONITOR,
            json={"url": "/search", "method": "POST", "headers": {}, "body": "1 UNION SELECT * FROM users"},
            headers={"X-Forwarded-For": IP},
        )
        assert response.status == 403
        assert response.json["blocked"] is True
        assert response.json["threats"][0]["type"] == "SQL Injection - UNION"
        assert "timestamp" in response.json
        assert (await memory_store.get_block(IP)).status == "blocked"

        _, response = await app.asgi_client.post(
            MONITOR,
            json={"url": "/home", "method": "GET", "headers": {}},
            headers={"X-Forwarded-For": IP},
        )
        assert response.status == 403
        assert response.json["message"].startswith("Access denied")

    async def test_real_ip_fallback(self, app: Sanic) -> None:
        _, response = await app.asgi_client.post(
            MONITOR, json={"url": "/", "method": "GET"}, headers={"X-Real-IP": "192.0.2.44"},
        )
        assert response.json["ip"] == "192.0.2.44"

    async def test_unknown_address(self, app: Sanic) -> None:
        _, response = await app.asgi_client.post(MONITOR, json={"url": "/", "method": "GET"})
        assert response.json["ip"] == "unknown"

    async def test_login_lockout_message(self, memory_store: MemoryStore) -> None:
        app = build_app(memory_store)
        await add_events(memory_store, IP, 4, threat_type="Failed Login Attempt", seconds_ago=120)

        _, response = await app.asgi_client.post(
            MONITOR,
            json={
                "url": "/auth/login",
                "method": "POST",
                "headers": {},
                "authContext": {"event": "login", "status": "failure", "identifier": "a@example.com"},
            },
            headers={"X-Forwarded-For": IP},
        )
        assert response.status == 403
        assert response.json["message"] == (
            "Too many failed login attempts. Contact an admin to unblock access."
        )

    async def test_user_agent_header_fallback(self) -> None:
        store = MemoryStore()
        await add_rule(store, "SQLMap Scanner", "sqlmap", "high")
        app = build_app(store)

        _, response = await app.asgi_client.post(
            MONITOR,
            json={"url": "/", "method": "GET", "headers": {}},
            headers={"X-Forwarded-For": IP, "User-Agent": "sqlmap/1.7"},
        )
        assert response.status == 403
        [event] = await store.list_events()
        assert event.user_agent == "sqlmap/1.7"

    async def test_malformed_body_is_internal_error(self, app: Sanic) -> None:
        _, response = await app.asgi_client.post(
            MONITOR, content=b"{not json", headers={"Content-Type": "application/json"},
        )
        assert response.status == 500
        assert response.json == {"error": "Internal server error"}
        assert_cors(response)


@pytest.mark.asyncio
class TestStorageFailureModes:
    async def _post(self, app: Sanic):
        return await app.asgi_client.post(
            MONITOR, json={"url": "/", "method": "GET"}, headers={"X-Forwarded-For": IP},
        )

    async def test_error_mode(self) -> None:
        _, response = await self._post(build_app(UnavailableStore()))
        assert response.status == 500
        assert response.json == {"error": "Internal server error"}

    async def test_open_mode_admits(self) -> None:
        _, response = await self._post(build_app(UnavailableStore(), storage_failure_mode="open"))
        assert response.status == 200
        assert response.json["blocked"] is False
        assert response.json["ip"] == IP

    async def test_closed_mode_rejects(self) -> None:
        _, response = await self._post(build_app(UnavailableStore(), storage_failure_mode="closed"))
        assert response.status == 403
        assert response.json["blocked"] is True


@pytest.mark.asyncio
class TestDashboardEndpoints:
    async def test_stats_and_lists(self, app: Sanic, memory_store: MemoryStore) -> None:
        await app.asgi_client.post(
            MONITOR,
            json={"url": "/", "method": "POST", "body": "<script>alert(1)</script>"},
            headers={"X-Forwarded-For": IP},
        )

        _, response = await app.asgi_client.get("/dashboard/stats")
        assert response.json == {
            "totalThreats": 1,
            "blockedIPs": 1,
            "threatsToday": 1,
            "criticalThreats": 0,
        }

        _, response = await app.asgi_client.get("/dashboard/threats?limit=10")
        assert response.json["threats"][0]["ip_address"] == IP
        assert response.json["threats"][0]["threat_type"] == "XSS Attack"

        _, response = await app.asgi_client.get("/dashboard/blocked")
        assert response.json["blocked"][0]["ip_address"] == IP

    async def test_bad_paging(self, app: Sanic) -> None:
        _, response = await app.asgi_client.get("/dashboard/threats?limit=abc")
        assert response.status == 400

    async def test_approve_unblocks(self, app: Sanic, memory_store: MemoryStore) -> None:
        await memory_store.upsert_block(IP, "XSS", "XSS", {})

        _, response = await app.asgi_client.post(
            f"/dashboard/blocked/{IP}/approve", json={"admin_id": "admin-7"},
        )
        assert response.status == 200
        assert response.json["status"] == "approved"
        assert response.json["approved_by"] == "admin-7"
        assert memory_store.admin_actions[0].action_type == "unblock"

        _, response = await app.asgi_client.post(
            MONITOR, json={"url": "/", "method": "GET"}, headers={"X-Forwarded-For": IP},
        )
        assert response.status == 200

    async def test_approve_unknown(self, app: Sanic) -> None:
        _, response = await app.asgi_client.post("/dashboard/blocked/192.0.2.200/approve")
        assert response.status == 404

    async def test_approve_preflight(self, app: Sanic, memory_store: MemoryStore) -> None:
        await memory_store.upsert_block(IP, "XSS", "XSS", {})

        _, response = await app.asgi_client.options(
            f"/dashboard/blocked/{IP}/approve",
            headers={
                "Origin": "https://dashboard.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert response.status == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in response.headers["Access-Control-Allow-Methods"]

        # A preflight never approves anything
        assert (await memory_store.get_block(IP)).status == "blocked"
        assert memory_store.admin_actions == []

    async def test_list_preflight(self, app: Sanic) -> None:
        _, response = await app.asgi_client.options(
            "/dashboard/threats",
            headers={"Origin": "https://dashboard.example.com", "Access-Control-Request-Method": "GET"},
        )
        assert response.status == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    async def test_cross_origin_read(self, app: Sanic) -> None:
        _, response = await app.asgi_client.get(
            "/dashboard/stats", headers={"Origin": "https://dashboard.example.com"},
        )
        assert response.status == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
class TestTeardown:
    async def test_closes_installed_server(self) -> None:
        closed = []

        class Server:
            async def close(self):
                closed.append(True)

        await teardown_server(SimpleNamespace(ctx=SimpleNamespace(server=Server())), None)
        assert closed == [True]

    async def test_failed_startup_leaves_nothing_to_close(self) -> None:
        await teardown_server(SimpleNamespace(ctx=SimpleNamespace()), None)


@pytest.mark.asyncio
class TestHealthEndpoints:
    async def test_health(self, app: Sanic) -> None:
        _, response = await app.asgi_client.get("/health")
        assert response.status == 200
        assert response.json["status"] == "healthy"

    async def test_status_reports_rules_and_thresholds(self, app: Sanic) -> None:
        _, response = await app.asgi_client.get("/status")
        assert response.json["rules"]["enabled"] == len(RuleLoader().load_default_rules())
        assert response.json["thresholds"]["rate_warn_threshold"] == 50
        assert response.json["thresholds"]["rate_block_threshold"] == 100

    async def test_stats_count_verdicts(self, app: Sanic) -> None:
        await app.asgi_client.post(MONITOR, json={"url": "/", "method": "GET"})
        await app.asgi_client.post(MONITOR, json={"url": "/", "method": "GET", "body": "../../etc/passwd"})

        _, response = await app.asgi_client.get("/stats")
        assert response.json["total_requests"] == 2
        assert response.json["allowed_count"] == 1
        assert response.json["blocked_count"] == 1
