#!/usr/bin/env python3
"""
CyberShield Security Monitor - Python/Sanic Implementation
Main entry point for the application
"""

import logging
import sys

from sanic import Sanic
from sanic_cors import CORS

from config import Config
from dashboard_handler import DashboardHandler
from exceptions import ConfigError
from health_monitor import HealthMonitor
from monitor_handler import MonitorHandler
from monitor_server import MonitorServer
from request_parser import RequestParser
from response_builder import ResponseBuilder
from server_stats import StatsCollector


MONITOR_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization", "X-Client-Info", "Apikey"]


def print_startup_info(config: Config):
    """Print startup information"""
    print("🛡️  CyberShield Security Monitor (Python)")
    print("=" * 40)
    print(f"✅ Port: {config.port}")
    print(f"✅ Debug: {config.debug}")
    print(f"✅ Store: {config.store_backend} ({config.db_path})")
    print(f"✅ Failed login lockout: {config.failed_login_threshold} in {config.failed_login_window_label}")
    print(f"✅ Rate thresholds: warn > {config.rate_warn_threshold}, block > {config.rate_block_threshold}")
    print(f"✅ Storage failure mode: {config.storage_failure_mode}")
    print()
    print("📊 Available Endpoints:")
    print(f"   http://localhost:{config.port}/security-monitor  - Threat evaluation endpoint")
    print(f"   http://localhost:{config.port}/health            - Health check")
    print(f"   http://localhost:{config.port}/status            - Security status")
    print(f"   http://localhost:{config.port}/stats             - Server statistics")
    print(f"   http://localhost:{config.port}/dashboard/...     - Dashboard data")
    print()


def install_components(app: Sanic, server: MonitorServer):
    """Store server components in app context"""
    parser = RequestParser()
    responder = ResponseBuilder()
    stats = StatsCollector(server.stats)

    app.ctx.server = server
    app.ctx.monitor_handler = MonitorHandler(server, parser, responder, stats)
    app.ctx.health_monitor = HealthMonitor(server, responder, stats)
    app.ctx.dashboard_handler = DashboardHandler(server, responder)


async def teardown_server(app, loop):
    """Close the threat store if startup got far enough to open one"""
    server = getattr(app.ctx, "server", None)
    if server is not None:
        await server.close()


def create_app(config: Config = None, server: MonitorServer = None, name: str = "cybershield-monitor"):
    """Create and configure the Sanic application"""
    config = config or (server.config if server else Config())
    app = Sanic(name)
    app.ctx.config = config

    if server is not None:
        install_components(app, server)
    else:
        @app.before_server_start
        async def setup_server(app, loop):
            """Setup server components before starting"""
            install_components(app, await MonitorServer.create(app.ctx.config))

        app.register_listener(teardown_server, "after_server_stop")

    # Setup CORS for the dashboard; /security-monitor sets its own headers
    CORS(app,
         resources={r"/dashboard/*": {"origins": "*"}},
         methods=MONITOR_METHODS,
         allow_headers=CORS_ALLOW_HEADERS)

    # Add routes
    app.add_route(handle_monitor, "/security-monitor", methods=MONITOR_METHODS)
    app.add_route(handle_health, "/health", methods=["GET"])
    app.add_route(handle_status, "/status", methods=["GET"])
    app.add_route(handle_stats, "/stats", methods=["GET"])
    app.add_route(handle_dashboard_stats, "/dashboard/stats", methods=["GET", "OPTIONS"])
    app.add_route(handle_dashboard_threats, "/dashboard/threats", methods=["GET", "OPTIONS"])
    app.add_route(handle_dashboard_blocked, "/dashboard/blocked", methods=["GET", "OPTIONS"])
    app.add_route(handle_dashboard_approve, "/dashboard/blocked/<ip>/approve", methods=["POST", "OPTIONS"])

    return app


# Route handlers that use app context
async def handle_monitor(request):
    return await request.app.ctx.monitor_handler.handle_monitor(request)


async def handle_health(request):
    return await request.app.ctx.health_monitor.handle_health(request)


async def handle_status(request):
    return await request.app.ctx.health_monitor.handle_status(request)


async def handle_stats(request):
    return await request.app.ctx.health_monitor.handle_stats(request)


async def handle_dashboard_stats(request):
    return await request.app.ctx.dashboard_handler.handle_stats(request)


async def handle_dashboard_threats(request):
    return await request.app.ctx.dashboard_handler.handle_threats(request)


async def handle_dashboard_blocked(request):
    return await request.app.ctx.dashboard_handler.handle_blocked(request)


async def handle_dashboard_approve(request, ip: str):
    return await request.app.ctx.dashboard_handler.handle_approve(request, ip)


def main():
    """Main entry point"""
    try:
        config = Config.from_env()
    except ConfigError as exc:
        print(f"❌ {exc}")
        sys.exit(1)

    if len(sys.argv) > 1:
        arg = sys.argv[1]
        if arg == "debug":
            config.debug = True
            print("🐛 Debug mode enabled")
        elif arg == "production":
            config.debug = False
            print("🚀 Production mode enabled")
        else:
            print(f"Unknown argument: {arg}")
            print("Available options: debug, production")
            sys.exit(1)

    logging.basicConfig(
        level=logging.INFO if config.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print_startup_info(config)
    print(f"🚀 Server starting on port {config.port}")

    app = create_app(config)

    try:
        app.run(
            host="0.0.0.0",
            port=int(config.port),
            debug=config.debug,
            access_log=config.debug,
            single_process=True
        )
    except KeyboardInterrupt:
        print("\n🛑 Server stopped")


if __name__ == "__main__":
    main()
