"""
Command-line entry point for the transfer approval engine.

Usage:
    transfer-engine [--config PATH] init-db
    transfer-engine [--config PATH] serve [--host HOST] [--port PORT]
    transfer-engine [--config PATH] settle

Examples:
    # Create the schema in the configured database
    transfer-engine init-db

    # Run the HTTP API with the settlement scheduler in-process
    DATABASE_URL=postgresql://localhost/transfers transfer-engine serve --port 8000

    # Run one settlement/expiry pass (e.g. from cron when the scheduler is disabled)
    transfer-engine settle
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass

from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from transfer_api.app import create_app
from transfer_config import EngineConfig, get_active_config
from transfer_config.bridges import build_onboarding_template, build_workflow_policy
from transfer_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from transfer_kernel.domain.clock import SystemClock
from transfer_kernel.domain.events import EventSink
from transfer_kernel.logging_config import configure_logging
from transfer_services.event_sinks import (
    CompositeEventSink,
    LoggingEventSink,
    NotificationEventSink,
)
from transfer_services.settlement_gateway import SimulatedSettlementGateway
from transfer_services.settlement_scheduler import SettlementScheduler


@dataclass
class Runtime:
    config: EngineConfig
    session_factory: sessionmaker[Session]
    event_sink: EventSink
    scheduler: SettlementScheduler


def build_runtime(config: EngineConfig) -> Runtime:
    """Initialize logging and the database, and wire sinks and scheduler."""
    configure_logging(level=config.logging.level)
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )
    session_factory = get_session_factory()
    clock = SystemClock()
    sink = CompositeEventSink([LoggingEventSink(), NotificationEventSink(session_factory)])
    scheduler = SettlementScheduler(
        session_factory,
        SimulatedSettlementGateway(),
        clock=clock,
        policy=build_workflow_policy(config),
        event_sink=sink,
        tick_interval_seconds=config.scheduler.tick_interval_seconds,
    )
    return Runtime(config, session_factory, sink, scheduler)


def build_app(runtime: Runtime) -> FastAPI:
    return create_app(
        runtime.session_factory,
        policy=build_workflow_policy(runtime.config),
        onboarding=build_onboarding_template(runtime.config),
        event_sink=runtime.event_sink,
        scheduler=runtime.scheduler if runtime.config.scheduler.enabled else None,
    )


def _cmd_init_db(runtime: Runtime, args: argparse.Namespace) -> int:
    create_tables()
    print("Database schema created")
    return 0


def _cmd_serve(runtime: Runtime, args: argparse.Namespace) -> int:
    import uvicorn

    create_tables()
    uvicorn.run(build_app(runtime), host=args.host, port=args.port, log_level="info")
    return 0


def _cmd_settle(runtime: Runtime, args: argparse.Namespace) -> int:
    report = runtime.scheduler.tick()
    print(json.dumps({
        "completed": report.completed,
        "failed": report.failed,
        "expired": len(report.expired),
        "error": report.error,
    }))
    return 1 if report.error else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="transfer-engine",
        description="Multi-tenant transfer approval workflow engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML overlay on the packaged defaults (default: $TRANSFER_ENGINE_CONFIG)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables").set_defaults(func=_cmd_init_db)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=_cmd_serve)

    sub.add_parser(
        "settle", help="Run one settlement and approval-expiry pass",
    ).set_defaults(func=_cmd_settle)

    args = parser.parse_args(argv)

    try:
        config = get_active_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    return args.func(build_runtime(config), args)


if __name__ == "__main__":
    sys.exit(main())
