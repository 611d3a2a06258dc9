"""Connection timeline service: FastAPI app and command-line entry point.

Usage:
  # Serve the timeline API (starts the response deadline scheduler)
  python app.py serve --host 0.0.0.0 --port 8000

  # Run one response deadline sweep and print the result
  python app.py check-deadlines

  # Create tables in the configured database (development only)
  python app.py init-db

  # Create the first_impression stage for a connection
  python app.py init-timeline --connection-id 42
"""
import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

import runtime_config
from api import install_error_handlers, router
from db.connection import create_all, dispose_engine, get_db
from timeline.deadlines import DeadlineScheduler, check_response_deadlines
from timeline.progression import initialize_timeline

logger = logging.getLogger(__name__)


def create_app(scheduler: Optional[DeadlineScheduler] = None) -> FastAPI:
    """Build the app; its lifespan owns the deadline scheduler and the engine."""
    scheduler = scheduler or DeadlineScheduler()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting connection timeline service (environment=%s)", runtime_config.environment())
        scheduler.start()
        try:
            yield
        finally:
            scheduler.stop()
            await dispose_engine()
            logger.info("Database connections closed")

    app = FastAPI(title="Connection Timeline", lifespan=lifespan)
    app.state.deadline_scheduler = scheduler
    install_error_handlers(app)
    app.include_router(router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "scheduler_running": scheduler.is_running}

    return app


async def run_check_deadlines() -> None:
    try:
        result = await check_response_deadlines()
        print(result.model_dump_json(indent=2))
    finally:
        await dispose_engine()


async def run_init_db() -> None:
    try:
        await create_all()
        logger.info("Tables created")
    finally:
        await dispose_engine()


async def run_init_timeline(connection_id: int) -> None:
    try:
        async with get_db() as session:
            result = await initialize_timeline(session, connection_id)
        print(result.model_dump_json(indent=2))
    finally:
        await dispose_engine()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Connection timeline progression service")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API with the deadline scheduler")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("check-deadlines", help="Run one response deadline sweep")
    sub.add_parser("init-db", help="Create tables (development only)")

    init_timeline = sub.add_parser("init-timeline", help="Initialize a connection's timeline")
    init_timeline.add_argument("--connection-id", type=int, required=True)

    return parser


if __name__ == "__main__":
    logging.basicConfig(
        level=runtime_config.log_level(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    parser = _build_arg_parser()
    args = parser.parse_args()

    if args.command == "serve":
        import uvicorn

        uvicorn.run(create_app(), host=args.host, port=args.port)

    elif args.command == "check-deadlines":
        asyncio.run(run_check_deadlines())

    elif args.command == "init-db":
        asyncio.run(run_init_db())

    elif args.command == "init-timeline":
        asyncio.run(run_init_timeline(args.connection_id))

    else:
        parser.print_help()
        sys.exit(1)
