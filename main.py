"""
Urban Auto entry point.

Runs either the offline console demo or a read-only check against the
hosted backend (resume the stored session and list its bookings).

Usage:
    Console demo:   python main.py console [--scenario booking|cancel|locate]
    Hosted status:  python main.py status --session-file ~/.urban_auto/session.json
    Server:         python main.py serve [--in-memory] [--port 3000]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from urban_auto.config import settings

logger = logging.getLogger(__name__)


async def _hosted_status(session_file: Path) -> int:
    """Resume the persisted session against the hosted backend and list bookings."""
    from urban_auto.app import build_hosted_app
    from urban_auto.backend.supabase import SupabaseBackend

    backend = SupabaseBackend(settings.backend, session_file=session_file)
    app = build_hosted_app(backend)
    try:
        state = await app.start()
        identity = app.session.identity
        if identity is None:
            sys.stdout.write(f"Not signed in (state: {state.value})\n")
            return 1
        sys.stdout.write(f"Signed in as {identity.name} <{identity.email}>\n")
        for booking in app.bookings.bookings:
            sys.stdout.write(
                f"  {booking.preferred_date_time:<17} {booking.service_name:<22} "
                f"{booking.status.value}\n"
            )
        return 0
    finally:
        await app.shutdown()
        await backend.aclose()


def _run_server(in_memory: bool, host: str, port: int) -> None:
    """Serve the signup and broadcast endpoints with uvicorn."""
    import uvicorn

    from urban_auto.backend.memory import InMemoryBackend
    from urban_auto.server.api import create_hosted_server, create_in_memory_server

    app = create_in_memory_server(InMemoryBackend()) if in_memory else create_hosted_server()
    logger.info("Serving %s on %s:%d", "in-memory" if in_memory else "hosted", host, port)
    uvicorn.run(app, host=host, port=port)


def _run_console_mode(scenario: str) -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import ConsoleSession

    asyncio.run(ConsoleSession().run_scenario(scenario))


def main() -> None:
    parser = argparse.ArgumentParser(description=f"{settings.app_name} client core.")
    sub = parser.add_subparsers(dest="command", required=True)

    console = sub.add_parser("console", help="Run the offline console demo.")
    console.add_argument("--scenario", choices=["booking", "cancel", "locate"], default="booking")

    status = sub.add_parser("status", help="Show the hosted session and its bookings.")
    status.add_argument(
        "--session-file",
        type=Path,
        default=Path.home() / ".urban_auto" / "session.json",
    )

    serve = sub.add_parser("serve", help="Serve the signup and broadcast endpoints.")
    serve.add_argument("--in-memory", action="store_true", help="Use the in-memory backend.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3000)

    args = parser.parse_args()
    if args.command == "console":
        _run_console_mode(args.scenario)
    elif args.command == "serve":
        _run_server(args.in_memory, args.host, args.port)
    else:
        sys.exit(asyncio.run(_hosted_status(args.session_file)))


if __name__ == "__main__":
    main()
