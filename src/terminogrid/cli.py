"""Command-line interface for terminogrid.

Provides the main entry point for running the dashboard server and a
few commands that talk to a running server over HTTP.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="terminogrid",
        description="Container dashboard backend with interactive terminals",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/terminogrid.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Server URL for client commands (default: http://localhost:<server.port>)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the dashboard server")
    serve_parser.add_argument(
        "--demo", action="store_true",
        help="Use the in-memory demo runtime instead of Docker",
    )

    subparsers.add_parser("ls", help="List containers on a running server")
    subparsers.add_parser("health", help="Check a running server and its runtime")
    for name in ("start", "stop"):
        action_parser = subparsers.add_parser(name, help=f"{name.capitalize()} a container")
        action_parser.add_argument("container_id", help="Container ID or name")

    return parser.parse_args(argv)


async def _run_client_command(settings, args) -> int:
    """Run one client command against a running server."""
    from terminogrid.client import DashboardClient, DashboardClientError

    url = args.url or f"http://localhost:{settings.server.port}"
    try:
        async with DashboardClient(base_url=url) as client:
            if args.command == "ls":
                containers = await client.list_containers()
                for c in containers:
                    ports = ", ".join(
                        f"{p.public_port}->{p.private_port}/{p.protocol}"
                        for p in c.ports if p.public_port
                    )
                    print(f"{c.id[:12]:<14} {c.name:<24} {c.status:<10} {c.image:<28} {ports}")
            elif args.command == "health":
                report = await client.health()
                print(f"{report.get('status')} (runtime={report.get('runtime')}, "
                      f"sessions={report.get('sessions')})")
            elif args.command == "start":
                await client.start(args.container_id)
                print(f"started {args.container_id}")
            elif args.command == "stop":
                await client.stop(args.container_id)
                print(f"stopped {args.container_id}")
    except DashboardClientError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the terminogrid CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from terminogrid.config.settings import load_settings
    from terminogrid.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        import uvicorn
        from terminogrid.api.server import create_app

        if args.demo:
            settings.runtime.backend = "demo"
        logger.info("Starting server on %s:%d", settings.server.host, settings.server.port)
        app = create_app(settings=settings)
        uvicorn.run(
            app,
            host=settings.server.host,
            port=settings.server.port,
            log_config=None,
        )
    else:
        sys.exit(asyncio.run(_run_client_command(settings, args)))


if __name__ == "__main__":
    main()
