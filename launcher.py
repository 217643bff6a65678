#!/usr/bin/env python3
"""
SecureTest - Main Launcher
Entry point for the dashboard backend:
1. Prepares data directories and the database
2. Issues API tokens (--create-user) or serves the FastAPI backend
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.resolve()
sys.path.insert(0, str(PROJECT_ROOT))

from securetest.config import get_config, CONFIG_FILE, LOGS_DIR, ensure_dirs
from securetest.storage import Storage

# Rich for pretty terminal output
from rich.console import Console

console = Console()


BANNER = r"""
   ____                           _____         _
  / ___|  ___  ___ _   _ _ __ __|_   _|__  ___| |_
  \___ \ / _ \/ __| | | | '__/ _ \| |/ _ \/ __| __|
   ___) |  __/ (__| |_| | | |  __/| |  __/\__ \ |_
  |____/ \___|\___|\__,_|_|  \___||_|\___||___/\__|

            SecureTest v1.0.0
            Web Security Testing Dashboard
"""


async def create_user(config, username: str, role: str):
    """Create a dashboard user and print its API token."""
    storage = Storage(config.storage.db_path)
    await storage.connect()
    try:
        user = await storage.create_user(username, role=role)
    finally:
        await storage.close()

    console.print(f"[green]✓ User '{user['username']}' created (id {user['id']}, role {user['role']})[/green]")
    console.print(f"  API token: [bold]{user['api_token']}[/bold]")
    console.print("[dim]  Send it as 'Authorization: Bearer <token>'[/dim]")


async def start_backend(config):
    """Build the uvicorn server for the FastAPI backend."""
    import uvicorn

    uv_config = uvicorn.Config(
        "securetest.api:app",
        host=config.api.host,
        port=config.api.port,
        log_level="warning",
        reload=False,
    )
    return uvicorn.Server(uv_config)


async def main(args):
    """Main entry point."""
    console.print(BANNER, style="bold cyan")

    config = get_config()
    ensure_dirs()

    if args.create_user:
        await create_user(config, args.create_user, args.role)
        return

    # Show configuration
    console.print("\n[bold]Configuration[/bold]")
    console.print("─" * 40)
    console.print(f"  API Server:  http://{config.api.host}:{config.api.port}")
    console.print(f"  Database:    {config.storage.db_path}")
    console.print(f"  Overrides:   {CONFIG_FILE}")
    console.print(f"  Logs:        {LOGS_DIR}")
    console.print(f"  Probe timeout: {config.scanner.probe_timeout:g}s")

    console.print("\n[bold]Starting Services[/bold]")
    console.print("─" * 40)

    server = await start_backend(config)
    console.print("\n[bold green]═══ SecureTest is ready ═══[/bold green]")
    console.print("[dim]Press Ctrl+C to shutdown[/dim]\n")

    try:
        await server.serve()
    except asyncio.CancelledError:
        server.should_exit = True


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="SecureTest dashboard backend")
    parser.add_argument("--create-user", metavar="NAME",
                        help="create a user, print its API token and exit")
    parser.add_argument("--role", default="user", help="role for --create-user (default: user)")
    return parser.parse_args(argv)


def run():
    """Entry point with signal handling."""
    args = parse_args()
    loop = asyncio.new_event_loop()

    def signal_handler(sig, frame):
        console.print("\n[yellow]Received shutdown signal...[/yellow]")
        for task in asyncio.all_tasks(loop):
            task.cancel()

    signal.signal(signal.SIGTERM, signal_handler)

    try:
        loop.run_until_complete(main(args))
    except (KeyboardInterrupt, SystemExit):
        console.print("\n[yellow]Goodbye![/yellow]")
    finally:
        loop.close()


if __name__ == "__main__":
    run()
