"""CLI entry point for multi-space-jira-mcp.

Runs the MCP server in the foreground with uvicorn. Configuration comes from
.env and the environment (see config.py).
"""
import argparse
import logging
import socket
import sys

import uvicorn
from supabase import create_client

from config import load_config
from logging_config import flush_logs, setup_logging
from main import VERSION, create_app

logger = logging.getLogger(__name__)


def cmd_start(host: str = None, port: int = None):
    """Start the MCP server."""
    config = load_config()

    supabase = None
    if config.has_supabase():
        supabase = create_client(config.supabase_url, config.supabase_key)

    setup_logging(
        service_name=config.service_name,
        instance_id=socket.gethostname(),
        supabase_client=supabase,
    )

    if not config.is_oauth_configured():
        logger.warning("[STARTUP] ATLASSIAN_CLIENT_ID not set; /auth/start will show setup instructions")

    host = host or config.host
    port = port or config.port
    logger.info(f"[STARTUP] Starting server on {host}:{port}")
    logger.info("[STARTUP] SSE endpoint: /v1/sse?token=<session token>")

    app = create_app(config)
    try:
        uvicorn.run(app, host=host, port=port, log_level="info")
    finally:
        flush_logs()


def cmd_version():
    """Show version information."""
    print(f"multi-space-jira-mcp v{VERSION}")


def cmd_help():
    """Show detailed help."""
    print("""
Multi-Space Jira MCP - expose several Jira spaces to an MCP client

USAGE:
    multi-space-jira-mcp <command> [--host HOST] [--port PORT]

COMMANDS:
    start       Start the server (default)
    version     Show version information
    help        Show this help message

ENVIRONMENT:
    ATLASSIAN_CLIENT_ID      OAuth 2.0 (3LO) client id
    ATLASSIAN_CLIENT_SECRET  OAuth 2.0 (3LO) client secret
    PORT                     Listen port (default 3000)
    SESSION_SECRET           Session cookie signing secret
    SERVER_URL               Public base URL, if behind a proxy

QUICK START:
    1. Register an OAuth 2.0 (3LO) app in the Atlassian Developer Console
    2. Set the callback URL to <SERVER_URL>/auth/callback
    3. Run 'multi-space-jira-mcp start'
    4. Open the server in a browser and click "Connect to Jira"
    5. Add the generated /v1/sse URL to your MCP client
""")


def main(argv=None):
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="multi-space-jira-mcp",
        description="Multi-Space Jira MCP server",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="start",
        choices=["start", "version", "help"],
        help="Command to run (default: start)",
    )
    parser.add_argument("--host", help="Bind address (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Listen port (default: PORT or 3000)")

    args = parser.parse_args(argv)

    if args.command == "start":
        cmd_start(args.host, args.port)
    elif args.command == "version":
        cmd_version()
    elif args.command == "help":
        cmd_help()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
