"""Entry point for code-reference-optimizer MCP server."""

import argparse
import asyncio
import logging
import sys

from code_reference_optimizer import __version__
from code_reference_optimizer.config.settings import Settings
from code_reference_optimizer.server import create_server, initialize_services, shutdown_services


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="code-reference-optimizer",
        description="Code Reference Optimizer - minimal code context for LLMs via MCP",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override CRO_LOG_LEVEL",
    )
    return parser.parse_args()


def configure_logging(level: str) -> None:
    """Send logs to stderr; stdout is reserved for the stdio transport."""
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def main(settings: Settings) -> None:
    """Main entry point for the MCP server."""
    # Initialize services
    await initialize_services(settings)

    # Create and run server
    mcp = create_server()

    try:
        # Run the server (stdio transport)
        await mcp.run_stdio_async()
    finally:
        await shutdown_services()


def cli() -> None:
    """CLI entry point."""
    args = parse_args()

    settings = Settings()
    if args.log_level:
        settings.log_level = args.log_level
    configure_logging(settings.log_level)

    asyncio.run(main(settings))


if __name__ == "__main__":
    cli()
