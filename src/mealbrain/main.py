"""
MealBrain entry point.

This file handles startup concerns (arg-parsing, env setup, logging) and launches the appropriate
interface (API server, CLI chat, or demo-data seeding).
"""

import argparse
import logging
import sys

from mealbrain.config import settings
from mealbrain.db.session import init_db

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Keep per-request client logs out of the way
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the MealBrain application.

    This function sets up the command-line interface, initializes logging and the database, and
    starts the application in API, CLI or seed mode.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run the MealBrain meal planning assistant")
    parser.add_argument(
        "--mode",
        choices=["api", "cli", "seed"],
        type=str.lower,
        default="api",
        help="Launch the REST API, an interactive CLI chat, or seed demo data (default: api)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Bearer token for the CLI client (default from env: API_TOKEN)",
    )
    args = parser.parse_args(argv)

    # Override log level setting with command-line argument
    settings.LOG_LEVEL = args.log_level

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting MealBrain [%s mode]", args.mode)

    try:
        init_db()
    except Exception as exc:
        logger.error("Failed to initialise database at %s: %s", settings.DATABASE_URL, exc)
        sys.exit(1)

    if args.mode == "api":
        # Lazy import - the API stack is not needed for seeding
        from mealbrain.api.app import run_api  # pylint: disable=import-outside-toplevel

        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)

    elif args.mode == "seed":
        from mealbrain.common import (  # pylint: disable=import-outside-toplevel
            AnsiColors,
            colored_print,
        )
        from mealbrain.db.seed import seed_demo_data  # pylint: disable=import-outside-toplevel

        token = seed_demo_data()
        colored_print("Demo data ready. Use this bearer token:", AnsiColors.GREEN)
        print(token)

    else:
        import threading  # pylint: disable=import-outside-toplevel

        from mealbrain.api.app import run_api  # pylint: disable=import-outside-toplevel
        from mealbrain.client.cli import run_cli  # pylint: disable=import-outside-toplevel

        # Start API server in a separate thread
        api_thread = threading.Thread(
            target=run_api,
            kwargs={
                "host": "0.0.0.0",
                "port": settings.API_PORT,
                "reload": False,  # Reload doesn't work well with threading
                "log_level": "warning",
            },
            daemon=True,
        )
        api_thread.start()

        # Run CLI in main thread
        run_cli(token=args.token)


if __name__ == "__main__":
    main()
