"""
Agency site backend entry point.

Serves the booking and case-study API with uvicorn, or runs the
offline tools.

Usage:
    API server:    python main.py serve --port 8000
    Report:        python main.py report --format csv --output bookings.csv
    Console demo:  python main.py console
"""

import argparse
import logging
import sys
from typing import Optional

from agency.config import settings

logger = logging.getLogger(__name__)


def _run_server(argv: list[str]) -> None:
    """Start the FastAPI app under uvicorn."""
    import uvicorn

    parser = argparse.ArgumentParser(prog="main.py serve", description="Run the API server.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes.")
    args = parser.parse_args(argv)

    logger.info("Starting %s on %s:%d", settings.app_name, args.host, args.port)
    uvicorn.run(
        "agency.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


def _run_report(argv: list[str]) -> None:
    from agency.reporting.run_report import main as report_main

    report_main(argv)


def _run_console_mode(argv: list[str]) -> None:
    """Start the offline console demo (no credentials required)."""
    from console_demo import main as demo_main

    demo_main(argv)


COMMANDS = {
    "serve": _run_server,
    "report": _run_report,
    "console": _run_console_mode,
}


def main(argv: Optional[list[str]] = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    command = argv.pop(0) if argv else "serve"
    handler = COMMANDS.get(command)
    if handler is None:
        sys.stderr.write(f"Unknown command {command!r}. Choose from: {', '.join(COMMANDS)}\n")
        sys.exit(1)
    handler(argv)


if __name__ == "__main__":
    main()
