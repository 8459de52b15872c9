"""Entrypoint: run the FeedEnrich server.

Flags override the matching ``FEEDENRICH_`` environment settings::

    feedenrich --port 9000 --log-level debug
"""

from __future__ import annotations

import argparse

import uvicorn

from feedenrich.api.app import create_app
from feedenrich.config.settings import Settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve the FeedEnrich HTTP API")
    parser.add_argument("--host", help="Bind address (FEEDENRICH_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (FEEDENRICH_PORT)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (FEEDENRICH_LOG_LEVEL)",
    )
    parser.add_argument("--json-logs", action="store_true", default=None, help="Emit JSON log lines")
    return parser


def settings_from_args(argv: list[str] | None = None) -> Settings:
    args = build_parser().parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    return Settings().model_copy(update=overrides)


def main(argv: list[str] | None = None) -> None:
    settings = settings_from_args(argv)
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
