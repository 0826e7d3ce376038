"""``python -m cli``: chat with the risk assistant from a terminal."""

import argparse
import asyncio
import sys

from .config import CLIConfig
from .riskchat_cli import main


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Interactive client for the risk chat API. "
        "Type a suggestion's number to ask it."
    )
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--api-path", default="/api/v1/chat")
    parser.add_argument("--user-id", help="user id sent with each message")
    parser.add_argument("--site-id", type=int, help="only discuss this site's risks")
    parser.add_argument(
        "--service-id", type=int, help="only discuss this service's risks"
    )
    parser.add_argument("--debug", action="store_true", help="log HTTP traffic")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> CLIConfig:
    return CLIConfig(
        host=args.host,
        port=args.port,
        api_path=args.api_path,
        user_id=args.user_id,
        site_id=args.site_id,
        service_id=args.service_id,
    )


def cli_entry(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        asyncio.run(main(config_from_args(args), debug=args.debug))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    cli_entry()
