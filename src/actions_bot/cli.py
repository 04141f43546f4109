"""CLI entry point for actions-bot.

Usage:
    actions-bot serve --action-id my-project --port 8080
    actions-bot serve --config bot.yaml     # Settings from a YAML file
    actions-bot serve --config bot.yaml --debug
    actions-bot --version                    # Show version

The serve command runs an echo bot that answers every utterance with the
same text, which is enough to try a webhook end to end.
"""

import argparse
import asyncio
import logging
import os
import sys

from actions_bot import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="actions-bot",
        description="Actions on Google webhook bot",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the fulfillment webhook with an echo bot",
    )
    serve_parser.add_argument(
        "--config",
        type=str,
        help="YAML settings file",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on (overrides settings)",
    )
    serve_parser.add_argument(
        "--action-id",
        type=str,
        dest="action_id",
        help="Actions on Google project identifier (overrides settings)",
    )
    serve_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        serve(
            config=args.config,
            port=args.port,
            action_id=args.action_id,
            debug=args.debug,
        )
    else:
        parser.print_help()


def configure_logging(debug: bool = False) -> None:
    """Configure root logging; ACTIONS_BOT_DEBUG=1 also enables debug."""
    if debug or os.getenv("ACTIONS_BOT_DEBUG", "0") == "1":
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(levelname)s] %(message)s",
        )


def resolve_settings(config=None, port=None, action_id=None, debug=False) -> dict:
    """Merge settings file, environment and command line, in that order."""
    from actions_bot.config import apply_env_overrides, load_settings

    settings = load_settings(config) if config else {}
    settings = apply_env_overrides(settings)
    if port is not None:
        settings["port"] = port
    if action_id is not None:
        settings["actionId"] = action_id
    if debug:
        settings["debug"] = True
    return settings


async def echo(bot, update):
    """Answer an update with its own text."""
    await bot.reply(update, update.message.text or "I didn't catch that")


def serve(config=None, port=None, action_id=None, debug=False):
    """Start the echo bot and serve until interrupted."""
    from actions_bot.adapter import ActionsOnGoogleBot
    from actions_bot.base import SettingsError
    from actions_bot.config import ConfigError

    configure_logging(debug)

    try:
        settings = resolve_settings(config, port, action_id, debug)
        bot = ActionsOnGoogleBot(settings)
    except (ConfigError, SettingsError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    bot.on_update(echo)

    async def run():
        await bot.start()
        try:
            await asyncio.Event().wait()
        finally:
            await bot.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
