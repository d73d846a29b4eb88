"""Deskhand Shell CLI - type instructions, get things done on the desktop.

Usage:
    deskhand                              Start the interactive prompt
    deskhand "open notepad and write hi"  Run one instruction and exit
    deskhand --offline "start calculator" Skip the language model

The interactive prompt exits on "exit", "quit", an empty line or EOF.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from collections.abc import Callable

from . import __version__
from .app import build_dispatcher
from .commands import CommandResult
from .dispatch.dispatcher import CommandDispatcher
from .logging_setup import configure_logging
from .providers.factory import AVAILABLE_PROVIDERS, check_provider_health
from .providers.ollama import check_ollama_installed
from .providers.secrets import get_keyring_backend_name, store_api_key
from .settings import settings

logger = logging.getLogger(__name__)

EXIT_WORDS = ("exit", "quit")


def read_user_input(prompt_text: str = "") -> str:
    """Read input from user, trying /dev/tty if stdin is unavailable.

    Args:
        prompt_text: Optional prompt to display (not used if reading from /dev/tty).

    Returns:
        User input string, stripped.

    Raises:
        EOFError: When input is exhausted.
    """
    if sys.stdin.isatty():
        return input(prompt_text).strip()

    try:
        with open("/dev/tty", "r") as tty:
            line = tty.readline()
    except OSError:
        return input(prompt_text).strip()
    if not line:
        raise EOFError
    return line.strip()


def colorize(text: str, color: str) -> str:
    """Apply ANSI color codes if stdout is a TTY."""
    if not sys.stdout.isatty():
        return text

    colors = {
        "cyan": "\033[36m",
        "green": "\033[32m",
        "yellow": "\033[33m",
        "red": "\033[31m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "reset": "\033[0m",
    }
    return f"{colors.get(color, '')}{text}{colors['reset']}"


def print_header() -> None:
    header = colorize("Deskhand", "cyan") + colorize(" - type 'exit' or an empty line to quit", "dim")
    print(header, file=sys.stderr)


def print_result(result: CommandResult) -> None:
    """Print the message, then any suggestions."""
    color = "green" if result.success else "red"
    print(colorize(result.message, color))
    if result.suggestions:
        print(colorize("Suggestions:", "yellow"))
        for suggestion in result.suggestions:
            print(f"  - {suggestion}")


def run_repl(
    dispatcher: CommandDispatcher,
    *,
    reader: Callable[[str], str] = read_user_input,
    quiet: bool = False,
) -> int:
    """Read-process-print loop.

    Returns:
        Exit code, always 0.
    """
    if not quiet:
        print_header()

    while True:
        try:
            text = reader("> ")
        except (EOFError, KeyboardInterrupt):
            print(file=sys.stderr)
            break

        if not text or text.lower() in EXIT_WORDS:
            break

        print_result(dispatcher.process(text))

    session = dispatcher.session
    logger.info("Session %s ended after %d instructions", session.session_id, len(session.history))
    return 0


def run_once(dispatcher: CommandDispatcher, text: str) -> int:
    """Process one instruction. Exit code 0 on success, 1 on failure."""
    result = dispatcher.process(text)
    print_result(result)
    return 0 if result.success else 1


def print_status(provider_type: str | None) -> int:
    """Report backend health and where secrets are stored."""
    kind = provider_type or settings.provider
    health = check_provider_health(provider_type)
    if health.reachable:
        print(colorize(f"{kind}: reachable ({health.model_count} models, using {health.current_model})", "green"))
    else:
        print(colorize(f"{kind}: unavailable ({health.error})", "red"))

    if kind == "ollama" and not check_ollama_installed():
        print(colorize("Ollama does not appear to be installed: https://ollama.com/download", "yellow"))
    print(f"Keyring backend: {get_keyring_backend_name()}")
    print(f"Log file: {settings.log_path}")
    return 0 if health.reachable else 1


def store_key(provider: str) -> int:
    """Prompt for an API key and save it in the keyring."""
    key = getpass.getpass(f"{provider} API key: ").strip()
    if not key:
        print("No key entered.", file=sys.stderr)
        return 1
    store_api_key(provider, key)
    print(colorize(f"Stored {provider} API key in {get_keyring_backend_name()}", "green"))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deskhand",
        description="Deskhand - natural language commands for your desktop",
        epilog="""
Examples:
  deskhand                                    Interactive prompt
  deskhand "start calculator"
  deskhand "open notepad and write hello world"
  deskhand "restart the print spooler"
  deskhand --offline "close firefox"          Local parser only
  deskhand --store-key gemini                 Save an API key in the keyring
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "instruction",
        nargs="*",
        help="Instruction to run once (omit for the interactive prompt)",
    )
    parser.add_argument(
        "--provider",
        choices=[p.id for p in AVAILABLE_PROVIDERS],
        default=None,
        help=f"Language model backend (default: {settings.provider})",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Do not contact a language model; parse instructions locally",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress the header",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging on stderr",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Check the language model backend and exit",
    )
    parser.add_argument(
        "--store-key",
        metavar="PROVIDER",
        help="Prompt for an API key and store it in the system keyring",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the deskhand command."""
    args = build_parser().parse_args(argv)
    configure_logging(stderr_level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.store_key:
        return store_key(args.store_key.strip().lower())
    if args.status:
        return print_status(args.provider)

    try:
        dispatcher = build_dispatcher(provider_type=args.provider, offline=args.offline)
        text = " ".join(args.instruction).strip()
        if text:
            return run_once(dispatcher, text)
        return run_repl(dispatcher, quiet=args.quiet)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
