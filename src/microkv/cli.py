"""
Command-line interface for MicroKV.

Provides put/get/rm/list commands against a named store in the workspace
directory. Stores are opened if their file exists and created otherwise.
Unless --unsafe is given, a password is read from the terminal and used to
encrypt and decrypt values.

Uses Python's argparse module (no external CLI libraries).
"""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

from microkv import __version__
from microkv.config.settings import ConfigurationError, Settings, load_config
from microkv.errors import MicroKVError
from microkv.namespace import DELIMITER
from microkv.store import MicroKV

logger = logging.getLogger(__name__)


def output(message: str = "") -> None:
    """Print a message to stdout."""
    print(message)


def output_error(message: str) -> None:
    """Print an error message to stderr."""
    print(message, file=sys.stderr)


def format_value(value: Any) -> str:
    """Render a stored value for display."""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.hex()
    return json.dumps(value, default=str)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the MicroKV CLI."""
    parser = argparse.ArgumentParser(
        prog="microkv",
        description="Secure, persistent key-value storage",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"microkv {__version__}",
    )

    parser.add_argument(
        "DATABASE",
        help="Name of database to interact with. Will be created if it doesn't exist.",
    )

    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Print out debug output",
    )

    parser.add_argument(
        "-u", "--unsafe",
        action="store_true",
        help="Interact with the database without encryption.",
    )

    parser.add_argument(
        "--workspace",
        metavar="PATH",
        help="Directory holding database files (default: ~/.microkv)",
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Override config file location (default: ~/.microkv/config.yaml)",
    )

    parser.add_argument(
        "-n", "--namespace",
        default="",
        metavar="NAME",
        help="Operate inside a namespace instead of the default one",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )

    # put command
    put_parser = subparsers.add_parser(
        "put",
        help="Adds a new key and value, encrypts and adds to storage.",
    )
    put_parser.add_argument("-k", "--key", required=True)
    put_parser.add_argument("-v", "--value", required=True)
    put_parser.set_defaults(func=cmd_put)

    # get command
    get_parser = subparsers.add_parser(
        "get",
        help="Retrieves and decrypts value in storage by key.",
    )
    get_parser.add_argument("-k", "--key", required=True)
    get_parser.set_defaults(func=cmd_get)

    # rm command
    rm_parser = subparsers.add_parser(
        "rm",
        help="Deletes a key-value pair by key.",
    )
    rm_parser.add_argument("-k", "--key", required=True)
    rm_parser.set_defaults(func=cmd_rm)

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List out keys existing in the database.",
    )
    list_parser.add_argument(
        "-s", "--sorted",
        action="store_true",
        help="Print out keys in sorted order",
    )
    list_parser.add_argument(
        "-v", "--values",
        action="store_true",
        help="Include values when printing",
    )
    list_parser.set_defaults(func=cmd_list)

    return parser


def setup_logging(debug: bool, level_name: str = "WARNING") -> None:
    """Configure logging from the --debug flag or the configured level."""
    level = logging.DEBUG if debug else getattr(logging, level_name, logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def open_store(args: argparse.Namespace, settings: Settings) -> MicroKV:
    """Open or create the store named on the command line."""
    workspace = Path(args.workspace) if args.workspace else Path(settings.workspace_dir)
    kv = MicroKV.open_or_new(args.DATABASE, base_dir=workspace)
    logger.debug("Using store file %s", kv.path)

    if not args.unsafe:
        password = getpass.getpass("Password: ")
        kv.with_pwd_clear(password)

    kv.set_auto_commit(settings.auto_commit)
    return kv


def _persist(kv: MicroKV) -> None:
    # auto-commit has already written the change
    if not kv.is_auto_commit():
        kv.commit()


def cmd_put(args: argparse.Namespace, kv: MicroKV) -> int:
    """Insert or replace a value."""
    kv.namespace(args.namespace).put(args.key, args.value)
    output(f"Inserting key-value entry into database `{args.DATABASE}`")
    _persist(kv)
    return 0


def cmd_get(args: argparse.Namespace, kv: MicroKV) -> int:
    """Print the value stored under a key."""
    value = kv.namespace(args.namespace).get_unwrap(args.key)
    output(format_value(value))
    return 0


def cmd_rm(args: argparse.Namespace, kv: MicroKV) -> int:
    """Delete a key."""
    if not kv.namespace(args.namespace).delete(args.key):
        output_error(f"No entry found for key `{args.key}`")
        return 1
    output(f"Removed entry by key `{args.key}`")
    _persist(kv)
    return 0


def cmd_list(args: argparse.Namespace, kv: MicroKV) -> int:
    """Print the keys, optionally sorted and with their values."""
    view = kv.namespace(args.namespace)
    keys = view.sorted_keys() if args.sorted else view.keys()

    output("Keys Present in Database:")
    for key in keys:
        if args.values:
            namespace, sep, logical = key.partition(DELIMITER)
            if sep:
                value = kv.namespace(namespace).get(logical)
            else:
                value = kv.get(key)
            output(f"{key}: {format_value(value)}")
        else:
            output(key)
    return 0


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the MicroKV CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config_path = Path(args.config) if args.config else None
        settings = load_config(config_path)
    except ConfigurationError as e:
        output_error(f"Configuration error: {e}")
        sys.exit(2)

    setup_logging(args.debug, settings.log_level)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        with open_store(args, settings) as kv:
            exit_code = args.func(args, kv)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        output("\nOperation cancelled.")
        sys.exit(130)
    except MicroKVError as e:
        output_error(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        if args.debug:
            raise
        output_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
