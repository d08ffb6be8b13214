"""CLI entry point for the dictctl client.

Usage::

    dictctl define shortcake
    dictctl --host dict.org match -s prefix short
    dictctl databases
    dictctl open dict://dict.org/d:shortcake:wn
"""

import argparse
import configparser
import logging
import os
import sys

from . import (
    ConnectOnly, Database, DefineAction, DictConnection, MatchAction,
    ProtocolError, ServerError, Strategy, TargetError, parse_target,
)
from .colors import (
    ColorWriter, format_definition, format_listing, format_match,
    format_status,
)
from .url import DEFAULT_PORT

DEFAULT_HOST = "dict.org"
DEFAULT_CLIENT = "dictctl"

log = logging.getLogger("dictctl")


def _select(items, count):
    """Apply a 1-based result index; None or 0 keeps every item."""
    if not count:
        return items
    if count < 0:
        print("Error: result index must be positive, got {}".format(count),
              file=sys.stderr)
        sys.exit(1)
    if count > len(items):
        print("Error: only {} result(s), cannot show #{}".format(
            len(items), count), file=sys.stderr)
        sys.exit(1)
    return [items[count - 1]]


def _run_define(conn, cw, word, database, count=None):
    defs, status = conn.define(database, word)
    defs = _select(defs, count)
    print("\n\n".join(format_definition(d, cw) for d in defs))
    log.info("%s", status)


def _run_match(conn, cw, word, database, strategy, count=None):
    matches, status = conn.match(database, strategy, word)
    for m in _select(matches, count):
        print(format_match(m, cw))
    log.info("%s", status)


def cmd_define(conn, args, cw):
    """Handle the 'define' subcommand."""
    _run_define(conn, cw, args.word, Database(args.database), args.n)


def cmd_match(conn, args, cw):
    """Handle the 'match' subcommand."""
    _run_match(conn, cw, args.word, Database(args.database),
               Strategy(args.strategy), args.n)


def cmd_databases(conn, args, cw):
    """Handle the 'databases' subcommand."""
    dbs, _status = conn.show_databases()
    if dbs:
        print(format_listing(dbs, cw))


def cmd_strategies(conn, args, cw):
    """Handle the 'strategies' subcommand."""
    strats, _status = conn.show_strategies()
    if strats:
        print(format_listing(strats, cw))


def cmd_open(conn, args, cw):
    """Handle the 'open' subcommand: run the URL's initial action."""
    action = args.target.action
    if isinstance(action, DefineAction):
        _run_define(conn, cw, action.word, action.database, action.count)
    elif isinstance(action, MatchAction):
        _run_match(conn, cw, action.word, action.database, action.strategy,
                   action.count)
    elif isinstance(action, ConnectOnly):
        greeting = conn.greeting
        print(greeting.text if greeting is not None else "Connected")


def _default_config_path():
    """Return the per-user config file path (may not exist)."""
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(
        os.path.expanduser("~"), ".config")
    return os.path.join(base, "dictctl.conf")


# (result key, section, option) for the plain string settings
_CONFIG_STRINGS = (
    ("host", "connection", "host"),
    ("client", "client", "name"),
)


def _config_problem(message, explicit):
    """Report a config file problem: fatal for --config, else a warning."""
    if explicit:
        print("Error: {}".format(message), file=sys.stderr)
        sys.exit(1)
    print("Warning: {}".format(message), file=sys.stderr)


def _load_config(path, explicit):
    """Load settings from a config file.

    Args:
        path: File path to read.
        explicit: True if the user passed --config (errors are fatal).

    Returns a dict with keys 'host', 'port', 'client' (any may be None),
    or an empty dict when the file is absent or unreadable.
    """
    if not os.path.exists(path):
        if explicit:
            _config_problem("config file not found: {}".format(path), True)
        return {}

    config = configparser.ConfigParser()
    try:
        config.read(path)
    except configparser.Error as e:
        _config_problem("failed to parse config file: {}".format(e), explicit)
        return {}

    result = {}
    for name, section, option in _CONFIG_STRINGS:
        result[name] = config.get(section, option, fallback="").strip() or None
    try:
        result["port"] = config.getint("connection", "port", fallback=None)
    except ValueError as e:
        _config_problem("invalid port in config file: {}".format(e), explicit)
        result["port"] = None
    return result


def build_parser(env_host=None, env_port=None):
    parser = argparse.ArgumentParser(
        prog="dictctl",
        description="DICT protocol (RFC 2229) dictionary client",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Server hostname (default: {})".format(
            env_host if env_host is not None else DEFAULT_HOST),
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Server port (default: {})".format(
            env_port if env_port is not None else DEFAULT_PORT),
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="PATH",
        help="Path to config file (default: {})".format(
            _default_config_path()),
    )
    parser.add_argument(
        "--client",
        default=None,
        metavar="NAME",
        help="Client name sent with CLIENT (default: {})".format(
            DEFAULT_CLIENT),
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log protocol traffic to stderr")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    p_define = subparsers.add_parser("define", help="Look up definitions")
    p_define.add_argument("word", help="Word to define")
    p_define.add_argument("-d", "--database", default="*",
                          help="Database name (default: * for all)")
    p_define.add_argument("-n", type=int, default=None, metavar="N",
                          help="Show only the N-th definition")

    p_match = subparsers.add_parser("match", help="Find matching words")
    p_match.add_argument("word", help="Word to match")
    p_match.add_argument("-d", "--database", default="*",
                         help="Database name (default: * for all)")
    p_match.add_argument("-s", "--strategy", default=".",
                         help="Match strategy (default: . for server "
                              "default)")
    p_match.add_argument("-n", type=int, default=None, metavar="N",
                         help="Show only the N-th match")

    subparsers.add_parser("databases", help="List server databases")
    subparsers.add_parser("strategies", help="List match strategies")

    p_open = subparsers.add_parser("open", help="Open a dict:// URL")
    p_open.add_argument("url", help="dict://host[:port]/[d:...|m:...]")

    return parser


def main() -> None:
    """Parse arguments and dispatch to the appropriate subcommand."""
    # --- Pre-parse: resolve env vars for help string defaults ---
    env_host = os.environ.get("DICTCTL_HOST") or None
    env_port_str = os.environ.get("DICTCTL_PORT")
    env_port = None
    if env_port_str:
        try:
            env_port = int(env_port_str)
        except ValueError:
            print(
                "Error: DICTCTL_PORT must be an integer, got: {!r}".format(
                    env_port_str
                ),
                file=sys.stderr,
            )
            sys.exit(1)

    args = build_parser(env_host, env_port).parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                            format="%(name)s: %(message)s")

    # --- Load config file ---
    explicit_config = bool(args.config)
    config_path = args.config if explicit_config else _default_config_path()
    cfg = _load_config(config_path, explicit_config)

    # --- Resolve host and port (URL > CLI > env > config > default) ---
    if args.host is not None:
        host = args.host
    elif env_host is not None:
        host = env_host
    elif cfg.get("host") is not None:
        host = cfg["host"]
    else:
        host = DEFAULT_HOST

    if args.port is not None:
        port = args.port
    elif env_port is not None:
        port = env_port
    elif cfg.get("port") is not None:
        port = cfg["port"]
    else:
        port = DEFAULT_PORT

    client_name = args.client or cfg.get("client") or DEFAULT_CLIENT

    if args.command == "open":
        try:
            args.target = parse_target(args.url)
        except TargetError as e:
            print("Error: {}".format(e), file=sys.stderr)
            sys.exit(1)
        host, port = args.target.host, args.target.port

    dispatch = {
        "databases": cmd_databases,
        "define": cmd_define,
        "match": cmd_match,
        "open": cmd_open,
        "strategies": cmd_strategies,
    }

    cw = ColorWriter()
    try:
        with DictConnection(host, port) as conn:
            try:
                conn.client(client_name)
            except ServerError as e:
                log.warning("CLIENT rejected: %s", e.reply)
            dispatch[args.command](conn, args, cw)
    except ConnectionRefusedError:
        print(
            "Error: could not connect to {}:{}".format(host, port),
            file=sys.stderr,
        )
        sys.exit(1)
    except OSError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)
    except ServerError as e:
        print("Error: {}".format(format_status(e.reply, cw)), file=sys.stderr)
        sys.exit(1)
    except ProtocolError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
