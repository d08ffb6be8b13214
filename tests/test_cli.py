"""Unit tests for the dictctl command-line front end and ColorWriter.

The connection is mocked; these tests cover argument handling, config
resolution, output formatting and exit codes.
"""

import os
from unittest import mock

import pytest

from dictctl import (
    ConnectOnly, Database, Definition, Match, NoAnswer, ServerError,
    Strategy,
)
from dictctl import __main__ as cli
from dictctl.colors import (
    ColorWriter, _supports_color, format_definition, format_listing,
    format_match, format_status,
)
from dictctl.protocol import parse_reply


OK_REPLY = parse_reply("250 ok")


def _run(argv, conn=None, env=None):
    """Run cli.main() with *argv*, a mocked DictConnection and a clean env.

    Returns the mock connection class.
    """
    conn = conn if conn is not None else mock.MagicMock()
    conn_cls = mock.MagicMock()
    conn_cls.return_value.__enter__.return_value = conn
    environ = {"DICTCTL_COLOR": "never"}
    environ.update(env or {})
    with mock.patch.object(cli, "DictConnection", conn_cls), \
         mock.patch.object(cli, "_default_config_path",
                           return_value="/nonexistent/dictctl.conf"), \
         mock.patch.dict(os.environ, environ, clear=True), \
         mock.patch("sys.argv", ["dictctl"] + argv):
        cli.main()
    return conn_cls


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

class TestCommands:

    def test_define(self, capsys):
        conn = mock.MagicMock()
        conn.define.return_value = (
            [Definition(Database("wn", "WordNet"), ("cake", "  n 1: baked"))],
            OK_REPLY)
        conn_cls = _run(["define", "cake"], conn)
        conn_cls.assert_called_once_with("dict.org", 2628)
        conn.client.assert_called_once_with("dictctl")
        conn.define.assert_called_once_with(Database("*"), "cake")
        out = capsys.readouterr().out
        assert "WordNet (wn)" in out
        assert "  n 1: baked" in out

    def test_define_nth(self, capsys):
        conn = mock.MagicMock()
        conn.define.return_value = (
            [Definition(Database("a", "A"), ("first",)),
             Definition(Database("b", "B"), ("second",))],
            OK_REPLY)
        _run(["define", "-n", "2", "cake"], conn)
        out = capsys.readouterr().out
        assert "second" in out
        assert "first" not in out

    def test_define_nth_out_of_range(self, capsys):
        conn = mock.MagicMock()
        conn.define.return_value = ([], OK_REPLY)
        with pytest.raises(SystemExit) as info:
            _run(["define", "-n", "3", "cake"], conn)
        assert info.value.code == 1
        assert "cannot show #3" in capsys.readouterr().err

    def test_define_negative_index(self, capsys):
        conn = mock.MagicMock()
        conn.define.return_value = (
            [Definition(Database("a", "A"), ("only",))], OK_REPLY)
        with pytest.raises(SystemExit) as info:
            _run(["define", "-n", "-1", "cake"], conn)
        assert info.value.code == 1
        assert "must be positive" in capsys.readouterr().err

    def test_select_rejects_negative(self, capsys):
        with pytest.raises(SystemExit):
            cli._select(["only", "two"], -1)
        assert "Error:" in capsys.readouterr().err

    def test_match(self, capsys):
        conn = mock.MagicMock()
        conn.match.return_value = ([Match(Database("wn"), "shortcake")],
                                   OK_REPLY)
        _run(["match", "-d", "wn", "-s", "prefix", "short"], conn)
        conn.match.assert_called_once_with(Database("wn"), Strategy("prefix"),
                                           "short")
        assert capsys.readouterr().out.strip() == "shortcake (wn)"

    def test_databases(self, capsys):
        conn = mock.MagicMock()
        conn.show_databases.return_value = (
            [Database("gcide", "GCIDE"), Database("wn", "WordNet")], OK_REPLY)
        _run(["databases"], conn)
        out = capsys.readouterr().out.splitlines()
        assert out == ["gcide  GCIDE", "wn     WordNet"]

    def test_strategies(self, capsys):
        conn = mock.MagicMock()
        conn.show_strategies.return_value = (
            [Strategy("exact", "Match exactly")], OK_REPLY)
        _run(["strategies"], conn)
        assert "exact  Match exactly" in capsys.readouterr().out

    def test_open_define_url(self):
        conn = mock.MagicMock()
        conn.define.return_value = ([], OK_REPLY)
        conn_cls = _run(["open", "dict://example.org:2700/d:cake:wn"], conn)
        conn_cls.assert_called_once_with("example.org", 2700)
        conn.define.assert_called_once_with(Database("wn"), "cake")

    def test_open_match_url(self):
        conn = mock.MagicMock()
        conn.match.return_value = ([], OK_REPLY)
        _run(["open", "dict://example.org/m:cake::prefix"], conn)
        conn.match.assert_called_once_with(Database.first(), Strategy("prefix"),
                                           "cake")

    def test_open_connect_only(self, capsys):
        conn = mock.MagicMock()
        conn.greeting.text = "dictd banner"
        _run(["open", "dict://example.org/"], conn)
        assert capsys.readouterr().out.strip() == "dictd banner"

    def test_open_bad_url(self, capsys):
        with pytest.raises(SystemExit) as info:
            _run(["open", "dict://example.org/z:cake"])
        assert info.value.code == 1
        assert "Unknown access method" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Errors and exit codes
# ---------------------------------------------------------------------------

class TestErrors:

    def test_server_error(self, capsys):
        conn = mock.MagicMock()
        conn.define.side_effect = ServerError(parse_reply("552 no match"))
        with pytest.raises(SystemExit) as info:
            _run(["define", "xyzzy"], conn)
        assert info.value.code == 1
        assert "Error: 552 no match" in capsys.readouterr().err

    def test_protocol_error(self, capsys):
        conn = mock.MagicMock()
        conn.show_databases.side_effect = NoAnswer()
        with pytest.raises(SystemExit):
            _run(["databases"], conn)
        assert "No answer from server" in capsys.readouterr().err

    def test_connection_refused(self, capsys):
        conn_cls = mock.MagicMock()
        conn_cls.return_value.__enter__.side_effect = ConnectionRefusedError()
        with mock.patch.object(cli, "DictConnection", conn_cls), \
             mock.patch.object(cli, "_default_config_path",
                               return_value="/nonexistent/dictctl.conf"), \
             mock.patch.dict(os.environ, {}, clear=True), \
             mock.patch("sys.argv", ["dictctl", "databases"]):
            with pytest.raises(SystemExit):
                cli.main()
        assert "could not connect to dict.org:2628" in capsys.readouterr().err

    def test_rejected_client_is_not_fatal(self):
        conn = mock.MagicMock()
        conn.client.side_effect = ServerError(parse_reply("500 unknown"))
        conn.show_strategies.return_value = ([], OK_REPLY)
        _run(["strategies"], conn)
        conn.show_strategies.assert_called_once_with()

    def test_bad_env_port(self, capsys):
        with pytest.raises(SystemExit):
            _run(["databases"], env={"DICTCTL_PORT": "abc"})
        assert "DICTCTL_PORT must be an integer" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Host / port / client resolution
# ---------------------------------------------------------------------------

class TestResolution:

    def test_env_overrides_default(self):
        conn = mock.MagicMock()
        conn.show_databases.return_value = ([], OK_REPLY)
        conn_cls = _run(["databases"], conn,
                        env={"DICTCTL_HOST": "env.example",
                             "DICTCTL_PORT": "2700"})
        conn_cls.assert_called_once_with("env.example", 2700)

    def test_cli_overrides_env(self):
        conn = mock.MagicMock()
        conn.show_databases.return_value = ([], OK_REPLY)
        conn_cls = _run(["--host", "cli.example", "--port", "1", "databases"],
                        conn, env={"DICTCTL_HOST": "env.example"})
        conn_cls.assert_called_once_with("cli.example", 1)

    def test_config_file(self, tmp_path):
        conf = tmp_path / "dictctl.conf"
        conf.write_text("[connection]\nhost = conf.example\nport = 3000\n"
                        "[client]\nname = mytool\n")
        conn = mock.MagicMock()
        conn.show_databases.return_value = ([], OK_REPLY)
        conn_cls = _run(["--config", str(conf), "databases"], conn)
        conn_cls.assert_called_once_with("conf.example", 3000)
        conn.client.assert_called_once_with("mytool")

    def test_client_flag(self):
        conn = mock.MagicMock()
        conn.show_databases.return_value = ([], OK_REPLY)
        _run(["--client", "other", "databases"], conn)
        conn.client.assert_called_once_with("other")


class TestLoadConfig:

    def test_missing_implicit(self, tmp_path):
        assert cli._load_config(str(tmp_path / "none.conf"), False) == {}

    def test_missing_explicit(self, tmp_path, capsys):
        with pytest.raises(SystemExit):
            cli._load_config(str(tmp_path / "none.conf"), True)
        assert "config file not found" in capsys.readouterr().err

    def test_invalid_port_implicit_warns(self, tmp_path, capsys):
        conf = tmp_path / "c.conf"
        conf.write_text("[connection]\nport = many\n")
        cfg = cli._load_config(str(conf), False)
        assert cfg["port"] is None
        assert "Warning" in capsys.readouterr().err

    def test_invalid_port_explicit_fatal(self, tmp_path):
        conf = tmp_path / "c.conf"
        conf.write_text("[connection]\nport = many\n")
        with pytest.raises(SystemExit):
            cli._load_config(str(conf), True)

    def test_unparsable_implicit_warns(self, tmp_path, capsys):
        conf = tmp_path / "c.conf"
        conf.write_text("no section header\n")
        assert cli._load_config(str(conf), False) == {}
        assert "failed to parse" in capsys.readouterr().err

    def test_blank_values_are_none(self, tmp_path):
        conf = tmp_path / "c.conf"
        conf.write_text("[connection]\nhost =\n[client]\nname =   \n")
        cfg = cli._load_config(str(conf), False)
        assert cfg["host"] is None
        assert cfg["client"] is None

    def test_default_path_honors_xdg(self):
        with mock.patch.dict(os.environ, {"XDG_CONFIG_HOME": "/x"}):
            assert cli._default_config_path() == os.path.join(
                "/x", "dictctl.conf")


# ---------------------------------------------------------------------------
# Formatting and colors
# ---------------------------------------------------------------------------

class TestFormatting:

    def test_color_disabled(self):
        cw = ColorWriter(force_color=False)
        assert cw.error("x") == "x"

    def test_color_enabled(self):
        cw = ColorWriter(force_color=True)
        assert cw.error("x") == "\033[31mx\033[0m"

    def test_writer_offers_only_used_styles(self):
        cw = ColorWriter(force_color=False)
        assert not hasattr(cw, "success")
        assert not hasattr(cw, "warning")

    def test_format_definition(self):
        cw = ColorWriter(force_color=False)
        text = format_definition(
            Definition(Database("wn", "WordNet"), ("a", "b")), cw)
        assert text == "WordNet (wn)\na\nb"

    def test_format_empty_definition(self):
        cw = ColorWriter(force_color=False)
        assert format_definition(Definition.empty(), cw) == \
            "All databases (*)\nNo definition"

    def test_format_match(self):
        cw = ColorWriter(force_color=False)
        assert format_match(Match(Database("gcide"), "cake"), cw) == \
            "cake (gcide)"

    def test_format_listing_empty(self):
        assert format_listing([], ColorWriter(force_color=False)) == ""

    def test_format_status_negative_is_red(self):
        cw = ColorWriter(force_color=True)
        assert format_status(parse_reply("552 no match"), cw).startswith(
            "\033[31m")

    def test_no_color_env(self):
        with mock.patch.dict(os.environ, {"NO_COLOR": "1"}, clear=True):
            assert _supports_color() is False

    def test_color_always_env(self):
        with mock.patch.dict(os.environ, {"DICTCTL_COLOR": "always"},
                             clear=True):
            assert _supports_color() is True


class TestModelSentinels:

    def test_database_sentinels(self):
        assert Database.all().name == "*"
        assert Database.first().name == "!"
        assert Database.default() == Database.first()

    def test_strategy_sentinels(self):
        assert Strategy.default() == Strategy(".", "Server default")
        assert Strategy.exact().name == "exact"
        assert Strategy.prefix().name == "prefix"

    def test_bare_database_has_empty_desc(self):
        assert Database("wn").desc == ""

    def test_connect_only_action(self):
        assert ConnectOnly() == ConnectOnly()
