"""Shared fixtures and helpers for dictctl tests.

Most tests are offline: they drive the protocol through ``FakeSocket``,
an in-memory stand-in that replays a scripted server transcript and
records what the client sends.

Tests marked ``live`` connect to a real DICT server and are skipped
unless one is configured:

    pytest tests/ --server dict.org --port 2628 -v

Server and port can also be set via DICTCTL_TEST_SERVER and
DICTCTL_TEST_PORT environment variables.
"""

import os
import sys

import pytest

# Add the client library to the path so tests can import dictctl
_client_dir = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "client",
)
if _client_dir not in sys.path:
    sys.path.insert(0, _client_dir)

from dictctl import DictConnection
from dictctl.protocol import LineReader


# ---------------------------------------------------------------------------
# In-memory socket
# ---------------------------------------------------------------------------

class FakeSocket:
    """Scripted socket: ``recv`` serves *data* in chunks of *chunk* bytes.

    Everything passed to ``sendall`` is collected in ``sent``.  Once the
    script is exhausted ``recv`` returns b"" (peer closed).
    """

    def __init__(self, data=b"", chunk=7):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._data = bytearray(data)
        self.chunk = chunk
        self.sent = bytearray()
        self.closed = False

    def feed(self, data):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._data.extend(data)

    def recv(self, bufsize):
        n = min(bufsize, self.chunk)
        out = bytes(self._data[:n])
        del self._data[:n]
        return out

    def sendall(self, data):
        if self.closed:
            raise OSError("socket closed")
        self.sent.extend(data)

    def close(self):
        self.closed = True

    @property
    def sent_lines(self):
        """Sent data split into CRLF-terminated command lines."""
        text = self.sent.decode("utf-8")
        return [line for line in text.split("\r\n") if line]

    @property
    def remaining(self):
        return bytes(self._data)


def transcript(*lines):
    """Join server lines with CR LF, including a trailing terminator."""
    return "".join(line + "\r\n" for line in lines)


GREETING = "220 dict.example.org dictd 1.12.1 <auth.mime> <1234.5678@dict.example.org>"


@pytest.fixture
def fake_socket():
    return FakeSocket()


@pytest.fixture
def reader_for():
    """Build a LineReader over a FakeSocket preloaded with *lines*."""
    def _make(*lines, chunk=7):
        return LineReader(FakeSocket(transcript(*lines), chunk=chunk))
    return _make


@pytest.fixture
def make_conn():
    """Return a started DictConnection over a FakeSocket.

    The greeting is fed and consumed; pass the lines of the server's
    answers to the commands the test will issue.  The FakeSocket is
    available as ``conn.fake``.
    """
    def _make(*lines):
        sock = FakeSocket(transcript(GREETING, *lines))
        conn = DictConnection.from_socket(sock, "dict.example.org")
        conn.start()
        conn.fake = sock
        return conn
    return _make


# ---------------------------------------------------------------------------
# Command-line options
# ---------------------------------------------------------------------------

def pytest_addoption(parser):
    parser.addoption(
        "--server",
        default=os.environ.get("DICTCTL_TEST_SERVER"),
        help="DICT server for live tests "
             "(default: DICTCTL_TEST_SERVER env; live tests skipped if unset)",
    )
    parser.addoption(
        "--port",
        type=int,
        default=int(os.environ.get("DICTCTL_TEST_PORT", "2628")),
        help="TCP port of the DICT server "
             "(default: DICTCTL_TEST_PORT env or 2628)",
    )


@pytest.fixture
def live_connection(request):
    """Open a connection to the configured live server.

    Skips the test when no server is configured.  The connection is
    closed (QUIT) on teardown.
    """
    server = request.config.getoption("--server")
    if not server:
        pytest.skip("no live DICT server configured")
    conn = DictConnection(server, request.config.getoption("--port"),
                          timeout=10)
    conn.connect()
    yield conn
    conn.close()
