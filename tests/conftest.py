import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

import pytest

from postier.app import App
from postier.dialogs import StaticFolderDialog


class _Handler(BaseHTTPRequestHandler):
    def log_message(self, format, *args):
        pass

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _send(self, code, body=b"", headers=()):
        self.send_response(code)
        for k, v in headers:
            self.send_header(k, v)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _trickle(self, body, delay):
        self.send_response(200)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        try:
            for ch in body:
                self.wfile.write(bytes([ch]))
                self.wfile.flush()
                time.sleep(delay)
        except (BrokenPipeError, ConnectionResetError):
            self.close_connection = True

    def _handle(self):
        path = urlsplit(self.path).path
        if path == "/echo":
            payload = {
                "method": self.command,
                "query": parse_qs(urlsplit(self.path).query, keep_blank_values=True),
                "headers": [[k, v] for k, v in self.headers.items()],
                "body": self._read_body().decode("utf-8"),
            }
            self._send(200, json.dumps(payload).encode("utf-8"), [("Content-Type", "application/json")])
        elif path == "/cookies":
            self._send(200, b"ok", [
                ("Set-Cookie", "session=abc123; Domain=.example.test; Path=/; "
                               "Expires=Wed, 21 Oct 2037 07:28:00 GMT; Secure; HttpOnly"),
                ("Set-Cookie", "theme=dark; Path=/ui"),
            ])
        elif path == "/multi":
            self._send(201, "héllo".encode("utf-8"), [("X-Multi", "a"), ("X-Multi", "b")])
        elif path == "/redirect":
            self._send(302, b"", [("Location", "/echo?from=redirect")])
        elif path == "/loop":
            self._send(302, b"", [("Location", "/loop")])
        elif path == "/missing":
            self._send(404, b"not here")
        elif path == "/slow":
            time.sleep(2)
            self._send(200, b"late")
        elif path == "/truncated":
            self.send_response(200)
            self.send_header("Content-Length", "100")
            self.end_headers()
            self.wfile.write(b"only ten b")
            self.wfile.flush()
            self.close_connection = True
        elif path == "/drip":
            self._trickle(b"drip", 0.3)
        elif path == "/trickle":
            self._trickle(b"fifteen bytes!!", 0.2)
        else:
            self._send(404, b"")

    do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = _handle

    def do_HEAD(self):
        self.send_response(200)
        self.send_header("Content-Length", "0")
        self.end_headers()


@pytest.fixture(scope="session")
def http_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "settings" / "postier.json"


@pytest.fixture
def app(settings_path):
    return App(folder_dialog=StaticFolderDialog(), settings_path=settings_path)
