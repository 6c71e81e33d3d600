import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

TEST_PAGE = b"<html><head><title>Test Page</title></head><body><img src='test.png'></body></html>"


@pytest.fixture
def page_server():
    """
    Start a local HTTP server driven by ``handle(request) -> (status, headers, body)``.

    Yields a ``serve(handle)`` callable returning the server base URL, and the
    list of request paths seen so far is available as ``serve.paths``.
    """
    servers = []
    paths = []

    def serve(handle):
        class Handler(BaseHTTPRequestHandler):
            def do_GET(self):
                paths.append(self.path)
                status, headers, body = handle(self)
                self.send_response(status)
                for key, value in headers.items():
                    self.send_header(key, value)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format, *args):
                pass

        server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        host, port = server.server_address
        return f"http://{host}:{port}"

    serve.paths = paths
    yield serve

    for server in servers:
        server.shutdown()
        server.server_close()
