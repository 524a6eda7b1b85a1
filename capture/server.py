import posixpath
import threading
from contextlib import contextmanager
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote, urlparse

from capture.errors import SetupError

MIME_TYPES = {
    ".html": "text/html",
    ".js": "text/javascript",
    ".css": "text/css",
}


def content_type(path):
    return MIME_TYPES.get(Path(path).suffix, "text/plain")


def resolve_path(root, request_path):
    """Map a request path onto the filesystem without leaving ``root``.

    ``..`` segments are collapsed against ``/`` first, so they can never
    climb above the root. Anything that still resolves outside it (a
    symlink, say) is remapped to the root directory itself.
    """
    root = Path(root).resolve()
    path = unquote(urlparse(request_path).path).replace("\\", "/")
    clean = posixpath.normpath("/" + path.lstrip("/")).lstrip("/")
    target = (root / clean).resolve()
    if target != root and root not in target.parents:
        return root
    return target


class AssetHTTPServer(ThreadingHTTPServer):
    # a second listener on a busy port must fail
    allow_reuse_port = False


def make_handler(root):
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):  # noqa: N802
            try:
                target = resolve_path(root, self.path)
                data = target.read_bytes()
            except (OSError, ValueError):
                # missing files surface later as navigation/evaluation failures
                self.send_response(200)
                self.send_header("Content-Length", "0")
                self.end_headers()
                return

            self.send_response(200)
            self.send_header("Content-type", content_type(target))
            self.send_header("Access-Control-Allow-Origin", "*")
            self.send_header("Access-Control-Allow-Methods", "GET")
            self.send_header("Access-Control-Allow-Headers", "Content-type")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def log_message(self, _format, *_args):
            return

    return Handler


class ServerHandle:
    def __init__(self, server, thread):
        self.server = server
        self.thread = thread
        self.port = server.server_address[1]
        self.base_url = f"http://localhost:{self.port}"

    def url(self, path=""):
        return f"{self.base_url}/{path.lstrip('/')}"


class AssetServer:
    def __init__(self, root):
        self.root = Path(root).resolve()

    def start(self, port=3030):
        try:
            server = AssetHTTPServer(("localhost", port), make_handler(self.root))
        except OSError as e:
            raise SetupError(f"could not listen on port {port}: {e}") from e
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        return ServerHandle(server, thread)

    def stop(self, handle):
        handle.server.shutdown()
        handle.server.server_close()
        handle.thread.join(timeout=2)


@contextmanager
def serve_assets(root, port=3030):
    assets = AssetServer(root)
    handle = assets.start(port)
    try:
        yield handle
    finally:
        try:
            assets.stop(handle)
        except Exception as e:
            print(f"Note: could not stop asset server on port {handle.port}: {e}")
