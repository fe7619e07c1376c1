import http.server
import logging
import os
import socket
import socketserver
import urllib.parse
from typing import Dict, Mapping, Optional, Tuple

from .media import MediaFile

logger = logging.getLogger(__name__)

# Optimized buffer size for streaming
STREAM_BUFFER_SIZE = 64 * 1024  # 64KB chunks

DLNA_CONTENT_FEATURES = "DLNA.ORG_OP=01;DLNA.ORG_CI=0;DLNA.ORG_FLAGS=01700000000000000000000000000000"


class RangeRequestHandler(http.server.BaseHTTPRequestHandler):
    """Serves the server's route table, honouring byte Range requests."""

    protocol_version = "HTTP/1.1"
    server: "StreamingHTTPServer"

    # Track current range bounds for bounded copy
    _range_start: Optional[int] = None
    _range_end: Optional[int] = None

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_HEAD(self):
        f = self.send_head()
        if f:
            f.close()

    def do_GET(self):
        f = self.send_head()
        if not f:
            return
        try:
            self.copyfile(f, self.wfile)
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("Client %s disconnected while streaming %s", self.address_string(), self.path)
        finally:
            f.close()

    def lookup(self) -> Optional[MediaFile]:
        path = urllib.parse.unquote(urllib.parse.urlsplit(self.path).path)
        return self.server.routes.get(path.lstrip("/"))

    def copyfile(self, source, outputfile):
        """Copy the file, bounded to the active range if there is one."""
        if self._range_start is not None and self._range_end is not None:
            source.seek(self._range_start)
            remaining = self._range_end - self._range_start + 1
            self._range_start = None
            self._range_end = None
            while remaining > 0:
                buf = source.read(min(STREAM_BUFFER_SIZE, remaining))
                if not buf:
                    break
                outputfile.write(buf)
                remaining -= len(buf)
            return

        # No range requested: stream entire file
        while True:
            buf = source.read(STREAM_BUFFER_SIZE)
            if not buf:
                break
            outputfile.write(buf)

    def send_head(self):
        # Handlers are reused across keep-alive requests
        self._range_start = None
        self._range_end = None
        media = self.lookup()
        if media is None:
            self.send_error(404, "File not found")
            return None
        try:
            file_stat = os.stat(media.path)
            f = open(media.path, "rb")
        except OSError:
            self.send_error(404, "File not found")
            return None
        file_size = file_stat.st_size
        ctype = media.mime_type

        extra_headers = {
            "transferMode.dlna.org": "Streaming",
            "contentFeatures.dlna.org": DLNA_CONTENT_FEATURES,
            "Accept-Ranges": "bytes",
            "Cache-Control": "no-cache",
            "Last-Modified": self.date_time_string(file_stat.st_mtime),
        }

        byte_range = parse_range(self.headers.get("Range"), file_size)
        if byte_range == "unsatisfiable":
            f.close()
            self.send_response(416)
            self.send_header("Content-Range", f"bytes */{file_size}")
            self.send_header("Content-Length", "0")
            for hk, hv in extra_headers.items():
                self.send_header(hk, hv)
            self.end_headers()
            return None

        if byte_range is not None:
            start, end = byte_range
            # Track requested range for bounded copy in copyfile
            self._range_start = start
            self._range_end = end

            self.send_response(206)
            self.send_header("Content-Type", ctype)
            self.send_header("Content-Range", f"bytes {start}-{end}/{file_size}")
            self.send_header("Content-Length", str(end - start + 1))
            for hk, hv in extra_headers.items():
                self.send_header(hk, hv)
            self.end_headers()
            return f

        self.send_response(200)
        self.send_header("Content-Type", ctype)
        self.send_header("Content-Length", str(file_size))
        for hk, hv in extra_headers.items():
            self.send_header(hk, hv)
        self.end_headers()
        return f


def parse_range(header: Optional[str], file_size: int):
    """Parse a single ``bytes=`` Range header.

    Returns ``None`` when the whole file should be sent (no header, or one we
    do not understand), the string ``"unsatisfiable"`` when the range starts
    past the end of the file, otherwise an inclusive ``(start, end)`` tuple.
    """
    if not header:
        return None
    try:
        units, range_spec = header.strip().split("=", 1)
        if units.strip().lower() != "bytes" or "," in range_spec:
            return None
        start_str, end_str = range_spec.strip().split("-", 1)
        if start_str:
            start = int(start_str)
            end = int(end_str) if end_str else file_size - 1
        else:
            # Suffix range: last N bytes
            suffix = int(end_str)
            if suffix <= 0:
                return "unsatisfiable"
            start = max(file_size - suffix, 0)
            end = file_size - 1
    except ValueError:
        return None
    if start >= file_size or start < 0:
        return "unsatisfiable"
    if end < start:
        return None
    return start, min(end, file_size - 1)


class StreamingHTTPServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """Threaded TCP server serving a fixed table of media routes."""

    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, server_address: Tuple[str, int], routes: Mapping[str, MediaFile]):
        self.routes: Dict[str, MediaFile] = dict(routes)
        if ":" in server_address[0]:
            self.address_family = socket.AF_INET6
        super().__init__(server_address, RangeRequestHandler)

    def server_bind(self):
        """Set socket options for better streaming performance."""
        super().server_bind()
        s = self.socket
        try:
            s.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError:
            pass
        s.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, 256 * 1024)  # 256KB send buffer

    def handle_error(self, request, client_address):
        logger.debug("Error while serving %s", client_address, exc_info=True)
