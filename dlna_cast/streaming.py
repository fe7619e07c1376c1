"""
Ephemeral HTTP server exposing a video and its subtitle to a render.

The StreamingServer publishes exactly two routes: the video slug, and either
the subtitle slug or a placeholder route when there is no subtitle. It binds
a fixed port so the URIs handed to the render are predictable.

Example usage:
    server = StreamingServer.build("video.mp4", None, "192.168.1.20")
    print(server.video_uri())  # http://192.168.1.20:9000/video.mp4
    await server.run()         # serves until the task is cancelled
"""

import asyncio
import ipaddress
import logging
import socket
import threading
from typing import Optional

from .errors import AddressParseError, LocalAddressError
from .http_server import StreamingHTTPServer
from .media import MediaFile, PathLike, resolve_media_file

logger = logging.getLogger(__name__)

STREAMING_PORT = 9000

# Served with the video bytes when there is no subtitle; never sent to a render
PLACEHOLDER_ROUTE = "dummy.srt"


class StreamingServer:
    """Serves one video and an optional subtitle over HTTP."""

    def __init__(self, video_file: MediaFile, subtitle_file: Optional[MediaFile], host_ip: str, port: int):
        self.video_file = video_file
        self.subtitle_file = subtitle_file
        self.host_ip = host_ip
        self.port = port

    @classmethod
    def build(
        cls,
        video_path: PathLike,
        subtitle_path: Optional[PathLike],
        host_ip: str,
        port: int = STREAMING_PORT,
    ) -> "StreamingServer":
        """Validate the address and resolve the media files.

        Raises:
            AddressParseError: If ``host_ip`` is not an IP address or ``port`` is out of range.
            FileNotFound: If the video or the subtitle does not exist.
        """
        address = f"{host_ip}:{port}"
        try:
            ip = ipaddress.ip_address(host_ip)
        except ValueError:
            raise AddressParseError(address) from None
        if not 0 <= port <= 65535:
            raise AddressParseError(address)
        origin = f"http://[{ip}]:{port}" if ip.version == 6 else f"http://{ip}:{port}"
        logger.debug("Streaming server address: %s", origin)

        video_file = resolve_media_file(video_path, origin)
        subtitle_file = None
        if subtitle_path is not None:
            subtitle_file = resolve_media_file(subtitle_path, origin)
        return cls(video_file, subtitle_file, str(ip), port)

    @property
    def server_address(self):
        return (self.host_ip, self.port)

    def video_uri(self) -> str:
        return self.video_file.uri

    def video_type(self) -> str:
        return self.video_file.file_type

    def subtitle_uri(self) -> Optional[str]:
        return self.subtitle_file.uri if self.subtitle_file else None

    def subtitle_type(self) -> Optional[str]:
        return self.subtitle_file.file_type if self.subtitle_file else None

    def routes(self):
        """Return the route table: slug -> MediaFile."""
        logger.info("Video file: %s", self.video_file.path)
        logger.debug("Serving video file: %s", self.video_file)
        routes = {self.video_file.file_uri: self.video_file}
        if self.subtitle_file is not None:
            logger.info("Subtitle file: %s", self.subtitle_file.path)
            logger.debug("Serving subtitle file: %s", self.subtitle_file)
            routes[self.subtitle_file.file_uri] = self.subtitle_file
        else:
            logger.info("No subtitle file")
            routes.setdefault(PLACEHOLDER_ROUTE, self.video_file)
        return routes

    def bind(self) -> StreamingHTTPServer:
        """Bind and start listening; requests queue until ``serve_forever`` runs."""
        return StreamingHTTPServer(self.server_address, self.routes())

    async def run(self, ready: Optional[asyncio.Event] = None) -> None:
        """Serve until cancelled.

        ``ready`` is set once the listening socket is bound. The HTTP server
        loop runs in its own thread; on cancellation it is shut down from a
        helper thread so the event loop never blocks on it.
        """
        httpd = self.bind()
        logger.info("Streaming server listening on %s:%d", *httpd.server_address[:2])
        loop = asyncio.get_running_loop()
        stopped = loop.create_future()

        def serve():
            error = None
            try:
                httpd.serve_forever()
            except Exception as exc:
                error = exc
            if not loop.is_closed():
                loop.call_soon_threadsafe(_settle, stopped, error)

        thread = threading.Thread(target=serve, name="streaming-server", daemon=True)
        thread.start()
        if ready is not None:
            ready.set()
        try:
            await asyncio.shield(stopped)
        finally:
            if not stopped.done():
                threading.Thread(target=httpd.shutdown, name="streaming-shutdown", daemon=True).start()
                await asyncio.wait({stopped})
            httpd.server_close()
            logger.info("Streaming server stopped")


def _settle(future: "asyncio.Future[None]", error: Optional[BaseException]) -> None:
    if future.done():
        return
    if error is None:
        future.set_result(None)
    else:
        future.set_exception(error)


def get_serve_ip(remote_host: str) -> str:
    """Return the local address used to reach ``remote_host``.

    Connecting a UDP socket only selects a route; no packets are sent.

    Raises:
        LocalAddressError: If no route to ``remote_host`` can be determined.
    """
    logger.debug("Identifying local IP address used to reach %s", remote_host)
    try:
        infos = socket.getaddrinfo(remote_host, 9, type=socket.SOCK_DGRAM)
        family, _, _, _, sockaddr = infos[0]
        s = socket.socket(family, socket.SOCK_DGRAM)
        try:
            s.connect(sockaddr)
            ip = s.getsockname()[0]
        finally:
            s.close()
    except OSError as exc:
        raise LocalAddressError(remote_host, exc) from exc
    if ip in ("0.0.0.0", "::"):
        raise LocalAddressError(remote_host)
    return ip
