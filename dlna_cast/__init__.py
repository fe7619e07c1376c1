"""
DLNA Cast - play a local video on a DLNA/UPnP render from the command line.

This package discovers renders offering the AVTransport service, serves a
video (and optional subtitle) from a temporary HTTP endpoint and drives the
render to fetch and play it.

Key modules:
- ssdp: SSDP M-SEARCH discovery
- device: UPnP device description parsing
- registry: Render discovery and selection
- media: Local file to URI mapping and subtitle inference
- http_server: Range-capable HTTP server for media routes
- streaming: Streaming server lifecycle and local address selection
- avtransport: AVTransport SOAP client and DIDL-Lite metadata
- playback: Orchestration of the server and the control actions
- cli: Command line interface

Example usage:
    import asyncio
    from dlna_cast import Query, StreamingServer, get_serve_ip, infer_subtitle, play, resolve

    async def main():
        render = await resolve(Query("Kodi", timeout=5))
        host_ip = get_serve_ip(render.host)
        video = "/home/me/Videos/my_video.mp4"
        server = StreamingServer.build(video, infer_subtitle(video), host_ip)
        session = await play(render, server)
        await session.wait()

    asyncio.run(main())
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .errors import (
    AddressParseError,
    DeviceCreateError,
    DiscoveryError,
    DLNACastError,
    FileNotFound,
    LocalAddressError,
    PlayError,
    RenderNotFound,
    SetUriError,
    StreamingTaskError,
    UrlParseError,
)
from .media import MediaFile, infer_subtitle, resolve_media_file, slugify
from .playback import PlaybackSession, play
from .registry import First, Location, Query, RenderDevice, RenderSelector, discover, host_of, resolve
from .streaming import STREAMING_PORT, StreamingServer, get_serve_ip

__all__ = [
    "discover",
    "resolve",
    "host_of",
    "RenderDevice",
    "RenderSelector",
    "Location",
    "Query",
    "First",
    "MediaFile",
    "resolve_media_file",
    "slugify",
    "infer_subtitle",
    "StreamingServer",
    "STREAMING_PORT",
    "get_serve_ip",
    "play",
    "PlaybackSession",
    "DLNACastError",
    "DiscoveryError",
    "RenderNotFound",
    "UrlParseError",
    "DeviceCreateError",
    "FileNotFound",
    "AddressParseError",
    "LocalAddressError",
    "SetUriError",
    "PlayError",
    "StreamingTaskError",
]
