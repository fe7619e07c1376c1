"""
Playback orchestration: serve the media and tell a render to play it.

play() runs the streaming server as a background task, waits until it is
listening, then issues SetAVTransportURI followed by Play on the render's
AVTransport service. It returns a PlaybackSession once Play succeeded; the
server keeps running until the session is stopped.

Example usage:
    render = await resolve(First(timeout=5))
    server = StreamingServer.build("video.mp4", infer_subtitle("video.mp4"), get_serve_ip(render.host))
    session = await play(render, server)
    await session.wait()
"""

import asyncio
import contextlib
import http.client
import logging
from typing import Optional

from .avtransport import DLNAController, SOAPError, build_subtitle_metadata
from .errors import PlayError, SetUriError, StreamingTaskError
from .registry import RenderDevice
from .streaming import StreamingServer

logger = logging.getLogger(__name__)

INSTANCE_ID = 0
PLAY_SPEED = "1"

# Failures of a single control exchange
CONTROL_ERRORS = (SOAPError, OSError, http.client.HTTPException)


class PlaybackSession:
    """A render paired with the server task streaming to it."""

    def __init__(self, render: RenderDevice, server: StreamingServer, task: "asyncio.Task[None]"):
        self.render = render
        self.server = server
        self.task = task

    @property
    def running(self) -> bool:
        return not self.task.done()

    def stop(self) -> None:
        """Ask the streaming server to shut down. Safe to call more than once."""
        if not self.task.done():
            logger.info("Stopping media streaming server...")
            self.task.cancel()

    async def wait(self) -> None:
        """Wait until the streaming server ends.

        Returns normally when the server was stopped.

        Raises:
            StreamingTaskError: If the server ended on its own.
        """
        await asyncio.wait({self.task})
        _check_server_task(self.task)

    async def close(self) -> None:
        self.stop()
        with contextlib.suppress(StreamingTaskError):
            await self.wait()


def _check_server_task(task: "asyncio.Task[None]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    raise StreamingTaskError(exc) from exc


def build_metadata(server: StreamingServer) -> str:
    """Return the CurrentURIMetaData for ``server``; empty without a subtitle."""
    subtitle_uri = server.subtitle_uri()
    if subtitle_uri is None:
        return ""
    return build_subtitle_metadata(
        title=server.video_file.path.name,
        video_uri=server.video_uri(),
        video_type=server.video_type(),
        subtitle_uri=subtitle_uri,
        subtitle_type=server.subtitle_type(),
    )


async def wait_until_ready(ready: asyncio.Event, task: "asyncio.Task[None]") -> None:
    """Wait for the server to listen, or fail if its task ends first."""
    waiter = asyncio.ensure_future(ready.wait())
    try:
        await asyncio.wait({waiter, task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
    if task.done():
        if task.cancelled():
            raise StreamingTaskError()
        _check_server_task(task)


async def play(
    render: RenderDevice,
    server: StreamingServer,
    controller: Optional[DLNAController] = None,
) -> PlaybackSession:
    """Stream ``server``'s media to ``render`` and start playback.

    Raises:
        StreamingTaskError: If the streaming server fails to start.
        SetUriError: If SetAVTransportURI is rejected or cannot be delivered.
        PlayError: If Play is rejected or cannot be delivered.
    """
    if controller is None:
        controller = DLNAController(render.service.control_url, render.service.service_type)

    metadata = build_metadata(server)
    logger.debug("Subtitle payload: '%s'", metadata)

    logger.info("Starting media streaming server...")
    ready = asyncio.Event()
    task = asyncio.create_task(server.run(ready))
    session = PlaybackSession(render, server, task)

    try:
        await wait_until_ready(ready, task)

        logger.info("Setting Video URI")
        try:
            await asyncio.to_thread(controller.set_av_transport_uri, INSTANCE_ID, server.video_uri(), metadata)
        except CONTROL_ERRORS as exc:
            raise SetUriError(exc) from exc

        logger.info("Playing video")
        try:
            await asyncio.to_thread(controller.play, INSTANCE_ID, PLAY_SPEED)
        except CONTROL_ERRORS as exc:
            raise PlayError(exc) from exc
    except BaseException:
        await session.close()
        raise

    return session
