import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence

from .errors import DLNACastError
from .media import infer_subtitle
from .playback import play
from .registry import DEFAULT_DISCOVERY_TIMEOUT, First, Location, Query, RenderSelector, discover, resolve
from .streaming import StreamingServer, get_serve_ip

__all__ = ["main"]

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dlna-cast", description="A minimal UPnP/DLNA media streamer")
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=DEFAULT_DISCOVERY_TIMEOUT,
        help="Time in seconds to search and discover streamer hosts (default: %(default)s)",
    )
    parser.add_argument("-b", "--debug", action="store_true", help="Turn debugging information on")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level (default: WARNING)")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="Scan and list devices in the network capable of playing media")

    play_parser = commands.add_parser("play", help="Play a video file")
    play_parser.add_argument(
        "-H",
        "--host",
        dest="local_host",
        help="The IP to be used to host and serve the files (derived from the local network address if omitted)",
    )
    device = play_parser.add_mutually_exclusive_group()
    device.add_argument(
        "-q", "--query-device", dest="device_query", help="Select the device through a query (scans before playing)"
    )
    device.add_argument(
        "-d", "--device", dest="device_url", help="Select the device through its exact location (no scan, faster)"
    )
    subtitle = play_parser.add_mutually_exclusive_group()
    subtitle.add_argument(
        "-s",
        "--subtitle",
        type=Path,
        metavar="FILE_SUBTITLE",
        help="The subtitle file (inferred from FILE_VIDEO if omitted)",
    )
    subtitle.add_argument("-n", "--no-subtitle", action="store_true", help="Disable subtitles")
    play_parser.add_argument("file_video", type=Path, metavar="FILE_VIDEO", help="The video file to be played")
    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.DEBUG if args.debug else getattr(logging, args.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def build_selector(args: argparse.Namespace) -> RenderSelector:
    if args.device_url:
        return Location(args.device_url)
    if args.device_query:
        return Query(args.device_query, timeout=args.timeout)
    return First(timeout=args.timeout)


def select_subtitle(args: argparse.Namespace) -> Optional[Path]:
    if args.no_subtitle:
        return None
    if args.subtitle is not None:
        return args.subtitle
    return infer_subtitle(args.file_video)


async def run_list(args: argparse.Namespace) -> None:
    for render in await discover(args.timeout):
        print(render)


async def run_play(args: argparse.Namespace) -> None:
    selector = build_selector(args)
    if isinstance(selector, Location):
        print(f"Using device: {selector.url}")
    elif isinstance(selector, Query):
        print(f"Searching device with query: {selector.query}")
    else:
        print("Selecting first available device")
    render = await resolve(selector)
    print(f"Using render: {render}")

    host_ip = args.local_host or get_serve_ip(render.host)
    server = StreamingServer.build(args.file_video, select_subtitle(args), host_ip)
    print(f"Streaming {server.video_uri()}")

    session = await play(render, server)
    print("Playing; press Ctrl+C to stop streaming")

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, session.stop)
        except (NotImplementedError, RuntimeError):  # pragma: no cover - platform dependent
            pass
    try:
        await session.wait()
    finally:
        await session.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)

    runner = run_list if args.command == "list" else run_play
    try:
        asyncio.run(runner(args))
    except DLNACastError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:  # pragma: no cover - interactive guard
        logger.info("Stopping due to keyboard interrupt")
    return 0
