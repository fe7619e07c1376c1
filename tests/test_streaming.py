import asyncio
import concurrent.futures
import socket
import threading
import urllib.error
import urllib.request

import pytest

from dlna_cast.errors import AddressParseError, FileNotFound, LocalAddressError
from dlna_cast.streaming import PLACEHOLDER_ROUTE, STREAMING_PORT, StreamingServer, get_serve_ip


def test_build_without_subtitle(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "video.mp4").write_bytes(b"video")

    server = StreamingServer.build("video.mp4", None, "127.0.0.1")

    assert STREAMING_PORT == 9000
    assert server.video_uri() == "http://127.0.0.1:9000/video.mp4"
    assert server.video_type() == "mp4"
    assert server.subtitle_uri() is None
    assert server.subtitle_type() is None


def test_build_with_subtitle(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "movie.mkv").write_bytes(b"video")
    (tmp_path / "movie.srt").write_text("subs")

    server = StreamingServer.build("movie.mkv", "movie.srt", "192.168.1.20")

    assert server.video_uri() == "http://192.168.1.20:9000/movie.mkv"
    assert server.subtitle_uri() == "http://192.168.1.20:9000/movie.srt"
    assert server.subtitle_type() == "srt"


def test_build_ipv6_origin(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "video.mp4").write_bytes(b"video")

    server = StreamingServer.build("video.mp4", None, "::1")

    assert server.video_uri() == "http://[::1]:9000/video.mp4"


def test_build_rejects_bad_address(tmp_path):
    video = tmp_path / "video.mp4"
    video.write_bytes(b"video")
    with pytest.raises(AddressParseError):
        StreamingServer.build(video, None, "not-an-ip")
    with pytest.raises(AddressParseError):
        StreamingServer.build(video, None, "127.0.0.1", port=70000)


def test_build_missing_files(tmp_path):
    video = tmp_path / "video.mp4"
    with pytest.raises(FileNotFound):
        StreamingServer.build(video, None, "127.0.0.1")
    video.write_bytes(b"video")
    with pytest.raises(FileNotFound):
        StreamingServer.build(video, tmp_path / "video.srt", "127.0.0.1")


def test_routes_use_placeholder_without_subtitle(tmp_path):
    video = tmp_path / "video.mp4"
    video.write_bytes(b"video")
    server = StreamingServer.build(video, None, "127.0.0.1")

    routes = server.routes()

    assert set(routes) == {server.video_file.file_uri, PLACEHOLDER_ROUTE}
    assert routes[PLACEHOLDER_ROUTE] is server.video_file


def test_routes_with_subtitle(tmp_path):
    video = tmp_path / "video.mp4"
    video.write_bytes(b"video")
    subtitle = tmp_path / "video.srt"
    subtitle.write_text("subs")
    server = StreamingServer.build(video, subtitle, "127.0.0.1")

    routes = server.routes()

    assert set(routes) == {server.video_file.file_uri, server.subtitle_file.file_uri}


def test_run_serves_until_cancelled(tmp_path, free_port):
    video = tmp_path / "video.mp4"
    video.write_bytes(b"video bytes")
    subtitle = tmp_path / "video.srt"
    subtitle.write_text("subtitle text")
    server = StreamingServer.build(video, subtitle, "127.0.0.1", port=free_port)

    def fetch(url):
        with urllib.request.urlopen(url, timeout=5) as resp:
            return resp.read()

    async def scenario():
        ready = asyncio.Event()
        task = asyncio.create_task(server.run(ready))
        await asyncio.wait_for(ready.wait(), timeout=5)
        video_bytes = await asyncio.to_thread(fetch, server.video_uri())
        subtitle_bytes = await asyncio.to_thread(fetch, server.subtitle_uri())
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return video_bytes, subtitle_bytes

    video_bytes, subtitle_bytes = asyncio.run(scenario())

    assert video_bytes == b"video bytes"
    assert subtitle_bytes == b"subtitle text"
    with pytest.raises(urllib.error.URLError):
        fetch(server.video_uri())


def test_run_stops_while_default_executor_is_busy(tmp_path, free_port):
    video = tmp_path / "video.mp4"
    video.write_bytes(b"video bytes")
    server = StreamingServer.build(video, None, "127.0.0.1", port=free_port)
    release = threading.Event()

    async def scenario():
        loop = asyncio.get_running_loop()
        loop.set_default_executor(concurrent.futures.ThreadPoolExecutor(max_workers=1))
        blocker = loop.run_in_executor(None, release.wait)
        try:
            ready = asyncio.Event()
            task = asyncio.create_task(server.run(ready))
            await asyncio.wait_for(ready.wait(), timeout=5)
            task.cancel()
            done, _ = await asyncio.wait({task}, timeout=5)
            return task in done
        finally:
            release.set()
            await blocker

    assert asyncio.run(scenario())


def test_get_serve_ip_loopback():
    assert get_serve_ip("127.0.0.1") == "127.0.0.1"


def test_get_serve_ip_failure(monkeypatch):
    def fail(*args, **kwargs):
        raise socket.gaierror("no such host")

    monkeypatch.setattr(socket, "getaddrinfo", fail)
    with pytest.raises(LocalAddressError):
        get_serve_ip("tv.invalid")
