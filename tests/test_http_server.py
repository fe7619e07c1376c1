import http.client
import threading
import urllib.error
import urllib.request

import pytest

from dlna_cast.http_server import StreamingHTTPServer, parse_range
from dlna_cast.media import resolve_media_file

CONTENT = bytes(range(256)) * 4


@pytest.fixture
def httpd(tmp_path):
    video = tmp_path / "video.mp4"
    video.write_bytes(CONTENT)
    media = resolve_media_file(video, "http://127.0.0.1:0")
    server = StreamingHTTPServer(("127.0.0.1", 0), {"video.mp4": media})
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


def _url(server, path):
    host, port = server.server_address[:2]
    return f"http://{host}:{port}/{path}"


def test_get_full_file(httpd):
    with urllib.request.urlopen(_url(httpd, "video.mp4"), timeout=5) as resp:
        assert resp.status == 200
        assert resp.headers["Content-Type"] == "video/mp4"
        assert resp.headers["Content-Length"] == str(len(CONTENT))
        assert resp.headers["transferMode.dlna.org"] == "Streaming"
        assert resp.headers["Accept-Ranges"] == "bytes"
        assert resp.read() == CONTENT


def test_get_range(httpd):
    request = urllib.request.Request(_url(httpd, "video.mp4"), headers={"Range": "bytes=10-19"})
    with urllib.request.urlopen(request, timeout=5) as resp:
        assert resp.status == 206
        assert resp.headers["Content-Range"] == f"bytes 10-19/{len(CONTENT)}"
        assert resp.read() == CONTENT[10:20]


def test_unsatisfiable_range(httpd):
    request = urllib.request.Request(_url(httpd, "video.mp4"), headers={"Range": f"bytes={len(CONTENT)}-"})
    with pytest.raises(urllib.error.HTTPError) as excinfo:
        urllib.request.urlopen(request, timeout=5)
    assert excinfo.value.code == 416


def test_unknown_path_is_not_found(httpd):
    with pytest.raises(urllib.error.HTTPError) as excinfo:
        urllib.request.urlopen(_url(httpd, "other.mp4"), timeout=5)
    assert excinfo.value.code == 404


def test_head_sends_no_body(httpd):
    request = urllib.request.Request(_url(httpd, "video.mp4"), method="HEAD")
    with urllib.request.urlopen(request, timeout=5) as resp:
        assert resp.status == 200
        assert resp.headers["Content-Length"] == str(len(CONTENT))
        assert resp.read() == b""


def test_keep_alive_range_does_not_leak_into_next_request(httpd):
    host, port = httpd.server_address[:2]
    conn = http.client.HTTPConnection(host, port, timeout=5)
    try:
        conn.request("HEAD", "/video.mp4", headers={"Range": "bytes=0-9"})
        head = conn.getresponse()
        head.read()
        assert head.status == 206

        conn.request("GET", "/video.mp4")
        resp = conn.getresponse()
        assert resp.status == 200
        assert resp.read() == CONTENT
    finally:
        conn.close()


def test_parse_range():
    assert parse_range(None, 100) is None
    assert parse_range("bytes=0-", 100) == (0, 99)
    assert parse_range("bytes=10-200", 100) == (10, 99)
    assert parse_range("bytes=-10", 100) == (90, 99)
    assert parse_range("bytes=100-", 100) == "unsatisfiable"
    assert parse_range("items=0-1", 100) is None
    assert parse_range("bytes=a-b", 100) is None
    assert parse_range("bytes=0-1,5-6", 100) is None
