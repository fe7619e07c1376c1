from pathlib import Path

import pytest

import dlna_cast.cli as cli
from dlna_cast.device import DeviceDescription, ServiceDescription
from dlna_cast.errors import RenderNotFound
from dlna_cast.registry import First, Location, Query, RenderDevice


def _parse(*argv):
    return cli._build_parser().parse_args(list(argv))


def test_play_defaults():
    args = _parse("play", "video.mp4")
    assert args.timeout == 5
    assert args.file_video == Path("video.mp4")
    assert args.local_host is None
    assert not args.no_subtitle
    assert cli.build_selector(args) == First(timeout=5)


def test_play_selectors():
    assert cli.build_selector(_parse("-t", "2", "play", "-q", "Kodi", "v.mp4")) == Query("Kodi", timeout=2.0)
    args = _parse("play", "-d", "http://192.168.1.10:1234/desc.xml", "v.mp4")
    assert cli.build_selector(args) == Location("http://192.168.1.10:1234/desc.xml")


def test_query_and_device_are_exclusive():
    with pytest.raises(SystemExit):
        _parse("play", "-q", "Kodi", "-d", "http://tv/desc.xml", "v.mp4")


def test_subtitle_and_no_subtitle_are_exclusive():
    with pytest.raises(SystemExit):
        _parse("play", "-s", "v.srt", "-n", "v.mp4")


def test_select_subtitle(tmp_path):
    video = tmp_path / "movie.mp4"
    video.write_bytes(b"")
    sibling = tmp_path / "movie.srt"
    sibling.write_text("")

    assert cli.select_subtitle(_parse("play", str(video))) == sibling
    assert cli.select_subtitle(_parse("play", "-n", str(video))) is None
    assert cli.select_subtitle(_parse("play", "-s", "other.srt", str(video))) == Path("other.srt")


def test_list_prints_renders(monkeypatch, capsys):
    render = RenderDevice(
        DeviceDescription("urn:schemas-upnp-org:device:MediaRenderer:1", "Kodi", "http://10.0.0.2/desc.xml", []),
        ServiceDescription("urn:schemas-upnp-org:service:AVTransport:1", "avt", "http://10.0.0.2/avt"),
    )

    async def fake_discover(timeout):
        assert timeout == 3
        return [render]

    monkeypatch.setattr(cli, "discover", fake_discover)

    assert cli.main(["-t", "3", "list"]) == 0
    assert capsys.readouterr().out.strip() == str(render)


def test_play_reports_errors(monkeypatch, capsys, tmp_path):
    async def fake_resolve(selector):
        raise RenderNotFound(selector)

    monkeypatch.setattr(cli, "resolve", fake_resolve)

    assert cli.main(["-t", "1", "play", "-q", "Kodi", str(tmp_path / "v.mp4")]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: No render found within 1.0 seconds with query 'Kodi'")
