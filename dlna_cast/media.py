"""
Mapping of local media files to the URIs they are served under.

A MediaFile pairs a file on disk with the slug it is published as on the
streaming server. Slugs are derived from the path alone, so the same path
always maps to the same URI.

Example usage:
    from dlna_cast.media import infer_subtitle, resolve_media_file

    video = resolve_media_file("movies/My Film.mp4", "http://192.168.1.20:9000")
    print(video.uri)  # http://192.168.1.20:9000/movies.my.film.mp4
    subtitle_path = infer_subtitle("movies/My Film.mp4")
"""

import logging
import mimetypes
import os
import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import FileNotFound

logger = logging.getLogger(__name__)

# Ensure MKV and subtitle types are known
mimetypes.add_type("video/x-matroska", ".mkv")
mimetypes.add_type("text/srt", ".srt")

SLUG_SEPARATOR = "."

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

PathLike = Union[str, os.PathLike]


def slugify(text: str, separator: str = SLUG_SEPARATOR) -> str:
    """Return a URL-safe slug for ``text``.

    The text is transliterated to ASCII, lowercased, and every run of
    characters outside ``[a-z0-9]`` becomes a single ``separator``. Leading and
    trailing separators are stripped.

    Distinct inputs can collide, e.g. ``a b.mp4`` and ``a-b.mp4`` both give
    ``a.b.mp4``.
    """
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub(separator, ascii_text.lower()).strip(separator)


@dataclass(frozen=True)
class MediaFile:
    """A local file and the location it is served from.

    Attributes:
        path: Path of the file on disk
        file_uri: Slug used as the HTTP path segment
        host_uri: Origin of the streaming server, ``scheme://host:port``
    """

    path: Path
    file_uri: str
    host_uri: str

    @property
    def uri(self) -> str:
        return f"{self.host_uri}/{self.file_uri}"

    @property
    def file_type(self) -> str:
        """Extension of the file without the leading dot, or ``""``."""
        return self.path.suffix[1:]

    @property
    def mime_type(self) -> str:
        return mimetypes.guess_type(self.path.name)[0] or "application/octet-stream"

    def __str__(self) -> str:
        return f"'{self.path}' @ {self.uri}"


def resolve_media_file(path: PathLike, server_origin: str) -> MediaFile:
    """Build the MediaFile for ``path`` served from ``server_origin``.

    Raises:
        FileNotFound: If ``path`` does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFound(path)
    file_uri = slugify(str(path))
    if not file_uri:
        # Nothing ASCII-alphanumeric in the path
        file_uri = "media"
    return MediaFile(path=path, file_uri=file_uri, host_uri=server_origin)


def infer_subtitle(video_path: PathLike) -> Optional[Path]:
    """Return the ``.srt`` sibling of ``video_path`` if it exists."""
    inferred = Path(video_path).with_suffix(".srt")
    logger.debug("Inferred subtitle file: %s", inferred)
    if inferred.exists():
        return inferred
    logger.warning(
        "Tried inferring subtitle file from video file '%s', but it does not exist: '%s'",
        video_path,
        inferred,
    )
    return None
