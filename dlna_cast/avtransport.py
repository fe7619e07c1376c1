import http.client
import logging
import urllib.parse
import xml.etree.ElementTree as ET
from typing import Optional

from .errors import DLNACastError

logger = logging.getLogger(__name__)

AVTRANSPORT_SERVICE_TYPE = "urn:schemas-upnp-org:service:AVTransport:1"
SOAP_ENV = "http://schemas.xmlsoap.org/soap/envelope/"
SOAP_TIMEOUT = 10


class SOAPError(DLNACastError):
    """A control action was rejected by the render."""

    def __init__(self, action: str, status: int, code: Optional[str] = None, description: Optional[str] = None):
        self.action = action
        self.status = status
        self.code = code
        self.description = description
        detail = f"UPnP error {code}" if code else f"HTTP {status}"
        if description:
            detail = f"{detail} ({description})"
        super().__init__(f"{action} failed: {detail}")


def _escape_xml(text: str) -> str:
    """Escape XML special characters in a minimal, safe way."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _parse_fault(data: bytes):
    """Return (errorCode, errorDescription) from a UPnP SOAP fault body."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError:
        return None, None
    return root.findtext(".//{*}errorCode"), root.findtext(".//{*}errorDescription")


def build_subtitle_metadata(
    title: str, video_uri: str, video_type: str, subtitle_uri: str, subtitle_type: Optional[str]
) -> str:
    """Return DIDL-Lite item metadata announcing an external subtitle.

    The subtitle URI is advertised every way renders are known to look for
    it: the pv attributes on the video resource, two extra resources and the
    Samsung caption elements.
    """
    sub_type = _escape_xml(subtitle_type or "unknown")
    uri_sub = _escape_xml(subtitle_uri)
    return (
        '<DIDL-Lite xmlns="urn:schemas-upnp-org:metadata-1-0/DIDL-Lite/" '
        'xmlns:dc="http://purl.org/dc/elements/1.1/" '
        'xmlns:upnp="urn:schemas-upnp-org:metadata-1-0/upnp/" '
        'xmlns:dlna="urn:schemas-dlna-org:metadata-1-0/" '
        'xmlns:sec="http://www.sec.co.kr/" '
        'xmlns:pv="http://www.pv.com/pvns/">'
        '<item id="0" parentID="-1" restricted="1">'
        f"<dc:title>{_escape_xml(title)}</dc:title>"
        f'<res protocolInfo="http-get:*:video/{_escape_xml(video_type)}:" '
        f'pv:subtitleFileUri="{uri_sub}" pv:subtitleFileType="{sub_type}">{_escape_xml(video_uri)}</res>'
        f'<res protocolInfo="http-get:*:text/srt:*">{uri_sub}</res>'
        f'<res protocolInfo="http-get:*:smi/caption:*">{uri_sub}</res>'
        f'<sec:CaptionInfoEx sec:type="{sub_type}">{uri_sub}</sec:CaptionInfoEx>'
        f'<sec:CaptionInfo sec:type="{sub_type}">{uri_sub}</sec:CaptionInfo>'
        "<upnp:class>object.item.videoItem.movie</upnp:class>"
        "</item>"
        "</DIDL-Lite>"
    )


class DLNAController:
    """Minimal client for the DLNA AVTransport service."""

    def __init__(self, control_url: str, service_type: str = AVTRANSPORT_SERVICE_TYPE):
        self.control_url = control_url
        self.service_type = service_type
        parsed = urllib.parse.urlparse(control_url)
        self.host = parsed.hostname
        self.port = parsed.port or (443 if parsed.scheme == "https" else 80)
        self.path = parsed.path or "/"
        if parsed.query:
            self.path = f"{self.path}?{parsed.query}"
        self.scheme = parsed.scheme

    def build_envelope(self, action: str, arguments: str) -> str:
        return (
            '<?xml version="1.0" encoding="utf-8"?>'
            f'<s:Envelope xmlns:s="{SOAP_ENV}" s:encodingStyle="http://schemas.xmlsoap.org/soap/encoding/">'
            "<s:Body>"
            f'<u:{action} xmlns:u="{self.service_type}">{arguments}</u:{action}>'
            "</s:Body>"
            "</s:Envelope>"
        )

    def _post_soap(self, action: str, arguments: str) -> str:
        """Send a SOAP action to the control URL and return the response body.

        Raises:
            SOAPError: If the render answers with an HTTP error status.
            OSError, http.client.HTTPException: On transport failures.
        """
        envelope = self.build_envelope(action, arguments)
        logger.debug("%s payload: %s", action, envelope)
        conn = (
            http.client.HTTPSConnection(self.host, self.port, timeout=SOAP_TIMEOUT)
            if self.scheme == "https"
            else http.client.HTTPConnection(self.host, self.port, timeout=SOAP_TIMEOUT)
        )
        headers = {
            "Content-Type": 'text/xml; charset="utf-8"',
            "SOAPACTION": f'"{self.service_type}#{action}"',
        }
        try:
            conn.request("POST", self.path, body=envelope.encode("utf-8"), headers=headers)
            resp = conn.getresponse()
            data = resp.read()
        finally:
            conn.close()
        if resp.status >= 400:
            code, description = _parse_fault(data)
            raise SOAPError(action, resp.status, code, description)
        return data.decode("utf-8", errors="ignore")

    def set_av_transport_uri(self, instance_id: int, current_uri: str, current_uri_metadata: str = ""):
        """Set the URI to play and optional DIDL-Lite metadata for the item."""
        arguments = (
            f"<InstanceID>{instance_id}</InstanceID>"
            f"<CurrentURI>{_escape_xml(current_uri)}</CurrentURI>"
            f"<CurrentURIMetaData>{_escape_xml(current_uri_metadata)}</CurrentURIMetaData>"
        )
        return self._post_soap("SetAVTransportURI", arguments)

    def play(self, instance_id: int, speed: str = "1"):
        """Start playback at the given speed (usually '1')."""
        arguments = f"<InstanceID>{instance_id}</InstanceID><Speed>{speed}</Speed>"
        return self._post_soap("Play", arguments)
