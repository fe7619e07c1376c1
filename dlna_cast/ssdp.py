"""
SSDP (Simple Service Discovery Protocol) search for DLNA/UPnP devices.

This module sends multicast M-SEARCH requests for a single search target and
collects the unicast responses that arrive within a timeout window.

Key components:
- SSDPResponse: One response to an M-SEARCH, with its parsed headers
- search(): Blocking search returning responses in arrival order

Example usage:
    from dlna_cast.ssdp import search

    for response in search("urn:schemas-upnp-org:service:AVTransport:1", timeout=3.0):
        print(f"Found device: {response.location}")
"""

import logging
import socket
import time
from typing import Dict, List, Set

logger = logging.getLogger(__name__)

# SSDP multicast configuration
SSDP_MCAST_ADDR = "239.255.255.250"
SSDP_PORT = 1900
SSDP_MX = 3
SSDP_TTL = 4


class SSDPResponse:
    """A device answer to an SSDP M-SEARCH request.

    Attributes:
        location (str): URL to the device description XML document
        st (str): Search Target value echoed by the device
        usn (str): Unique Service Name including root UUID and optional suffix
        server (str): Server header value if present in the response

    Example:
        response = SSDPResponse(
            location="http://192.168.1.100:8080/desc.xml",
            st="urn:schemas-upnp-org:service:AVTransport:1",
            usn="uuid:12345678-1234-1234-1234-123456789012::urn:schemas-upnp-org:service:AVTransport:1"
        )
    """

    def __init__(self, location: str, st: str, usn: str, server: str = ""):
        self.location = location
        self.st = st
        self.usn = usn
        self.server = server

    def __repr__(self) -> str:
        return f"SSDPResponse(st={self.st!r}, usn={self.usn!r}, location={self.location!r})"


def parse_response(data: bytes) -> Dict[str, str]:
    """Parse raw UDP response bytes into a lowercase-header dictionary.

    Args:
        data: Raw bytes from an SSDP UDP response

    Returns:
        Dictionary with lowercase header names as keys and header values as values.
        Returns an empty dict if the payload is not an HTTP-style response.
    """
    text = data.decode("utf-8", errors="ignore")
    lines = text.split("\r\n")
    if not lines or not lines[0].upper().startswith("HTTP/"):
        return {}
    headers = {}
    for line in lines[1:]:
        if ":" in line:
            k, v = line.split(":", 1)
            headers[k.strip().lower()] = v.strip()
    return headers


def build_msearch(st: str, mx: int = SSDP_MX) -> bytes:
    """Return the M-SEARCH request datagram for search target ``st``."""
    return (
        "M-SEARCH * HTTP/1.1\r\n"
        f"HOST: {SSDP_MCAST_ADDR}:{SSDP_PORT}\r\n"
        'MAN: "ssdp:discover"\r\n'
        f"MX: {mx}\r\n"
        f"ST: {st}\r\n\r\n"
    ).encode("utf-8")


def search(st: str, timeout: float = 5.0, mx: int = SSDP_MX, ttl: int = SSDP_TTL) -> List[SSDPResponse]:
    """Search the local network for devices exposing ``st``.

    Sends one M-SEARCH request to the SSDP multicast group and collects the
    responses received until ``timeout`` seconds have elapsed. Responses
    without a LOCATION header, malformed datagrams and duplicates of an
    already seen location are dropped.

    Args:
        st: Search Target to query (a device or service URN)
        timeout: Listen window in seconds
        mx: Maximum wait (MX) advertised in the M-SEARCH request
        ttl: Multicast TTL of the request

    Returns:
        List of SSDPResponse objects in arrival order.

    Raises:
        OSError: If the socket cannot be created or the request cannot be sent.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, ttl)
        sock.bind(("0.0.0.0", 0))

        logger.debug("Sending M-SEARCH for %s (MX=%d, timeout=%.1fs)", st, mx, timeout)
        sock.sendto(build_msearch(st, mx), (SSDP_MCAST_ADDR, SSDP_PORT))

        responses: List[SSDPResponse] = []
        seen: Set[str] = set()
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            sock.settimeout(remaining)
            try:
                data, addr = sock.recvfrom(65535)
            except socket.timeout:
                break
            headers = parse_response(data)
            location = headers.get("location")
            if not location:
                logger.debug("Ignoring SSDP datagram without location from %s", addr[0])
                continue
            if location in seen:
                continue
            seen.add(location)
            responses.append(
                SSDPResponse(
                    location=location,
                    st=headers.get("st", st),
                    usn=headers.get("usn", ""),
                    server=headers.get("server", ""),
                )
            )
        return responses
    finally:
        sock.close()
