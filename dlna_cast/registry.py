"""
Discovery and selection of DLNA render devices.

A render is a UPnP device exposing the AVTransport service, i.e. a device that
accepts SetAVTransportURI/Play commands. Devices lacking the service are
filtered out during discovery and never become RenderDevice values.

Key components:
- RenderDevice: A device paired with its AVTransport service
- Location, Query, First: The three ways of selecting a render
- discover(): SSDP search returning every render that answered
- resolve(): Pick a single render according to a selector
- host_of(): Network host of a render, used to pick the local serve address

Example usage:
    import asyncio
    from dlna_cast.registry import Query, resolve

    render = asyncio.run(resolve(Query("Kodi", timeout=5)))
    print(render)
"""

import asyncio
import http.client
import logging
import urllib.parse
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import List, Optional

from . import device, ssdp
from .avtransport import AVTRANSPORT_SERVICE_TYPE
from .device import DeviceDescription, ServiceDescription
from .errors import DeviceCreateError, DiscoveryError, RenderNotFound, UrlParseError

logger = logging.getLogger(__name__)

DEFAULT_DISCOVERY_TIMEOUT = 5

# Errors that make a single responder unusable without aborting discovery
DEVICE_ERRORS = (OSError, http.client.HTTPException, ET.ParseError, ValueError)


def format_device(desc: DeviceDescription) -> str:
    return f"[{desc.device_type}] {desc.friendly_name} @ {desc.url}"


@dataclass(frozen=True)
class RenderDevice:
    """A discovered device and its AVTransport service."""

    device: DeviceDescription
    service: ServiceDescription

    @classmethod
    def from_description(cls, desc: DeviceDescription) -> Optional["RenderDevice"]:
        """Return a RenderDevice for ``desc``, or None if it has no AVTransport service."""
        logger.debug("Retrieving AVTransport service from device '%s'", format_device(desc))
        service = desc.find_service(AVTRANSPORT_SERVICE_TYPE)
        if service is None:
            logger.warning("No AVTransport service found on %s", desc.friendly_name)
            return None
        return cls(device=desc, service=service)

    @property
    def host(self) -> str:
        return host_of(self)

    def __str__(self) -> str:
        return (
            f"[{self.device.device_type}][{self.service.service_type}] "
            f"{self.device.friendly_name} @ {self.device.url}"
        )


class RenderSelector:
    """Base class of the render selection strategies."""


@dataclass(frozen=True)
class Location(RenderSelector):
    """Render at an exact description URL; no network scan."""

    url: str

    def __str__(self) -> str:
        return f"at '{self.url}'"


@dataclass(frozen=True)
class Query(RenderSelector):
    """First discovered render whose description contains ``query``."""

    query: str
    timeout: float = DEFAULT_DISCOVERY_TIMEOUT

    def __str__(self) -> str:
        return f"within {self.timeout} seconds with query '{self.query}'"


@dataclass(frozen=True)
class First(RenderSelector):
    """First render discovered."""

    timeout: float = DEFAULT_DISCOVERY_TIMEOUT

    def __str__(self) -> str:
        return f"within {self.timeout} seconds"


async def discover(timeout: float = DEFAULT_DISCOVERY_TIMEOUT) -> List[RenderDevice]:
    """Discover renders on the local network.

    Responders are interrogated concurrently; the result keeps SSDP arrival
    order. A responder whose description cannot be fetched or parsed is
    skipped.

    Raises:
        DiscoveryError: If the SSDP search could not be sent.
    """
    logger.info("Discovering devices in the network, waiting %s seconds...", timeout)
    try:
        responses = await asyncio.to_thread(ssdp.search, AVTRANSPORT_SERVICE_TYPE, timeout)
    except OSError as exc:
        raise DiscoveryError(exc) from exc

    descriptions = await asyncio.gather(*(_interrogate(response.location) for response in responses))

    renders = []
    for desc in descriptions:
        if desc is None:
            continue
        logger.debug("Found device: %s", format_device(desc))
        render = RenderDevice.from_description(desc)
        if render is not None:
            renders.append(render)
    return renders


async def _interrogate(location: str) -> Optional[DeviceDescription]:
    try:
        location = parse_location(location)
        return await asyncio.to_thread(device.fetch_description, location)
    except Exception as exc:
        # One bad responder never aborts the scan
        logger.debug("A device returned error while discovering it (%s): %s", location, exc)
        return None


def parse_location(url: str) -> str:
    """Validate a device description URL.

    Raises:
        UrlParseError: If ``url`` is not an absolute http(s) URL with a host.
    """
    try:
        parts = urllib.parse.urlsplit(url.strip())
        # port raises ValueError when it is not a number in range
        valid = parts.scheme in ("http", "https") and bool(parts.hostname) and parts.port != 0
    except ValueError:
        valid = False
    if not valid:
        raise UrlParseError(url)
    return parts.geturl()


async def select_by_url(url: str) -> Optional[RenderDevice]:
    logger.debug("Selecting device by url: %s", url)
    location = parse_location(url)
    try:
        desc = await asyncio.to_thread(device.fetch_description, location)
    except DEVICE_ERRORS as exc:
        raise DeviceCreateError(url, exc) from exc
    return RenderDevice.from_description(desc)


async def select_by_query(query: str, timeout: float) -> Optional[RenderDevice]:
    logger.debug("Selecting device by query: '%s'", query)
    for render in await discover(timeout):
        if query in str(render):
            return render
    return None


async def resolve(selector: RenderSelector) -> RenderDevice:
    """Return the render designated by ``selector``.

    Raises:
        RenderNotFound: If no render matches.
        UrlParseError: If a Location URL is malformed.
        DeviceCreateError: If a Location URL does not lead to a device description.
        DiscoveryError: If the SSDP search fails.
    """
    if isinstance(selector, Location):
        logger.info("Render specified by location: %s", selector.url)
        render = await select_by_url(selector.url)
    elif isinstance(selector, Query):
        logger.info("Render specified by query: %s", selector.query)
        render = await select_by_query(selector.query, selector.timeout)
    elif isinstance(selector, First):
        logger.info("No render specified, selecting first one")
        renders = await discover(selector.timeout)
        render = renders[0] if renders else None
    else:
        raise TypeError(f"unknown render selector: {selector!r}")

    if render is None:
        raise RenderNotFound(selector)
    return render


def host_of(render: RenderDevice) -> str:
    """Return the network host of the render's description URL."""
    return urllib.parse.urlsplit(render.device.url).hostname or ""
