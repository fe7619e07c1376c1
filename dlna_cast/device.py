"""
UPnP device description parsing for DLNA render devices.

This module fetches and parses UPnP device description XML documents to
extract the device identity and the control URLs of the services it offers.

Key components:
- ServiceDescription: One service entry (type, id, absolute control URL)
- DeviceDescription: Device identity plus its services
- parse_description(): Parses an already downloaded description document
- fetch_description(): Fetches and parses a device description URL

Example usage:
    from dlna_cast.device import fetch_description

    desc = fetch_description("http://192.168.1.100:8080/desc.xml")
    print(f"Device: {desc.friendly_name}")
    service = desc.find_service("urn:schemas-upnp-org:service:AVTransport:1")
    if service:
        print(f"AVTransport: {service.control_url}")
"""

import logging
import urllib.parse
import urllib.request
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

DESCRIPTION_TIMEOUT = 5


class ServiceDescription:
    """A service advertised in a device description.

    Attributes:
        service_type (str): Service type URN, e.g. urn:schemas-upnp-org:service:AVTransport:1
        service_id (str): Service identifier from the description
        control_url (str): Absolute URL that receives SOAP control actions
    """

    def __init__(self, service_type: str, service_id: str, control_url: str):
        self.service_type = service_type
        self.service_id = service_id
        self.control_url = control_url

    def __repr__(self) -> str:
        return f"ServiceDescription(service_type={self.service_type!r}, control_url={self.control_url!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, ServiceDescription):
            return NotImplemented
        return (self.service_type, self.service_id, self.control_url) == (
            other.service_type,
            other.service_id,
            other.control_url,
        )

    def __hash__(self) -> int:
        return hash((self.service_type, self.service_id, self.control_url))


class DeviceDescription:
    """Parsed UPnP device description.

    Attributes:
        device_type (str): Device type URN of the root device
        friendly_name (str): Human-readable device name
        url (str): URL the description was fetched from
        services (List[ServiceDescription]): Services of the root and embedded devices
    """

    def __init__(self, device_type: str, friendly_name: str, url: str, services: List[ServiceDescription]):
        self.device_type = device_type
        self.friendly_name = friendly_name
        self.url = url
        self.services = list(services)

    def __repr__(self) -> str:
        return f"DeviceDescription(friendly_name={self.friendly_name!r}, url={self.url!r})"

    def find_service(self, service_type: str) -> Optional[ServiceDescription]:
        """Return the first service compatible with ``service_type``.

        UPnP service versions are backwards compatible, so a device offering
        AVTransport:2 satisfies a lookup for AVTransport:1.
        """
        wanted_name, wanted_version = _split_urn(service_type)
        for service in self.services:
            name, version = _split_urn(service.service_type)
            if name == wanted_name and version >= wanted_version:
                return service
        return None


def _split_urn(urn: str) -> Tuple[str, int]:
    prefix, _, version = urn.rpartition(":")
    if prefix and version.isdigit():
        return prefix, int(version)
    return urn, 0


def parse_description(xml_data: bytes, location_url: str) -> DeviceDescription:
    """Parse a UPnP device description document.

    Relative control URLs are resolved against the URLBase element when the
    document has one, otherwise against ``location_url``.

    Args:
        xml_data: Raw description document
        location_url: URL the document was fetched from

    Returns:
        DeviceDescription for the root device

    Raises:
        xml.etree.ElementTree.ParseError: If the XML cannot be parsed
    """
    root = ET.fromstring(xml_data)
    # UPnP does not always include XML namespaces uniformly; parse loosely
    device = root.find("{*}device")
    if device is None:
        device = root.find(".//{*}device")
    if device is None:
        raise ET.ParseError("no device element in description")

    device_type = (device.findtext("{*}deviceType") or "").strip()
    friendly_name = (device.findtext("{*}friendlyName") or "Unknown Device").strip()

    base_url = (root.findtext("{*}URLBase") or "").strip() or location_url

    services = []
    for service in device.iter():
        if not service.tag.endswith("}service") and service.tag != "service":
            continue
        service_type = (service.findtext("{*}serviceType") or "").strip()
        ctrl = (service.findtext("{*}controlURL") or "").strip()
        if not service_type or not ctrl:
            continue
        services.append(
            ServiceDescription(
                service_type=service_type,
                service_id=(service.findtext("{*}serviceId") or "").strip(),
                control_url=urllib.parse.urljoin(base_url, ctrl),
            )
        )

    return DeviceDescription(device_type, friendly_name, location_url, services)


def fetch_description(location_url: str, timeout: float = DESCRIPTION_TIMEOUT) -> DeviceDescription:
    """Fetch and parse the UPnP device description at ``location_url``.

    Raises:
        urllib.error.URLError: If the device description cannot be fetched
        xml.etree.ElementTree.ParseError: If the XML cannot be parsed
    """
    logger.debug("Fetching device description from %s", location_url)
    with urllib.request.urlopen(location_url, timeout=timeout) as resp:
        xml_data = resp.read()
    return parse_description(xml_data, location_url)
