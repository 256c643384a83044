"""IPv4 notation conversions between the desired and device forms.

Desired state speaks CIDR ("10.0.0.1/24"). IOS speaks address + netmask on
interfaces and address + wildcard under ``router eigrp``.

    cidr_to_mask(24)                -> "255.255.255.0"
    mask_to_wildcard("255.255.255.0") -> "0.0.0.255"
    split_cidr("10.0.0.1/24")       -> ("10.0.0.1", "255.255.255.0")
"""
import ipaddress

from ..errors import InvalidAddress


def _parse_octets(value: str) -> list[int]:
    """Split a dotted quad into four integers or raise InvalidAddress."""
    if not isinstance(value, str):
        raise InvalidAddress(f"Invalid dotted quad: {value!r}")

    parts = value.strip().split(".")
    if len(parts) != 4:
        raise InvalidAddress(f"Invalid dotted quad: {value!r}")

    octets = []
    for part in parts:
        if not part.isdigit():
            raise InvalidAddress(f"Invalid octet {part!r} in {value!r}")
        octet = int(part)
        if octet > 255:
            raise InvalidAddress(f"Invalid octet {part!r} in {value!r}")
        octets.append(octet)
    return octets


def cidr_to_mask(prefix_len: int) -> str:
    """Convert a prefix length (0-32) to a dotted netmask."""
    if isinstance(prefix_len, bool) or not isinstance(prefix_len, int):
        raise InvalidAddress(f"Invalid prefix length: {prefix_len!r}")
    if prefix_len < 0 or prefix_len > 32:
        raise InvalidAddress(f"Prefix length out of range: {prefix_len}")

    network = ipaddress.IPv4Network(f"0.0.0.0/{prefix_len}")
    return str(network.netmask)


def mask_to_cidr(mask: str) -> int:
    """Convert a dotted netmask to its prefix length.

    Raises:
        InvalidAddress: If the mask is malformed or not contiguous
    """
    octets = _parse_octets(mask)
    value = int.from_bytes(bytes(octets), "big")

    # A valid netmask is a run of ones followed by a run of zeros
    inverted = value ^ 0xFFFFFFFF
    if inverted & (inverted + 1):
        raise InvalidAddress(f"Non-contiguous netmask: {mask}")

    return bin(value).count("1")


def mask_to_wildcard(mask: str) -> str:
    """Complement every octet of a netmask."""
    mask_to_cidr(mask)
    return ".".join(str(255 - octet) for octet in _parse_octets(mask))


def wildcard_to_mask(wildcard: str) -> str:
    """Complement every octet of a wildcard mask."""
    mask = ".".join(str(255 - octet) for octet in _parse_octets(wildcard))
    mask_to_cidr(mask)
    return mask


def wildcard_to_cidr(wildcard: str) -> int:
    """Convert a wildcard mask to the equivalent prefix length."""
    return mask_to_cidr(wildcard_to_mask(wildcard))


def split_cidr(cidr: str, strict: bool = False) -> tuple[str, str]:
    """Split CIDR notation into (address, netmask).

    With strict=False the host part is kept ("10.0.0.1/24" keeps 10.0.0.1),
    which is what an interface address needs. With strict=True the network
    address is returned instead, which is what a routing ``network``
    statement needs.
    """
    if not isinstance(cidr, str) or "/" not in cidr:
        raise InvalidAddress(f"Invalid CIDR: {cidr!r}")

    try:
        interface = ipaddress.IPv4Interface(cidr.strip())
    except ValueError as e:
        raise InvalidAddress(f"Invalid CIDR {cidr!r}: {e}") from e

    if strict:
        return str(interface.network.network_address), str(interface.netmask)
    return str(interface.ip), str(interface.netmask)


def join_cidr(address: str, mask: str) -> str:
    """Join an address and a netmask into CIDR notation."""
    _parse_octets(address)
    return f"{address}/{mask_to_cidr(mask)}"


def classful_wildcard(network: str) -> str:
    """Wildcard implied by a classful network address (no explicit mask)."""
    first = _parse_octets(network)[0]
    if first < 128:
        return "0.255.255.255"
    if first < 192:
        return "0.0.255.255"
    return "0.0.0.255"


def check_host(address: str) -> str:
    """Return a host address unchanged, or raise InvalidAddress."""
    try:
        ipaddress.IPv4Address(address)
    except (ipaddress.AddressValueError, ValueError) as e:
        raise InvalidAddress(f"Invalid IPv4 address {address!r}: {e}") from e
    return address
