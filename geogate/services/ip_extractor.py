"""Client IP extraction and syntactic validation.

Which request field is trusted for the client address is a deployment
decision: a header such as ``X-Forwarded-For`` can be set by anyone unless a
proxy in front of the gateway overwrites it. The trust order is therefore an
explicit, ordered tuple of sources passed in from configuration:

- ``"peer"`` - the transport-level peer address of the connection
- any other value - a request header name (matched case-insensitively)

The first source that yields a non-empty value wins. For
``x-forwarded-for`` only the first hop, the originating client, is used.
"""

import re
from typing import Iterable
from typing import Mapping

from starlette import status


PEER_SOURCE = "peer"
DEFAULT_IP_SOURCES: tuple[str, ...] = ("ip",)

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
IPV4_PATTERN = re.compile(rf"{_OCTET}(?:\.{_OCTET}){{3}}")
IPV6_PATTERN = re.compile(r"[0-9a-fA-F]{1,4}(?::[0-9a-fA-F]{1,4}){7}")


class AddressError(Exception):
    """Base class for client address failures, carries the response to send."""

    message = "Invalid IP address"
    status_code = status.HTTP_400_BAD_REQUEST


class MissingAddressError(AddressError):
    message = "No IP address found"


class MalformedAddressError(AddressError):
    message = "Invalid IP address"


def is_valid_ip(value: str) -> bool:
    """Accept dotted-quad IPv4 or full eight-hextet IPv6."""
    return bool(IPV4_PATTERN.fullmatch(value) or IPV6_PATTERN.fullmatch(value))


def _candidate_from(source: str, headers: Mapping[str, str], peer_host: str | None) -> str | None:
    if source == PEER_SOURCE:
        return peer_host

    value = headers.get(source)
    if value is None:
        return None
    if source == "x-forwarded-for":
        return value.split(",")[0]
    return value


def extract_client_ip(
    headers: Mapping[str, str],
    peer_host: str | None = None,
    sources: Iterable[str] = DEFAULT_IP_SOURCES,
) -> str:
    """Return the validated client IP from the first configured source that has one.

    Args:
        headers: Request headers. Starlette ``Headers`` are case-insensitive; plain
            dicts must use lower-case keys.
        peer_host: Transport peer address, consulted for the ``"peer"`` source.
        sources: Ordered trust list of sources.

    Raises:
        MissingAddressError: No source yielded a non-empty value.
        MalformedAddressError: The chosen value is not a valid IPv4/IPv6 address.
    """
    for source in sources:
        candidate = _candidate_from(source.strip().lower(), headers, peer_host)
        if candidate is None:
            continue

        candidate = candidate.strip()
        if not candidate:
            continue

        if not is_valid_ip(candidate):
            raise MalformedAddressError(candidate)
        return candidate

    raise MissingAddressError()
