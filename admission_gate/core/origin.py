"""Client origin resolution.

The admission engine never inspects transport state itself; it receives an
origin resolver, a zero-argument callable returning the caller's address or
None when it cannot be determined.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Mapping

if TYPE_CHECKING:
    from starlette.requests import Request

OriginResolver = Callable[[], "str | None"]

DEFAULT_FORWARDED_HEADER = "X-Forwarded-For"


def _header_value(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    wanted = name.lower()
    for key, candidate in headers.items():
        if key.lower() == wanted:
            return candidate
    return None


def resolve_origin(
    headers: Mapping[str, str] | None,
    peer_address: str | None,
    *,
    header_name: str = DEFAULT_FORWARDED_HEADER,
    trust_forwarded: bool = True,
) -> str | None:
    """Resolve the calling origin from request metadata.

    Prefers the forwarded-for header; when proxies appended their own
    addresses, the first (client) entry of the comma-separated list wins.
    Falls back to the transport peer address.

    Args:
        headers: Request headers (lookup is case-insensitive).
        peer_address: Address of the directly connected peer.
        header_name: Forwarded header to inspect.
        trust_forwarded: When False the header is ignored.

    Returns:
        The origin address, or None when neither source provides one.

    Examples:
        >>> resolve_origin({"X-Forwarded-For": "10.0.0.1, 172.16.0.1"}, "127.0.0.1")
        '10.0.0.1'
        >>> resolve_origin({}, "127.0.0.1")
        '127.0.0.1'
        >>> resolve_origin({}, None) is None
        True
    """
    if trust_forwarded and headers:
        forwarded = _header_value(headers, header_name)
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first

    if peer_address:
        return peer_address.strip() or None
    return None


class HeaderOriginResolver:
    """Origin resolver bound to one request's headers and peer address."""

    def __init__(
        self,
        headers: Mapping[str, str] | None,
        peer_address: str | None,
        *,
        header_name: str = DEFAULT_FORWARDED_HEADER,
        trust_forwarded: bool = True,
    ) -> None:
        self.headers = headers
        self.peer_address = peer_address
        self.header_name = header_name
        self.trust_forwarded = trust_forwarded

    def __call__(self) -> str | None:
        return resolve_origin(
            self.headers,
            self.peer_address,
            header_name=self.header_name,
            trust_forwarded=self.trust_forwarded,
        )


def request_origin_resolver(
    request: Request,
    *,
    header_name: str = DEFAULT_FORWARDED_HEADER,
    trust_forwarded: bool = True,
) -> HeaderOriginResolver:
    """Build a resolver for a Starlette/FastAPI request."""

    peer = request.client.host if request.client else None
    return HeaderOriginResolver(
        request.headers,
        peer,
        header_name=header_name,
        trust_forwarded=trust_forwarded,
    )


def no_origin() -> str | None:
    """Resolver used when the caller must always pass the origin explicitly."""

    return None
