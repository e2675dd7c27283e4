"""Unit tests for client origin resolution."""

import pytest

from admission_gate.core.origin import HeaderOriginResolver, no_origin, resolve_origin


@pytest.mark.parametrize(
    ("headers", "peer", "expected"),
    [
        ({"X-Forwarded-For": "10.0.0.1"}, "127.0.0.1", "10.0.0.1"),
        ({"X-Forwarded-For": "10.0.0.1, 172.16.0.1, 172.16.0.2"}, "127.0.0.1", "10.0.0.1"),
        ({"x-forwarded-for": " 10.0.0.1 ,172.16.0.1"}, None, "10.0.0.1"),
        ({"X-FORWARDED-FOR": "10.0.0.1"}, None, "10.0.0.1"),
        ({}, "127.0.0.1", "127.0.0.1"),
        (None, "127.0.0.1", "127.0.0.1"),
        ({"X-Forwarded-For": ""}, "127.0.0.1", "127.0.0.1"),
        ({"X-Forwarded-For": " , 10.0.0.1"}, "127.0.0.1", "127.0.0.1"),
        ({}, None, None),
        ({}, "", None),
    ],
)
def test_resolve_origin(headers, peer, expected) -> None:
    assert resolve_origin(headers, peer) == expected


def test_untrusted_forwarded_header_is_ignored() -> None:
    headers = {"X-Forwarded-For": "10.0.0.1"}

    assert resolve_origin(headers, "127.0.0.1", trust_forwarded=False) == "127.0.0.1"


def test_custom_header_name() -> None:
    headers = {"X-Real-IP": "10.0.0.5", "X-Forwarded-For": "10.0.0.1"}

    assert resolve_origin(headers, None, header_name="X-Real-IP") == "10.0.0.5"


def test_header_origin_resolver_is_a_callable_strategy() -> None:
    resolver = HeaderOriginResolver({"X-Forwarded-For": "10.0.0.1, 10.0.0.2"}, "127.0.0.1")

    assert resolver() == "10.0.0.1"


def test_no_origin_resolver() -> None:
    assert no_origin() is None
