import pytest

from api.middleware import resolve_client_ip


@pytest.mark.parametrize(
    "forwarded_for, hops, expected",
    [
        (None, 0, "198.51.100.7"),
        ("10.1.2.3", 0, "198.51.100.7"),
        ("10.1.2.3", 1, "10.1.2.3"),
        ("10.1.2.3, 203.0.113.9", 1, "203.0.113.9"),
        ("10.1.2.3, 203.0.113.9, 192.0.2.1", 2, "203.0.113.9"),
        ("203.0.113.9", 2, "198.51.100.7"),
        (" , ", 1, "198.51.100.7"),
    ],
)
def test_resolve_client_ip_trusts_only_proxy_appended_hops(forwarded_for, hops, expected):
    assert resolve_client_ip(forwarded_for, "198.51.100.7", hops) == expected


def test_resolve_client_ip_without_peer():
    assert resolve_client_ip(None, None) is None
