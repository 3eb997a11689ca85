import ipaddress

from hypothesis import given
from hypothesis import strategies as st

from devfleet.core.network_identity import derive_network_identity, derive_repo_path_parts

SLUG_CHARS = set("abcdefghijklmnopqrstuvwxyz0123456789_-")


@given(st.text())
def test_identity_is_deterministic_and_well_formed(repo_url: str) -> None:
    identity = derive_network_identity(repo_url)

    assert identity == derive_network_identity(repo_url)
    network = ipaddress.ip_network(identity.subnet)
    assert network.prefixlen == 24
    assert network.subnet_of(ipaddress.ip_network("172.16.0.0/12"))
    address = ipaddress.ip_address(identity.ip_address)
    assert address in network
    assert 10 <= int(identity.ip_address.rsplit(".", 1)[1]) <= 209


@given(st.text())
def test_path_parts_are_slugs(repo_url: str) -> None:
    parts = derive_repo_path_parts(repo_url)

    assert parts.path_parts
    assert parts.path_parts[-1] == parts.repo
    for segment in parts.path_parts:
        assert segment
        assert set(segment) <= SLUG_CHARS
        assert not segment.startswith("-")
        assert not segment.endswith("-")
