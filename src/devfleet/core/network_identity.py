"""Deterministic per-repository network identity.

A repository URL maps to a private /24 subnet, a static container address
inside it and a DNS hostname. Nothing is persisted: the same URL yields the
same identity on any host, after any number of recreations.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
_UINT32_MASK = 0xFFFFFFFF

FALLBACK_SEGMENT = "app"
_SLUG_INVALID = re.compile(r"[^a-z0-9_-]+")
_SLUG_DASHES = re.compile(r"-+")


@dataclass(frozen=True, slots=True)
class RepoPathParts:
    """Owner segments and repository name parsed from a repo URL."""

    owner_parts: tuple[str, ...]
    repo: str
    path_parts: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class NetworkIdentity:
    """Subnet, static address and hostname for one repository."""

    subnet: str
    ip_address: str
    dns_hostname: str


def slugify(value: str) -> str:
    normalized = _SLUG_INVALID.sub("-", value.strip().lower())
    normalized = _SLUG_DASHES.sub("-", normalized).strip("-")
    return normalized or FALLBACK_SEGMENT


def _strip_git_suffix(segment: str) -> str:
    return segment[:-4] if segment.endswith(".git") else segment


def derive_repo_slug(repo_url: str) -> str:
    trimmed = repo_url.strip().rstrip("/")
    if not trimmed:
        return FALLBACK_SEGMENT
    pivot = max(trimmed.rfind("/"), trimmed.rfind(":"))
    segment = trimmed[pivot + 1 :] if pivot >= 0 else trimmed
    return slugify(_strip_git_suffix(segment))


def _split_path(path_part: str) -> list[str]:
    raw = [part for part in path_part.lstrip("/").split("/") if part]
    if not raw:
        return []
    raw[-1] = _strip_git_suffix(raw[-1])
    return raw


def _extract_path_parts(repo_url: str) -> list[str]:
    trimmed = repo_url.strip().rstrip("/")
    if not trimmed:
        return []

    scheme_index = trimmed.find("://")
    if scheme_index != -1:
        after_scheme = trimmed[scheme_index + 3 :]
        slash = after_scheme.find("/")
        return [] if slash == -1 else _split_path(after_scheme[slash + 1 :])

    # scp-like syntax: git@github.com:org/repo.git
    colon = trimmed.find(":")
    if colon != -1:
        return _split_path(trimmed[colon + 1 :])

    slash = trimmed.find("/")
    if slash != -1:
        return _split_path(trimmed[slash + 1 :])

    return [_strip_git_suffix(trimmed)]


def derive_repo_path_parts(repo_url: str) -> RepoPathParts:
    repo_slug = derive_repo_slug(repo_url)
    raw_parts = _extract_path_parts(repo_url)
    if not raw_parts:
        return RepoPathParts(owner_parts=(), repo=repo_slug, path_parts=(repo_slug,))

    repo = slugify(raw_parts[-1])
    owner_parts = tuple(slugify(part) for part in raw_parts[:-1])
    return RepoPathParts(owner_parts=owner_parts, repo=repo, path_parts=(*owner_parts, repo))


def format_repo_label(repo_url: str) -> str:
    """``org/repo`` label used in log lines and state-sync messages."""
    return "/".join(derive_repo_path_parts(repo_url).path_parts)


def fnv1a_32(data: bytes) -> int:
    value = FNV_OFFSET_BASIS
    for byte in data:
        value ^= byte
        value = (value * FNV_PRIME) & _UINT32_MASK
    return value


def derive_network_identity(repo_url: str) -> NetworkIdentity:
    path_parts = derive_repo_path_parts(repo_url).path_parts
    dns_hostname = "docker." + ".".join(path_parts)

    h = fnv1a_32(repo_url.encode("utf-8"))
    subnet_a = 20 + (h % 12)
    subnet_b = (h >> 8) & 0xFF
    # 10..209 leaves room for the gateway and broadcast addresses
    host_octet = 10 + ((h >> 16) % 200)

    return NetworkIdentity(
        subnet=f"172.{subnet_a}.{subnet_b}.0/24",
        ip_address=f"172.{subnet_a}.{subnet_b}.{host_octet}",
        dns_hostname=dns_hostname,
    )
