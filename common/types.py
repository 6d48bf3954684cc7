"""Shared data type definitions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AssetRecord:
    """
    Fingerprint metadata for a single static asset.

    `path` is the logical path the platform serves the asset under
    ("/" + filename), `hash` the truncated content fingerprint and
    `size` the byte count.
    """
    path: str
    hash: str
    size: int
