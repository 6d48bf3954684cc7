"""Content fingerprinting and the asset manifest."""

import hashlib
from pathlib import Path
from typing import Dict, Iterator, Mapping

from common.constants import FINGERPRINT_LENGTH, HASH_READ_BLOCK_SIZE
from common.logging_config import get_logger
from common.types import AssetRecord
from deploy.exceptions import AssetDirectoryError, UnknownFingerprintError
from deploy.utils import format_file_size

logger = get_logger(__name__)


def fingerprint_file(file_path: Path) -> tuple[str, int]:
    """
    Fingerprint a file byte-for-byte.

    Args:
        file_path: File to hash

    Returns:
        Tuple of (fingerprint, size_in_bytes)

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha256()
    size = 0
    with open(file_path, 'rb') as f:
        for block in iter(lambda: f.read(HASH_READ_BLOCK_SIZE), b""):
            digest.update(block)
            size += len(block)
    return digest.hexdigest()[:FINGERPRINT_LENGTH], size


class Manifest(Mapping[str, AssetRecord]):
    """
    Read-only mapping of logical path ("/" + filename) to AssetRecord.

    Iteration follows insertion order, which build_manifest makes the
    sorted order of file names. Fingerprints may repeat across paths.
    """

    def __init__(self, directory: Path, records: Dict[str, AssetRecord]):
        self.directory = Path(directory)
        self._records = dict(records)

    def __getitem__(self, path: str) -> AssetRecord:
        return self._records[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def total_size(self) -> int:
        return sum(record.size for record in self._records.values())

    def resolve(self, fingerprint: str) -> str:
        """
        Find the logical path of the first record with this fingerprint.

        Raises:
            UnknownFingerprintError: If no record matches
        """
        for path, record in self._records.items():
            if record.hash == fingerprint:
                return path
        raise UnknownFingerprintError(fingerprint)

    def source_path(self, path: str) -> Path:
        """Map a logical path back to the file in the asset directory."""
        return self.directory / path.lstrip('/')

    def to_payload(self) -> Dict[str, Dict[str, object]]:
        """Wire shape of the manifest: {path: {"hash": ..., "size": ...}}."""
        return {
            path: {'hash': record.hash, 'size': record.size}
            for path, record in self._records.items()
        }


def build_manifest(directory: Path) -> Manifest:
    """
    Fingerprint every regular file directly inside `directory`.

    Subdirectories are not walked.

    Args:
        directory: Asset directory

    Returns:
        Manifest keyed by "/" + filename

    Raises:
        AssetDirectoryError: If the directory does not exist or is not a directory
        OSError: If the directory or any file in it cannot be read
    """
    directory = Path(directory)
    if not directory.exists():
        raise AssetDirectoryError(f"Asset directory not found: {directory}")
    if not directory.is_dir():
        raise AssetDirectoryError(f"Not a directory: {directory}")

    records: Dict[str, AssetRecord] = {}
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            logger.debug(f"Skipping subdirectory {entry.name}")
            continue

        fingerprint, size = fingerprint_file(entry)
        logical_path = "/" + entry.name
        records[logical_path] = AssetRecord(path=logical_path, hash=fingerprint, size=size)
        logger.debug(f"Fingerprinted {logical_path}: {fingerprint} ({format_file_size(size)})")

    manifest = Manifest(directory, records)
    logger.info(
        f"Built manifest for {directory}: {len(manifest)} file(s), "
        f"{format_file_size(manifest.total_size)}"
    )
    return manifest
