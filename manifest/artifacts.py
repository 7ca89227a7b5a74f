"""Download and verify prebuilt component artifacts."""

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import requests

from manifest.models import RemoteSource

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class DigestMismatchError(Exception):
    """Raised when downloaded content does not match its pinned digest."""
    pass


def file_digest(path: Union[str, Path]) -> str:
    """Return the ``sha256:<hex>`` digest of a file."""
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            sha.update(chunk)
    return f"sha256:{sha.hexdigest()}"


def fetch_artifact(
    source: RemoteSource,
    cache_dir: Union[str, Path],
    session: Optional[requests.Session] = None,
    timeout: int = 60,
) -> Path:
    """
    Fetch a remote artifact into the cache, verifying its digest.

    The cached file is named after its hex digest. A cached file whose
    content still matches is reused without touching the network.

    Args:
        source: Remote source with url and digest
        cache_dir: Directory holding verified artifacts
        session: Optional requests session (defaults to a new one)
        timeout: Request timeout in seconds

    Returns:
        Path to the verified artifact

    Raises:
        DigestMismatchError: If the downloaded content has a different digest
        requests.HTTPError: If the download fails
    """
    cache_dir = Path(cache_dir)
    cache_dir.mkdir(parents=True, exist_ok=True)
    target = cache_dir / source.hexdigest

    if target.exists():
        if file_digest(target) == source.digest:
            logger.debug(f"Using cached artifact {target}")
            return target
        logger.warning(f"Cached artifact {target} is corrupt, downloading again")
        target.unlink()

    http = session or requests.Session()
    logger.info(f"Downloading {source.url}")

    fd, temp_path = tempfile.mkstemp(dir=cache_dir, suffix=".part")
    try:
        sha = hashlib.sha256()
        with os.fdopen(fd, "wb") as out:
            with http.get(source.url, stream=True, timeout=timeout) as response:
                response.raise_for_status()
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    sha.update(chunk)
                    out.write(chunk)

        actual = f"sha256:{sha.hexdigest()}"
        if actual != source.digest:
            raise DigestMismatchError(
                f"Digest mismatch for {source.url}: expected {source.digest}, got {actual}"
            )

        os.replace(temp_path, target)
        logger.info(f"Verified artifact {source.url} -> {target}")
        return target
    finally:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
