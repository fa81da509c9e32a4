"""
Release feed — GitHub releases API client for the self-updater.

Uses ``urllib.request`` only. Metadata errors surface as
``UpdateCheckFailed``; errors while downloading an asset surface as
``UpdateFailed``. Nothing here is retried.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import BinaryIO

from pydantic import ValidationError

from apiforge import __version__
from apiforge.core.errors import UpdateCheckFailed, UpdateFailed
from apiforge.core.models.release import Release, ReleaseAsset, Stability, version_key

logger = logging.getLogger(__name__)

USER_AGENT = f"laravel-api-forge/{__version__}"
CHUNK_SIZE = 8192
# GitHub caps per_page at 100
PAGE_SIZE = 100


class ReleaseFeed:
    """Read releases of one ``owner/repo`` from the GitHub API."""

    def __init__(
        self,
        repo: str,
        *,
        api_url: str = "https://api.github.com",
        token: str | None = None,
        timeout: float = 30,
    ):
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _request(self, url: str, accept: str) -> urllib.request.Request:
        headers = {"Accept": accept, "User-Agent": USER_AGENT}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return urllib.request.Request(url, headers=headers)

    # ── Metadata ────────────────────────────────────────────────

    def fetch_releases(self) -> list[Release]:
        """List published releases, newest first as the API returns them."""
        url = f"{self.api_url}/repos/{self.repo}/releases?per_page={PAGE_SIZE}"
        req = self._request(url, "application/vnd.github.v3+json")
        logger.debug("Fetching releases: %s", url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                payload = json.loads(resp.read())
        except urllib.error.HTTPError as e:
            raise UpdateCheckFailed(
                f"Release feed returned HTTP {e.code} for {self.repo}"
            ) from e
        except (urllib.error.URLError, OSError) as e:
            raise UpdateCheckFailed(f"Cannot reach release feed: {e}") from e
        except json.JSONDecodeError as e:
            raise UpdateCheckFailed(f"Malformed release feed response: {e}") from e

        if not isinstance(payload, list):
            raise UpdateCheckFailed("Malformed release feed response: expected a list")
        try:
            return [Release.model_validate(item) for item in payload]
        except ValidationError as e:
            raise UpdateCheckFailed(f"Malformed release metadata: {e}") from e

    def latest_release(self, stability: Stability = "stable") -> Release | None:
        """Highest-versioned release in the requested stability class."""
        candidates = [r for r in self.fetch_releases() if r.matches(stability)]
        if not candidates:
            return None
        return max(candidates, key=lambda r: version_key(r.tag_name))

    # ── Assets ──────────────────────────────────────────────────

    def download(self, asset: ReleaseAsset, dest: BinaryIO) -> int:
        """Stream ``asset`` into an open binary file. Returns bytes written."""
        req = self._request(asset.browser_download_url, "application/octet-stream")
        logger.info("Downloading %s", asset.browser_download_url)
        written = 0
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                while True:
                    chunk = resp.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    dest.write(chunk)
                    written += len(chunk)
        except urllib.error.HTTPError as e:
            raise UpdateFailed(f"Download of {asset.name} failed: HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise UpdateFailed(f"Download of {asset.name} failed: {e}") from e

        if asset.size and written != asset.size:
            raise UpdateFailed(
                f"Download of {asset.name} incomplete: {written} of {asset.size} bytes"
            )
        return written

    def fetch_checksum(self, asset: ReleaseAsset) -> str:
        """Read a ``sha256sum``-style checksum asset and return the hex digest."""
        req = self._request(asset.browser_download_url, "application/octet-stream")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                text = resp.read().decode("utf-8", errors="replace")
        except (urllib.error.URLError, OSError) as e:
            raise UpdateFailed(f"Cannot fetch checksum {asset.name}: {e}") from e
        return parse_checksum(text, asset.name)


def parse_checksum(text: str, source: str = "checksum") -> str:
    """Extract the hex digest from ``<hex>`` or ``<hex>  <filename>`` text."""
    fields = text.strip().split()
    digest = fields[0].lower() if fields else ""
    if len(digest) != 64 or any(c not in "0123456789abcdef" for c in digest):
        raise UpdateFailed(f"Malformed SHA-256 in {source}")
    return digest


def file_sha256(path: Path) -> str:
    import hashlib

    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()
