"""
Resolve overlay asset references to local files.

An asset reference is one of:
    * a local filesystem path, used as-is
    * an embedded ``data:<mime>;base64,<payload>`` URI, decoded to a temp file
    * an ``http(s)://`` URL, downloaded to a temp file

Files this module creates are owned by the resolver and removed by
``release()`` (or on leaving the ``with`` block); local paths never are.
"""
import base64
import binascii
import logging
import mimetypes
import os
import tempfile
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

import requests

from ..core.config import get_settings
from ..editing.core.processor import AssetResolutionError

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 8192

# mimetypes maps some common types to unusual extensions
_PREFERRED_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'audio/mpeg': '.mp3',
    'audio/mp3': '.mp3',
    'audio/wav': '.wav',
    'audio/x-wav': '.wav',
    'video/mp4': '.mp4',
    'video/quicktime': '.mov',
}


def is_data_uri(reference: str) -> bool:
    return reference.startswith('data:')


def is_remote_url(reference: str) -> bool:
    return urlparse(reference).scheme in ('http', 'https')


def extension_for_mime(mime_type: str) -> str:
    mime_type = (mime_type or '').lower()
    if mime_type in _PREFERRED_EXTENSIONS:
        return _PREFERRED_EXTENSIONS[mime_type]
    return mimetypes.guess_extension(mime_type) or '.bin'


def decode_data_uri(reference: str) -> tuple:
    """Split a base64 data URI into (mime type, raw bytes)."""
    header, sep, payload = reference.partition(',')
    if not sep:
        raise AssetResolutionError("Malformed data URI: missing ',' separator")

    meta = header[len('data:'):].split(';')
    if 'base64' not in meta[1:]:
        raise AssetResolutionError("Only base64-encoded data URIs are supported")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AssetResolutionError(f"Invalid base64 payload in data URI: {e}") from e

    return meta[0] or 'application/octet-stream', data


class AssetResolver:
    """Turns asset references into local paths, tracking the temp files it creates."""

    def __init__(self, temp_dir: Optional[Path] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.temp_dir = Path(temp_dir) if temp_dir else None
        self.timeout = timeout if timeout is not None else get_settings().download_timeout
        self.session = session
        self._owns_session = session is None
        self._owned: List[Path] = []

    def __enter__(self) -> 'AssetResolver':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    @property
    def owned_files(self) -> List[Path]:
        return list(self._owned)

    def resolve(self, reference: str) -> Path:
        """
        Resolve an asset reference to a readable local file.

        Raises:
            AssetResolutionError: If the asset cannot be decoded, downloaded or found
        """
        if not reference:
            raise AssetResolutionError("Empty asset reference")

        if is_data_uri(reference):
            return self._resolve_data_uri(reference)
        if is_remote_url(reference):
            return self._download(reference)

        path = Path(reference).expanduser()
        if not path.is_file():
            raise AssetResolutionError(f"Asset not found: {reference}")
        return path

    def _new_temp_file(self, suffix: str) -> Path:
        fd, name = tempfile.mkstemp(prefix='asset_', suffix=suffix,
                                    dir=str(self.temp_dir) if self.temp_dir else None)
        os.close(fd)
        path = Path(name)
        self._owned.append(path)
        return path

    def _resolve_data_uri(self, reference: str) -> Path:
        mime_type, data = decode_data_uri(reference)
        path = self._new_temp_file(extension_for_mime(mime_type))
        path.write_bytes(data)
        logger.info(f"Decoded embedded {mime_type} asset ({len(data)} bytes) to {path}")
        return path

    def _download(self, url: str) -> Path:
        suffix = Path(urlparse(url).path).suffix or '.bin'
        path = self._new_temp_file(suffix)

        logger.info(f"Downloading asset from: {url}")
        try:
            with self._get_session().get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to download asset {url}: {e}")
            raise AssetResolutionError(f"Failed to download asset {url}: {e}") from e

        if path.stat().st_size == 0:
            raise AssetResolutionError(f"Downloaded asset is empty: {url}")

        logger.info(f"Downloaded {path.stat().st_size} bytes to {path}")
        return path

    def _get_session(self) -> requests.Session:
        if self.session is None:
            self.session = requests.Session()
        return self.session

    def release(self) -> None:
        """Delete every temp file this resolver created and close its own session."""
        while self._owned:
            path = self._owned.pop()
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove temp asset {path}: {e}")
        if self._owns_session and self.session is not None:
            self.session.close()
            self.session = None
