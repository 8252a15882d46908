# squest/modules/fetcher.py
"""
fetcher.py - source download and MD5 verification

Features:
- http(s) downloads through a requests.Session (streamed to disk)
- ftp downloads through urllib (streamed to disk)
- file:// and plain local paths copied into the destination directory
- MD5 verification against the descriptor checksum; a mismatching file is left
  where it is, the staging cleanup policy decides its fate
- Every failure is a DownloadError or ChecksumError; nothing is retried
"""

from __future__ import annotations

import os
import shutil
from typing import Optional
from urllib.error import URLError
from urllib.parse import unquote, urlsplit
from urllib.request import urlopen

import requests

from squest.modules.errors import ChecksumError, DownloadError
from squest.modules.logging import get_logger
from squest.modules.sysutil import ensure_dir, md5sum

logger = get_logger("fetcher")

CHUNK_SIZE = 64 * 1024
DEFAULT_TIMEOUT = 60


def filename_for_url(url: str) -> str:
    path = urlsplit(url).path
    name = os.path.basename(unquote(path))
    if not name:
        raise DownloadError(url, "URL has no file name component")
    return name


class Fetcher:
    def __init__(self, session: Optional[requests.Session] = None, timeout: int = DEFAULT_TIMEOUT, opener=None):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.opener = opener or urlopen

    # -----------------------
    # protocol handlers
    # -----------------------
    def _fetch_local(self, url: str, path: str, dest: str) -> None:
        try:
            shutil.copyfile(path, dest)
        except OSError as e:
            raise DownloadError(url, e.strerror or str(e))

    def _fetch_http(self, url: str, dest: str) -> None:
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as r:
                r.raise_for_status()
                with open(dest, "wb") as f:
                    for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise DownloadError(url, str(e))
        except OSError as e:
            raise DownloadError(url, e.strerror or str(e))

    def _fetch_ftp(self, url: str, dest: str) -> None:
        try:
            with self.opener(url, timeout=self.timeout) as r, open(dest, "wb") as f:
                shutil.copyfileobj(r, f, CHUNK_SIZE)
        except URLError as e:
            raise DownloadError(url, str(e.reason))
        except OSError as e:
            raise DownloadError(url, e.strerror or str(e))

    def download(self, url: str, dest_dir: str) -> str:
        """Place url's content in dest_dir and return the file path."""
        ensure_dir(dest_dir)
        dest = os.path.join(dest_dir, filename_for_url(url))
        parts = urlsplit(url)
        logger.info("fetching %s", url)
        if parts.scheme == "file":
            self._fetch_local(url, unquote(parts.path), dest)
        elif parts.scheme == "":
            self._fetch_local(url, url, dest)
        elif parts.scheme in ("http", "https"):
            self._fetch_http(url, dest)
        elif parts.scheme == "ftp":
            self._fetch_ftp(url, dest)
        else:
            raise DownloadError(url, f"unsupported URL scheme '{parts.scheme}'")
        return dest

    def verify(self, url: str, path: str, expected: str) -> None:
        actual = md5sum(path)
        if actual.lower() != expected.lower():
            raise ChecksumError(url, expected, actual)
        logger.debug("md5 ok for %s", os.path.basename(path))

    def fetch(self, url: str, expected_md5: str, dest_dir: str) -> str:
        path = self.download(url, dest_dir)
        self.verify(url, path, expected_md5)
        return path
