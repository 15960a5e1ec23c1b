"""Downloading files with progress reporting and SHA-256 verification."""

from __future__ import annotations

import hashlib
import logging
import os
import urllib.request
from typing import BinaryIO, Callable

import humanize

_log = logging.getLogger(__name__)

_REPORT_EVERY = 1_000_000
_DOWNLOAD_BLOCK_SIZE = 1024


class HashMismatchError(ValueError):
    """The data read did not have the expected SHA-256 digest."""


def copy_with_progress_and_hash(
    dst: BinaryIO,
    src: BinaryIO,
    block_size: int,
    want_hash: bytes | None,
    report: Callable[[int], None] | None,
) -> int:
    """Copy ``src`` to ``dst`` in blocks, reporting progress and checking the hash.

    ``report`` is called whenever the byte count reaches a multiple of one
    million. With ``want_hash`` set, the SHA-256 of the data must match it or
    ``HashMismatchError`` is raised. Returns the number of bytes written.
    """
    h = hashlib.sha256() if want_hash is not None else None
    progress = 0

    while True:
        block = src.read(block_size)
        if not block:
            break
        written = dst.write(block)
        if h is not None:
            h.update(block)
        progress += written if written is not None else len(block)

        if report is not None and progress % _REPORT_EVERY == 0:
            report(progress)

    if h is not None:
        digest = h.digest()
        if digest != want_hash:
            raise HashMismatchError(
                f"hash mismatch: want '{want_hash.hex()}', have '{digest.hex()}'"
            )

    return progress


def download(
    url: str,
    expected_hash: bytes | None,
    out: str | os.PathLike,
    decompress: Callable[[BinaryIO], BinaryIO] | None = None,
) -> int:
    """Download ``url`` into a new read-only file ``out`` and verify its hash.

    ``decompress`` wraps the response stream (for example ``bz2.BZ2File``);
    the hash applies to the data after it. A partial file is removed on any
    failure. Returns the number of bytes written.
    """
    out_clean = os.path.normpath(os.fspath(out))

    if os.path.lexists(out_clean):
        raise FileExistsError(f"file already exists: '{out_clean}'")

    fd = os.open(out_clean, os.O_CREAT | os.O_EXCL | os.O_WRONLY | getattr(os, "O_BINARY", 0), 0o400)
    success = False
    try:
        with os.fdopen(fd, "wb") as f:
            _log.info("Starting to download file from %s to %s", url, out_clean)
            with urllib.request.urlopen(url) as resp:
                known_size = 0
                length = resp.headers.get("Content-Length")
                if length and length.isdigit():
                    known_size = int(length)

                stream: BinaryIO = resp
                if decompress is not None:
                    stream = decompress(resp)
                    known_size = 0

                def report(done: int) -> None:
                    size = humanize.naturalsize(done)
                    if known_size:
                        percent = round(done / known_size * 100, 2)
                        _log.info("Downloading file %s: %s done (%s%%)", out_clean, size, percent)
                    else:
                        _log.info("Downloading compressed file %s: %s done", out_clean, size)

                try:
                    n = copy_with_progress_and_hash(
                        f, stream, _DOWNLOAD_BLOCK_SIZE, expected_hash, report
                    )
                finally:
                    if stream is not resp:
                        stream.close()

        _log.info(
            "Successfully downloaded file from %s to %s (%s)",
            url,
            out_clean,
            humanize.naturalsize(n),
        )
        success = True
        return n
    finally:
        if not success:
            try:
                os.remove(out_clean)
            except OSError:
                pass