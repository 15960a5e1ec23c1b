"""The VM serial console: reading its output, logging in, and setting up SSH over it."""

from __future__ import annotations

import base64
import binascii
import queue
import shlex
import sys
import threading
import time
from concurrent.futures import CancelledError
from typing import BinaryIO

import paramiko

from linsk.utils import clear_unprintable_chars, get_log_err_msg

_STATUS_PREFIX = b"SERIAL STATUS: "
_STDOUT_BUFFER_LINES = 32
_READ_CHUNK = 4096
_POLL_INTERVAL = 0.1
_WRITE_CHAR_DELAY = 0.001

_KEYSCAN_TIMEOUT = 5.0
_SSH_SETUP_TIMEOUT = 30.0


class KnownHostsPolicy(paramiko.MissingHostKeyPolicy):
    """Accept a host key only if it equals the one scanned for its key type."""

    def __init__(self, known_keys: dict[str, bytes]) -> None:
        self._known = dict(known_keys)

    def missing_host_key(self, client, hostname, key) -> None:
        key_type = key.get_name()
        known = self._known.get(key_type)
        if known is None:
            raise paramiko.SSHException(f"unknown key type '{key_type}'")
        if key.asbytes() != known:
            raise paramiko.SSHException("public key mismatch")


def parse_ssh_key_scan(known_hosts: bytes | str) -> KnownHostsPolicy:
    """Build a host key policy from ``ssh-keyscan -H`` output."""
    if isinstance(known_hosts, bytes):
        known_hosts = known_hosts.decode("utf-8", errors="replace")

    known: dict[str, bytes] = {}
    for line in known_hosts.split("\n"):
        if not line:
            continue
        parts = line.split(" ")
        if len(parts) != 3:
            raise ValueError(
                f"bad split ssh identity string length: want 3, have {len(parts)} ('{line}')"
            )
        try:
            blob = base64.b64decode(parts[2].replace("\r", ""), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"decode base64 public key: {e}") from e
        known[parts[1]] = blob

    return KnownHostsPolicy(known)


def _is_set(cancel: threading.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


class SerialConsole:
    """Line-oriented access to a VM serial console.

    ``run_reader`` must run (usually in its own thread) to split the output
    into lines; only the most recent lines up to a small limit are kept, the
    rest are dropped.
    """

    def __init__(self, reader: BinaryIO, writer: BinaryIO) -> None:
        self._reader = reader
        self._writer = writer
        self._write_lock = threading.Lock()
        self._cond = threading.Condition()
        self._pending = bytearray()
        self._eof = False
        self._stdout: queue.Queue[bytes] = queue.Queue(maxsize=_STDOUT_BUFFER_LINES)

    def run_reader(self) -> None:
        """Read the console until end of file, publishing complete lines."""
        read = getattr(self._reader, "read1", None) or self._reader.read
        while True:
            try:
                chunk = read(_READ_CHUNK)
            except (OSError, ValueError):
                chunk = b""

            with self._cond:
                if not chunk:
                    self._eof = True
                    self._cond.notify_all()
                    return
                self._pending += chunk
                lines = []
                while (idx := self._pending.find(b"\n")) != -1:
                    lines.append(bytes(self._pending[: idx + 1]))
                    del self._pending[: idx + 1]
                self._cond.notify_all()

            for line in lines:
                try:
                    self._stdout.put_nowait(line)
                except queue.Full:
                    pass

    def write(self, data: bytes) -> None:
        """Write to the console one byte at a time, slowly enough for polled serial ports."""
        with self._write_lock:
            for i, byte in enumerate(data):
                try:
                    self._writer.write(bytes((byte,)))
                    self._writer.flush()
                except (OSError, ValueError) as e:
                    raise OSError(f"write char #{i}: {e}") from e
                time.sleep(_WRITE_CHAR_DELAY)

    def reset_stdout(self) -> None:
        """Forget every line read so far."""
        self._stdout = queue.Queue(maxsize=_STDOUT_BUFFER_LINES)

    def consume_stdout(self) -> bytes:
        """Take all buffered lines without waiting."""
        out = bytearray()
        stdout = self._stdout
        while True:
            try:
                out += stdout.get_nowait()
            except queue.Empty:
                return bytes(out)

    def wait_for_login(self, cancel: threading.Event | None = None) -> None:
        """Wait for the login prompt and log in as root."""
        with self._cond:
            while b"login:" not in self._pending:
                if _is_set(cancel):
                    raise CancelledError("canceled")
                if self._eof:
                    raise EOFError("serial console closed before the login prompt")
                self._cond.wait(_POLL_INTERVAL)
        self.write(b"root\n")

    def _next_line(self, cancel: threading.Event | None, deadline: float) -> bytes | None:
        while True:
            if _is_set(cancel):
                raise CancelledError("canceled")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                return self._stdout.get(timeout=min(remaining, _POLL_INTERVAL))
            except queue.Empty:
                continue

    def scan_ssh_identity(self, cancel: threading.Event | None = None) -> bytes:
        """Run ``ssh-keyscan`` in the VM and return its hashed known-hosts lines."""
        self.reset_stdout()
        self.write(
            b'ssh-keyscan -H 127.0.0.1 && echo "SERIAL STATUS: $?" && rm /root/.ash_history\n'
        )

        deadline = time.monotonic() + _KEYSCAN_TIMEOUT
        log = bytearray()
        ret = bytearray()

        while True:
            data = self._next_line(cancel, deadline)
            if data is None:
                raise TimeoutError(
                    "keyscan command timed out "
                    + get_log_err_msg(log.decode("utf-8", "replace"), "stdout/stderr log")
                )
            if not data:
                continue

            log += data

            if data.startswith(_STATUS_PREFIX):
                if len(data) == len(_STATUS_PREFIX):
                    raise RuntimeError("keyscan command status code did not show up")
                code = data[len(_STATUS_PREFIX) : len(_STATUS_PREFIX) + 1]
                if code != b"0":
                    raise RuntimeError(
                        f"non-zero keyscan command status code: "
                        f"'{code.decode('utf-8', 'replace')}' "
                        + get_log_err_msg(log.decode("utf-8", "replace"), "stdout/stderr log")
                    )
                return bytes(ret)

            if data[:1] == b"|":
                ret += data

    def setup_ssh(
        self,
        public_key: bytes | str,
        install_ssh: bool,
        cancel: threading.Event | None = None,
    ) -> None:
        """Bring up networking and an SSH server in the VM that accepts ``public_key``."""
        self.reset_stdout()

        if isinstance(public_key, bytes):
            public_key = public_key.decode()

        install_cmd = "apk add openssh; " if install_ssh else ""
        cmd = (
            'do_setup () { sh -c "set -ex; ifconfig eth0 up && ifconfig lo up && udhcpc; '
            + install_cmd
            + "mkdir -p ~/.ssh; echo "
            + shlex.quote(public_key)
            + ' > ~/.ssh/authorized_keys; rc-update add sshd; rc-service sshd start"; '
            + 'echo "SERIAL"" ""STATUS: $?"; }; do_setup\n'
        )
        self.write(cmd.encode())

        deadline = time.monotonic() + _SSH_SETUP_TIMEOUT
        log: list[str] = []

        while True:
            data = self._next_line(cancel, deadline)
            if data is None:
                raise TimeoutError(
                    "setup command timed out " + get_log_err_msg("".join(log), "stdout/stderr log")
                )

            log.append(clear_unprintable_chars(data.decode("utf-8", "replace"), True))

            if data.startswith(_STATUS_PREFIX):
                if len(data) == len(_STATUS_PREFIX):
                    raise RuntimeError("setup command status code did not show up")
                code = data[len(_STATUS_PREFIX) : len(_STATUS_PREFIX) + 1]
                if code != b"0":
                    text = "".join(log)
                    print(f"SSH SETUP FAILURE:\n{text}", end="", file=sys.stderr)
                    raise RuntimeError(
                        f"non-zero setup command status code: "
                        f"'{code.decode('utf-8', 'replace')}' "
                        + get_log_err_msg(text, "stdout/stderr log")
                    )
                return