"""SSH helpers: key generation, time-limited sessions, remote commands and password changes."""

from __future__ import annotations

import shlex
import threading
import time
from types import TracebackType
from typing import Callable

import paramiko

from linsk.utils import validate_unix_username, wrap_err_with_log

_READ_CHUNK = 32768
_POLL_INTERVAL = 0.01
_CANCEL_POLL_INTERVAL = 0.05

_RUN_CMD_TIMEOUT = 15.0
_CHANGE_PASS_TIMEOUT = 10.0


class SSHTimeoutError(TimeoutError):
    """An SSH session was cut short by its timeout or by cancellation."""


class TimedSession:
    """A single SSH session channel that is torn down on timeout or cancellation.

    The timeout countdown does not begin until ``start_timeout`` is called, so
    that slow interactive steps (such as reading a password from the user) can
    happen first. Expiry closes the whole client, which unblocks any pending
    I/O; leaving the ``with`` block then raises ``SSHTimeoutError``.
    """

    def __init__(
        self,
        client: paramiko.SSHClient,
        timeout: float,
        cancel: threading.Event | None = None,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._cancel = cancel
        self._done = threading.Event()
        self.timed_out = False
        self.channel: paramiko.Channel | None = None

    def _expire(self) -> None:
        self.timed_out = True
        self._client.close()

    def _watch_cancel(self) -> None:
        assert self._cancel is not None
        while not self._done.wait(_CANCEL_POLL_INTERVAL):
            if self._cancel.is_set():
                self._expire()
                return

    def start_timeout(self, pre_timeout: Callable[[], None] | None = None) -> None:
        """Begin the countdown; ``pre_timeout`` runs just before the session is closed."""

        def watch() -> None:
            if not self._done.wait(self._timeout):
                if pre_timeout is not None:
                    pre_timeout()
                self._expire()

        threading.Thread(target=watch, daemon=True).start()

    def __enter__(self) -> TimedSession:
        transport = self._client.get_transport()
        if transport is None:
            raise paramiko.SSHException("create new ssh session: client is not connected")
        try:
            self.channel = transport.open_session()
        except paramiko.SSHException as e:
            raise paramiko.SSHException(f"create new ssh session: {e}") from e

        if self._cancel is not None:
            threading.Thread(target=self._watch_cancel, daemon=True).start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        self._done.set()
        if self.channel is not None:
            self.channel.close()
        if self.timed_out:
            message = f"timed out ({exc})" if exc is not None else "timed out"
            raise SSHTimeoutError(message) from exc
        return False


def _drain(channel: paramiko.Channel) -> tuple[bytes, bytes, int]:
    """Read stdout and stderr until the remote command finishes."""
    out = bytearray()
    err = bytearray()

    def read_available() -> bool:
        progressed = False
        if channel.recv_ready():
            out.extend(channel.recv(_READ_CHUNK))
            progressed = True
        if channel.recv_stderr_ready():
            err.extend(channel.recv_stderr(_READ_CHUNK))
            progressed = True
        return progressed

    while True:
        if read_available():
            continue
        if channel.exit_status_ready() or channel.closed:
            break
        time.sleep(_POLL_INTERVAL)

    while read_available():
        pass

    return bytes(out), bytes(err), channel.recv_exit_status()


def _check_status(status: int, stderr: bytes, msg: str) -> None:
    if status != 0:
        raise wrap_err_with_log(
            RuntimeError(f"process exited with status {status}"),
            msg,
            stderr.decode("utf-8", errors="replace"),
        )


def generate_ssh_key() -> tuple[paramiko.RSAKey, bytes]:
    """Create a 4096-bit RSA key; return it with its ``authorized_keys`` line."""
    key = paramiko.RSAKey.generate(4096)
    authorized = f"{key.get_name()} {key.get_base64()}\n".encode()
    return key, authorized


def run_ssh_cmd(
    client: paramiko.SSHClient,
    cmd: str,
    cancel: threading.Event | None = None,
) -> bytes:
    """Run ``cmd`` on the remote host and return its standard output."""
    with TimedSession(client, _RUN_CMD_TIMEOUT, cancel) as session:
        session.start_timeout()
        channel = session.channel
        assert channel is not None
        channel.exec_command(cmd)
        stdout, stderr, status = _drain(channel)
        _check_status(status, stderr, "run cmd")
        return stdout


def _change_pass(
    client: paramiko.SSHClient,
    user: str,
    pwd: str,
    cmd: str,
    cancel: threading.Event | None,
) -> None:
    if not validate_unix_username(user):
        raise ValueError("invalid unix username")

    with TimedSession(client, _CHANGE_PASS_TIMEOUT, cancel) as session:
        session.start_timeout()
        channel = session.channel
        assert channel is not None
        channel.exec_command(f"{cmd} {shlex.quote(user)}")

        secret_line = bytearray((pwd + "\n").encode())
        try:
            # Sent twice: once to set, once to confirm.
            for _ in range(2):
                try:
                    channel.sendall(secret_line)
                except (OSError, paramiko.SSHException):
                    break
        finally:
            secret_line[:] = bytes(len(secret_line))

        _, stderr, status = _drain(channel)
        _check_status(status, stderr, "wait for change user password cmd")


def change_unix_pass(
    client: paramiko.SSHClient,
    user: str,
    pwd: str,
    cancel: threading.Event | None = None,
) -> None:
    """Set the Unix password of ``user`` on the remote host."""
    _change_pass(client, user, pwd, "passwd", cancel)


def change_samba_pass(
    client: paramiko.SSHClient,
    user: str,
    pwd: str,
    cancel: threading.Event | None = None,
) -> None:
    """Add ``user`` to Samba with the given password on the remote host."""
    _change_pass(client, user, pwd, "smbpasswd -a", cancel)