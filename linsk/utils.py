"""Small helpers shared across the package: log trimming, validation, IP checks."""

from __future__ import annotations

import ipaddress
import re

_MAX_LOG_LEN = 256

_ANSI_RE = re.compile(
    "[\u001b\u009b][[\\]()#;?]*"
    "(?:(?:(?:[a-zA-Z\\d]*(?:;[a-zA-Z\\d]*)*)?\u0007)"
    "|(?:(?:\\d{1,4}(?:;\\d{0,4})*)?[\\dA-PRZcf-ntqry=><~]))"
)

_DEV_NAME_RE = re.compile(r"[0-9a-z_-]+")
_UNIX_USERNAME_RE = re.compile(r"[a-z_]([a-z0-9_-]{0,31}|[a-z0-9_-]{0,30}\$)")


def clear_unprintable_chars(s: str, allow_newlines: bool = False) -> str:
    """Strip ANSI escape sequences and every non-printable character.

    Newlines are kept only when ``allow_newlines`` is true.
    """
    s = _ANSI_RE.sub("", s)
    return "".join(
        ch for ch in s if ch.isprintable() or (allow_newlines and ch == "\n")
    )


def get_log_err_msg(s: str, log_label: str) -> str:
    """Format a (possibly long) log so that it fits into an error message."""
    log = s.replace("\n", "\\n")
    if log.endswith("\\n"):
        log = log[: -len("\\n")]
    log = clear_unprintable_chars(log, False)

    if len(log) > _MAX_LOG_LEN:
        trimmed = len(log) - _MAX_LOG_LEN
        log = f"[{trimmed} chars trimmed]" + log[-_MAX_LOG_LEN:]

    return f"({log_label}: '{log}')"


def wrap_err_with_log(err: BaseException, msg: str, log: str) -> RuntimeError:
    """Return a new error describing ``msg`` and ``log``, chained to ``err``."""
    wrapped = RuntimeError(f"{msg} {get_log_err_msg(log, 'log')}: {err}")
    wrapped.__cause__ = err
    return wrapped


def validate_dev_name(s: str) -> bool:
    """Check a block device name, allowing the ``mapper/`` prefix."""
    s = s.removeprefix("mapper/")
    return _DEV_NAME_RE.fullmatch(s) is not None


def validate_unix_username(s: str) -> bool:
    """Check that ``s`` is a valid Unix user name."""
    return _UNIX_USERNAME_RE.fullmatch(s) is not None


def is_ipv6_ip(ip: str | ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    """True for a genuine IPv6 address (IPv4-mapped addresses do not count)."""
    if isinstance(ip, str):
        try:
            ip = ipaddress.ip_address(ip)
        except ValueError:
            return False
    if isinstance(ip, ipaddress.IPv4Address):
        return False
    return ip.ipv4_mapped is None