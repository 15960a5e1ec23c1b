"""Configuration types for a VM instance and its port forwarding and passthrough."""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass, field

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_MAX_PORT = 0xFFFF
_MAX_USB_ID = 0xFFFF
_PORT_RE = re.compile(r"[0-9]+")


class SSHUnavailableError(RuntimeError):
    """The VM's SSH server is not set up yet."""

    def __init__(self, message: str = "ssh unavailable") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class PortForwardingRule:
    """Forward ``host_ip:host_port`` on the host to ``vm_port`` in the VM.

    A ``host_ip`` of None binds to all host addresses.
    """

    host_port: int
    vm_port: int
    host_ip: IPAddress | None = None

    def __post_init__(self) -> None:
        for name, port in (("host port", self.host_port), ("vm port", self.vm_port)):
            if not 0 <= port <= _MAX_PORT:
                raise ValueError(f"{name} {port} is out of range")


@dataclass(frozen=True)
class USBDevicePassthroughConfig:
    vendor_id: int
    product_id: int

    def __post_init__(self) -> None:
        for name, value in (("vendor id", self.vendor_id), ("product id", self.product_id)):
            if not 0 <= value <= _MAX_USB_ID:
                raise ValueError(f"usb {name} {value} is out of range")


@dataclass(frozen=True)
class BlockDevicePassthroughConfig:
    path: str


@dataclass
class PassthroughConfig:
    usb: list[USBDevicePassthroughConfig] = field(default_factory=list)
    block: list[BlockDevicePassthroughConfig] = field(default_factory=list)


@dataclass(frozen=True)
class DriveConfig:
    path: str
    snapshot_mode: bool = False


@dataclass(frozen=True)
class TapConfig:
    name: str


@dataclass
class Config:
    """Everything needed to start a VM.

    Timeouts are in seconds; zero selects the built-in defaults.
    ``memory_alloc`` is passed to QEMU as its memory size.
    """

    cdrom_image_path: str = ""
    bios_path: str = ""
    drives: list[DriveConfig] = field(default_factory=list)

    memory_alloc: int = 0

    passthrough_config: PassthroughConfig = field(default_factory=PassthroughConfig)
    extra_port_forwarding_rules: list[PortForwardingRule] = field(default_factory=list)

    unrestricted_networking: bool = False
    taps: list[TapConfig] = field(default_factory=list)

    os_up_timeout: float = 0.0
    ssh_up_timeout: float = 0.0

    debug: bool = False
    install_base_utilities: bool = False


def _parse_port(s: str, what: str) -> int:
    if _PORT_RE.fullmatch(s) is None:
        raise ValueError(f"parse {what}: invalid syntax '{s}'")
    value = int(s)
    if value > _MAX_PORT:
        raise ValueError(f"parse {what}: value out of range '{s}'")
    return value


def _parse_ip(s: str) -> IPAddress | None:
    if "%" in s:
        return None
    try:
        return ipaddress.ip_address(s)
    except ValueError:
        return None


def parse_port_forwarding_rule(s: str) -> PortForwardingRule:
    """Parse ``<HOST PORT>:<VM PORT>`` or ``<HOST IP>:<HOST PORT>:<VM PORT>``."""
    split = s.split(":")
    if len(split) == 2:
        return PortForwardingRule(
            host_port=_parse_port(split[0], "host port"),
            vm_port=_parse_port(split[1], "vm port"),
        )
    if len(split) == 3:
        host_ip = _parse_ip(split[0])
        if host_ip is None:
            raise ValueError("bad host ip")
        return PortForwardingRule(
            host_port=_parse_port(split[1], "host port"),
            vm_port=_parse_port(split[2], "vm port"),
            host_ip=host_ip,
        )
    raise ValueError(f"bad split by ':' length: want 2 or 3, have {len(split)}")