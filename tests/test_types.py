import ipaddress

import pytest

from linsk.vm.types import (
    BlockDevicePassthroughConfig,
    Config,
    DriveConfig,
    PortForwardingRule,
    USBDevicePassthroughConfig,
    parse_port_forwarding_rule,
)


def test_parse_two_part_rule():
    rule = parse_port_forwarding_rule("8080:80")
    assert rule == PortForwardingRule(host_port=8080, vm_port=80)
    assert rule.host_ip is None


def test_parse_three_part_rule():
    rule = parse_port_forwarding_rule("127.0.0.1:2222:22")
    assert rule.host_ip == ipaddress.ip_address("127.0.0.1")
    assert (rule.host_port, rule.vm_port) == (2222, 22)


def test_parse_port_bounds():
    rule = parse_port_forwarding_rule("0:65535")
    assert (rule.host_port, rule.vm_port) == (0, 65535)


@pytest.mark.parametrize(
    "value, message",
    [
        ("8080", "bad split"),
        ("1:2:3:4", "bad split"),
        ("x:80", "parse host port"),
        ("+1:80", "parse host port"),
        (":80", "parse host port"),
        ("80:99999", "parse vm port"),
        ("80: 22", "parse vm port"),
        ("nothost:1:2", "bad host ip"),
        ("127.0.0.1:65536:22", "parse host port"),
    ],
)
def test_parse_errors(value, message):
    with pytest.raises(ValueError, match=message):
        parse_port_forwarding_rule(value)


def test_rule_rejects_out_of_range_port():
    with pytest.raises(ValueError):
        PortForwardingRule(host_port=70000, vm_port=1)


def test_usb_ids_range():
    with pytest.raises(ValueError):
        USBDevicePassthroughConfig(vendor_id=0x10000, product_id=1)
    dev = USBDevicePassthroughConfig(vendor_id=0xFFFF, product_id=0)
    assert dev.vendor_id == 0xFFFF


def test_config_defaults_are_independent():
    first = Config()
    second = Config()
    first.drives.append(DriveConfig(path="/tmp/disk.qcow2", snapshot_mode=True))
    first.passthrough_config.block.append(BlockDevicePassthroughConfig(path="/dev/sdb"))
    assert second.drives == []
    assert second.passthrough_config.block == []
    assert second.os_up_timeout == 0
    assert second.unrestricted_networking is False