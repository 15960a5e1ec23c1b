import shlex

import pytest

from linsk.qemucli import (
    Arg,
    ArgAcceptedValue,
    FlagArg,
    KeyValueArg,
    KeyValueArgItem,
    StringArg,
    UintArg,
    encode_arg,
    encode_args,
)


def test_string_arg_encodes_with_dash_prefix():
    assert encode_arg(StringArg("serial", "stdio")) == ("-serial", "stdio")


def test_uint_arg_value():
    arg = UintArg("m", 512)
    assert arg.string_value() == "512"
    assert encode_arg(arg) == ("-m", "512")


def test_uint_arg_rejects_negative():
    with pytest.raises(ValueError):
        UintArg("smp", -1)


def test_key_value_arg_joins_items():
    arg = KeyValueArg(
        "device",
        [KeyValueArgItem("driver", "virtio-net"), KeyValueArgItem("netdev", "net1")],
    )
    assert arg.string_value() == "driver=virtio-net,netdev=net1"


def test_key_value_arg_item_without_value():
    arg = KeyValueArg(
        "accel", [KeyValueArgItem("whpx"), KeyValueArgItem("kernel-irqchip", "off")]
    )
    assert arg.string_value() == "whpx,kernel-irqchip=off"


def test_key_value_arg_copies_items():
    items = [KeyValueArgItem("kvm")]
    arg = KeyValueArg("accel", items)
    items.append(KeyValueArgItem("extra"))
    assert arg.string_value() == "kvm"


def test_value_with_space_is_shell_quoted():
    value = "/tmp/some dir/image.iso"
    flag, quoted = encode_arg(StringArg("cdrom", value))
    assert flag == "-cdrom"
    assert shlex.split(quoted) == [value]
    assert quoted != value


def test_encode_args_flattens():
    args = [
        StringArg("serial", "stdio"),
        UintArg("m", 2048),
        KeyValueArg("machine", [KeyValueArgItem("type", "virt")]),
    ]
    assert encode_args(args) == ["-serial", "stdio", "-m", "2048", "-machine", "type=virt"]


def test_unknown_key_rejected():
    with pytest.raises(ValueError, match="unknown safe arg"):
        StringArg("monitor", "stdio")


def test_wrong_value_type_rejected():
    with pytest.raises(ValueError, match="bad arg value type"):
        StringArg("m", "512")


def test_flag_arg_has_no_allowed_keys():
    with pytest.raises(ValueError):
        FlagArg("boot")


@pytest.mark.parametrize(
    "value, message",
    [
        ("a,b", "commas"),
        ("C:\\path", "backslashes"),
        ("a=b", "equals"),
    ],
)
def test_string_value_validation(value, message):
    with pytest.raises(ValueError, match=message):
        StringArg("bios", value)


@pytest.mark.parametrize(
    "item",
    [
        KeyValueArgItem("", "x"),
        KeyValueArgItem("a,b", "x"),
        KeyValueArgItem("file", "a=b"),
        KeyValueArgItem("file", "c:\\x"),
    ],
)
def test_key_value_item_validation(item):
    with pytest.raises(ValueError):
        KeyValueArg("drive", [item])


def test_empty_string_value_rejected_at_encode():
    arg = StringArg("cdrom", "")
    with pytest.raises(ValueError, match="empty string value"):
        encode_arg(arg)


def test_encode_args_reports_index():
    with pytest.raises(ValueError, match="#1"):
        encode_args([StringArg("serial", "stdio"), StringArg("cpu", "")])


class _LyingArg(Arg):
    value_type = ArgAcceptedValue.STRING

    def __init__(self):
        super().__init__("cpu")
        self.value_type = ArgAcceptedValue.UINT

    def string_value(self):
        return "host"


def test_encode_revalidates_key_type():
    with pytest.raises(ValueError, match="bad arg value type"):
        encode_arg(_LyingArg())


def test_accepted_value_strings():
    assert ArgAcceptedValue.KEY_VALUE.value == "kv"
    assert UintArg("smp", 4).value_type is ArgAcceptedValue.UINT