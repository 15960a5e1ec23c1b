# linsk

Building blocks for reaching Linux-native file systems — including LVM and
LUKS — from operating systems that cannot read them directly, by way of a
small Alpine Linux virtual machine running under QEMU.

The package is a library. It provides the pieces needed to drive such a VM:
validated QEMU command-line arguments, VM configuration types, control of the
VM's serial console (logging in, bringing up an SSH server, scanning its host
key), SSH helpers, and downloads checked against a SHA-256 digest.

## Modules

| Module | Purpose |
| --- | --- |
| `linsk.qemucli` | Typed, validated QEMU arguments (`FlagArg`, `StringArg`, `UintArg`, `KeyValueArg`) and `encode_arg` / `encode_args`. |
| `linsk.vm.types` | VM configuration dataclasses (`Config`, `DriveConfig`, `TapConfig`, `PassthroughConfig`, …), `SSHUnavailableError` and `parse_port_forwarding_rule`. |
| `linsk.vm.serial` | `SerialConsole` for logging in and setting up SSH over the serial line; `parse_ssh_key_scan` and `KnownHostsPolicy` for host key checking. |
| `linsk.sshutil` | `generate_ssh_key`, `run_ssh_cmd`, `change_unix_pass`, `change_samba_pass` and the `TimedSession` context manager. |
| `linsk.download` | `download` and `copy_with_progress_and_hash`, with `HashMismatchError`. |
| `linsk.constants` | Program version, Alpine base image and aarch64 EFI firmware URLs, file names and hashes. |
| `linsk.utils` | Log trimming for error messages, device-name and Unix user-name validation, IPv6 checks. |

## Building QEMU arguments

Only a fixed set of QEMU options is accepted, each with a fixed kind of value,
and values may not contain commas, backslashes or equals signs. Breaking any
of these rules raises `ValueError` when the argument is created.

```python
from linsk.qemucli import KeyValueArg, KeyValueArgItem, StringArg, UintArg, encode_args

args = [
    StringArg("serial", "stdio"),
    UintArg("m", 512),
    KeyValueArg("accel", [KeyValueArgItem("kvm")]),
]
print(encode_args(args))
# ['-serial', 'stdio', '-m', '512', '-accel', 'kvm']
```

Values are shell-quoted on encoding.

## Port forwarding rules

```python
from linsk.vm.types import parse_port_forwarding_rule

rule = parse_port_forwarding_rule("127.0.0.1:8080:80")
# PortForwardingRule(host_port=8080, vm_port=80, host_ip=IPv4Address('127.0.0.1'))
```

Both `<HOST PORT>:<VM PORT>` and `<HOST IP>:<HOST PORT>:<VM PORT>` are
accepted; anything else raises `ValueError`.

## Setting up SSH over the serial console

`SerialConsole` wraps the binary streams connected to the VM's serial port.
Its `run_reader` method must run in its own thread; it splits the output into
lines and keeps only the most recent few.

```python
import threading

import paramiko

from linsk.sshutil import generate_ssh_key, run_ssh_cmd
from linsk.vm.serial import SerialConsole, parse_ssh_key_scan

console = SerialConsole(qemu.stdout, qemu.stdin)
threading.Thread(target=console.run_reader, daemon=True).start()

console.wait_for_login()
key, authorized_line = generate_ssh_key()
console.setup_ssh(authorized_line, install_ssh=False)
policy = parse_ssh_key_scan(console.scan_ssh_identity())

client = paramiko.SSHClient()
client.set_missing_host_key_policy(policy)
client.connect("localhost", port=ssh_port, username="root", pkey=key,
               look_for_keys=False, allow_agent=False)
print(run_ssh_cmd(client, "lsblk").decode())
```

`wait_for_login`, `setup_ssh` and `scan_ssh_identity` all take an optional
`threading.Event`; setting it aborts the wait. The SSH setup step times out
after 30 seconds and the key scan after 5.

`KnownHostsPolicy` accepts a host key only if it matches the scanned key of
the same type.

## SSH helpers

`run_ssh_cmd` runs one command and returns its standard output, raising an
error that includes the trimmed standard error if the command fails; it is
limited to 15 seconds. Password changes are limited to 10 seconds:

```python
from linsk.sshutil import change_samba_pass, change_unix_pass

password = "password"
change_unix_pass(client, "linsk", password)
change_samba_pass(client, "linsk", password)
```

The user name is validated first. For your own commands, `TimedSession` opens
a channel that is torn down when its timeout (started with `start_timeout`)
expires or the cancel event is set; leaving the `with` block then raises
`SSHTimeoutError`.

## Downloads

```python
import bz2

from linsk import constants
from linsk.download import download

download(
    constants.get_aarch64_efi_image_bz2_url(),
    constants.get_aarch64_efi_image_hash(),
    constants.get_aarch64_efi_image_name(),
    decompress=bz2.BZ2File,
)
```

The output file must not exist already; it is created read-only, and removed
again if the download or the hash check fails (`HashMismatchError`).

## What this package does not do

There is no command-line program. The package does not itself start, supervise
or stop a QEMU process, does not turn a `Config` into a full QEMU command
line, does not mount devices inside the VM or start FTP, SMB or AFP shares,
does not build or store VM images in a data directory, and does not create
host network tap interfaces. Those parts must be provided by the code that
uses these building blocks.