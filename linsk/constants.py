"""Fixed values: program version, base image and EFI firmware locations and hashes."""

from __future__ import annotations

import platform

VERSION = "v0.1.1"
LINSK_VM_IMAGE_VERSION = "1"

_AARCH64_EFI_IMAGE_BZ2_URL = (
    "https://github.com/qemu/qemu/raw/86305e864191123dcf87c3af639fddfc59352ac6"
    "/pc-bios/edk2-aarch64-code.fd.bz2"
)
_AARCH64_EFI_IMAGE_NAME = "edk2-aarch64-code.fd"
_AARCH64_EFI_IMAGE_HASH = bytes.fromhex(
    "f7f2c02853fda64cad31d4ab95ef636a7c50aac4829290e7b3a73b17d3483fc1"
)

_ALPINE_VERSION_MAJOR = "3.18"
_ALPINE_VERSION_MINOR = "3"
_ALPINE_VERSION = f"{_ALPINE_VERSION_MAJOR}.{_ALPINE_VERSION_MINOR}"

_ALPINE_HASHES = {
    "x86_64": bytes.fromhex(
        "925f6bc1039a0abcd0548d2c3054d54dce31cfa03c7eeba22d10d85dc5817c98"
    ),
    "aarch64": bytes.fromhex(
        "c94593729e4577650d9e73ada28e3cbe56964ab2a27240364f8616e920ed6d4e"
    ),
}


def _alpine_arch(arch: str | None) -> str:
    """Map a machine or architecture name to the Alpine release architecture."""
    if arch is None:
        arch = platform.machine()
    return "aarch64" if arch.lower() in ("arm64", "aarch64") else "x86_64"


def get_aarch64_efi_image_name() -> str:
    return _AARCH64_EFI_IMAGE_NAME


def get_aarch64_efi_image_bz2_url() -> str:
    return _AARCH64_EFI_IMAGE_BZ2_URL


def get_aarch64_efi_image_hash() -> bytes:
    """SHA-256 of the decompressed aarch64 EFI firmware image."""
    return _AARCH64_EFI_IMAGE_HASH


def get_alpine_base_image_url(arch: str | None = None) -> str:
    """Download URL of the Alpine base ISO; ``arch`` defaults to the host's."""
    a = _alpine_arch(arch)
    return (
        f"https://dl-cdn.alpinelinux.org/alpine/v{_ALPINE_VERSION_MAJOR}"
        f"/releases/{a}/alpine-virt-{_ALPINE_VERSION}-{a}.iso"
    )


def get_alpine_base_image_tags(arch: str | None = None) -> str:
    return f"{_ALPINE_VERSION}-{_alpine_arch(arch)}"


def get_vm_image_tags(arch: str | None = None) -> str:
    return get_alpine_base_image_tags(arch) + "-linsk" + LINSK_VM_IMAGE_VERSION


def get_alpine_base_image_file_name(arch: str | None = None) -> str:
    return "alpine-" + get_alpine_base_image_tags(arch) + ".img"


def get_alpine_base_image_hash(arch: str | None = None) -> bytes:
    """SHA-256 of the Alpine base ISO for the given architecture."""
    return _ALPINE_HASHES[_alpine_arch(arch)]