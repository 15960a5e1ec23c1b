import pytest

from linsk import constants


def test_efi_image_name_matches_url():
    name = constants.get_aarch64_efi_image_name()
    assert name == "edk2-aarch64-code.fd"
    assert constants.get_aarch64_efi_image_bz2_url().endswith("/" + name + ".bz2")


def test_efi_hash_is_sha256_length():
    h = constants.get_aarch64_efi_image_hash()
    assert h.hex() == "f7f2c02853fda64cad31d4ab95ef636a7c50aac4829290e7b3a73b17d3483fc1"


def test_alpine_url_x86_64():
    assert constants.get_alpine_base_image_url("x86_64") == (
        "https://dl-cdn.alpinelinux.org/alpine/v3.18/releases/x86_64/"
        "alpine-virt-3.18.3-x86_64.iso"
    )


@pytest.mark.parametrize("arch", ["arm64", "aarch64", "AARCH64"])
def test_arm_names_map_to_aarch64(arch):
    assert constants.get_alpine_base_image_tags(arch).endswith("-aarch64")
    assert "/releases/aarch64/" in constants.get_alpine_base_image_url(arch)
    assert constants.get_alpine_base_image_hash(arch).hex() == (
        "c94593729e4577650d9e73ada28e3cbe56964ab2a27240364f8616e920ed6d4e"
    )


@pytest.mark.parametrize("arch", ["x86_64", "amd64", "riscv64"])
def test_other_names_map_to_x86_64(arch):
    assert constants.get_alpine_base_image_tags(arch).endswith("-x86_64")
    assert constants.get_alpine_base_image_hash(arch).hex() == (
        "925f6bc1039a0abcd0548d2c3054d54dce31cfa03c7eeba22d10d85dc5817c98"
    )


@pytest.mark.parametrize("arch", ["x86_64", "aarch64"])
def test_derived_names_are_consistent(arch):
    tags = constants.get_alpine_base_image_tags(arch)
    assert constants.get_vm_image_tags(arch) == tags + "-linsk" + constants.LINSK_VM_IMAGE_VERSION
    assert constants.get_alpine_base_image_file_name(arch) == "alpine-" + tags + ".img"
    assert constants.get_alpine_base_image_url(arch).endswith(f"alpine-virt-{tags}.iso")


def test_host_default_is_one_of_known_arches():
    assert constants.get_alpine_base_image_tags() in {
        constants.get_alpine_base_image_tags("x86_64"),
        constants.get_alpine_base_image_tags("aarch64"),
    }


def test_version():
    assert constants.VERSION.startswith("v")
    assert constants.VERSION == "v0.1.1"