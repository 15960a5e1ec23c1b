"""Building blocks for reaching Linux-native file systems through a QEMU-hosted Alpine Linux VM."""

__version__ = "0.1.1"