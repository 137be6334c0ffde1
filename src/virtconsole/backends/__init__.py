"""Concrete control-plane backends."""

from .libvirt_backend import LibvirtClient, LibvirtVirtualMachine
from .subprocess_runner import SubprocessRunner

__all__ = ["LibvirtClient", "LibvirtVirtualMachine", "SubprocessRunner"]
