"""QEMU disk image management."""

from pathlib import Path

from ..interfaces.process import ProcessRunner


class QemuDiskManager:
    """Create and remove VM disks using qemu-img."""

    def __init__(self, runner: ProcessRunner):
        self.runner = runner

    def create_disk(self, path: Path, size_gb: int, format: str = "qcow2") -> Path:
        """Create a disk image."""
        if path.exists():
            raise FileExistsError(f"Disk image already exists: {path}")
        self.runner.run(["qemu-img", "create", "-f", format, str(path), f"{size_gb}G"])
        return path

    def delete_disk(self, path: Path) -> None:
        """Delete disk image."""
        if path.exists():
            path.unlink()
