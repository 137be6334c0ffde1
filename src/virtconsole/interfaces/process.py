"""Running the external tools (qemu-img, virt-clone) the libvirt backend needs."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ProcessResult:
    """Exit status and output of one tool invocation."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    command: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def raise_for_status(self) -> "ProcessResult":
        """Raise RuntimeError with the tool's stderr on a non-zero exit."""
        if not self.success:
            tool = self.command[0] if self.command else "command"
            detail = (self.stderr or "").strip() or "no output"
            raise RuntimeError(f"{tool} exited with {self.returncode}: {detail}")
        return self


class ProcessRunner(ABC):
    """Runs a tool to completion; replaceable in tests."""

    @abstractmethod
    def run(
        self,
        command: List[str],
        capture_output: bool = True,
        timeout: Optional[int] = None,
        check: bool = True,
    ) -> ProcessResult:
        """Run ``command``; with ``check``, a failed exit raises RuntimeError."""
