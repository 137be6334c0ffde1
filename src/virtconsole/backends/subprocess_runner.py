"""ProcessRunner backed by the subprocess module."""

import subprocess
from typing import List, Optional

from ..interfaces.process import ProcessResult, ProcessRunner
from ..logging import get_logger

log = get_logger(__name__)


class SubprocessRunner(ProcessRunner):
    def run(
        self,
        command: List[str],
        capture_output: bool = True,
        timeout: Optional[int] = None,
        check: bool = True,
    ) -> ProcessResult:
        log.debug("process.run", command=command[0], args=command[1:])
        try:
            completed = subprocess.run(
                command,
                capture_output=capture_output,
                timeout=timeout,
                check=False,
                text=True,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise RuntimeError(f"{command[0]} could not be run: {e}") from e

        result = ProcessResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            command=list(command),
        )
        if check:
            result.raise_for_status()
        return result
