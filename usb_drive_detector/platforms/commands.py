import subprocess
from typing import List

from ..core.logger import logger

DEFAULT_TIMEOUT = 10


def run_command(args: List[str], timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Run an external command and return its stdout.
    Raises OSError if it cannot be started and subprocess.SubprocessError
    (CalledProcessError / TimeoutExpired) if it fails.
    """
    logger.debug(f"Running: {' '.join(args)}")
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=True
    )
    return result.stdout


def describe_failure(error: BaseException) -> str:
    if isinstance(error, subprocess.CalledProcessError):
        stderr = (error.stderr or "").strip()
        return f"exit code {error.returncode}" + (f": {stderr}" if stderr else "")
    if isinstance(error, subprocess.TimeoutExpired):
        return f"timed out after {error.timeout} seconds"
    return str(error)
