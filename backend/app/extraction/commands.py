"""Run external document-to-text tools on in-memory file content."""

import asyncio
import logging
import os
import shlex
import shutil
import tempfile

logger = logging.getLogger(__name__)


class CommandFailedError(Exception):
    """External tool exited non-zero or timed out."""


def split_command(command: str) -> list[str]:
    return shlex.split(command) if command else []


def command_available(command: str) -> bool:
    argv = split_command(command)
    return bool(argv) and shutil.which(argv[0]) is not None


async def run_command_on_bytes(
    command: str,
    data: bytes,
    *,
    suffix: str,
    timeout_s: float,
) -> str:
    """Write data to a temp file, run `command <path>` and return stdout.

    The temp file keeps the original suffix because most tools dispatch on it.

    Raises:
        CommandFailedError: Non-zero exit status or timeout
    """
    argv = split_command(command)
    fd, path = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)

        process = await asyncio.create_subprocess_exec(
            *argv,
            path,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_s)
        except TimeoutError as e:
            raise CommandFailedError(f"{argv[0]} timed out after {timeout_s}s") from e
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise CommandFailedError(f"{argv[0]} exited {process.returncode}: {message[:200]}")

        return stdout.decode("utf-8", errors="replace")
    finally:
        try:
            os.unlink(path)
        except OSError:
            logger.warning(f"Could not remove temp file {path}")
