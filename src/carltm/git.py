"""Git command runner used by the archival workflow."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from carltm.logs import get_logger
from carltm.recovery import ExternalCommandError

log = get_logger("git")


@dataclass
class GitResult:
    """Result of a git command."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out


async def run_git(
    args: Sequence[str],
    cwd: Path,
    timeout: Optional[float] = None,
) -> GitResult:
    """
    Run a git command.

    Args:
        args: Git command arguments (e.g., ["status", "--porcelain"])
        cwd: Working directory for the command
        timeout: Seconds to wait; None waits as long as git takes

    Returns:
        GitResult with returncode, stdout, stderr, and timed_out flag
    """
    cmd = ["git", "-C", str(cwd)] + list(args)
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return GitResult(returncode=-1, stdout="", stderr=f"Cannot run git: {e}")

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return GitResult(
            returncode=-1,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            timed_out=True,
        )

    return GitResult(
        returncode=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


class GitClient:
    """The handful of git operations archival needs, bound to one repository."""

    def __init__(self, cwd: Path, timeout: Optional[float] = None):
        self.cwd = Path(cwd)
        self.timeout = timeout

    async def run(self, args: List[str]) -> GitResult:
        log.debug(f"git {' '.join(args)}")
        return await run_git(args, self.cwd, self.timeout)

    async def check(self, args: List[str]) -> GitResult:
        """Run a command and raise ExternalCommandError when it fails."""
        result = await self.run(args)
        if not result.success:
            raise ExternalCommandError(args, result.returncode, result.stderr)
        return result

    async def stage(self, *paths: Union[Path, str]) -> GitResult:
        return await self.check(["add", "--"] + [str(p) for p in paths])

    async def has_staged_changes(self, *paths: Union[Path, str]) -> bool:
        # --quiet exits 1 when the index differs from HEAD
        result = await self.run(["diff", "--cached", "--quiet", "--"] + [str(p) for p in paths])
        if result.returncode not in (0, 1):
            raise ExternalCommandError(["diff", "--cached"], result.returncode, result.stderr)
        return result.returncode == 1

    async def commit(self, message: str) -> GitResult:
        return await self.check(["commit", "-m", message])

    async def move(self, source: Union[Path, str], destination: Union[Path, str]) -> GitResult:
        """Rename a tracked file, keeping its history."""
        return await self.check(["mv", str(source), str(destination)])

    async def reset_hard(self, commits: int) -> GitResult:
        return await self.check(["reset", "--hard", f"HEAD~{commits}"])

    async def unstage(self, *paths: Union[Path, str]) -> GitResult:
        return await self.check(["reset", "-q", "HEAD", "--"] + [str(p) for p in paths])
