"""
CommandResult — what came back from one external command.

Transports return this for every command that reached the host,
whatever its exit code. Only an unreachable host raises.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Exit code reported for a command killed by its timeout (same as coreutils `timeout`)
TIMEOUT_EXIT_CODE = 124

# Exit code reported when the binary does not exist (same as a POSIX shell)
NOT_FOUND_EXIT_CODE = 127


class CommandResult(BaseModel):
    """Captured outcome of a command invocation."""

    argv: list[str] = Field(default_factory=list)
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        """Whether the command exited 0 within its timeout."""
        return self.exit_code == 0 and not self.timed_out

    @property
    def stdout_lines(self) -> list[str]:
        return self.stdout.splitlines()

    @property
    def command(self) -> str:
        return " ".join(self.argv)

    def describe_failure(self) -> str:
        """One-line explanation of why the command did not succeed."""
        if self.timed_out:
            return f"'{self.command}' timed out"
        message = self.stderr.strip().splitlines()[-1] if self.stderr.strip() else ""
        if message:
            return f"'{self.command}' exited {self.exit_code}: {message}"
        return f"'{self.command}' exited {self.exit_code}"

    @classmethod
    def timeout(cls, argv: list[str], timeout: float, duration_ms: int = 0) -> CommandResult:
        return cls(
            argv=argv,
            exit_code=TIMEOUT_EXIT_CODE,
            stderr=f"timed out after {timeout:g}s",
            duration_ms=duration_ms,
            timed_out=True,
        )
