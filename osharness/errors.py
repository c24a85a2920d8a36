"""Exceptions raised by the harness and by test bodies."""


class HarnessError(Exception):
    """Base class for harness errors."""


class DuplicateTestError(HarnessError):
    """Raised when a test name is registered twice."""


class TestNotFoundError(HarnessError):
    """Raised when a test name is not present in the registry."""

    __test__ = False


class ProvisioningError(HarnessError):
    """Raised by platform drivers when machines cannot be created."""


class CommandError(HarnessError):
    """Raised when a remote command exits with a non-zero status."""

    def __init__(
        self,
        command: str,
        exit_status: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = command
        self.exit_status = exit_status
        self.stdout = stdout
        self.stderr = stderr
        detail = stderr.strip() or stdout.strip()
        message = f"command {command!r} exited with status {exit_status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SSHTransportError(CommandError):
    """Raised when the SSH connection itself fails."""


class TestFailure(HarnessError):  # noqa: N818
    """Ends the current test or sub-test and marks it failed."""

    __test__ = False


class TestSkipped(HarnessError):  # noqa: N818
    """Ends the current test or sub-test and marks it skipped."""

    __test__ = False


class TestAborted(HarnessError):  # noqa: N818
    """Ends the whole test, failing the current node and all of its ancestors."""

    __test__ = False
