"""Exceptions raised by the start wizard."""


class StartWizardError(Exception):
    """Base exception for every fatal start-wizard condition."""

    pass


class ConfigError(StartWizardError):
    """Raised when the wizard config, CLI args or product options are invalid."""

    pass


class RunAborted(StartWizardError):
    """Raised when the run must stop: the user declined or a precondition failed."""

    pass


class PortStillInUseError(RunAborted):
    """Raised when a port is still occupied after kill attempts."""

    def __init__(self, port: int):
        super().__init__(f"Port {port} is still in use after kill attempts.")
        self.port = port


class StackNotReadyError(RunAborted):
    """Raised when local stack ports did not open after the stack was started."""

    def __init__(self, ports: list[int], timeout_ms: int):
        joined = ", ".join(str(p) for p in ports)
        super().__init__(
            f"Local stack did not come up within {timeout_ms}ms (ports not open: {joined})."
        )
        self.ports = ports


class PromptUnavailableError(StartWizardError):
    """Raised when an interactive prompt is requested without a TTY."""

    pass


class InvalidInputError(StartWizardError):
    """Raised when a programmatic (non-interactive) value fails validation."""

    pass


class CommandError(StartWizardError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, command: list[str], returncode: int | None):
        status = "unknown" if returncode is None else returncode
        super().__init__(f"Command failed: {' '.join(command)} (exit {status})")
        self.command = command
        self.returncode = returncode
