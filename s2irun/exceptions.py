"""
exceptions.py

Custom exception hierarchy for s2irun.
"""


class S2IError(Exception):
    """Base exception for all s2irun errors."""
    pass


class ConfigError(S2IError):
    """Raised when the config file is missing, unreadable or malformed."""
    pass


class ValidationError(S2IError):
    """Raised when configuration validation fails."""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(''.join(f"ERROR: {e}\n" for e in self.errors).rstrip('\n'))


class SourceError(S2IError):
    """Raised when the source cannot be parsed, fetched or cloned."""
    pass


class DaemonError(S2IError):
    """Raised when the Docker daemon client cannot be built or reached."""
    pass


class StrategyError(S2IError):
    """Raised when a build strategy fails."""
    pass


class PullError(StrategyError):
    """Raised when an image cannot be pulled."""
    pass


class ScriptError(StrategyError):
    """Raised when a build script exits with a non-zero status."""
    pass


class CommitError(StrategyError):
    """Raised when the build container cannot be committed."""
    pass


class DockerfileWriteError(StrategyError):
    """Raised when the generated Dockerfile cannot be written."""
    pass


class ExternalToolError(S2IError):
    """Raised when an external process exits with a non-zero status."""
    pass


class ReportingError(S2IError):
    """Raised when registry metadata or result recording fails."""
    pass
