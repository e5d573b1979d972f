"""
s2irun: Build container images from application source following source-to-image.
"""

# Core classes
from .run.s2i import app, s2i, load_config
from .builders import select_strategy, StrategyKind, RootlessBuildExecutor
from .models import BuildConfig, BuildResult, AuthConfig, SourceDescriptor, OutputResultInfo
from .exceptions import (
    S2IError,
    ConfigError,
    ValidationError,
    SourceError,
    DaemonError,
    StrategyError,
    PullError,
    ScriptError,
    CommitError,
    DockerfileWriteError,
    ExternalToolError,
    ReportingError,
)

__version__ = "0.1.0"

__all__ = [
    'app',
    's2i',
    'load_config',
    'select_strategy',
    'StrategyKind',
    'RootlessBuildExecutor',
    'BuildConfig',
    'BuildResult',
    'AuthConfig',
    'SourceDescriptor',
    'OutputResultInfo',
    'S2IError',
    'ConfigError',
    'ValidationError',
    'SourceError',
    'DaemonError',
    'StrategyError',
    'PullError',
    'ScriptError',
    'CommitError',
    'DockerfileWriteError',
    'ExternalToolError',
    'ReportingError',
]
