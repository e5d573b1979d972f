"""
utils package for s2irun utility functions.
"""

from .naming import ImageNaming
from .fileio import atomic_write
from .logging_config import configure_logging, set_log_level
from .validation import (
    apply_default_pull_policies,
    normalize_and_validate,
    validate_config,
    validate_docker_image_name,
    validate_network_mode,
)

__all__ = [
    'ImageNaming',
    'atomic_write',
    'configure_logging',
    'set_log_level',
    'apply_default_pull_policies',
    'normalize_and_validate',
    'validate_config',
    'validate_docker_image_name',
    'validate_network_mode',
]
