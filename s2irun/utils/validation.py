"""
validation.py

Normalization and validation of the build configuration.
"""

import re
from typing import List

from ..constants import (
    PULL_POLICIES,
    DEFAULT_BUILDER_PULL_POLICY,
    DEFAULT_PREVIOUS_IMAGE_PULL_POLICY,
    DEFAULT_RUNTIME_IMAGE_PULL_POLICY,
    DOCKER_NETWORK_MODES,
    DATE_PLACEHOLDER,
    COMMIT_PLACEHOLDER,
)
from ..exceptions import ValidationError
from ..models import BuildConfig

_IMAGE_NAME_PATTERN = re.compile(
    r'^(?:[a-z0-9]+(?:[._-][a-z0-9]+)*(?::[0-9]+)?/)?'      # optional registry host[:port]
    r'[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*'                # first path component
    r'(?:/[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*)*'          # remaining path components
    r'(?::[\w][\w.-]{0,127})?'                              # optional tag
    r'(?:@[a-z0-9]+:[a-f0-9]{32,})?$'                       # optional digest
)


def validate_docker_image_name(image_name: str) -> bool:
    """
    Validate a Docker image reference.

    Args:
        image_name: Docker image reference to validate

    Returns:
        True if valid, False otherwise

    Example:
        >>> validate_docker_image_name("registry.io:5000/team/app:v1")
        True
        >>> validate_docker_image_name("invalid image name!")
        False
    """
    if not image_name or not isinstance(image_name, str):
        return False
    return bool(_IMAGE_NAME_PATTERN.match(image_name))


def validate_network_mode(mode: str) -> bool:
    """Network mode must be empty, a built-in mode or 'container:<name>'."""
    if not mode:
        return True
    if mode in DOCKER_NETWORK_MODES:
        return True
    return mode.startswith('container:') and len(mode) > len('container:')


def apply_default_pull_policies(config: BuildConfig) -> None:
    """Fill each pull policy left empty with its default."""
    if not config.builder_pull_policy:
        config.builder_pull_policy = DEFAULT_BUILDER_PULL_POLICY
    if not config.previous_image_pull_policy:
        config.previous_image_pull_policy = DEFAULT_PREVIOUS_IMAGE_PULL_POLICY
    if not config.runtime_image_pull_policy:
        config.runtime_image_pull_policy = DEFAULT_RUNTIME_IMAGE_PULL_POLICY


def normalize_and_validate(
    config: BuildConfig,
    require_builder_image: bool = True,
    templated_tag: bool = False
) -> List[str]:
    """
    Apply default pull policies and collect every validation error.

    Checks are evaluated eagerly; the caller decides what to do with the list.

    Args:
        config: Build configuration, modified in place
        require_builder_image: False for the rootless backend, which builds
            from the source's own Dockerfile
        templated_tag: True when ${DATE}/${COMMIT} in the tag are rendered later

    Returns:
        List of error messages (empty when the config is valid)
    """
    apply_default_pull_policies(config)
    errors: List[str] = []

    if config.as_dockerfile:
        if config.run_image:
            errors.append("--run cannot be used with --as-dockerfile")
        if config.runtime_image:
            errors.append("--runtime-image cannot be used with --as-dockerfile")
    if config.incremental and config.runtime_image:
        errors.append("Incremental build with runtime image isn't supported")

    errors.extend(_structural_errors(config, require_builder_image, templated_tag))
    return errors


def _structural_errors(config: BuildConfig, require_builder_image: bool, templated_tag: bool) -> List[str]:
    errors = []

    if require_builder_image and not config.builder_image:
        errors.append("builderImage is required")

    for name, value in (
        ('builderPullPolicy', config.builder_pull_policy),
        ('previousImagePullPolicy', config.previous_image_pull_policy),
        ('runtimeImagePullPolicy', config.runtime_image_pull_policy),
    ):
        if value not in PULL_POLICIES:
            errors.append(
                f"invalid {name} {value!r}, must be one of {', '.join(PULL_POLICIES)}"
            )

    if config.tag:
        probe = config.tag
        if templated_tag:
            # Placeholders are rendered later; check the shape around them
            probe = probe.replace(DATE_PLACEHOLDER, '0').replace(COMMIT_PLACEHOLDER, '0')
        if not validate_docker_image_name(probe):
            errors.append(f"invalid tag {config.tag!r}")

    if not validate_network_mode(config.docker_network_mode):
        errors.append(f"invalid dockerNetworkMode {config.docker_network_mode!r}")

    for key in config.labels:
        if not key or not key.strip():
            errors.append("label key cannot be empty")

    for env in config.environment:
        if not env.name:
            errors.append("environment variable name cannot be empty")

    return errors


def validate_config(
    config: BuildConfig,
    require_builder_image: bool = True,
    templated_tag: bool = False
) -> None:
    """
    Normalize and validate, raising one aggregated error.

    Raises:
        ValidationError: If any rule is violated
    """
    errors = normalize_and_validate(config, require_builder_image, templated_tag)
    if errors:
        raise ValidationError(errors)
