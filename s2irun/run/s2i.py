"""
s2i.py

Build orchestrator and process entry point.

Every component raises typed S2IError subclasses; app() is the only place
that turns them into an exit status.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from ..builders import select_strategy, RootlessBuildExecutor
from ..constants import (
    CONFIG_ENV_VARIABLE,
    KANIKO_ENV_VARIABLE,
    LOG_LEVEL_ENV_VARIABLE,
)
from ..exceptions import ConfigError, S2IError
from ..models import BuildConfig, BuildResult
from ..tools.authenticator import Authenticator
from ..tools.docker_gateway import DockerGateway, DockerConfig
from ..tools.git import parse_source
from ..utils.logging_config import configure_logging
from ..utils.naming import ImageNaming
from ..utils.validation import validate_config


def describe_config(config: BuildConfig) -> str:
    """Human readable dump of the config with passwords masked."""
    return json.dumps(config.to_dict(), indent=2, sort_keys=True, default=str)


def load_config(path: str) -> BuildConfig:
    """
    Read the JSON build config.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed
    """
    if not path:
        raise ConfigError(f"{CONFIG_ENV_VARIABLE} is not set")
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigError(f"Config file does not exist, please check the path: {path}")
    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"There are some errors in config file {path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    return BuildConfig.from_dict(data)


def s2i(
    config: BuildConfig,
    gateway: Optional[DockerGateway] = None,
    logger: Optional[logging.Logger] = None
) -> BuildResult:
    """
    Run a daemon-backed build.

    Args:
        config: Build configuration with a resolved source
        gateway: Docker gateway (default: from DOCKER_* environment)
        logger: Logger handle passed to every collaborator

    Returns:
        BuildResult of the selected strategy

    Raises:
        ValidationError, DaemonError, PullError, StrategyError, SourceError
    """
    logger = logger or logging.getLogger('s2irun')
    validate_config(config)

    if gateway is None:
        gateway = DockerGateway(
            DockerConfig.from_env(),
            pull_auth=config.pull_authentication,
            push_auth=config.push_authentication,
            logger=logger,
        )
    gateway.check_reachable()

    logger.debug(f"\n{describe_config(config)}")

    builder, kind = select_strategy(gateway, config, logger=logger)
    logger.info(f"Using {kind.value} build strategy")

    try:
        result = builder.build(config)
    except S2IError:
        logger.error("Build failed")
        raise

    if config.as_dockerfile:
        logger.info(f"Application dockerfile generated in {config.as_dockerfile}")
    else:
        logger.info("Build completed successfully")

    for message in result.messages:
        logger.debug(message)
    return result


def app(logger: Optional[logging.Logger] = None) -> int:
    """
    Load the config from S2I_CONFIG_PATH and run one build.

    The rootless backend is used when KANIKO_EXEC_PATH names an existing
    file, the daemon-backed strategies otherwise.

    Returns:
        0 on success, 1 on any fatal error
    """
    if logger is None:
        level = os.getenv(LOG_LEVEL_ENV_VARIABLE, 'INFO')
        try:
            logger = configure_logging(level)
        except ValueError:
            logger = configure_logging('INFO')
            logger.warning(f"Invalid {LOG_LEVEL_ENV_VARIABLE} {level!r}, using INFO")

    try:
        config = load_config(os.getenv(CONFIG_ENV_VARIABLE, ''))
        with Authenticator(logger=logger) as authenticator:
            authenticator.apply(config)

        kaniko_path = os.getenv(KANIKO_ENV_VARIABLE, '')
        rootless = RootlessBuildExecutor.is_available(kaniko_path)

        validate_config(config, require_builder_image=not rootless, templated_tag=rootless)
        config.source = parse_source(config.source_url, config.is_binary_url)

        if rootless:
            logger.info(f"kaniko path: {kaniko_path}")
            result = RootlessBuildExecutor(kaniko_path, logger=logger).build(config)
            for message in result.messages:
                logger.debug(message)
            return 0
        if kaniko_path:
            logger.warning(f"{KANIKO_ENV_VARIABLE} is set to {kaniko_path!r} but no such file exists")

        if config.tag:
            config.tag = ImageNaming.complete_name(config.tag, config.push_authentication.server_address)
        s2i(config, logger=logger)
        return 0
    except S2IError as e:
        logger.error(f"Build failed, please check the error:\n{e}")
        return 1


def main():
    sys.exit(app())
