"""
Build strategies and their selection.
"""

from typing import Tuple

from ..exceptions import StrategyError
from ..models import BuildConfig
from ..tools.docker_gateway import DockerGateway
from .base import BuildStrategy, StrategyKind
from .layered import LayeredBuilder
from .onbuild import OnBuildBuilder
from .dockerfile import DockerfileBuilder
from .rootless import RootlessBuildExecutor

STRATEGIES = {
    StrategyKind.LAYERED: LayeredBuilder,
    StrategyKind.ONBUILD: OnBuildBuilder,
    StrategyKind.DOCKERFILE: DockerfileBuilder,
}


def select_strategy(
    gateway: DockerGateway,
    config: BuildConfig,
    logger=None
) -> Tuple[BuildStrategy, StrategyKind]:
    """
    Pick the build strategy for config.

    Dockerfile generation when asDockerfile is set; otherwise the builder
    image is obtained per its pull policy and an image with ONBUILD triggers
    selects the onbuild strategy, any other image the layered one.

    Raises:
        PullError: If the builder image cannot be obtained
        StrategyError: If no strategy applies
    """
    if config.as_dockerfile:
        kind = StrategyKind.DOCKERFILE
        image = None
    else:
        image = gateway.require_image(
            config.builder_image, config.builder_pull_policy, config.pull_authentication
        )
        if DockerGateway.onbuild_instructions(image):
            kind = StrategyKind.ONBUILD
        else:
            kind = StrategyKind.LAYERED

    strategy_cls = STRATEGIES.get(kind)
    if strategy_cls is None:
        raise StrategyError(f"No build strategy for {kind}")
    return strategy_cls(gateway, builder_image=image, logger=logger), kind


__all__ = [
    'BuildStrategy',
    'StrategyKind',
    'LayeredBuilder',
    'OnBuildBuilder',
    'DockerfileBuilder',
    'RootlessBuildExecutor',
    'STRATEGIES',
    'select_strategy',
]
