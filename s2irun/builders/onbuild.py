"""
onbuild.py

Onbuild build: the builder image's ONBUILD triggers do the work.
"""

from ..constants import (
    ASSEMBLE_SCRIPT,
    RUN_SCRIPT,
    SOURCE_SCRIPTS_DIR,
    UPLOAD_DIR,
    UPLOAD_SOURCE_DIR,
)
from ..exceptions import ScriptError
from ..models import BuildConfig, BuildResult
from ..tools.docker_gateway import DockerGateway
from .base import BuildStrategy, StrategyKind

ONBUILD_DOCKERFILE = 'Dockerfile.s2i-onbuild'


class OnBuildBuilder(BuildStrategy):
    """
    Builds the source directory with a Dockerfile that only names the builder.

    An assemble script shipped in the source runs after the triggers; a run
    script shipped in the source becomes the image command.
    """

    kind = StrategyKind.ONBUILD

    def build(self, config: BuildConfig) -> BuildResult:
        working_dir = self.prepare_working_dir(config)
        source_dir = working_dir / UPLOAD_DIR / UPLOAD_SOURCE_DIR
        source_info = self.prepare_source(config, source_dir)

        triggers = DockerGateway.onbuild_instructions(self.builder_image) if self.builder_image else []
        for trigger in triggers:
            self.logger.debug(f"ONBUILD {trigger}")

        lines = [
            f"FROM {config.builder_image}",
            self.label_instruction(self.output_labels(config, source_info)),
        ]
        lines.extend(self.env_instructions(config.environment_dict()))
        if (source_dir / SOURCE_SCRIPTS_DIR / ASSEMBLE_SCRIPT).is_file():
            lines.append(f"RUN ./{SOURCE_SCRIPTS_DIR}/{ASSEMBLE_SCRIPT}")
        if (source_dir / SOURCE_SCRIPTS_DIR / RUN_SCRIPT).is_file():
            lines.append(f'CMD ["./{SOURCE_SCRIPTS_DIR}/{RUN_SCRIPT}"]')
        (source_dir / ONBUILD_DOCKERFILE).write_text('\n'.join(lines) + '\n')

        self.message(f"Running {len(triggers)} ONBUILD instructions of {config.builder_image}")
        image = self.gateway.build_image(
            str(source_dir),
            config.tag or None,
            dockerfile=ONBUILD_DOCKERFILE,
            network_mode=config.docker_network_mode,
            error_cls=ScriptError,
        )
        self.message(f"Built image {config.tag or image.short_id}")

        self.post_build(config, config.tag)
        return self.result(image_id=image.id, image_name=config.tag, working_dir=str(working_dir))
