"""
dockerfile.py

Dockerfile generation: writes a Dockerfile and its upload tree instead of
building an image.
"""

from pathlib import Path
from typing import List

from ..constants import (
    ASSEMBLE_SCRIPT,
    RUN_SCRIPT,
    UPLOAD_DIR,
    UPLOAD_SOURCE_DIR,
    UPLOAD_SCRIPTS_DIR,
)
from ..exceptions import DockerfileWriteError
from ..models import BuildConfig, BuildResult, SourceInfo
from ..utils.fileio import atomic_write
from .base import BuildStrategy, StrategyKind
from .scripts import ScriptLocations


class DockerfileBuilder(BuildStrategy):
    """
    Emits a Dockerfile equivalent to a layered build.

    The upload/ tree (src and scripts) is created next to the Dockerfile so
    that the directory can be used as a docker build context as-is.
    """

    kind = StrategyKind.DOCKERFILE

    def build(self, config: BuildConfig) -> BuildResult:
        dockerfile_path = Path(config.as_dockerfile)
        context_dir = dockerfile_path.parent
        upload_dir = context_dir / UPLOAD_DIR
        source_dir = upload_dir / UPLOAD_SOURCE_DIR
        try:
            source_dir.mkdir(parents=True, exist_ok=True)
            (upload_dir / UPLOAD_SCRIPTS_DIR).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DockerfileWriteError(f"Cannot create {upload_dir}: {e}") from e

        if self.builder_image is None:
            # Labels are read from a local copy only; generating never pulls
            self.builder_image = self.gateway.get_image(config.builder_image)

        source_info = self.prepare_source(config, source_dir)
        if config.incremental:
            self.message("Incremental builds are ignored when generating a Dockerfile")

        destination = self.destination(config)
        user = self.assemble_user(config)
        scripts = self.script_resolver.resolve(
            config.scripts_url, source_dir, upload_dir / UPLOAD_SCRIPTS_DIR,
            self.builder_labels(), destination,
        )

        content = '\n'.join(self.dockerfile_lines(config, source_info, scripts, destination, user)) + '\n'
        try:
            with atomic_write(dockerfile_path) as f:
                f.write(content)
        except OSError as e:
            raise DockerfileWriteError(f"Failed to write {dockerfile_path}: {e}") from e

        self.message(f"Application dockerfile generated in {dockerfile_path}")
        return self.result(image_name=config.tag, working_dir=str(context_dir))

    def dockerfile_lines(
        self,
        config: BuildConfig,
        source_info: SourceInfo,
        scripts: ScriptLocations,
        destination: str,
        user: str
    ) -> List[str]:
        lines = [
            f"FROM {config.builder_image}",
            self.label_instruction(self.output_labels(config, source_info)),
        ]
        lines.extend(self.env_instructions(config.environment_dict()))
        lines.append("USER root")

        copied = []
        if scripts.has_uploads:
            lines.append(f"COPY {UPLOAD_DIR}/{UPLOAD_SCRIPTS_DIR} {destination}/{UPLOAD_SCRIPTS_DIR}")
            copied.append(f"{destination}/{UPLOAD_SCRIPTS_DIR}")
        lines.append(f"COPY {UPLOAD_DIR}/{UPLOAD_SOURCE_DIR} {destination}/{UPLOAD_SOURCE_DIR}")
        copied.append(f"{destination}/{UPLOAD_SOURCE_DIR}")

        lines.append(f"RUN chown -R {self.owner(user)} {' '.join(copied)}")
        lines.append(f"USER {user}")
        lines.append(f"RUN {scripts.path(ASSEMBLE_SCRIPT)}")
        lines.append(f"CMD {scripts.path(RUN_SCRIPT)}")
        return lines
