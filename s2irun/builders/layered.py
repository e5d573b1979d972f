"""
layered.py

Layered build: sources and scripts are layered onto the builder image, the
assemble script runs in a container and the result is committed.
"""

import shutil
import uuid
from pathlib import Path
from typing import List

from docker.models.containers import Container
from docker.models.images import Image

from ..constants import (
    ASSEMBLE_SCRIPT,
    RUN_SCRIPT,
    SAVE_ARTIFACTS_SCRIPT,
    ASSEMBLE_INPUT_FILES_LABEL,
    DESTINATION_LABEL,
    DOCKERFILE_NAME,
    LAYERED_IMAGE_PREFIX,
    RUNTIME_DIR,
    UPLOAD_DIR,
    UPLOAD_SOURCE_DIR,
    UPLOAD_SCRIPTS_DIR,
    UPLOAD_ARTIFACTS_DIR,
)
from ..exceptions import PullError, ScriptError, StrategyError, CommitError
from ..models import BuildConfig, BuildResult, RuntimeArtifact
from ..tools.docker_gateway import DockerGateway
from .base import BuildStrategy, StrategyKind
from .scripts import ScriptLocations


class LayeredBuilder(BuildStrategy):
    """
    Builds an application image from a builder image without ONBUILD triggers.
    """

    kind = StrategyKind.LAYERED
    previous_image_id = None

    def build(self, config: BuildConfig) -> BuildResult:
        working_dir = self.prepare_working_dir(config)
        upload_dir = working_dir / UPLOAD_DIR
        source_dir = upload_dir / UPLOAD_SOURCE_DIR

        source_info = self.prepare_source(config, source_dir)

        if self.builder_image is None:
            self.builder_image = self.gateway.require_image(
                config.builder_image, config.builder_pull_policy, config.pull_authentication
            )

        destination = self.destination(config)
        user = self.assemble_user(config)
        scripts = self.script_resolver.resolve(
            config.scripts_url, source_dir, upload_dir / UPLOAD_SCRIPTS_DIR,
            self.builder_labels(), destination,
        )

        self.previous_image_id = None
        has_artifacts = False
        if config.incremental:
            has_artifacts = self.restore_artifacts(config, scripts, upload_dir / UPLOAD_ARTIFACTS_DIR, user)

        dockerfile = self.layer_dockerfile(config, scripts, destination, user, has_artifacts)
        (upload_dir / DOCKERFILE_NAME).write_text(dockerfile)

        temp_tag = f"{LAYERED_IMAGE_PREFIX}-{uuid.uuid4().hex[:12]}"
        self.gateway.build_image(str(upload_dir), temp_tag, network_mode=config.docker_network_mode)
        try:
            self.message(f"Running {ASSEMBLE_SCRIPT} in {config.builder_image}")
            container = self.gateway.run_script(
                temp_tag,
                [scripts.path(ASSEMBLE_SCRIPT)],
                environment=config.environment_dict(),
                user=user,
                network_mode=config.docker_network_mode,
            )
            try:
                labels = self.output_labels(config, source_info)
                if config.runtime_image:
                    image = self.build_runtime_image(config, container, working_dir / RUNTIME_DIR, labels)
                else:
                    image = self.gateway.commit_container(
                        container,
                        config.tag,
                        changes=[
                            f'CMD ["{scripts.path(RUN_SCRIPT)}"]',
                            f'USER {user}',
                        ],
                        labels=labels,
                    )
            finally:
                self.gateway.remove_container(container)
        finally:
            self.gateway.remove_image(temp_tag)

        self.message(f"Committed image {config.tag or image.short_id}")

        if config.incremental and config.remove_previous_image:
            self.remove_previous_image(config, image)

        self.post_build(config, config.tag)
        return self.result(image_id=image.id, image_name=config.tag, working_dir=str(working_dir))

    def layer_dockerfile(
        self,
        config: BuildConfig,
        scripts: ScriptLocations,
        destination: str,
        user: str,
        has_artifacts: bool
    ) -> str:
        """Dockerfile that copies sources, scripts and artifacts onto the builder image."""
        copied = []
        lines = [f"FROM {config.builder_image}", "USER root"]
        if scripts.has_uploads:
            lines.append(f"COPY {UPLOAD_SCRIPTS_DIR} {destination}/{UPLOAD_SCRIPTS_DIR}")
            copied.append(f"{destination}/{UPLOAD_SCRIPTS_DIR}")
        lines.append(f"COPY {UPLOAD_SOURCE_DIR} {destination}/{UPLOAD_SOURCE_DIR}")
        copied.append(f"{destination}/{UPLOAD_SOURCE_DIR}")
        if has_artifacts:
            lines.append(f"COPY {UPLOAD_ARTIFACTS_DIR} {destination}/{UPLOAD_ARTIFACTS_DIR}")
            copied.append(f"{destination}/{UPLOAD_ARTIFACTS_DIR}")
        lines.append(f"RUN chown -R {self.owner(user)} {' '.join(copied)}")
        lines.append(f"USER {user}")
        return '\n'.join(lines) + '\n'

    # Incremental builds

    def restore_artifacts(
        self,
        config: BuildConfig,
        scripts: ScriptLocations,
        artifacts_dir: Path,
        user: str
    ) -> bool:
        """
        Extract artifacts of the previous image into artifacts_dir.

        Returns:
            True if artifacts were restored; False means a clean build
        """
        previous = config.previous_image
        if not previous:
            self.message("No previous image name, performing a clean build")
            return False

        try:
            image = self.gateway.pull_image(
                previous, config.previous_image_pull_policy, config.pull_authentication
            )
        except PullError as e:
            self.message(f"Unable to pull previous image {previous}, performing a clean build: {e}")
            return False
        if image is None:
            self.message(f"Previous image {previous} not available, performing a clean build")
            return False
        self.previous_image_id = image.id

        archives = []
        if SAVE_ARTIFACTS_SCRIPT in scripts.uploaded:
            scripts_dir = artifacts_dir.parent / UPLOAD_SCRIPTS_DIR
            archives.append((
                self.destination(config),
                self.tar_directory(scripts_dir, UPLOAD_SCRIPTS_DIR),
            ))

        try:
            data = self.gateway.capture_output(
                previous, [scripts.path(SAVE_ARTIFACTS_SCRIPT)], user=user, archives=archives
            )
        except ScriptError as e:
            self.message(f"{SAVE_ARTIFACTS_SCRIPT} failed in {previous}, performing a clean build: {e}")
            return False

        if not data:
            self.message(f"{SAVE_ARTIFACTS_SCRIPT} produced no artifacts")
            return False

        try:
            count = self.extract_tar(data, artifacts_dir)
        except StrategyError as e:
            shutil.rmtree(artifacts_dir, ignore_errors=True)
            self.message(f"Unusable artifacts from {previous}, performing a clean build: {e}")
            return False
        self.message(f"Restored {count} artifacts from {previous}")
        return count > 0

    def remove_previous_image(self, config: BuildConfig, new_image: Image) -> None:
        """Remove the previous image by the id it had before the commit retagged it."""
        if self.previous_image_id and self.previous_image_id != new_image.id:
            self.gateway.remove_image(self.previous_image_id)
            self.message(f"Removed previous image {config.previous_image}")

    # Runtime image

    def runtime_artifacts(self, config: BuildConfig, runtime_image: Image) -> List[RuntimeArtifact]:
        """Artifacts from the config, else from the runtime image label 'src[:dest];...'."""
        if config.runtime_artifacts:
            return list(config.runtime_artifacts)
        declared = DockerGateway.image_labels(runtime_image).get(ASSEMBLE_INPUT_FILES_LABEL, '')
        artifacts = []
        for item in filter(None, (part.strip() for part in declared.split(';'))):
            source, _, destination = item.partition(':')
            artifacts.append(RuntimeArtifact(source=source, destination=destination))
        return artifacts

    def build_runtime_image(
        self,
        config: BuildConfig,
        container: Container,
        runtime_dir: Path,
        labels: dict
    ) -> Image:
        """
        Copy artifacts out of the assembled container into a runtime-based image.

        Raises:
            StrategyError: If no artifacts are declared
            CommitError: If the runtime image cannot be built
        """
        runtime_image = self.gateway.require_image(
            config.runtime_image, config.runtime_image_pull_policy, config.pull_authentication
        )
        artifacts = self.runtime_artifacts(config, runtime_image)
        if not artifacts:
            raise StrategyError(
                f"No runtime artifacts: set runtimeArtifacts or label {config.runtime_image} "
                f"with {ASSEMBLE_INPUT_FILES_LABEL}"
            )

        default_dest = (DockerGateway.image_labels(runtime_image).get(DESTINATION_LABEL)
                        or runtime_image.attrs.get('Config', {}).get('WorkingDir')
                        or self.destination(config))

        lines = [f"FROM {config.runtime_image}", self.label_instruction(labels)]
        lines.extend(self.env_instructions(config.environment_dict()))
        for index, artifact in enumerate(artifacts):
            data = self.gateway.copy_from_container(container, artifact.source)
            self.extract_tar(data, runtime_dir / UPLOAD_ARTIFACTS_DIR / str(index))
            target = artifact.destination or default_dest
            lines.append(f"COPY {UPLOAD_ARTIFACTS_DIR}/{index}/ {target.rstrip('/')}/")
        (runtime_dir / DOCKERFILE_NAME).write_text('\n'.join(lines) + '\n')

        self.message(f"Building runtime image from {config.runtime_image} with {len(artifacts)} artifacts")
        return self.gateway.build_image(
            str(runtime_dir), config.tag or None,
            network_mode=config.docker_network_mode, error_cls=CommitError,
        )
