"""
base.py

Common behaviour of the daemon-backed build strategies.
"""

import io
import json
import tarfile
import tempfile
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from docker.models.images import Image

from ..abstract_class import AbstractClass
from ..constants import (
    UPLOAD_DIR,
    UPLOAD_SOURCE_DIR,
    UPLOAD_SCRIPTS_DIR,
    WORKING_DIR_PREFIX,
    BUILD_IMAGE_LABEL,
    BUILD_COMMIT_LABEL,
    BUILD_SOURCE_LABEL,
    DESTINATION_LABEL,
    ASSEMBLE_USER_LABEL,
    DEFAULT_DESTINATION,
    DEFAULT_BUILD_USER,
)
from ..exceptions import StrategyError, SourceError, ScriptError
from ..models import BuildConfig, BuildResult, SourceInfo
from ..tools.docker_gateway import DockerGateway
from ..tools.source_manager import SourceManager
from .scripts import ScriptResolver


class StrategyKind(Enum):
    """The closed set of build strategies."""
    LAYERED = 'layered'
    ONBUILD = 'onbuild'
    DOCKERFILE = 'dockerfile'


class BuildStrategy(AbstractClass):
    """
    Base class for build strategies.

    Subclasses implement build(); messages appended through message() are
    returned in order as BuildResult.messages.
    """

    kind: StrategyKind

    def __init__(
        self,
        gateway: DockerGateway,
        builder_image: Optional[Image] = None,
        source_manager: Optional[SourceManager] = None,
        script_resolver: Optional[ScriptResolver] = None,
        logger=None
    ):
        super().__init__(logger)
        self.gateway = gateway
        self.builder_image = builder_image
        self.source_manager = source_manager or SourceManager(logger=logger)
        self.script_resolver = script_resolver or ScriptResolver(logger=logger)
        self.messages: List[str] = []

    def build(self, config: BuildConfig) -> BuildResult:
        raise NotImplementedError

    def message(self, text: str) -> None:
        """Record a progress message for the build result."""
        self.messages.append(text)
        self.print_info(text)

    def result(self, **kwargs) -> BuildResult:
        return BuildResult(success=True, messages=tuple(self.messages), **kwargs)

    # Working directory

    def prepare_working_dir(self, config: BuildConfig) -> Path:
        """Create the working directory with its upload/src and upload/scripts layout."""
        if config.working_dir:
            working_dir = Path(config.working_dir)
        else:
            working_dir = Path(tempfile.mkdtemp(prefix=f"{WORKING_DIR_PREFIX}-"))
            config.working_dir = str(working_dir)
        for sub in (UPLOAD_SOURCE_DIR, UPLOAD_SCRIPTS_DIR):
            (working_dir / UPLOAD_DIR / sub).mkdir(parents=True, exist_ok=True)
        self.logger.debug(f"Using working directory {working_dir}")
        return working_dir

    def prepare_source(self, config: BuildConfig, target_dir: Path) -> SourceInfo:
        """Fetch the resolved source into target_dir."""
        if config.source is None:
            raise SourceError("Source has not been resolved")
        info = self.source_manager.download(config.source, target_dir)
        if info.commit_id:
            self.message(f"Source {info.location or config.source.url} at commit {info.commit_id}")
        else:
            self.message(f"Source {config.source.url} prepared in {target_dir}")
        return info

    # Builder image metadata

    def builder_labels(self) -> Dict[str, str]:
        if self.builder_image is None:
            return {}
        return DockerGateway.image_labels(self.builder_image)

    def destination(self, config: BuildConfig) -> str:
        return (config.destination
                or self.builder_labels().get(DESTINATION_LABEL)
                or DEFAULT_DESTINATION).rstrip('/') or '/'

    def assemble_user(self, config: BuildConfig) -> str:
        user = config.assemble_user or self.builder_labels().get(ASSEMBLE_USER_LABEL)
        if not user and self.builder_image is not None:
            user = DockerGateway.image_user(self.builder_image)
        return user or DEFAULT_BUILD_USER

    def output_labels(self, config: BuildConfig, info: SourceInfo) -> Dict[str, str]:
        """Labels applied to the produced image."""
        labels = {BUILD_IMAGE_LABEL: config.builder_image}
        if info.commit_id:
            labels[BUILD_COMMIT_LABEL] = info.commit_id
        if config.source is not None:
            labels[BUILD_SOURCE_LABEL] = config.source.url
        labels.update(config.labels)
        return labels

    # Dockerfile helpers

    @staticmethod
    def label_instruction(labels: Dict[str, str]) -> str:
        pairs = ' '.join(f"{json.dumps(k)}={json.dumps(v)}" for k, v in sorted(labels.items()))
        return f"LABEL {pairs}"

    @staticmethod
    def env_instructions(environment: Dict[str, str]) -> List[str]:
        return [f"ENV {name}={json.dumps(value)}" for name, value in environment.items()]

    @staticmethod
    def owner(user: str) -> str:
        return user if ':' in user else f"{user}:0"

    @staticmethod
    def extract_tar(data: bytes, target_dir: Path) -> int:
        """Unpack a tar stream into target_dir; returns the number of members."""
        target_dir.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(fileobj=io.BytesIO(data)) as tar:
                members = tar.getmembers()
                tar.extractall(str(target_dir), filter='data')
        except (tarfile.TarError, OSError) as e:
            raise StrategyError(f"Failed to unpack archive into {target_dir}: {e}") from e
        return len(members)

    @staticmethod
    def tar_directory(directory: Path, arcname: str) -> bytes:
        """Pack directory into an in-memory tar under arcname."""
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode='w') as tar:
            tar.add(str(directory), arcname=arcname)
        return buffer.getvalue()

    # After the image exists

    def post_build(self, config: BuildConfig, image_name: str) -> None:
        """Push and/or run the produced image as configured."""
        if config.push_image and image_name:
            self.gateway.push_image(image_name, config.push_authentication)
            self.message(f"Pushed image {image_name}")

        if config.run_image and image_name:
            self.message(f"Running image {image_name}")
            container, status = self.gateway.run_container(image_name)
            self.gateway.remove_container(container)
            if status != 0:
                raise ScriptError(f"Image {image_name} exited with status {status}")
