"""
rootless.py

RootlessBuildExecutor builds and pushes the image with kaniko, without a
Docker daemon.
"""

import base64
import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

from ..abstract_class import AbstractClass
from ..constants import (
    KANIKO_DOCKER_CONFIG_DIR,
    DOCKER_CONFIG_FILE,
    DOCKERFILE_NAME,
)
from ..exceptions import SourceError, ExternalToolError
from ..models import AuthConfig, BuildConfig, BuildResult, OutputResultInfo
from ..tools.command_runner import CommandRunner, CommandOptions
from ..tools.git import Git, CloneConfig
from ..tools.registry_client import RegistryClient
from ..tools.result_sink import ResultSink, default_result_sink
from ..utils.fileio import atomic_write
from ..utils.naming import ImageNaming


class RootlessBuildExecutor(AbstractClass):
    """
    Daemon-less build backend.

    Clones the source into the context directory, renders the destination
    tag, writes registry credentials where kaniko looks for them, runs the
    kaniko executor and reports the pushed tag.
    """

    def __init__(
        self,
        executable: str,
        git: Optional[Git] = None,
        runner: Optional[CommandRunner] = None,
        result_sink: Optional[ResultSink] = None,
        registry_client_factory: Optional[Callable[[AuthConfig], RegistryClient]] = None,
        credentials_dir: str = KANIKO_DOCKER_CONFIG_DIR,
        clock: Callable[[], datetime] = datetime.now,
        timeout: Optional[float] = None,
        logger=None
    ):
        """
        Initialize the executor.

        Args:
            executable: Path of the kaniko executor
            git: Git helper (default: Git())
            runner: Process runner (default: CommandRunner())
            result_sink: Where the result record goes (default: from S2I_RESULT_PATH)
            registry_client_factory: Builds the registry client from push credentials
            credentials_dir: Directory receiving config.json
            clock: Source of the ${DATE} timestamp
            timeout: Seconds before the kaniko process is killed
        """
        super().__init__(logger)
        self.executable = executable
        self.git = git or Git(logger=logger)
        self.runner = runner or CommandRunner(logger=logger)
        self.result_sink = result_sink or default_result_sink(logger=logger)
        self.registry_client_factory = registry_client_factory or (
            lambda auth: RegistryClient(auth, logger=logger)
        )
        self.credentials_dir = Path(credentials_dir)
        self.clock = clock
        self.timeout = timeout

    @staticmethod
    def is_available(path: Optional[str]) -> bool:
        """True when path names an existing file."""
        return bool(path) and os.path.isfile(path)

    def build(self, config: BuildConfig) -> BuildResult:
        """
        Run the rootless build.

        Raises:
            SourceError: If git is missing or the clone fails
            ValidationError: If the rendered tag is not a valid image name
            ExternalToolError: If kaniko exits non-zero
        """
        if not self.git.has_git_binary():
            raise SourceError("git executable not found in PATH")
        if config.source is None:
            raise SourceError("Source has not been resolved")

        messages = []
        push_auth = config.push_authentication

        context_dir = Path(config.context_dir or tempfile.mkdtemp(prefix='s2i-context-'))
        try:
            context_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SourceError(f"Cannot create context directory {context_dir}: {e}") from e

        self.git.clone(config.source, context_dir, CloneConfig(quiet=False))
        source_info = self.git.get_info(context_dir)
        messages.append(f"Cloned {config.source.url} at commit {source_info.commit_id}")

        original_name = self.render_name(config.tag, source_info.commit_id, push_auth.username)
        destination = ImageNaming.complete_name(original_name, push_auth.server_address)
        config.tag = destination
        messages.append(f"Destination image {destination}")

        build_context = context_dir / config.source.context_dir if config.source.context_dir else context_dir
        registry_host = ImageNaming.strip_scheme(push_auth.server_address)

        if registry_host:
            self.write_docker_config(push_auth)

        args = [
            '--dockerfile', str(build_context / DOCKERFILE_NAME),
            '--context', str(build_context),
        ]
        if registry_host:
            args.extend(['--skip-tls-verify-registry', registry_host])
        args.extend(['--destination', destination])

        self.print_info(f"{self.executable} {' '.join(args)}")
        self.runner.run_with_options(CommandOptions(timeout=self.timeout), self.executable, *args)
        messages.append("Build completed successfully")
        self.print_success(f"Pushed {destination}")

        if registry_host:
            self.report(original_name, push_auth)

        return BuildResult(
            success=True,
            messages=tuple(messages),
            image_name=destination,
            working_dir=str(context_dir),
        )

    def render_name(self, template: str, commit_id: str, username: str) -> str:
        """Render ${DATE}/${COMMIT} and add the push user's namespace when missing."""
        name = ImageNaming.render_tag(template, commit_id, self.clock())
        qualified = ImageNaming.qualify_namespace(name, username)
        if qualified != name:
            self.logger.info(f"Image name {name} has no repository, adding username {username}")
        return qualified

    @staticmethod
    def docker_config(auth: AuthConfig) -> Dict:
        token = base64.b64encode(f"{auth.username}:{auth.password}".encode('utf-8')).decode('ascii')
        server = ImageNaming.strip_scheme(auth.server_address)
        return {"auths": {server: {"auth": token}}}

    def write_docker_config(self, auth: AuthConfig) -> Path:
        """
        Write registry credentials for kaniko.

        Returns:
            Path of the written config.json
        """
        path = self.credentials_dir / DOCKER_CONFIG_FILE
        try:
            with atomic_write(path, perms=0o600) as f:
                json.dump(self.docker_config(auth), f)
        except OSError as e:
            raise ExternalToolError(f"Failed to write registry credentials to {path}: {e}") from e
        self.logger.info(f"Wrote registry credentials for {auth.server_address} to {path}")
        return path

    def report(self, original_name: str, auth: AuthConfig) -> None:
        """Look up the pushed tag and record the result; never raises."""
        _, repository = ImageNaming.split_registry(original_name)
        image_name, tag = ImageNaming.split_tag(repository)
        tag_info = self.registry_client_factory(auth).get_tag_info(image_name, tag)
        self.result_sink.record(OutputResultInfo(
            image_name=image_name,
            image_repo_tags=[tag],
            image_size=tag_info.size,
            image_id=tag_info.digest,
            image_created=tag_info.created,
        ))
