"""
docker_gateway.py

DockerGateway wraps the Docker daemon client for the build strategies.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, List, Tuple, Type

import docker
import docker.errors
from docker.models.containers import Container
from docker.models.images import Image
from docker.tls import TLSConfig

from ..abstract_class import AbstractClass
from ..constants import (
    DEFAULT_DOCKER_SOCKET,
    DEFAULT_DOCKER_CLIENT_TIMEOUT,
    PULL_ALWAYS,
    PULL_NEVER,
    DOCKERFILE_NAME,
)
from ..exceptions import DaemonError, PullError, ScriptError, CommitError, StrategyError
from ..models import AuthConfig
from ..utils.naming import ImageNaming


@dataclass
class DockerConfig:
    """
    Connection settings for the Docker daemon.

    Attributes:
        endpoint: Daemon URL (unix://, tcp://)
        cert_file: Client certificate for TLS
        key_file: Client key for TLS
        ca_file: CA certificate for TLS verification
        tls_verify: Verify the daemon certificate
        timeout: Client timeout in seconds
    """
    endpoint: str = DEFAULT_DOCKER_SOCKET
    cert_file: str = ''
    key_file: str = ''
    ca_file: str = ''
    tls_verify: bool = False
    timeout: int = DEFAULT_DOCKER_CLIENT_TIMEOUT

    @classmethod
    def from_env(cls) -> 'DockerConfig':
        """Read DOCKER_HOST, DOCKER_CERT_PATH and DOCKER_TLS_VERIFY."""
        cert_path = os.getenv('DOCKER_CERT_PATH') or str(Path.home() / '.docker')
        return cls(
            endpoint=os.getenv('DOCKER_HOST') or DEFAULT_DOCKER_SOCKET,
            cert_file=os.path.join(cert_path, 'cert.pem'),
            key_file=os.path.join(cert_path, 'key.pem'),
            ca_file=os.path.join(cert_path, 'ca.pem'),
            tls_verify=bool(os.getenv('DOCKER_TLS_VERIFY')),
        )

    @property
    def use_tls(self) -> bool:
        return self.tls_verify or (
            self.endpoint.startswith('tcp://')
            and os.path.exists(self.cert_file)
            and os.path.exists(self.key_file)
        )


def _auth_dict(auth: Optional[AuthConfig]) -> Optional[Dict[str, str]]:
    if not auth or not auth.username:
        return None
    return {'username': auth.username, 'password': auth.password}


class DockerGateway(AbstractClass):
    """
    Gateway to the Docker daemon.

    Translates docker SDK failures into DaemonError or StrategyError subclasses.
    """

    def __init__(
        self,
        docker_config: Optional[DockerConfig] = None,
        pull_auth: Optional[AuthConfig] = None,
        push_auth: Optional[AuthConfig] = None,
        client: Optional[docker.DockerClient] = None,
        logger=None
    ):
        super().__init__(logger)
        self.docker_config = docker_config or DockerConfig.from_env()
        self.pull_auth = pull_auth or AuthConfig()
        self.push_auth = push_auth or AuthConfig()
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = self._new_client()
        return self._client

    def _new_client(self) -> docker.DockerClient:
        cfg = self.docker_config
        tls = None
        if cfg.use_tls:
            tls = TLSConfig(
                client_cert=(cfg.cert_file, cfg.key_file),
                ca_cert=cfg.ca_file if cfg.tls_verify else None,
                verify=cfg.tls_verify,
            )
        try:
            return docker.DockerClient(base_url=cfg.endpoint, tls=tls, timeout=cfg.timeout)
        except docker.errors.DockerException as e:
            raise DaemonError(f"Failed to create Docker client for {cfg.endpoint}: {e}") from e

    def check_reachable(self) -> None:
        """
        Ping the daemon.

        Raises:
            DaemonError: If the daemon does not answer
        """
        try:
            self.client.ping()
        except docker.errors.DockerException as e:
            raise DaemonError(
                f"Docker daemon at {self.docker_config.endpoint} is not reachable: {e}"
            ) from e
        self.logger.debug(f"Docker daemon at {self.docker_config.endpoint} is reachable")

    # Images

    def get_image(self, name: str) -> Optional[Image]:
        """Return the local image or None when it does not exist."""
        try:
            return self.client.images.get(name)
        except docker.errors.ImageNotFound:
            return None
        except docker.errors.APIError as e:
            raise DaemonError(f"Failed to inspect image {name}: {e}") from e

    def pull_image(self, name: str, policy: str, auth: Optional[AuthConfig] = None) -> Optional[Image]:
        """
        Obtain an image according to its pull policy.

        Args:
            name: Image reference
            policy: One of always / if-not-present / never
            auth: Credentials, defaults to the pull credentials

        Returns:
            The image, or None when policy is 'never' and it is not present

        Raises:
            PullError: If the pull fails
        """
        if policy != PULL_ALWAYS:
            image = self.get_image(name)
            if image is not None or policy == PULL_NEVER:
                return image

        repository, tag = ImageNaming.split_tag(name)
        self.cprint(f"Pulling image {name}", "light_blue")
        try:
            return self.client.images.pull(
                repository,
                tag=tag or None,
                auth_config=_auth_dict(auth or self.pull_auth),
            )
        except docker.errors.DockerException as e:
            raise PullError(f"Failed to pull image {name}: {e}") from e

    def require_image(self, name: str, policy: str, auth: Optional[AuthConfig] = None) -> Image:
        """Like pull_image but a missing image is a PullError."""
        image = self.pull_image(name, policy, auth)
        if image is None:
            raise PullError(f"Image {name} not found locally and pull policy is {policy!r}")
        return image

    @staticmethod
    def image_labels(image: Image) -> Dict[str, str]:
        return dict(image.labels or {})

    @staticmethod
    def onbuild_instructions(image: Image) -> List[str]:
        return list(image.attrs.get('Config', {}).get('OnBuild') or [])

    @staticmethod
    def image_user(image: Image) -> str:
        return image.attrs.get('Config', {}).get('User') or ''

    def build_image(
        self,
        context_dir: str,
        tag: Optional[str],
        dockerfile: str = DOCKERFILE_NAME,
        network_mode: Optional[str] = None,
        error_cls: Type[StrategyError] = StrategyError
    ) -> Image:
        """
        Build an image from a context directory.

        Raises:
            error_cls: If the build fails
        """
        self.cprint(f"Building image {tag} from {context_dir}", "light_blue")
        try:
            image, logs = self.client.images.build(
                path=context_dir,
                dockerfile=dockerfile,
                tag=tag,
                rm=True,
                forcerm=True,
                network_mode=network_mode or None,
            )
        except docker.errors.BuildError as e:
            for chunk in e.build_log:
                self._print_build_chunk(chunk)
            raise error_cls(f"Build of {tag} failed: {e.msg}") from e
        except docker.errors.APIError as e:
            raise error_cls(f"Build of {tag} failed: {e}") from e

        for chunk in logs:
            self._print_build_chunk(chunk)
        return image

    def _print_build_chunk(self, chunk: Dict) -> None:
        line = chunk.get('stream') or chunk.get('error') or ''
        if line.strip():
            self.cprint(line.rstrip(), "light_grey")

    def push_image(self, name: str, auth: Optional[AuthConfig] = None) -> None:
        """
        Push an image with the push credentials.

        Raises:
            StrategyError: If the registry rejects the push
        """
        repository, tag = ImageNaming.split_tag(name)
        self.cprint(f"Pushing image {name}", "light_blue")
        try:
            for chunk in self.client.images.push(
                repository,
                tag=tag or None,
                auth_config=_auth_dict(auth or self.push_auth),
                stream=True,
                decode=True,
            ):
                if 'error' in chunk:
                    raise StrategyError(f"Failed to push image {name}: {chunk['error']}")
        except docker.errors.APIError as e:
            raise StrategyError(f"Failed to push image {name}: {e}") from e

    def remove_image(self, name: str) -> None:
        """Remove an image, logging failures."""
        try:
            self.client.images.remove(name, force=True)
        except docker.errors.APIError as e:
            self.logger.warning(f"Failed to remove image {name}: {e}")

    # Containers

    def create_container(
        self,
        image: str,
        command: Optional[List[str]] = None,
        environment: Optional[Dict[str, str]] = None,
        user: Optional[str] = None,
        network_mode: Optional[str] = None,
        archives: Optional[List[Tuple[str, bytes]]] = None
    ) -> Container:
        """
        Create a container without starting it.

        Args:
            archives: (in-container directory, tar bytes) pairs unpacked before start

        Raises:
            ScriptError: If the container cannot be created
        """
        try:
            container = self.client.containers.create(
                image,
                command=command,
                environment=environment or None,
                user=user or None,
                network_mode=network_mode or None,
            )
            for path, data in archives or []:
                container.put_archive(path, data)
        except docker.errors.DockerException as e:
            raise ScriptError(f"Failed to create container from {image}: {e}") from e
        return container

    def run_container(
        self,
        image: str,
        command: Optional[List[str]] = None,
        environment: Optional[Dict[str, str]] = None,
        user: Optional[str] = None,
        network_mode: Optional[str] = None,
        stream_logs: bool = True,
        archives: Optional[List[Tuple[str, bytes]]] = None
    ) -> Tuple[Container, int]:
        """
        Start a container and wait for it to exit.

        The container is left in place so it can be committed or copied from;
        callers remove it with remove_container.

        Returns:
            Tuple of (container, exit status)

        Raises:
            ScriptError: If the container cannot be created or started
        """
        container = self.create_container(image, command, environment, user, network_mode, archives)
        try:
            container.start()
            if stream_logs:
                for chunk in container.logs(stream=True, follow=True):
                    self.cprint(chunk.decode('utf-8', errors='replace').rstrip(), "light_grey")
            status = container.wait().get('StatusCode', 1)
        except docker.errors.DockerException as e:
            self.remove_container(container)
            raise ScriptError(f"Container from {image} failed: {e}") from e
        return container, status

    def run_script(
        self,
        image: str,
        command: List[str],
        environment: Optional[Dict[str, str]] = None,
        user: Optional[str] = None,
        network_mode: Optional[str] = None
    ) -> Container:
        """
        Run a script container and require a zero exit status.

        Raises:
            ScriptError: If the script exits non-zero
        """
        container, status = self.run_container(image, command, environment, user, network_mode)
        if status != 0:
            self.remove_container(container)
            raise ScriptError(f"{' '.join(command)} in {image} exited with status {status}")
        return container

    def capture_output(
        self,
        image: str,
        command: List[str],
        user: Optional[str] = None,
        archives: Optional[List[Tuple[str, bytes]]] = None
    ) -> bytes:
        """
        Run a command and return its raw stdout, removing the container afterwards.

        Stdout is read from the attach stream, not the log driver, so binary
        output such as a tar stream arrives unchanged.

        Raises:
            ScriptError: If the command cannot run or exits non-zero
        """
        container = self.create_container(image, command, user=user, archives=archives)
        try:
            try:
                stream = self.client.api.attach(
                    container.id, stdout=True, stderr=False, stream=True, logs=True
                )
                container.start()
                data = b''.join(stream)
                status = container.wait().get('StatusCode', 1)
            except docker.errors.DockerException as e:
                raise ScriptError(f"{' '.join(command)} in {image} failed: {e}") from e
            if status != 0:
                raise ScriptError(f"{' '.join(command)} in {image} exited with status {status}")
            return data
        finally:
            self.remove_container(container)

    def commit_container(
        self,
        container: Container,
        name: str,
        changes: Optional[List[str]] = None,
        labels: Optional[Dict[str, str]] = None
    ) -> Image:
        """
        Commit a container as a new image.

        Raises:
            CommitError: If the commit fails
        """
        repository, tag = ImageNaming.split_tag(name) if name else (None, None)
        conf = {'Labels': labels} if labels else None
        try:
            return container.commit(
                repository=repository,
                tag=tag or None,
                changes=changes,
                conf=conf,
            )
        except docker.errors.APIError as e:
            raise CommitError(f"Failed to commit container as {name}: {e}") from e

    def copy_from_container(self, container: Container, path: str) -> bytes:
        """
        Read a path out of a container as a tar archive.

        Raises:
            StrategyError: If the path cannot be read
        """
        try:
            stream, _ = container.get_archive(path)
            return b''.join(stream)
        except docker.errors.APIError as e:
            raise StrategyError(f"Failed to copy {path} out of container: {e}") from e

    def remove_container(self, container: Container) -> None:
        """Remove a container, logging failures."""
        try:
            container.remove(force=True)
        except docker.errors.NotFound:
            pass
        except docker.errors.APIError as e:
            self.logger.warning(f"Failed to remove container {container.short_id}: {e}")
