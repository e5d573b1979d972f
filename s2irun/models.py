"""
models.py

Domain models for s2irun using dataclasses.
"""

from dataclasses import dataclass, field, fields, asdict
from typing import Optional, Dict, List, Tuple

from .constants import DEFAULT_DESTINATION, DEFAULT_IMAGE_TAG
from .exceptions import ConfigError, ReportingError


def _json(key: str, *aliases: str):
    """Field metadata naming the JSON key a field is read from."""
    return {'json': key, 'aliases': aliases}


@dataclass
class AuthConfig:
    """Registry credentials."""
    username: str = ''
    password: str = ''
    email: str = ''
    server_address: str = field(default='', metadata=_json('serverAddress'))

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'AuthConfig':
        return cls(**_decode_fields(cls, data or {}))

    def masked(self) -> 'AuthConfig':
        """Copy of the credentials with the password hidden."""
        return AuthConfig(
            username=self.username,
            password='********' if self.password else '',
            email=self.email,
            server_address=self.server_address,
        )


@dataclass
class EnvironmentVariable:
    """A name/value pair passed to build scripts."""
    name: str
    value: str = ''


@dataclass
class RuntimeArtifact:
    """A path copied out of the assembled image into the runtime image."""
    source: str
    destination: str = ''


@dataclass(frozen=True)
class SourceDescriptor:
    """
    Parsed source locator.

    Attributes:
        url: Repository URL, archive URL or local path
        ref: Branch, tag or commit to check out (empty for the default branch)
        context_dir: Sub-directory inside the source holding the application
        is_binary: True when the locator names a fetchable archive
        kind: One of 'url', 'file' or 'scp'
    """
    url: str
    ref: str = ''
    context_dir: str = ''
    is_binary: bool = False
    kind: str = 'url'

    @property
    def is_local(self) -> bool:
        return self.kind == 'file'

    def __str__(self) -> str:
        result = self.url
        if self.ref or self.context_dir:
            result += f"#{self.ref}"
        if self.context_dir:
            result += f":{self.context_dir}"
        return result


@dataclass
class SourceInfo:
    """Information about the checked-out source."""
    commit_id: str = ''
    ref: str = ''
    author: str = ''
    date: str = ''
    message: str = ''
    location: str = ''
    context_dir: str = ''


@dataclass
class BuildConfig:
    """
    Configuration for a single source-to-image build.

    Field metadata names the camelCase key used in the JSON config file.
    """
    source_url: str = field(default='', metadata=_json('sourceUrl'))
    is_binary_url: bool = field(default=False, metadata=_json('isBinaryURL'))
    tag: str = ''
    builder_image: str = field(default='', metadata=_json('builderImage'))
    runtime_image: str = field(default='', metadata=_json('runtimeImage'))
    as_dockerfile: str = field(default='', metadata=_json('asDockerfile', 'asDockerfilePath'))
    run_image: bool = field(default=False, metadata=_json('runImage'))
    incremental: bool = False
    incremental_from_tag: str = field(default='', metadata=_json('incrementalFromTag'))
    remove_previous_image: bool = field(default=False, metadata=_json('removePreviousImage'))
    builder_pull_policy: str = field(default='', metadata=_json('builderPullPolicy'))
    previous_image_pull_policy: str = field(default='', metadata=_json('previousImagePullPolicy'))
    runtime_image_pull_policy: str = field(default='', metadata=_json('runtimeImagePullPolicy'))
    push_authentication: AuthConfig = field(default_factory=AuthConfig, metadata=_json('pushAuthentication'))
    pull_authentication: AuthConfig = field(default_factory=AuthConfig, metadata=_json('pullAuthentication'))
    context_dir: str = field(default='', metadata=_json('contextDir'))
    working_dir: str = field(default='', metadata=_json('workingDir'))
    scripts_url: str = field(default='', metadata=_json('scriptsUrl'))
    destination: str = ''
    assemble_user: str = field(default='', metadata=_json('assembleUser'))
    environment: List[EnvironmentVariable] = field(default_factory=list)
    labels: Dict[str, str] = field(default_factory=dict)
    runtime_artifacts: List[RuntimeArtifact] = field(default_factory=list, metadata=_json('runtimeArtifacts'))
    docker_network_mode: str = field(default='', metadata=_json('dockerNetworkMode'))
    push_image: bool = field(default=False, metadata=_json('pushImage'))

    # Derived, never read from JSON
    source: Optional[SourceDescriptor] = field(default=None, metadata={'derived': True})

    @classmethod
    def from_dict(cls, data: Dict) -> 'BuildConfig':
        """
        Create a BuildConfig from a decoded JSON document.

        Args:
            data: Dictionary keyed by the camelCase JSON names

        Returns:
            BuildConfig instance

        Raises:
            ConfigError: If the document is not an object or a field has the wrong shape
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Config must be a JSON object, got {type(data).__name__}")

        values = _decode_fields(cls, data)
        try:
            values['push_authentication'] = AuthConfig.from_dict(values.get('push_authentication'))
            values['pull_authentication'] = AuthConfig.from_dict(values.get('pull_authentication'))
            values['environment'] = [
                EnvironmentVariable(**_decode_fields(EnvironmentVariable, e))
                for e in values.get('environment') or []
            ]
            values['runtime_artifacts'] = [
                RuntimeArtifact(**_decode_fields(RuntimeArtifact, a))
                for a in values.get('runtime_artifacts') or []
            ]
            values['labels'] = dict(values.get('labels') or {})
        except (TypeError, AttributeError, ValueError) as e:
            raise ConfigError(f"Invalid config structure: {e}") from e

        return cls(**values)

    @property
    def destination_dir(self) -> str:
        """In-image directory receiving sources and scripts."""
        return self.destination or DEFAULT_DESTINATION

    @property
    def previous_image(self) -> str:
        """Image whose artifacts an incremental build reuses."""
        return self.incremental_from_tag or self.tag

    def environment_dict(self) -> Dict[str, str]:
        return {e.name: e.value for e in self.environment}

    def to_dict(self) -> Dict:
        """Plain dictionary of the config with passwords masked."""
        data = asdict(self)
        data['push_authentication'] = asdict(self.push_authentication.masked())
        data['pull_authentication'] = asdict(self.pull_authentication.masked())
        data['source'] = str(self.source) if self.source else None
        return data


def _decode_fields(cls, data: Dict) -> Dict:
    """Map JSON keys of ``data`` onto dataclass field names of ``cls``."""
    values = {}
    for f in fields(cls):
        if f.metadata.get('derived'):
            continue
        keys = (f.metadata.get('json', f.name),) + tuple(f.metadata.get('aliases', ())) + (f.name,)
        for key in keys:
            if key in data:
                values[f.name] = data[key]
                break
    return values


@dataclass(frozen=True)
class BuildResult:
    """Outcome of one build attempt."""
    success: bool
    messages: Tuple[str, ...] = ()
    image_id: str = ''
    image_name: str = ''
    working_dir: str = ''


@dataclass
class TagInfo:
    """Registry-reported metadata about a tag. The default instance is the zero value."""
    created: str = ''
    size: int = 0
    digest: str = ''

    @classmethod
    def from_dict(cls, data: Dict) -> 'TagInfo':
        if not isinstance(data, dict):
            raise ReportingError(f"Tag info must be a JSON object, got {type(data).__name__}")
        return cls(
            created=str(data.get('created') or ''),
            size=int(data.get('size') or 0),
            digest=str(data.get('digest') or ''),
        )


@dataclass
class OutputResultInfo:
    """Record handed to the result sink after a rootless build."""
    image_name: str
    image_repo_tags: List[str] = field(default_factory=lambda: [DEFAULT_IMAGE_TAG])
    image_size: int = 0
    image_id: str = ''
    image_created: str = ''

    def to_dict(self) -> Dict:
        return {
            'imageName': self.image_name,
            'imageRepoTags': list(self.image_repo_tags),
            'imageSize': self.image_size,
            'imageID': self.image_id,
            'imageCreated': self.image_created,
        }
