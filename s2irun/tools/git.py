"""
git.py

Source locator parsing and Git operations.
"""

import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

# Silence git python warnings
os.environ["GIT_PYTHON_REFRESH"] = "quiet"
from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..abstract_class import AbstractClass
from ..exceptions import SourceError
from ..models import SourceDescriptor, SourceInfo

GIT_URL_SCHEMES = ('http', 'https', 'git', 'ssh', 'git+ssh', 'file')
BINARY_URL_SCHEMES = ('http', 'https', 'file')

# [user@]host:path, but not a Windows drive letter or a scheme URL
_SCP_PATTERN = re.compile(r'^(?:(?P<user>[^@/\s]+)@)?(?P<host>[^:/\s]{2,}):(?P<path>(?!//)[^\s]*)$')


def has_git_binary() -> bool:
    """Check whether a git executable is available on PATH."""
    return shutil.which('git') is not None


def _split_fragment(raw: str):
    """Split 'locator#ref:subdir' into its three parts."""
    locator, _, fragment = raw.partition('#')
    ref, _, context_dir = fragment.partition(':')
    return locator, ref, context_dir.strip('/')


def parse_source(raw_url: str, is_binary: bool = False) -> SourceDescriptor:
    """
    Parse a raw source locator.

    Accepts URLs (http, https, git, ssh, file), SCP-style references such as
    'git@github.com:org/repo.git' and local paths. An optional fragment
    '#<ref>' or '#<ref>:<subdir>' selects the ref and the in-repo context dir.

    Args:
        raw_url: Source locator from the config
        is_binary: True when the locator names an archive to download

    Returns:
        SourceDescriptor

    Raises:
        SourceError: If the locator cannot be interpreted
    """
    if not raw_url or not raw_url.strip():
        raise SourceError("InvalidSource: source URL is empty")
    if any(char in raw_url for char in ('\x00', '\n', '\r')):
        raise SourceError(f"InvalidSource: source URL contains control characters: {raw_url!r}")

    locator, ref, context_dir = _split_fragment(raw_url.strip())
    if not locator:
        raise SourceError(f"InvalidSource: no location in {raw_url!r}")

    parsed = urlparse(locator)
    if parsed.scheme and len(parsed.scheme) > 1 and '://' in locator:
        scheme = parsed.scheme.lower()
        allowed = BINARY_URL_SCHEMES if is_binary else GIT_URL_SCHEMES
        if scheme not in allowed:
            raise SourceError(f"InvalidSource: unsupported scheme {scheme!r} in {raw_url!r}")
        if scheme == 'file':
            if not parsed.path:
                raise SourceError(f"InvalidSource: file URL without path: {raw_url!r}")
            return SourceDescriptor(
                url=parsed.path, ref=ref, context_dir=context_dir,
                is_binary=is_binary, kind='file',
            )
        if not parsed.netloc:
            raise SourceError(f"InvalidSource: URL without host: {raw_url!r}")
        return SourceDescriptor(
            url=locator, ref=ref, context_dir=context_dir,
            is_binary=is_binary, kind='url',
        )

    if is_binary:
        if Path(locator).exists():
            return SourceDescriptor(url=locator, is_binary=True, kind='file')
        raise SourceError(f"InvalidSource: binary source must be a URL or an existing archive: {raw_url!r}")

    if _SCP_PATTERN.match(locator) and not Path(locator).exists():
        return SourceDescriptor(url=locator, ref=ref, context_dir=context_dir, kind='scp')

    return SourceDescriptor(url=locator, ref=ref, context_dir=context_dir, kind='file')


@dataclass
class CloneConfig:
    """Options for git clone."""
    quiet: bool = False
    recursive: bool = False


class Git(AbstractClass):
    """
    Git operations on a parsed source.

    Wraps GitPython; every git failure surfaces as SourceError.
    """

    def has_git_binary(self) -> bool:
        return has_git_binary()

    def clone(
        self,
        source: SourceDescriptor,
        target_dir: Union[str, Path],
        clone_config: Optional[CloneConfig] = None
    ) -> Repo:
        """
        Clone the source into target_dir and check out its ref.

        Args:
            source: Parsed source descriptor
            target_dir: Directory to clone into (may exist if empty)
            clone_config: Clone options

        Returns:
            The cloned repository

        Raises:
            SourceError: If git is missing or the clone/checkout fails
        """
        if not self.has_git_binary():
            raise SourceError("git executable not found in PATH")
        if clone_config is None:
            clone_config = CloneConfig()

        options = {}
        if clone_config.quiet:
            options['quiet'] = True
        if clone_config.recursive:
            options['recursive'] = True

        self.print_success(f"Cloning {source.url} into {target_dir}")
        try:
            repo = Repo.clone_from(source.url, str(target_dir), **options)
        except GitCommandError as e:
            raise SourceError(f"git clone of {source.url} failed: {e}") from e
        except (OSError, ValueError) as e:
            raise SourceError(f"System error during clone: {e}") from e

        if source.ref:
            self.checkout(target_dir, source.ref)
        return repo

    def checkout(self, repo_dir: Union[str, Path], ref: str) -> None:
        """
        Check out ref in an existing working copy.

        Raises:
            SourceError: If the checkout fails
        """
        self.cprint(f"Checking out {ref}", "cyan")
        try:
            Repo(str(repo_dir)).git.checkout(ref)
        except (GitCommandError, InvalidGitRepositoryError, NoSuchPathError) as e:
            raise SourceError(f"Checkout of {ref} in {repo_dir} failed: {e}") from e

    def get_info(self, repo_dir: Union[str, Path]) -> SourceInfo:
        """
        Read commit metadata from a working copy.

        Missing metadata is left empty; a directory that is not a git
        repository yields an empty SourceInfo.
        """
        info = SourceInfo()
        try:
            repo = Repo(str(repo_dir))
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            self.logger.warning(f"Cannot read source info from {repo_dir}: {e}")
            return info

        try:
            commit = repo.head.commit
            info.commit_id = commit.hexsha
            info.author = f"{commit.author.name} <{commit.author.email}>"
            info.date = commit.committed_datetime.isoformat()
            info.message = commit.message.strip()
        except (ValueError, GitCommandError) as e:
            self.logger.warning(f"Failed to read HEAD commit in {repo_dir}: {e}")

        try:
            info.ref = repo.active_branch.name
        except TypeError:
            # Detached HEAD
            info.ref = info.commit_id

        try:
            info.location = repo.remotes.origin.url
        except (AttributeError, IndexError, GitCommandError):
            info.location = ''

        return info
