"""
source_manager.py

SourceManager places the application source into a build context directory.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import requests

from ..abstract_class import AbstractClass
from ..exceptions import SourceError
from ..models import SourceDescriptor, SourceInfo
from .git import Git, CloneConfig
from .rest_client import RestClient


class SourceManager(AbstractClass):
    """
    Manager for fetching source code into a build directory.

    Responsibilities:
    - Git cloning of remote and local repositories
    - Copying plain local directories
    - Downloading and unpacking binary archives
    - Narrowing the result to the in-repo context directory
    """

    def __init__(
        self,
        git: Optional[Git] = None,
        rest_client: Optional[RestClient] = None,
        logger=None
    ):
        super().__init__(logger)
        self.git = git or Git(logger=logger)
        self.rest_client = rest_client or RestClient(logger=logger)

    def download(self, source: SourceDescriptor, target_dir: Union[str, Path]) -> SourceInfo:
        """
        Fetch source into target_dir.

        When the descriptor names a context directory, only that
        sub-directory ends up in target_dir.

        Args:
            source: Parsed source descriptor
            target_dir: Directory that receives the application source

        Returns:
            Information about the fetched source

        Raises:
            SourceError: If the source cannot be fetched
        """
        target_dir = Path(target_dir)
        if target_dir.exists() and any(target_dir.iterdir()):
            raise SourceError(f"Target directory {target_dir} is not empty")

        if not source.context_dir:
            return self._fetch(source, target_dir)

        with tempfile.TemporaryDirectory(prefix='s2i-source-') as tmp:
            fetch_dir = Path(tmp) / 'source'
            info = self._fetch(source, fetch_dir)
            context_path = (fetch_dir / source.context_dir).resolve()
            if not context_path.is_relative_to(fetch_dir.resolve()):
                raise SourceError(f"Context directory {source.context_dir} escapes the source tree")
            if not context_path.is_dir():
                raise SourceError(f"Context directory {source.context_dir} not found in {source.url}")
            self._copy_tree(context_path, target_dir)

        info.context_dir = source.context_dir
        return info

    def _fetch(self, source: SourceDescriptor, target_dir: Path) -> SourceInfo:
        if source.is_binary:
            self._download_archive(source, target_dir)
            return SourceInfo(location=source.url)

        if source.is_local and not (Path(source.url) / '.git').exists():
            local = Path(source.url)
            if not local.is_dir():
                raise SourceError(f"Local source {source.url} is not a directory")
            self.print_info(f"Copying local source {local}")
            self._copy_tree(local, target_dir)
            return SourceInfo(location=str(local))

        target_dir.parent.mkdir(parents=True, exist_ok=True)
        self.git.clone(source, target_dir, CloneConfig(quiet=True, recursive=True))
        return self.git.get_info(target_dir)

    def _download_archive(self, source: SourceDescriptor, target_dir: Path) -> None:
        target_dir.mkdir(parents=True, exist_ok=True)
        if source.is_local:
            archive = Path(source.url)
            self._unpack(archive, target_dir)
            return

        name = Path(urlparse(source.url).path).name or 'source'
        with tempfile.TemporaryDirectory(prefix='s2i-archive-') as tmp:
            archive = Path(tmp) / name
            self.print_info(f"Downloading {source.url}")
            try:
                self.rest_client.download(source.url, str(archive))
            except requests.RequestException as e:
                raise SourceError(f"Failed to download {source.url}: {e}") from e
            self._unpack(archive, target_dir)

    def _unpack(self, archive: Path, target_dir: Path) -> None:
        if not self._is_archive(archive):
            self.print_warning(f"Unknown archive format {archive.name}, copying it as the only source file")
            try:
                shutil.copy2(archive, target_dir / archive.name)
            except OSError as e:
                raise SourceError(f"Failed to copy {archive}: {e}") from e
            return
        try:
            shutil.unpack_archive(str(archive), str(target_dir))
        except (OSError, ValueError) as e:
            raise SourceError(f"Failed to unpack {archive}: {e}") from e

    @staticmethod
    def _is_archive(archive: Path) -> bool:
        name = archive.name.lower()
        return any(
            name.endswith(ext)
            for _, extensions, _ in shutil.get_unpack_formats()
            for ext in extensions
        )

    @staticmethod
    def _copy_tree(src: Path, dst: Path) -> None:
        try:
            shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True,
                            ignore=shutil.ignore_patterns('.git'))
        except (OSError, shutil.Error) as e:
            raise SourceError(f"Failed to copy {src} to {dst}: {e}") from e
