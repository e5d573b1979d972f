"""
scripts.py

Resolution of the assemble/run/save-artifacts scripts used by a build.
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set
from urllib.parse import urlparse

import requests

from ..abstract_class import AbstractClass
from ..constants import (
    ASSEMBLE_SCRIPT,
    RUN_SCRIPT,
    SAVE_ARTIFACTS_SCRIPT,
    SCRIPTS_URL_LABEL,
    SOURCE_SCRIPTS_DIR,
    DEFAULT_SCRIPTS_URL,
    UPLOAD_SCRIPTS_DIR,
)
from ..exceptions import StrategyError
from ..tools.rest_client import RestClient

SCRIPT_NAMES = (ASSEMBLE_SCRIPT, RUN_SCRIPT, SAVE_ARTIFACTS_SCRIPT)


@dataclass
class ScriptLocations:
    """
    Where each script lives inside the build container.

    Attributes:
        paths: Script name -> absolute path inside the container
        uploaded: Names of scripts copied into the upload/scripts directory
    """
    paths: Dict[str, str] = field(default_factory=dict)
    uploaded: Set[str] = field(default_factory=set)

    def path(self, name: str) -> str:
        return self.paths[name]

    @property
    def has_uploads(self) -> bool:
        return bool(self.uploaded)


class ScriptResolver(AbstractClass):
    """
    Resolves each script independently, first match wins:

    1. scripts URL from the config
    2. .s2i/bin in the application source
    3. scripts URL label of the builder image
    4. the default in-image location

    ``image://`` URLs point inside the builder image, ``file://`` URLs to a
    local directory and ``http(s)://`` URLs are downloaded.
    """

    def __init__(self, rest_client: Optional[RestClient] = None, logger=None):
        super().__init__(logger)
        self.rest_client = rest_client or RestClient(logger=logger)

    def resolve(
        self,
        scripts_url: str,
        source_dir: Path,
        upload_dir: Path,
        image_labels: Dict[str, str],
        destination: str
    ) -> ScriptLocations:
        """
        Resolve script locations, copying found scripts into upload_dir.

        Args:
            scripts_url: Override from the config (may be empty)
            source_dir: Directory holding the application source
            upload_dir: Directory whose contents end up at <destination>/scripts
            image_labels: Labels of the builder image
            destination: In-image directory receiving uploads

        Returns:
            ScriptLocations
        """
        locations = ScriptLocations()
        uploaded_root = f"{destination.rstrip('/')}/{UPLOAD_SCRIPTS_DIR}"
        label_url = image_labels.get(SCRIPTS_URL_LABEL, '')

        for name in SCRIPT_NAMES:
            if scripts_url and self._try_url(scripts_url, name, upload_dir, locations, uploaded_root):
                continue
            if self._try_source(source_dir, name, upload_dir):
                locations.paths[name] = f"{uploaded_root}/{name}"
                locations.uploaded.add(name)
                continue
            if label_url and self._try_url(label_url, name, upload_dir, locations, uploaded_root):
                continue
            locations.paths[name] = self._image_path(DEFAULT_SCRIPTS_URL, name)

        for name, path in locations.paths.items():
            self.logger.debug(f"Using {name} script at {path}")
        return locations

    @staticmethod
    def _image_path(url: str, name: str) -> str:
        return f"{urlparse(url).path.rstrip('/')}/{name}"

    def _try_url(
        self,
        url: str,
        name: str,
        upload_dir: Path,
        locations: ScriptLocations,
        uploaded_root: str
    ) -> bool:
        scheme = urlparse(url).scheme
        if scheme == 'image':
            locations.paths[name] = self._image_path(url, name)
            return True
        if scheme == 'file':
            found = self._copy_script(Path(urlparse(url).path) / name, upload_dir / name)
        elif scheme in ('http', 'https'):
            found = self._download_script(f"{url.rstrip('/')}/{name}", upload_dir / name)
        else:
            raise StrategyError(f"Unsupported scripts URL {url!r}")

        if found:
            locations.paths[name] = f"{uploaded_root}/{name}"
            locations.uploaded.add(name)
        return found

    def _try_source(self, source_dir: Path, name: str, upload_dir: Path) -> bool:
        return self._copy_script(source_dir / SOURCE_SCRIPTS_DIR / name, upload_dir / name)

    def _copy_script(self, script: Path, target: Path) -> bool:
        if not script.is_file():
            return False
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(script, target)
        os.chmod(target, 0o755)
        self.logger.info(f"Using {script.name} script from {script.parent}")
        return True

    def _download_script(self, url: str, target: Path) -> bool:
        try:
            response = self.rest_client.get(url)
        except requests.RequestException as e:
            self.logger.warning(f"Failed to download {url}: {e}")
            return False
        if response.status_code != 200:
            self.logger.debug(f"{url} returned {response.status_code}")
            return False
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(response.content)
        os.chmod(target, 0o755)
        self.logger.info(f"Downloaded {target.name} script from {url}")
        return True
