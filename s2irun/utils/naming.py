"""
naming.py

Image naming utilities: tag templating, namespace qualification and
registry-qualified references.
"""

from datetime import datetime
from typing import Optional, Tuple

from ..constants import (
    DATE_PLACEHOLDER,
    COMMIT_PLACEHOLDER,
    DATE_FORMAT,
    COMMIT_ID_LENGTH,
    DEFAULT_IMAGE_TAG,
)
from ..exceptions import ValidationError
from .validation import validate_docker_image_name


class ImageNaming:
    """
    Utilities for turning a raw tag template into a fully qualified image name.
    """

    @staticmethod
    def truncate_commit(commit_id: str) -> str:
        """
        Shorten a commit id to its first 8 characters.

        Example:
            >>> ImageNaming.truncate_commit('abcdef1234567')
            'abcdef12'
            >>> ImageNaming.truncate_commit('abc')
            'abc'
        """
        return commit_id[:COMMIT_ID_LENGTH]

    @staticmethod
    def render_tag(template: str, commit_id: str = '', now: Optional[datetime] = None) -> str:
        """
        Replace every ${DATE} and ${COMMIT} placeholder.

        Args:
            template: Raw tag, possibly containing placeholders
            commit_id: Full commit id of the built source
            now: Timestamp to render (default: current local time)

        Returns:
            Rendered tag

        Example:
            >>> ImageNaming.render_tag('${DATE}-${COMMIT}', 'abcdef1234567',
            ...                        datetime(2024, 5, 1))
            '20240501000000-abcdef12'
        """
        if now is None:
            now = datetime.now()
        rendered = template.replace(DATE_PLACEHOLDER, now.strftime(DATE_FORMAT))
        return rendered.replace(COMMIT_PLACEHOLDER, ImageNaming.truncate_commit(commit_id))

    @staticmethod
    def qualify_namespace(tag: str, username: str) -> str:
        """
        Prefix a tag without repository namespace with the push username.

        Example:
            >>> ImageNaming.qualify_namespace('myapp', 'alice')
            'alice/myapp'
            >>> ImageNaming.qualify_namespace('team/myapp', 'alice')
            'team/myapp'
        """
        if '/' in tag:
            return tag
        return f"{username}/{tag}"

    @staticmethod
    def split_registry(name: str) -> Tuple[str, str]:
        """
        Split a reference into (registry, remainder).

        The first component is a registry when it contains '.' or ':' or is
        'localhost'.
        """
        if '/' not in name:
            return '', name
        first, rest = name.split('/', 1)
        if '.' in first or ':' in first or first == 'localhost':
            return first, rest
        return '', name

    @staticmethod
    def split_tag(name: str) -> Tuple[str, str]:
        """
        Split a reference into (repository, tag).

        The tag defaults to 'latest'; a digest reference keeps its digest in
        the repository part.

        Example:
            >>> ImageNaming.split_tag('registry.io:5000/team/app:v1')
            ('registry.io:5000/team/app', 'v1')
        """
        if '@' in name:
            return name, ''
        last_slash = name.rfind('/')
        colon = name.rfind(':')
        if colon > last_slash:
            return name[:colon], name[colon + 1:]
        return name, DEFAULT_IMAGE_TAG

    @staticmethod
    def strip_scheme(server_address: str) -> str:
        """Drop an http(s):// prefix and trailing slash from a registry address."""
        for scheme in ('https://', 'http://'):
            if server_address.startswith(scheme):
                server_address = server_address[len(scheme):]
        return server_address.rstrip('/')

    @staticmethod
    def complete_name(name: str, server_address: str = '') -> str:
        """
        Build a fully qualified image reference.

        Prefixes the registry host when the reference names none and adds the
        'latest' tag when no tag or digest is given.

        Args:
            name: Image reference, e.g. 'alice/myapp:v1'
            server_address: Registry host used when the reference has none

        Returns:
            Fully qualified reference, e.g. 'registry.io/alice/myapp:v1'

        Raises:
            ValidationError: If the reference is not a valid image name
        """
        registry, _ = ImageNaming.split_registry(name)
        host = ImageNaming.strip_scheme(server_address)
        if not registry and host:
            name = f"{host}/{name}"

        repository, tag = ImageNaming.split_tag(name)
        if tag:
            name = f"{repository}:{tag}"

        if not validate_docker_image_name(name):
            raise ValidationError(f"invalid image name {name!r}")
        return name
