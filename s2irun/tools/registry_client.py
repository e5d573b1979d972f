"""
registry_client.py

RegistryClient queries the target registry for metadata about a pushed tag.
"""

from typing import Optional

from ..abstract_class import AbstractClass
from ..constants import REGISTRY_TAG_API_PATH, REGISTRY_REQUEST_TIMEOUT
from ..models import AuthConfig, TagInfo
from ..utils.naming import ImageNaming
from .decorators import non_fatal_report
from .rest_client import RestClient


class RegistryClient(AbstractClass):
    """
    Client for the registry's repository API.

    Reporting happens after the image has been pushed, so lookups never raise:
    any failure is logged and the zero TagInfo is returned.
    """

    def __init__(
        self,
        auth: AuthConfig,
        rest_client: Optional[RestClient] = None,
        timeout: float = REGISTRY_REQUEST_TIMEOUT,
        logger=None
    ):
        """
        Initialize the registry client.

        Args:
            auth: Credentials and server address of the registry
            rest_client: Pre-built REST client (default: basic auth from ``auth``)
            timeout: Seconds to wait for each request
        """
        super().__init__(logger)
        self.auth = auth
        self.host = ImageNaming.strip_scheme(auth.server_address)
        self.rest_client = rest_client or RestClient(auth, timeout=timeout, logger=logger)

    def tag_url(self, image_name: str, tag: str) -> str:
        path = REGISTRY_TAG_API_PATH.format(image_name=image_name, tag=tag)
        return f"https://{self.host}{path}"

    @non_fatal_report(TagInfo)
    def get_tag_info(self, image_name: str, tag: str) -> TagInfo:
        """
        Fetch created/size/digest of a tag.

        Args:
            image_name: Repository path without registry host, e.g. 'alice/myapp'
            tag: Tag name

        Returns:
            TagInfo, zero-valued when the lookup fails
        """
        url = self.tag_url(image_name, tag)
        self.logger.debug(f"Querying tag info at {url}")
        response = self.rest_client.get(url)
        response.raise_for_status()
        tag_info = TagInfo.from_dict(response.json())
        self.logger.info(
            f"Tag {image_name}:{tag} digest={tag_info.digest} size={tag_info.size}"
        )
        return tag_info
