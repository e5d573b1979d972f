"""
rest_client.py

This module contains the RestClient class for making REST API calls.
"""

from typing import Optional

import requests
from requests.auth import HTTPBasicAuth

from ..abstract_class import AbstractClass
from ..constants import REGISTRY_REQUEST_TIMEOUT
from ..models import AuthConfig


class RestClient(AbstractClass):
    """
    RestClient

    A client for making REST API calls with basic authentication.

    Args:
        auth: Registry credentials used for basic authentication.
        timeout: Seconds to wait for each request.
    """
    def __init__(self, auth: Optional[AuthConfig] = None, timeout: float = REGISTRY_REQUEST_TIMEOUT, logger=None):
        super().__init__(logger)
        self.timeout = timeout
        self.session = requests.Session()
        if auth and auth.username:
            self.session.auth = HTTPBasicAuth(auth.username, auth.password)

    def get(self, url, **kwargs):
        """
        Perform a GET request.

        Args:
            url (str): URL for the GET request.

        Returns:
            Response: HTTP response object.
        """
        kwargs.setdefault('timeout', self.timeout)
        return self.session.get(url, **kwargs)

    def download(self, url, target):
        """
        Stream a URL into a local file.

        Args:
            url (str): URL to fetch.
            target (str): Destination file path.

        Raises:
            requests.RequestException: If the request fails or returns an error status.
        """
        with self.session.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            with open(target, 'wb') as f:
                for chunk in response.iter_content(chunk_size=65536):
                    f.write(chunk)
