import os
from typing import Optional, Tuple

from dotenv import load_dotenv

from ..abstract_class import AbstractClass
from ..constants import (
    PUSH_USERNAME_ENV,
    PUSH_PASSWORD_ENV,
    PULL_USERNAME_ENV,
    PULL_PASSWORD_ENV,
)
from ..models import AuthConfig, BuildConfig


class Authenticator(AbstractClass):
    """
    Fills registry credentials the config leaves empty from the environment.

    Values come from the process environment or a .env file, and the
    variables are removed from os.environ once read so that child processes
    (build scripts, the rootless builder) never inherit them.
    """

    def __init__(self, dotenvloc: str = '.', logger=None):
        super().__init__(logger)
        self.dotenvloc = dotenvloc
        self._push: Tuple[Optional[str], Optional[str]] = (None, None)
        self._pull: Tuple[Optional[str], Optional[str]] = (None, None)
        self._load_auth_from_env()

    def __enter__(self):
        """Context manager entry point."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit point - ensures credential cleanup."""
        self.cleanup()
        return False  # Don't suppress exceptions

    def cleanup(self):
        """Drop the credentials held in memory."""
        self._push = (None, None)
        self._pull = (None, None)
        self.logger.debug("Cleared authentication credentials from memory")

    def _load_auth_from_env(self):
        load_dotenv(os.path.join(self.dotenvloc, '.env'))

        self._push = (os.getenv(PUSH_USERNAME_ENV), os.getenv(PUSH_PASSWORD_ENV))
        self._pull = (os.getenv(PULL_USERNAME_ENV), os.getenv(PULL_PASSWORD_ENV))

        for var in (PUSH_USERNAME_ENV, PUSH_PASSWORD_ENV, PULL_USERNAME_ENV, PULL_PASSWORD_ENV):
            if os.environ.pop(var, None) is not None:
                self.logger.debug(f"Cleaned up environment variable: {var}")

    @staticmethod
    def _fill(auth: AuthConfig, username: Optional[str], password: Optional[str]) -> None:
        if not auth.username and username and password:
            auth.username = username
            auth.password = password

    def apply(self, config: BuildConfig) -> BuildConfig:
        """
        Fill empty push/pull credentials of config in place.

        Returns:
            The same config
        """
        self._fill(config.push_authentication, *self._push)
        self._fill(config.pull_authentication, *self._pull)
        return config
