from functools import wraps

import requests

from ..exceptions import ReportingError


def non_fatal_report(default_factory):
    """
    Turn reporting failures into a logged zero value.

    Transport errors, error statuses and undecodable payloads raised by the
    wrapped method are logged on ``self.logger`` and ``default_factory()`` is
    returned instead.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except requests.RequestException as e:
                self.logger.error(f"{func.__name__} request failed: {e}")
            except (ReportingError, ValueError, TypeError, KeyError) as e:
                self.logger.error(f"{func.__name__} could not decode response: {e}")
            return default_factory()
        return wrapper
    return decorator
