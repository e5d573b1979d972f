"""
result_sink.py

Destinations for the result record of a completed build.
"""

import json
import os
from pathlib import Path
from typing import Union

from ..abstract_class import AbstractClass
from ..constants import RESULT_PATH_ENV_VARIABLE
from ..models import OutputResultInfo
from ..utils.fileio import atomic_write


class ResultSink(AbstractClass):
    """
    Base class for result sinks.

    record() must not raise: the build it describes has already succeeded.
    """

    def record(self, info: OutputResultInfo) -> bool:
        """
        Record the result.

        Returns:
            True if the record was stored
        """
        raise NotImplementedError


class LoggingResultSink(ResultSink):
    """Logs the result record."""

    def record(self, info: OutputResultInfo) -> bool:
        self.logger.info(f"Build result: {json.dumps(info.to_dict(), sort_keys=True)}")
        return True


class JsonFileResultSink(ResultSink):
    """Writes the result record as JSON for a downstream consumer to pick up."""

    def __init__(self, path: Union[str, Path], logger=None):
        super().__init__(logger)
        self.path = Path(path)

    def record(self, info: OutputResultInfo) -> bool:
        try:
            with atomic_write(self.path) as f:
                json.dump(info.to_dict(), f, indent=2, sort_keys=True)
        except OSError as e:
            self.logger.error(f"Failed to write build result to {self.path}: {e}")
            return False
        self.print_success(f"Build result written to {self.path}")
        return True


def default_result_sink(logger=None) -> ResultSink:
    """File sink when S2I_RESULT_PATH is set, logging sink otherwise."""
    path = os.getenv(RESULT_PATH_ENV_VARIABLE)
    if path:
        return JsonFileResultSink(path, logger=logger)
    return LoggingResultSink(logger=logger)
