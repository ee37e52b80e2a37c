"""
Request/response/error logging sinks for the gateway.

The gateway only talks to the narrow ``RequestLogger`` interface, so
callers can route events to an audit store, a metrics pipeline, or nowhere.
"""

import logging
from abc import ABC, abstractmethod

from agentrail.gateway.models import ErrorLog, RequestLog, ResponseLog


class RequestLogger(ABC):
    """Receives one event per attempt lifecycle stage."""

    @abstractmethod
    def log_request(self, entry: RequestLog) -> None:
        pass

    @abstractmethod
    def log_response(self, entry: ResponseLog) -> None:
        pass

    @abstractmethod
    def log_error(self, entry: ErrorLog) -> None:
        pass


class JsonRequestLogger(RequestLogger):
    """
    Writes each event as one JSON line through the standard logging module.

    Requests and responses go out at INFO, errors at ERROR, so the usual
    log level configuration decides what is shown.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("agentrail.gateway")

    def log_request(self, entry: RequestLog) -> None:
        self._logger.info(entry.model_dump_json(exclude_none=True))

    def log_response(self, entry: ResponseLog) -> None:
        self._logger.info(entry.model_dump_json(exclude_none=True))

    def log_error(self, entry: ErrorLog) -> None:
        self._logger.error(entry.model_dump_json(exclude_none=True))


class NullRequestLogger(RequestLogger):
    """Discards every event."""

    def log_request(self, entry: RequestLog) -> None:
        pass

    def log_response(self, entry: ResponseLog) -> None:
        pass

    def log_error(self, entry: ErrorLog) -> None:
        pass
