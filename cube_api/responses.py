"""
Response writer

Every request ends with exactly one `Envelope`, turned into a Flask response
by `Responder.write()`. Two body shapes exist and callers rely on both:

    {"result": "User created"}          status-only responses
    {"id": 1, "name": "Jane", ...}      data responses (entity or list)

Each written envelope also appends one line to `success.log` or `error.log`.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from flask import Response, has_request_context, jsonify, request

from .errors import ApiError, MethodNotAllowedError


@dataclass(frozen=True)
class Envelope:
    status: int
    body: Any = None
    is_data: bool = False
    message: str = ''
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.status >= 400

    def payload(self) -> Optional[Any]:
        if self.status == 204:
            return None
        if self.is_data:
            return self.body
        return {'result': self.body}


class RequestLog:
    """
    Append-only success / error sinks

    Lines look like:
        2024-05-01 10:00:00 - /api/v1/users - POST - - curl/8.0 - 127.0.0.1 - User created
    """

    def __init__(self, log_dir: str):
        os.makedirs(log_dir, exist_ok=True)
        self.log_dir = log_dir
        self.success = self._file_logger('cube_api.requests.success', 'success.log')
        self.error = self._file_logger('cube_api.requests.error', 'error.log')

    def _file_logger(self, name: str, filename: str) -> logging.Logger:
        # Not registered with logging.getLogger: each app owns its sinks
        logger = logging.Logger(name, level=logging.INFO)
        handler = logging.FileHandler(os.path.join(self.log_dir, filename), mode='a', encoding='utf-8')
        handler.setFormatter(logging.Formatter('%(asctime)s - %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(handler)
        return logger

    @staticmethod
    def context() -> str:
        if not has_request_context():
            return ''
        parts = [
            request.full_path.rstrip('?'),
            request.method,
            request.referrer or '',
            request.user_agent.string or '',
            request.remote_addr or '',
        ]
        return ' - '.join(parts)

    def record(self, envelope: Envelope):
        line = f"{self.context()} - {envelope.message}"
        if envelope.is_error:
            self.error.info(line)
        else:
            self.success.info(line)

    def close(self):
        for logger in (self.success, self.error):
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)


class Responder:
    """
    Builds envelopes and writes them out

    Usage:
        return self.responder.status(201, 'User created')
        return self.responder.data(200, user.to_dict(), 'User found')
    """

    def __init__(self, request_log: Optional[RequestLog] = None):
        self.request_log = request_log

    def status(self, status: int, message: str) -> Envelope:
        return Envelope(status, message, is_data=False, message=message)

    def data(self, status: int, payload: Any, message: str = 'OK') -> Envelope:
        return Envelope(status, payload, is_data=True, message=message)

    def no_content(self, message: str = 'No content') -> Envelope:
        return Envelope(204, None, message=message)

    def error(self, error: ApiError) -> Envelope:
        headers = {}
        if isinstance(error, MethodNotAllowedError):
            headers['Allow'] = ', '.join(error.allowed_methods)
        # The log line keeps the internal message, the client gets the public one
        return Envelope(error.status_code, error.client_message, message=error.message, headers=headers)

    def write(self, envelope: Envelope) -> Response:
        payload = envelope.payload()
        if payload is None:
            response = Response(status=envelope.status)
        else:
            response = jsonify(payload)
            response.status_code = envelope.status
        for name, value in envelope.headers.items():
            response.headers[name] = value

        if self.request_log:
            self.request_log.record(envelope)
        return response


__all__ = ['Envelope', 'RequestLog', 'Responder']
