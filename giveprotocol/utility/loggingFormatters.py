# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import logging
from os import getenv, getpid
from flask import has_request_context, request

LOG_FORMAT = '[%(worker_id)s] %(asctime)-21s %(levelname)-8s %(name)-12s | %(message)s'
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

class MultiLineFormatter(logging.Formatter):
    """Logging formatter that repeats the record prefix on every line of a multi-line message.

    Tracebacks and pretty-printed payloads stay readable when several
    Gunicorn workers write to the same stream.
    """
    def format(self, record):
        message = super().format(record)

        if "\n" in record.getMessage():
            lines = []
            for line in record.getMessage().splitlines():
                new_record = logging.LogRecord(
                    record.name, record.levelno, record.pathname,
                    record.lineno, line, None, None,
                    func=record.funcName
                )
                new_record.worker_id = getattr(record, "worker_id", f"PID {getpid()}")
                lines.append(super().format(new_record))
            if record.exc_info:
                lines.append(self.formatException(record.exc_info))
            return "\n".join(lines)
        return message

class GunicornWorkerFilter(logging.Filter):
    """Filter to add the Gunicorn worker ID to log records."""

    def filter(self, record):
        worker_id = getenv("GUNICORN_WORKER_ID", "unknown")

        if worker_id != "unknown":
            record.worker_id = "worker" + worker_id
        else:
            record.worker_id = f"PID {getpid()}"
        return True

class NoDockerHealthcheckFilter(logging.Filter):
    """Filter to exclude Docker health check requests from the request log."""

    def filter(self, record):
        if not has_request_context():
            return True
        if request.args.get("reason", None) == "DockerAutomatedHealthcheck" and "health" in request.path:
            return False
        return True

def configure_logging(level_name: str = "INFO") -> logging.Handler:
    """Install the shared handler on the root logger and every ``giveprotocol`` logger."""
    level = getattr(logging, str(level_name).upper(), logging.INFO)

    formatter = MultiLineFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(GunicornWorkerFilter())
    logging.basicConfig(level=level, handlers=[handler])

    for name in list(logging.root.manager.loggerDict.keys()):
        if name.startswith("giveprotocol"):
            lgr = logging.getLogger(name)
            lgr.setLevel(level)
            if not any(isinstance(f, GunicornWorkerFilter) for f in lgr.filters):
                lgr.addFilter(GunicornWorkerFilter())

    logging.getLogger("giveprotocol").setLevel(level)
    request_logger = logging.getLogger("giveprotocol.request")
    if not any(isinstance(f, NoDockerHealthcheckFilter) for f in request_logger.filters):
        request_logger.addFilter(NoDockerHealthcheckFilter())
    return handler
