"""
Structured logging configuration.

Called once from create_app() (and from the RQ worker entry point). Supports
text (human-readable) and JSON formats via LOG_FORMAT. LOG_LEVEL defaults to
INFO. Both are read at call time so tests can patch the environment.

Analyzer code can attach run context with `extra=`:
    logger.info("Run started", extra={'run_id': run.id, 'analyzer_type': 'clarity'})
JSON output includes those keys; text output ignores them.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

# `extra=` keys copied into JSON log lines
CONTEXT_FIELDS = ('project_id', 'run_id', 'analyzer_type')


class JSONFormatter(logging.Formatter):
    """Single-line JSON log formatter for production log aggregators."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


# Third-party loggers that are noisy at INFO (HTTP clients under openai/requests, RQ internals)
_NOISY_LOGGERS = [
    'urllib3',
    'openai',
    'httpcore',
    'httpx',
    'rq.worker',
    'werkzeug',
]


def configure_logging(app=None):
    """
    Set up root logger with format/level from env vars.

    Environment variables:
        LOG_LEVEL  — Python log level name (default: INFO)
        LOG_FORMAT — "text" (default) or "json"
    """
    level = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    as_json = os.getenv('LOG_FORMAT', 'text').lower() == 'json'

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if as_json else logging.Formatter(
        '[%(asctime)s] %(levelname)s %(name)s — %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    ))

    root = logging.getLogger()
    root.setLevel(level)
    # Replace handlers so a second call (tests, worker re-init) doesn't duplicate lines
    root.handlers = [handler]

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        # Flask's own logger propagates to root; drop its default handler
        app.logger.handlers.clear()
        app.logger.setLevel(level)
