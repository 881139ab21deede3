"""
config.py - Settings and logging for the supervision economics planner.

Everything is read from environment variables with local-friendly defaults.
"""

import os
import sys
import json
import logging
from pathlib import Path
from datetime import datetime, timezone


# ══════════════════════════════════════════════════════════════════════════════
# LOGGING CONFIGURATION
# ══════════════════════════════════════════════════════════════════════════════

class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if hasattr(record, 'scenario_id'):
            log_obj['scenario_id'] = record.scenario_id
        if hasattr(record, 'store_key'):
            log_obj['store_key'] = record.store_key

        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_obj)


def setup_logging(name: str = 'sep') -> logging.Logger:
    """
    Set up logging with environment-based configuration.

    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    LOG_FORMAT: json, text (default: text)
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers on Streamlit reruns
    if logger.handlers:
        return logger

    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    log_format = os.environ.get('LOG_FORMAT', 'text')
    handler = logging.StreamHandler(sys.stderr)

    if log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

    logger.addHandler(handler)
    return logger


# ══════════════════════════════════════════════════════════════════════════════
# ENVIRONMENT VARIABLES
# ══════════════════════════════════════════════════════════════════════════════

def get_optional_env(key: str, default: str = '') -> str:
    """Get optional environment variable with default."""
    return os.environ.get(key, default)


# Key-value store backing the dashboard's saved edits
STORE_PATH = Path(get_optional_env('SEP_STORE_PATH',
                                   str(Path.home() / '.sep' / 'store.json')))

# Scenario every other scenario is compared against
BASELINE_ID = get_optional_env('SEP_BASELINE_ID', 'A')
