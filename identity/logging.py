"""
Provides JSON-formatted logging for the identity service.

Use :func:`getLogger` instead of :func:`logging.getLogger` so that records
are rendered consistently, e.g.::

    {"timestamp": "2024-10-10 14:37:01,040", "level": "ERROR",
     "name": "identity.consistency", "message": "...", "user_id": "..."}

Any ``extra`` passed to a logging call is included in the JSON object.
"""

import logging
import sys
from typing import IO, Optional

from pythonjsonlogger import jsonlogger

from .context import get_application_config

FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def _formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter(
        FORMAT,
        rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
    )


def getLogger(name: str, stream: IO = sys.stderr) -> logging.Logger:
    """
    Wrapper for :func:`logging.getLogger` that applies configuration.

    Parameters
    ----------
    name : str
    stream : IO

    Returns
    -------
    :class:`logging.Logger`
    """
    config = get_application_config()
    log_level = int(config.get('LOGLEVEL', logging.INFO))
    log_file: Optional[str] = config.get('LOGFILE')

    logger = logging.getLogger(name)
    logger.propagate = False
    if not logger.handlers:
        handler: logging.Handler = logging.StreamHandler(stream)
        handler.setFormatter(_formatter())
        logger.addHandler(handler)
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(_formatter())
            logger.addHandler(file_handler)
    logger.setLevel(log_level)
    return logger
