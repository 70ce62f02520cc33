import logging
import sys

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def get_logger(name: str = None, stream=None) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Tool providers pass ``sys.stderr`` so stdout stays reserved for
    protocol messages.

    Args:
        name: Logger name (usually __name__)
        stream: Stream for the handler (defaults to stderr)

    Returns:
        Configured logger instance
    """
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )
        log.addHandler(handler)
    log.setLevel(logging.INFO)
    return log
