import logging
import sys
from typing import Optional

from astn_session.storage.base import get_data_dir

CONSOLE_HANDLER = "astn-console"
FILE_HANDLER = "astn-file"


def setup_logging(level: int = logging.INFO, log_to_file: bool = True, stream=None) -> None:
    """Configure logging for the session server and CLI tools."""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Calling again replaces the handlers installed last time
    for handler in list(logger.handlers):
        if handler.get_name() in (CONSOLE_HANDLER, FILE_HANDLER):
            logger.removeHandler(handler)
            handler.close()

    # Console handler; stderr by default so stdio transports stay clean
    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.set_name(CONSOLE_HANDLER)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_to_file:
        file_handler = _file_handler(level)
        if file_handler is not None:
            logger.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _file_handler(level: int) -> Optional[logging.Handler]:
    log_dir = get_data_dir() / "logs"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / "session.log")
    except OSError as e:
        print(f"Warning: file logging disabled: {e}", file=sys.stderr)
        return None
    handler.set_name(FILE_HANDLER)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    return handler
