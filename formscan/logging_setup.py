# formscan/logging_setup.py
import logging, sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(verbose: bool = False, stream=None) -> logging.Logger:
    # quieter httpx/httpcore
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        stream=stream or sys.stderr,
        format=LOG_FORMAT,
    )
    return logging.getLogger("formscan")
