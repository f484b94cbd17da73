import logging
import os
import sys
import traceback
from pathlib import Path

import pendulum

from passvault.config.config_vault import STORE_DIR

LOG_FILE = "error.log"


def log_path() -> Path:
    """error.log inside the store directory (PASSVAULT_HOME is read at call time)."""
    return Path(os.environ.get("PASSVAULT_HOME", STORE_DIR)).expanduser() / LOG_FILE


def setup_logging(debug: bool = False) -> None:
    """
    Send log records to error.log. Only errors are kept unless `debug` is
    set; secrets are never passed to the logger, only ids and counts.
    """
    if logging.getLogger().handlers:
        return

    path = log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=path,
        filemode="a",
        level=logging.DEBUG if debug else logging.ERROR,
        format="%(levelname)s %(name)s %(message)s",
    )

    sys.excepthook = log_uncaught_exceptions


def log_event(logger: logging.Logger, msg: str, level: int = logging.ERROR) -> None:
    """One pendulum-timestamped line in the error log."""
    logger.log(level, f"[{pendulum.now().to_iso8601_string()}] {msg}")


def log_uncaught_exceptions(exctype, value, tb):
    if issubclass(exctype, KeyboardInterrupt):
        sys.__excepthook__(exctype, value, tb)
        return

    frames = [
        f'  File "{os.path.basename(frame.filename)}", line {frame.lineno}, in {frame.name}'
        for frame in traceback.extract_tb(tb)
    ]
    summary = "\n".join(reversed(frames)) or "  <no traceback>"
    error_msg = f"{exctype.__name__}: {value}"

    log_event(
        logging.getLogger("passvault"),
        f"Uncaught exception: {error_msg}\n"
        f"Traceback (most recent call first):\n{summary}",
        logging.CRITICAL,
    )

    print("\nError! Something went wrong.", file=sys.stderr)
    print(f"Details saved to {log_path()}\n", file=sys.stderr)
