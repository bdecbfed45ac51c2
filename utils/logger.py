# utils/logger.py
import logging
import os
from logging.handlers import RotatingFileHandler


def init_logging(app) -> logging.Logger:
    """Attach rotating-file and stream handlers to the app logger."""
    level_name = (app.config.get("LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(module)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    handlers = []
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    # no log files from test runs
    if not app.config.get("TESTING"):
        log_dir = app.config.get("LOG_DIR") or os.path.join(app.instance_path, "logs")
        os.makedirs(log_dir, exist_ok=True)
        log_path = os.path.join(log_dir, "brosolve.log")
        file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    app.logger.handlers = handlers
    app.logger.setLevel(level)
    app.logger.propagate = False

    # module loggers (notifications, audit, uploads) share the same handlers
    root_pkg_logger = logging.getLogger("brosolve")
    root_pkg_logger.handlers = handlers
    root_pkg_logger.setLevel(level)
    root_pkg_logger.propagate = False

    app.logger.info("Logging initialized")
    return app.logger
