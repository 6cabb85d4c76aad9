# fibersync/core/log_files.py
"""
Dedicated per-subsystem log files (RADIUS operations, payment worker).
Records also propagate to the root logger so they show up in the console.
"""
import logging
import os

LOG_DIR = os.getenv("LOG_DIR", "logs")


def get_file_logger(name: str, filename: str) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        os.makedirs(LOG_DIR, exist_ok=True)
        handler = logging.FileHandler(os.path.join(LOG_DIR, filename), encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(handler)
    return logger
