from __future__ import annotations

import os
from datetime import datetime
from typing import Optional

LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "NOTICE": 25,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class ImportLogger:
    """
    Leveled logger used by the importer and the stores.  Messages are
    printed to stdout and, when ``log_file`` is set, appended to it with a
    timestamp.  Anything below ``min_level`` is dropped.
    """

    def __init__(self, log_file: Optional[str] = None, min_level: str = "INFO") -> None:
        self.log_file = log_file
        self.min_level = LEVELS.get(min_level.upper(), LEVELS["INFO"])

    def log_message(self, message: str, level: str = "INFO") -> None:
        level = level.upper()
        if LEVELS.get(level, LEVELS["INFO"]) < self.min_level:
            return
        print(f"[{level}] {message}")
        if self.log_file:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            os.makedirs(os.path.dirname(self.log_file) or ".", exist_ok=True)
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(f"[{timestamp}] {level}: {message}\n")

    def debug(self, message: str) -> None:
        self.log_message(message, "DEBUG")

    def info(self, message: str) -> None:
        self.log_message(message, "INFO")

    def notice(self, message: str) -> None:
        self.log_message(message, "NOTICE")

    def warning(self, message: str) -> None:
        self.log_message(message, "WARNING")

    def error(self, message: str) -> None:
        self.log_message(message, "ERROR")

    def critical(self, message: str) -> None:
        self.log_message(message, "CRITICAL")
