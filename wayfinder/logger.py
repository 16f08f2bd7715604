"""Logging module for Wayfinder."""

import json
from datetime import datetime
from typing import Optional, Callable


class Logger:
    """Logs timestamped lines to stdout, an optional file and an optional callback"""

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 echo: bool = True):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        self.file = None
        if log_path:
            self.file = open(log_path, "a")
            self._write_header()

    def _write_header(self):
        self.file.write(f"\n{'='*60}\n")
        self.file.write(f"Wayfinder Log - {datetime.now().isoformat()}\n")
        self.file.write(f"{'='*60}\n\n")
        self.file.flush()

    def log(self, message: str, data: Optional[dict] = None, level: str = "INFO"):
        """Log a message with optional structured data"""
        timestamp = datetime.now().isoformat()
        line = f"[{timestamp}] {level} {message}"
        if data:
            line += f" | {json.dumps(data, default=str)}"
        if self.echo:
            print(line)
        if self.file:
            self.file.write(line + "\n")
            self.file.flush()
        if self.callback:
            self.callback(message, data)

    def warning(self, message: str, data: Optional[dict] = None):
        self.log(message, data, level="WARNING")

    def error(self, message: str, data: Optional[dict] = None):
        self.log(message, data, level="ERROR")

    def close(self):
        if self.file:
            self.file.close()
            self.file = None

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
