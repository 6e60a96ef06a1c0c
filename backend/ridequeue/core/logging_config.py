import logging
import logging.handlers
import os
import re
from pathlib import Path

from ridequeue.core.correlation import CorrelationIdFilter

class SensitiveDataFilter(logging.Filter):
    """
    Filter to mask customer contact details and payment references in log records.
    """
    def __init__(self, name=""):
        super().__init__(name)
        self.patterns = [
            (r'(external_transaction_id=)[\'"]?([^\'"\s,)]+)[\'"]?', r'\1***MASKED***'),
            (r'(external_ref=)[\'"]?([^\'"\s,)]+)[\'"]?', r'\1***MASKED***'),
            (r'(phone(?:_number)?=)[\'"]?([^\'"\s,)]+)[\'"]?', r'\1***MASKED***'),
            (r'[\w.+-]+@[\w-]+\.[\w.-]+', '***EMAIL***'),
        ]

    def filter(self, record):
        if not isinstance(record.msg, str):
            return True

        msg = record.msg
        for pattern, replacement in self.patterns:
            msg = re.sub(pattern, replacement, msg, flags=re.IGNORECASE)

        record.msg = msg
        return True

def setup_logging(log_file_path: str = "logs/app.log"):
    """
    Configures the logging for the application.
    Writes logs to stdout and to a rotating file.
    """
    log_file = Path(log_file_path)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"
    )

    sensitive_filter = SensitiveDataFilter()
    correlation_filter = CorrelationIdFilter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(correlation_filter)
    console_handler.addFilter(sensitive_filter)

    # Rotates when file size reaches 10MB, keeps 5 backup files
    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10 * 1024 * 1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    file_handler.addFilter(correlation_filter)
    file_handler.addFilter(sensitive_filter)

    root_logger = logging.getLogger()
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates if called multiple times
    root_logger.handlers = []

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    return log_file
