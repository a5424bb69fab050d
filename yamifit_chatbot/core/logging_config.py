import logging
from logging.handlers import RotatingFileHandler
import os

from yamifit_chatbot.core.config import settings

class ColorFormatter(logging.Formatter):
    COLOR_CODES = {
        logging.DEBUG: '\033[36m',    # Cyan
        logging.INFO: '\033[32m',     # Green
        logging.WARNING: '\033[33m',  # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[31;1m' # Bold Red
    }
    RESET_CODE = '\033[0m'

    def format(self, record):
        filename = os.path.basename(record.pathname)
        func_info = f":{record.funcName}()" if record.funcName and record.funcName != "<module>" else ""

        color = self.COLOR_CODES.get(record.levelno, '')
        message = super().format(record)
        return f"{color}{filename}{func_info} | {message}{self.RESET_CODE}"

def setup_logging(level: str = None, log_file: str = None):
    """Configure logging for the chatbot service (rotating file + coloured console)."""
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s | %(levelname)-8s | %(filename)s:%(funcName)-15s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            RotatingFileHandler(
                log_file or settings.LOG_FILE,
                maxBytes=1024*1024,
                backupCount=3
            )
        ]
    )

    root = logging.getLogger()
    if not any(isinstance(h.formatter, ColorFormatter) for h in root.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(ColorFormatter())
        root.addHandler(console_handler)

    # Reduce uvicorn and client library noise
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
