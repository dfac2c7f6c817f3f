# csv_processor/utils/logging_config.py
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

LOGGER_NAMESPACE = "csv_processor"

def setup_logging(
    log_level: str = "INFO",
    log_dir: str = "logs",
    log_to_file: bool = False,
    log_to_console: bool = True,
    log_format: Optional[str] = None
) -> logging.Logger:
    """
    Setup logging for the CSV processor

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory to store log files
        log_to_file: Whether to log to file
        log_to_console: Whether to log to console
        log_format: Custom log format string

    Returns:
        Configured logger instance
    """

    if log_format is None:
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'

    formatter = logging.Formatter(log_format)
    level = getattr(logging, log_level.upper(), logging.INFO)

    # Get root logger
    logger = logging.getLogger()
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    handlers = []
    file_path = None

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_filename = f"csv_processor_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        file_path = log_path / log_filename

        file_handler = logging.FileHandler(file_path, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    for handler in handlers:
        logger.addHandler(handler)

    configure_third_party_logging()

    processor_logger = logging.getLogger(LOGGER_NAMESPACE)
    processor_logger.info(f"Logging initialized. Level: {log_level}")

    if file_path is not None:
        processor_logger.info(f"Log file: {file_path}")

    return processor_logger

def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name"""
    if name == LOGGER_NAMESPACE or name.startswith(f"{LOGGER_NAMESPACE}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")

def log_execution_time(func):
    """Decorator to log function execution time"""
    import functools
    import time

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.perf_counter()

        try:
            logger.debug(f"Starting {func.__name__}")
            result = func(*args, **kwargs)
            execution_time = time.perf_counter() - start_time
            logger.info(f"Completed {func.__name__} in {execution_time:.3f} seconds")
            return result
        except Exception as e:
            execution_time = time.perf_counter() - start_time
            logger.error(f"Failed {func.__name__} after {execution_time:.3f} seconds: {str(e)}")
            raise

    return wrapper

def log_async_execution_time(func):
    """Decorator to log async function execution time"""
    import functools
    import time

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.perf_counter()

        try:
            logger.debug(f"Starting {func.__name__}")
            result = await func(*args, **kwargs)
            execution_time = time.perf_counter() - start_time
            logger.info(f"Completed {func.__name__} in {execution_time:.3f} seconds")
            return result
        except Exception as e:
            execution_time = time.perf_counter() - start_time
            logger.error(f"Failed {func.__name__} after {execution_time:.3f} seconds: {str(e)}")
            raise

    return wrapper

class PipelineLogger:
    """Context manager for pipeline step logging"""

    def __init__(self, step_name: str, logger: Optional[logging.Logger] = None):
        self.step_name = step_name
        self.logger = logger or get_logger("pipeline")
        self.start_time = None

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.debug(f"=== Starting {self.step_name} ===")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = datetime.now() - self.start_time

        if exc_type is None:
            self.logger.debug(f"=== Completed {self.step_name} in {duration.total_seconds():.3f} seconds ===")
        else:
            self.logger.error(f"=== Failed {self.step_name} after {duration.total_seconds():.3f} seconds ===")
            self.logger.error(f"Error: {exc_val}")

    def log_progress(self, message: str):
        """Log progress within the step"""
        self.logger.info(f"[{self.step_name}] {message}")

    def log_metric(self, name: str, value: Union[int, float, str]):
        """Log a metric within the step"""
        self.logger.info(f"[{self.step_name}] Metric - {name}: {value}")

def configure_third_party_logging():
    """Configure third-party library logging levels"""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("langgraph").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
