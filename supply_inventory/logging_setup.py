import logging
import logging.handlers
import traceback
from datetime import datetime
from pathlib import Path

from supply_inventory.config import config

class Logger:
    """Logging manager for the Supply Inventory Engine."""

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the logger if not already initialized."""
        if self._initialized:
            return

        self._log_config = config.log_config
        self._log_dir = Path(self._log_config['directory'])

        # Create log directory if it doesn't exist
        if not self._log_dir.exists():
            self._log_dir.mkdir(parents=True)

        self._app_logger = self.get_logger('app')

        self._initialized = True

    def _level(self):
        level_name = self._log_config['level'].upper()
        return getattr(logging, level_name, logging.INFO)

    def get_logger(self, name):
        """Get a logger with the specified name.

        Args:
            name: Name of the logger

        Returns:
            Configured logger instance
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(f"supply_inventory.{name}")
        logger.setLevel(self._level())

        # Remove existing handlers to prevent duplicates
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        formatter = logging.Formatter(self._log_config['format'])

        # Create log file handler with rotation
        log_file = self._log_dir / f"{name}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=self._log_config['max_size_mb'] * 1024 * 1024,
            backupCount=self._log_config['backup_count'],
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        if self._log_config['console_output']:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        # Prevent propagation to root logger to avoid duplicates
        logger.propagate = False

        self._loggers[name] = logger
        return logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception with stack trace.

        Args:
            logger_name: Logger name
            exception: Exception object
            message: Optional message to include
        """
        logger = self.get_logger(logger_name)

        if message:
            logger.error(f"{message}: {str(exception)}")
        else:
            logger.error(str(exception))

        logger.error(traceback.format_exc())

    @property
    def app_logger(self):
        """Get the application logger."""
        return self._app_logger

    def operation_start_log(self, operation_name, additional_info=None):
        """Log the start of a multi-step operation.

        Args:
            operation_name: Name of the operation
            additional_info: Optional additional information

        Returns:
            Dictionary with operation logging information
        """
        log_info = {
            'operation_name': operation_name,
            'start_time': datetime.now(),
            'additional_info': additional_info
        }

        self._app_logger.info(f"Starting operation: {operation_name}")
        if additional_info:
            self._app_logger.info(f"Operation info: {additional_info}")

        return log_info

    def operation_end_log(self, log_info, success=True, result_info=None):
        """Log the end of a multi-step operation.

        Args:
            log_info: Dictionary returned by operation_start_log
            success: Whether the operation succeeded
            result_info: Optional result information
        """
        operation_name = log_info.get('operation_name', 'Unknown')
        duration = datetime.now() - log_info.get('start_time', datetime.now())

        if success:
            self._app_logger.info(f"Completed operation: {operation_name}")
        else:
            self._app_logger.error(f"Failed operation: {operation_name}")

        self._app_logger.info(f"Operation duration: {duration}")

        if result_info:
            self._app_logger.info(f"Operation results: {result_info}")

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)

def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    logger.log_exception(logger_name, exception, message)
