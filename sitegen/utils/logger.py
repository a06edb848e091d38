"""
Logging configuration for the application.
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from pythonjsonlogger import jsonlogger
from config import get_settings, describe_settings


def setup_logging():
    """
    Setup application-wide logging configuration.
    """
    settings = get_settings()

    # Create logs directory if it doesn't exist
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Console formatter (human-readable)
    console_formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File formatter (JSON for structured logging)
    json_formatter = jsonlogger.JsonFormatter(
        fmt='%(asctime)s %(name)s %(levelname)s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(console_formatter)

    # File handler (one file per day)
    log_file = log_dir / f"sitegen_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(json_formatter)

    # Errors only
    error_file = log_dir / f"errors_{datetime.now().strftime('%Y%m%d')}.log"
    error_handler = logging.FileHandler(error_file)
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(json_formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(error_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    root_logger.info("=" * 60)
    root_logger.info("Logging initialized")
    for line in describe_settings(settings):
        root_logger.info(line)
    root_logger.info(f"Log file: {log_file}")
    root_logger.info("=" * 60)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_generation(
    logger: logging.Logger,
    action: str,
    prompt: str,
    conversation_id: str,
    version: int,
    time_taken: float
):
    """
    Log a generate/edit result.

    Args:
        logger: Logger instance
        action: "generate", "edit" or "stream"
        prompt: User prompt or edit instruction
        conversation_id: Conversation the generation belongs to
        version: Version number that was written
        time_taken: Time in seconds
    """
    logger.info(
        f"Site {action}: '{prompt[:100]}' | "
        f"Conversation: {conversation_id} | "
        f"Version: {version} | "
        f"Time: {time_taken*1000:.0f}ms"
    )


def log_deployment(
    logger: logging.Logger,
    generation_id: str,
    outcome: str,
    status: str,
    url=None
):
    """
    Log the outcome of a deployment operation.

    Args:
        logger: Logger instance
        generation_id: Generation that was deployed
        outcome: Outcome tag of the operation
        status: Local deployment status after the operation
        url: Public URL, if any
    """
    logger.info(
        f"Deployment {outcome}: generation={generation_id} | "
        f"status={status} | url={url or '-'}"
    )


def log_error_with_context(
    logger: logging.Logger,
    error: Exception,
    context: dict
):
    """
    Log error with additional context.

    Args:
        logger: Logger instance
        error: Exception object
        context: Dictionary with contextual information
    """
    logger.error(
        f"ERROR: {type(error).__name__} - {str(error)} | Context: {context}",
        exc_info=True
    )
