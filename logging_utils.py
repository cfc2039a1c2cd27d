"""
Logging Utilities for election research runs

Provides the per-run log file, console output and exception logging used by
the CLI and the pipeline.
"""

import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Tuple, Union


def setup_run_logging(run_dir: Union[str, Path], label: str,
                      level: int = logging.INFO) -> Tuple[logging.Logger, str]:
    """
    Set up file-based logging for one pipeline run.
    Configures ROOT logger so all module loggers inherit the file handler.

    Args:
        run_dir: Directory holding the run artifacts
        label: Short description of the run (seed source)
        level: Console log level

    Returns:
        Tuple of (run_logger instance, log_file_path)
    """
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_filename = f"run_log_{timestamp}.log"
    log_file_path = str(Path(run_dir) / log_filename)

    Path(run_dir).mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers when called more than once in a process
    root_logger.handlers.clear()

    file_handler = logging.FileHandler(log_file_path, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    root_logger.addHandler(console_handler)

    # HTTP client chatter drowns out the pipeline at DEBUG
    for noisy in ("httpx", "httpcore", "openai", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    run_logger = logging.getLogger('election_run')
    run_logger.setLevel(logging.DEBUG)

    run_logger.info("=" * 70)
    run_logger.info("Election Research Pipeline - Run Log")
    run_logger.info(f"Source: {label}")
    run_logger.info(f"Run Directory: {run_dir}")
    run_logger.info(f"Log File: {log_filename}")
    run_logger.info(f"Started: {datetime.now().isoformat()}")
    run_logger.info("=" * 70)

    return run_logger, log_file_path


def log_exception(logger: logging.Logger, exc: Exception, context: str = "",
                  election: Optional[str] = None, **kwargs) -> None:
    """
    Log an exception with traceback and context information.

    Args:
        logger: Logger instance to use
        exc: Exception that was raised
        context: Additional context string
        election: Seed election name, when known
        **kwargs: Additional context key-value pairs
    """
    error_msg = f"Exception occurred: {type(exc).__name__}: {exc}"
    if context:
        error_msg = f"{context} - {error_msg}"
    logger.error(error_msg)

    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.debug(f"Traceback:\n{tb_str}")

    if election:
        logger.error(f"Election: {election}")
    if kwargs:
        logger.error(f"Context: {kwargs}")


def get_error_info(exc: Exception, context: Optional[Dict[str, object]] = None) -> Dict[str, object]:
    """Structured error information for run summaries."""
    return {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
        "timestamp": datetime.now().isoformat(),
        "context": context or {},
    }
