"""Centralized logging for the werewolf engine.

This module provides context-aware logging with game state tracking.
All logs are written to both file and console in plain text format.
"""

import logging
import traceback
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler


LOGGER_NAME = "werewolf"


# ============================================================================
# SECTION 1: Context Management (Greenlet-Safe)
# ============================================================================

_game_context: ContextVar[Dict[str, Any]] = ContextVar('game_context', default={})


def set_game_context(
    session_id: str = None,
    phase: str = None,
    day: int = None,
    stage: str = None,
    player_name: str = None
):
    """Update the current game context (partial updates supported).

    Args:
        session_id: Session identifier
        phase: Current phase (LOBBY/NIGHT/DAY/VOTING/ENDED)
        day: Current day number
        stage: Night sub-phase or timer stage
        player_name: Player whose action is being handled
    """
    context = _game_context.get().copy()

    if session_id is not None:
        context['session_id'] = session_id
    if phase is not None:
        context['phase'] = phase
    if day is not None:
        context['day'] = day
    if stage is not None:
        context['stage'] = stage
    if player_name is not None:
        context['player_name'] = player_name

    _game_context.set(context)


def get_game_context() -> Dict[str, Any]:
    """Get the current game context."""
    return _game_context.get().copy()


def clear_game_context():
    """Clear the game context (for cleanup)."""
    _game_context.set({})


def format_context() -> str:
    """Format context for log messages: 'session_id:phase:day:stage:player'"""
    context = _game_context.get()

    if not context:
        return "no-context"

    parts = [
        context.get('session_id', 'unknown'),
        context.get('phase', 'unknown'),
        str(context.get('day', '?')),
        context.get('stage', '-'),
        context.get('player_name', '-'),
    ]
    return ':'.join(parts)


# ============================================================================
# SECTION 2: Logger Configuration
# ============================================================================

class ContextualFormatter(logging.Formatter):
    """Custom formatter that includes game context in log messages."""

    def format(self, record):
        record.context = format_context()
        return super().format(record)


def initialize_logging(log_dir: str = "logs", log_level: int = logging.INFO):
    """Initialize the logging system with file and console handlers.

    Creates log directory if it doesn't exist and sets up rotation for log files.

    Args:
        log_dir: Directory for log files (default: "logs")
        log_level: Minimum log level to record (default: INFO)
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    formatter = ContextualFormatter(
        fmt="[%(asctime)s] [%(levelname)s] [%(context)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # File handler with rotation (10MB max, 5 backups)
    file_handler = RotatingFileHandler(
        log_path / "werewolf.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.info("Logging system initialized")


# ============================================================================
# SECTION 3: High-Level Logging Functions
# ============================================================================

def _emit(level: int, message: str, player_name: Optional[str], extra_context: Optional[Dict[str, Any]]):
    logger = _get_logger()
    if not logger.isEnabledFor(level):
        return

    # Temporarily override player_name in context if provided
    original_context = None
    if player_name is not None:
        original_context = get_game_context()
        set_game_context(player_name=player_name)

    try:
        msg_parts = [message]
        if extra_context:
            for key, value in extra_context.items():
                msg_parts.append(f"{key}: {value}")
        logger.log(level, "\n".join(msg_parts))
    finally:
        if original_context is not None:
            _game_context.set(original_context)


def log_exception(
    exception: Exception,
    message: str,
    player_name: str = None,
    extra_context: Dict[str, Any] = None
):
    """Log an exception with full traceback and context.

    Args:
        exception: The caught exception
        message: Descriptive message about what was being attempted
        player_name: Optional player name (overrides context)
        extra_context: Additional context to include
    """
    logger = _get_logger()

    original_context = None
    if player_name is not None:
        original_context = get_game_context()
        set_game_context(player_name=player_name)

    try:
        msg_parts = [message]

        if extra_context:
            msg_parts.append(f"Extra context: {extra_context}")

        msg_parts.append("Traceback:")
        msg_parts.append(_format_exception(exception))

        logger.error("\n".join(msg_parts))

    finally:
        if original_context is not None:
            _game_context.set(original_context)


def log_warning(message: str, player_name: str = None, extra_context: Dict[str, Any] = None):
    """Log a warning message with context."""
    _emit(logging.WARNING, message, player_name, extra_context)


def log_info(message: str, player_name: str = None, extra_context: Dict[str, Any] = None):
    """Log an info message with context."""
    _emit(logging.INFO, message, player_name, extra_context)


def log_debug(message: str, player_name: str = None, extra_context: Dict[str, Any] = None):
    _emit(logging.DEBUG, message, player_name, extra_context)


# ============================================================================
# SECTION 4: Internal Helpers
# ============================================================================

def _get_logger() -> logging.Logger:
    """Get the configured logger instance."""
    return logging.getLogger(LOGGER_NAME)


def _format_exception(exception: Exception) -> str:
    """Format exception with full traceback."""
    return ''.join(traceback.format_exception(
        type(exception), exception, exception.__traceback__
    ))
