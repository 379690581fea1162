"""Logging infrastructure for unwrap-or-ai.

@public

Prefect-integrated logging with YAML configuration support. Every module
of the engine obtains its logger through get_pipeline_logger().

Example:
    >>> from unwrap_or_ai.logging import get_pipeline_logger
    >>>
    >>> logger = get_pipeline_logger(__name__)
    >>> logger.info("Synthesis started")

Note:
    Never import Python's logging module directly. Always use
    get_pipeline_logger() for consistent Prefect integration.
"""

from .logging_config import LoggingConfig, get_pipeline_logger, setup_logging

__all__ = [
    "LoggingConfig",
    "setup_logging",
    "get_pipeline_logger",
]
