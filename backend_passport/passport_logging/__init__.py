"""
Structured logging for Backend Passport.

JSON logs with event_type, timestamp and service; pipeline_id and address are
bound per run through contextvars. Use get_logger() in all modules.
"""

from backend_passport.passport_logging.logger import configure_logging, get_logger, pipeline_context

__all__ = ["configure_logging", "get_logger", "pipeline_context"]
