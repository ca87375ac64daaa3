"""
Telemetry - structured logging and endpoint health reporting.

The health report lives in `rpc_resilience.telemetry.health`; it depends on
settings and routing, so it is not imported here.
"""

from rpc_resilience.telemetry.logger import (
    JsonFormatter,
    LogContext,
    LogLevel,
    RpcLogger,
    SensitiveDataMasker,
    TextFormatter,
    clear_log_context,
    get_log_context,
    get_logger,
    mask_url,
    set_log_context,
)

__all__ = [
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "RpcLogger",
    "SensitiveDataMasker",
    "TextFormatter",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "mask_url",
    "set_log_context",
]
