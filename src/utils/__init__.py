"""
Utility modules for the table synchronization client

Provides:
- logging: structured logging setup and context loggers
- tracing: OpenTelemetry span helpers
- metrics: safe Prometheus metric registration
- sql_safety: identifier validation
- database_types: supported database engine enumeration
"""

__version__ = "1.0.0"
__all__ = ["logging", "tracing", "metrics", "sql_safety", "database_types"]
