"""Runnable examples of concurrency primitives, timing patterns, request routing and list idioms."""

__version__ = "0.1.0"

__all__ = [
    "workerpool",
    "orders",
    "services",
    "primitives",
    "sync_demos",
    "races",
    "timers",
    "timer_patterns",
    "webrouter",
    "sliceops",
    "escape",
]