"""Connection records, subscriptions, stream chunking, cycle timers and traffic reports."""

__version__ = "0.1.0"

__all__ = ["b64", "byteorder", "connection", "reports", "stream", "subscription", "timer"]