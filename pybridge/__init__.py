"""pybridge - run host-node Python requests in an out-of-process worker."""

__version__ = "0.1.0"
__logo__ = "🐍"
