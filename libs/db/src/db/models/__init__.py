"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the transaction and chat-history models used by
``finance_tracker``.
"""

from .finance import Base, FtChatMessage, FtTransaction

__all__ = [
    "Base",
    "FtChatMessage",
    "FtTransaction",
]
