"""Ticket workflow transition engine"""

__version__ = "1.0.0"
