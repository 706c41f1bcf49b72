# errors.py
"""
Exception types shared by the scraper components
"""


class ScraperError(Exception):
    """Base error for the IAAI listing scraper"""


class FatalRunError(ScraperError):
    """Raised before any page work when the run cannot start at all"""


class DatabaseError(ScraperError):
    """Base error for persistence sink failures"""

    def __init__(self, message: str, stock: str = None):
        super().__init__(message)
        self.stock = stock


class ConstraintViolationError(DatabaseError):
    """The record itself is invalid for the table (missing stock, integrity code)"""


class TransientDatabaseError(DatabaseError):
    """Connection or server-side failure; the same record may succeed on a later run"""


__all__ = [
    "ScraperError",
    "FatalRunError",
    "DatabaseError",
    "ConstraintViolationError",
    "TransientDatabaseError",
]
