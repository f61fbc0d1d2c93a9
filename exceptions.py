"""
Custom exceptions for the partner QBR metrics engine.

This module defines specific exception types for the error scenarios the
engine and its calling layer can hit. Missing data is never an error: every
ratio has a defined zero-denominator fallback. Only malformed input shape
(an unparseable quarter label, a broken source table) or unknown partners
raise.
"""


class QBRError(Exception):
    """Base exception for QBR metrics errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class QuarterParseError(QBRError):
    """Raised when a quarter label is not of the form 'Q<1-4> <YYYY>'."""

    def __init__(self, label, reason: str = None):
        message = f"Invalid quarter label: {label!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, {"label": label})
        self.label = label
        self.reason = reason


class PartnerNotFoundError(QBRError):
    """Raised when a partner has no tier/target configuration."""

    def __init__(self, partner_id: str):
        super().__init__(f"Partner not found: {partner_id}", {"partner_id": partner_id})
        self.partner_id = partner_id


class TierConfigurationError(QBRError):
    """Raised when the partner tier table is invalid or a tier is unknown."""

    def __init__(self, message: str, tier: str = None):
        details = {}
        if tier:
            details["tier"] = tier
        super().__init__(message, details)
        self.tier = tier


class DataIngestionError(QBRError):
    """Raised when source data cannot be built from tabular input."""

    def __init__(self, message: str, collection: str = None, row_number: int = None, column: str = None):
        details = {}
        if collection:
            details["collection"] = collection
        if row_number is not None:
            details["row_number"] = row_number
        if column:
            details["column"] = column
        super().__init__(message, details)
        self.collection = collection
        self.row_number = row_number
        self.column = column
