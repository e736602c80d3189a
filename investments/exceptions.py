"""Errors raised by the investment and reconciliation services.

Views turn these into ``{'error': message, 'code': code}`` responses.
"""


class InvestmentError(Exception):
    """Base class for a rejected financial operation."""

    code = 'error'

    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self):
        return self.message


class ValidationError(InvestmentError):
    """Amount out of range, non-positive amount or a missing field."""

    code = 'invalid'


class InsufficientFundsError(ValidationError):
    """The requested debit is larger than the available balance."""

    code = 'insufficient_funds'


class InvalidStateError(InvestmentError):
    """The transaction is no longer pending."""

    code = 'invalid_state'


class DataIntegrityError(InvestmentError):
    """A record points at a row that no longer exists."""

    code = 'data_integrity'


class StorageError(InvestmentError):
    """The database failed while applying an operation."""

    code = 'storage_error'
