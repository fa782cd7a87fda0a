"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class AccountNotFoundError(DomainException):
    """No balance record exists for the requested account"""

    pass


class TransactionSourceError(DomainException):
    """Transaction store failed or is unavailable"""

    pass


class InvalidForecastWindowError(DomainException):
    """Requested date window or month is malformed"""

    pass
