"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInput(DomainException):
    """Numeric input rejected before any computation ran"""

    pass


class FinancialStateError(DomainException):
    """Financial state provider returned an error or is unavailable"""

    pass


class StateConflict(DomainException):
    """Another unlocked decision already exists for the user"""

    pass


class DecisionNotFound(DomainException):
    """No decision with the given identifier"""

    pass
