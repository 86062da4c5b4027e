"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidPlanRequest(DomainException):
    """Plan request violates a precondition of the calculator"""

    pass


class InvalidPaymentError(DomainException):
    """Payment cannot be applied to the installment"""

    pass


class PlanNotFoundError(DomainException):
    """Payment plan does not exist"""

    pass


class InstallmentNotFoundError(DomainException):
    """Installment does not exist"""

    pass


class ConcurrentPaymentError(InvalidPaymentError):
    """Installment balance changed while the payment was being applied"""

    pass


class InvalidPlanModification(DomainException):
    """Requested schedule change breaks the plan's invariants"""

    pass


class InvalidStatusTransition(InvalidPlanModification):
    """Plan cannot move from its current status to the requested one"""

    pass
