class NotFoundError(ValueError):
    """A user, budget, wallet, category or entry does not resolve for the caller."""


class BudgetValidationError(ValueError):
    """A budget write was rejected before touching the database."""
