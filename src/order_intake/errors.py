"""Exception types raised across the order intake package."""


class OrderIntakeError(Exception):
    pass


class PatternStoreError(OrderIntakeError):
    """Learned patterns could not be persisted."""


class CatalogError(OrderIntakeError):
    """The product catalog could not be read or is malformed."""


class OrderSubmissionError(OrderIntakeError):
    """The finished order was rejected by, or never reached, the order sink."""
