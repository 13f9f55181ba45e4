"""
Error types raised by the pricing and ranking components.
"""


class InvalidInput(ValueError):
    """
    Raised when an input violates a precondition (negative counts, zero
    prices, malformed promotion). Nothing is computed when this is raised.
    """
