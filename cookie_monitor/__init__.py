"""Cookie classification, risk-scoring and isolation engine."""

__version__ = "0.1.0"
