"""Rule-based pricing engine for dress rentals."""

__version__ = "0.1.0"
