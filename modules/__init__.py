"""Helper modules for the Inkwell storefront."""

__all__ = [
    "order_pipeline",
    "pricing",
    "print_job",
    "uploads",
]
