class FillingError(Exception):
    """Raised when a filled document cannot be produced."""
