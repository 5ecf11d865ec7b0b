class ExtractionError(Exception):
    """Raised when no text can be obtained from an uploaded document."""
