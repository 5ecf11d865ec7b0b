class QuotaExceededError(Exception):
    """Raised when a user has no quota left for an operation."""

    def __init__(self, kind: str, limit: int, used: int) -> None:
        super().__init__(f"Monthly {kind} limit reached ({used}/{limit})")
        self.kind = kind
        self.limit = limit
        self.used = used
