class BasicError(Exception):
    """Recoverable error raised by a statement, reported as ?<REASON> ERROR."""
    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class OutOfMemoryError(BasicError):
    """The memory budget cannot cover an allocation."""
    def __init__(self, requested=0):
        super().__init__("OUT OF MEMORY")
        self.requested = requested
