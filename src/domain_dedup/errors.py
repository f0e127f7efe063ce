class SourceError(Exception):
    """
    Raised when a source can not be read: a non-200 http(s) response,
    or a source identifier with an unknown scheme.
    """

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{reason} (source: {source})")
        self.source = source


class PreconditionViolation(Exception):
    """
    The trie api was used in a way that can never happen in correct usage,
    e.g. adding a child under a node that is already an explicit end.
    """
