"""Exceptions raised for malformed content data."""


class ContentError(ValueError):
    """Content definitions could not be parsed."""


class GraphIntegrityError(ContentError):
    """A stage graph violates a structural invariant (no entry node, dangling edge...)."""

    def __init__(self, message: str, stage_id: str = ""):
        super().__init__(message)
        self.stage_id = stage_id
