"""Exceptions raised by the rapwords services."""


class RapwordsError(Exception):
    """Base exception for rapwords."""


class AnalysisError(RapwordsError):
    """The morphological analyzer is unavailable or returned malformed output."""


class InvalidInput(RapwordsError):
    """Client supplied unusable input (empty text, non-numeric id, ...)."""

    def __init__(self, code: str = "invalid_input"):
        super().__init__(code)
        self.code = code


class NotFound(RapwordsError):
    def __init__(self, code: str = "not_found"):
        super().__init__(code)
        self.code = code


class ImportFailed(RapwordsError):
    """The import transaction failed and was rolled back."""
