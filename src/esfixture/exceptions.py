"""Fixture-related exceptions.

Errors raised by the Elasticsearch client itself (``ConnectionError``,
``NotFoundError`` and the other ``ApiError`` subclasses) are never wrapped;
they reach the test unchanged.
"""


class EsFixtureError(Exception):
    """Base exception for errors raised by esfixture itself."""

    pass


class ConfigurationError(EsFixtureError):
    """Raised when fixture settings or the config file are invalid."""

    pass


class ClientNotConnectedError(EsFixtureError):
    """Raised when the client is used before the session connected it."""

    pass


class DocumentAssertionError(AssertionError):
    """Raised when a document existence check does not hold.

    Subclasses ``AssertionError`` so pytest reports it as a normal test
    failure rather than an error.
    """

    def __init__(self, message: str, index: str, document_id: str | int) -> None:
        super().__init__(message)
        self.index = index
        self.document_id = document_id
