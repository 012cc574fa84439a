"""Errors surfaced to callers of the resolution pipeline."""

from __future__ import annotations


class ResolveError(Exception):
    """A request could not be processed."""

    def __init__(self, message: str = "could not process request") -> None:
        super().__init__(message)


class InputValidationError(ResolveError):
    """The inquiry text was rejected before extraction."""


class ClientNotFoundError(ResolveError):
    """The referenced client does not exist in the client store."""

    def __init__(self, client_ref: int | str) -> None:
        self.client_ref = client_ref
        super().__init__(f"client not found: {client_ref}")


class StoreError(ResolveError):
    """The inventory or client store failed."""
