"""Validation errors raised while building a Content-Security-Policy header."""

from __future__ import annotations

import json

__all__ = [
    "ContentSecurityPolicyError",
    "InvalidDirectiveNameError",
    "DuplicateDirectiveError",
    "InvalidDirectiveValueError",
    "InvalidDirectivesError",
    "NoDirectivesError",
    "MissingDefaultSrcError",
]


class ContentSecurityPolicyError(ValueError):
    """Base class for every policy validation failure."""

    def __init__(self, message: str, directive: str | None = None) -> None:
        super().__init__(message)
        self.directive = directive


class InvalidDirectiveNameError(ContentSecurityPolicyError):
    """Raised for an empty directive name or one with illegal characters."""

    def __init__(self, raw_name: object) -> None:
        super().__init__(
            f"Content-Security-Policy received an invalid directive name {_quote(raw_name)}",
        )
        self.raw_name = raw_name


class DuplicateDirectiveError(ContentSecurityPolicyError):
    """Raised when two raw names canonicalize to the same directive."""

    def __init__(self, directive: str) -> None:
        super().__init__(
            f"Content-Security-Policy received a duplicate directive {_quote(directive)}",
            directive,
        )


class InvalidDirectiveValueError(ContentSecurityPolicyError):
    """Raised for a missing value or one that would break the header syntax."""

    def __init__(self, directive: str, message: str | None = None) -> None:
        super().__init__(
            message
            or f"Content-Security-Policy received an invalid directive value for {_quote(directive)}",
            directive,
        )


class InvalidDirectivesError(ContentSecurityPolicyError):
    """Raised when ``directives`` is not a name-to-value mapping."""

    def __init__(self, directives: object) -> None:
        super().__init__(
            "Content-Security-Policy expected directives to be a mapping of names to values, "
            f"got {type(directives).__name__}"
        )


class NoDirectivesError(ContentSecurityPolicyError):
    def __init__(self) -> None:
        super().__init__(
            "Content-Security-Policy has no directives. Either set some or disable the header"
        )


class MissingDefaultSrcError(ContentSecurityPolicyError):
    def __init__(self) -> None:
        super().__init__(
            "Content-Security-Policy needs a default-src but none was provided",
            "default-src",
        )


def _quote(value: object) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)
