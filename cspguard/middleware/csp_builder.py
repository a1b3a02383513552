"""Pure-function CSP (Content-Security-Policy) normalization and rendering."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable, Union

from cspguard.config.directive_defaults import (
    get_default_directives,
    is_disable_sentinel,
)
from cspguard.errors import (
    DuplicateDirectiveError,
    InvalidDirectiveNameError,
    InvalidDirectiveValueError,
    InvalidDirectivesError,
    MissingDefaultSrcError,
    NoDirectivesError,
)

DirectiveValueProducer = Callable[[Any, Any], str]

_DIRECTIVE_NAME_RE = re.compile(r"[a-zA-Z0-9-]+")
_CAPITAL_RE = re.compile(r"[A-Z]")
_SEPARATOR_RE = re.compile(r"[;,]")


def dashify(name: str) -> str:
    """Convert a camelCase directive name to kebab-case.

    Example:
        >>> dashify("scriptSrcAttr")
        "script-src-attr"
    """
    return _CAPITAL_RE.sub(lambda m: "-" + m.group(0).lower(), name)


def is_directive_value_invalid(value: str) -> bool:
    """Return True if the value contains a directive or value separator."""
    return _SEPARATOR_RE.search(value) is not None


@dataclass(frozen=True)
class LiteralValue:
    text: str

    def resolve(self, request: Any, response: Any) -> str:
        return self.text


@dataclass(frozen=True)
class DynamicValue:
    """Directive value computed per request, e.g. a nonce."""

    producer: DirectiveValueProducer

    def resolve(self, request: Any, response: Any) -> str:
        return self.producer(request, response)


DirectiveValue = Union[LiteralValue, DynamicValue]


@dataclass(frozen=True)
class NormalizedDirective:
    name: str
    values: tuple[DirectiveValue, ...]

    def render(self, request: Any, response: Any) -> str:
        """Render ``name`` followed by each resolved value, or the bare name if valueless."""
        rendered = ""
        for value in self.values:
            resolved = value.resolve(request, response)
            if not isinstance(resolved, str):
                raise InvalidDirectiveValueError(self.name)
            rendered += " " + resolved

        if not rendered:
            return self.name
        if is_directive_value_invalid(rendered):
            raise InvalidDirectiveValueError(self.name)
        return f"{self.name}{rendered}"


@dataclass(frozen=True)
class NormalizedPolicy:
    """Validated, ordered directives. Immutable, shared by every request."""

    directives: tuple[NormalizedDirective, ...]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(d.name for d in self.directives)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __iter__(self):
        return iter(self.directives)

    def __len__(self) -> int:
        return len(self.directives)

    def render(self, request: Any = None, response: Any = None) -> str:
        """Build the header value, resolving dynamic values against this request."""
        return ";".join(d.render(request, response) for d in self.directives)


def _to_directive_value(directive_name: str, element: Any) -> DirectiveValue:
    if isinstance(element, str):
        if is_directive_value_invalid(element):
            raise InvalidDirectiveValueError(directive_name)
        return LiteralValue(element)
    if callable(element):
        # Output is unknown until a request arrives; checked in render().
        return DynamicValue(element)
    raise InvalidDirectiveValueError(directive_name)


def _resolve_raw_value(directive_name: str, raw_value: Any) -> tuple[DirectiveValue, ...]:
    if isinstance(raw_value, str):
        raw_value = [raw_value]
    elif raw_value is None or raw_value is False:
        raise InvalidDirectiveValueError(directive_name)
    elif isinstance(raw_value, (bytes, Mapping)) or not isinstance(raw_value, Iterable):
        raise InvalidDirectiveValueError(directive_name)
    return tuple(_to_directive_value(directive_name, element) for element in raw_value)


def normalize_directives(options: Mapping[str, Any] | None = None) -> NormalizedPolicy:
    """Validate raw directives and return the normalized policy.

    ``options["directives"]`` maps camelCase or kebab-case names to a list of
    values, a bare string, or the default-src disable sentinel. When absent,
    the built-in defaults are used. Raises a ContentSecurityPolicyError subclass
    on the first violation.

    Example:
        >>> normalize_directives({"directives": {"defaultSrc": "'self'"}}).render()
        "default-src 'self'"
    """
    options = options or {}
    raw_directives = options.get("directives")
    if raw_directives is None:
        raw_directives = get_default_directives()
    elif not isinstance(raw_directives, Mapping):
        raise InvalidDirectivesError(raw_directives)

    result: list[NormalizedDirective] = []
    seen: set[str] = set()
    default_src_disabled = False

    for raw_name, raw_value in raw_directives.items():
        if not isinstance(raw_name, str) or not _DIRECTIVE_NAME_RE.fullmatch(raw_name):
            raise InvalidDirectiveNameError(raw_name)

        name = dashify(raw_name)
        if name in seen:
            raise DuplicateDirectiveError(name)
        seen.add(name)

        if is_disable_sentinel(raw_value):
            if name != "default-src":
                raise InvalidDirectiveValueError(
                    name,
                    f'Content-Security-Policy: tried to disable "{name}" as if it were '
                    "default-src; simply omit the key",
                )
            default_src_disabled = True
            continue

        result.append(NormalizedDirective(name, _resolve_raw_value(name, raw_value)))

    if not result:
        raise NoDirectivesError()
    if "default-src" not in seen and not default_src_disabled:
        raise MissingDefaultSrcError()

    return NormalizedPolicy(tuple(result))


def get_header_value(request: Any, response: Any, policy: NormalizedPolicy) -> str:
    """Render ``policy`` for one request/response pair."""
    return policy.render(request, response)
