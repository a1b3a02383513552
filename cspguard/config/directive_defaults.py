"""Built-in directive table and the sentinel for disabling default-src."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping


class _DisableDefaultSrc:
    """Marker type for explicitly dropping default-src from a policy."""

    _instance: _DisableDefaultSrc | None = None

    def __new__(cls) -> _DisableDefaultSrc:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DANGEROUSLY_DISABLE_DEFAULT_SRC"

    def __copy__(self) -> _DisableDefaultSrc:
        return self

    def __deepcopy__(self, memo: dict) -> _DisableDefaultSrc:
        return self

    def __reduce__(self) -> str:
        return "DANGEROUSLY_DISABLE_DEFAULT_SRC"


DANGEROUSLY_DISABLE_DEFAULT_SRC = _DisableDefaultSrc()
dangerously_disable_default_src = DANGEROUSLY_DISABLE_DEFAULT_SRC

# Order matters: it is reproduced verbatim in the rendered header.
DEFAULT_DIRECTIVES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "default-src": ("'self'",),
    "base-uri": ("'self'",),
    "block-all-mixed-content": (),
    "font-src": ("'self'", "https:", "data:"),
    "frame-ancestors": ("'self'",),
    "img-src": ("'self'", "data:"),
    "object-src": ("'none'",),
    "script-src": ("'self'",),
    "script-src-attr": ("'none'",),
    "style-src": ("'self'", "https:", "'unsafe-inline'"),
    "upgrade-insecure-requests": (),
})


def get_default_directives() -> dict[str, list[Any]]:
    """Return a fresh copy of the default directives, safe for the caller to mutate."""
    return {name: list(values) for name, values in DEFAULT_DIRECTIVES.items()}


def is_disable_sentinel(value: object) -> bool:
    return value is DANGEROUSLY_DISABLE_DEFAULT_SRC
