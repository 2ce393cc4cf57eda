"""
Value registry used to satisfy handler parameters by capability.

Keys
- type identity: register(value) files the value under type(value).
- alias: register_as(alias, value) files the value under a string, so a
  concrete value can satisfy a capability it does not literally match (an ABC,
  a runtime-checkable protocol, or a plain string tag in an annotation).

Each key holds at most one value; a later registration replaces the former.
There is no removal operation.
"""
from .utils import *


def _satisfies(value, capability, /):
    """
    True when value implements capability; non-checkable types never match.
    """
    try:
        return isinstance(value, capability)
    except TypeError:
        return False


class Registry:
    """
    Process-scoped table from a type or an alias to a concrete value.

    lookup(tag) order (first match wins)
    1. tag is a type registered by identity.
    2. tag (a string) or typename(tag) (a type) equals a registered alias.
    3. tag is a type and exactly one aliased value is an instance of it.
    """

    def __init__(self):
        self._types = {}
        self._aliases = {}

    def register(self, value, /):
        self._types[type(value)] = value
        return self

    def register_as(self, alias, value, /):
        if not isinstance(alias, str):
            raise TypeError("registry alias must be a string")
        elif not (alias := alias.strip()):
            raise ValueError("registry alias cannot be empty")
        self._aliases[alias] = value
        return self

    def lookup(self, tag, /):
        """
        Return (value, found) for a parameter tag.
        """
        if isinstance(tag, type) and tag in self._types:
            return self._types[tag], True

        if (alias := typename(tag)) in self._aliases:
            return self._aliases[alias], True

        if isinstance(tag, type):
            matches = [value for value in self._aliases.values() if _satisfies(value, tag)]
            if len(matches) == 1:
                return matches[0], True

        return None, False

    def __contains__(self, key, /):
        return key in self._types or key in self._aliases

    def __len__(self):
        return len(self._types) + len(self._aliases)

    def __iter__(self):
        yield from self._types
        yield from self._aliases

    def __repr__(self):
        return f"registry(types={list(map(typename, self._types))!r}, aliases={list(self._aliases)!r})"


__all__ = (
    "Registry",
)
