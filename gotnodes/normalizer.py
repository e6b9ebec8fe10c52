#!/usr/bin/env python3
"""
Field Normalizer
Ordered fallback lookups over heterogeneous JSON payloads and scraped text.

Each field is described by a list of extractor callables. Extractors are tried
in order and the first one that yields a usable value wins, so supporting a new
upstream shape means appending another key path or pattern to the list.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

Extractor = Callable[[Any], Any]


def key_path(*keys: Union[str, int]) -> Extractor:
    """Walk nested dicts/lists; any missing hop yields None"""

    def extract(payload: Any) -> Any:
        current = payload
        for key in keys:
            if isinstance(key, int) and isinstance(current, list):
                if -len(current) <= key < len(current):
                    current = current[key]
                    continue
                return None
            if isinstance(current, dict):
                current = current.get(key)
            else:
                return None
            if current is None:
                return None
        return current

    extract.__name__ = "key_path(" + ".".join(str(k) for k in keys) + ")"
    return extract


def pattern(regex: str, group: int = 1, flags: int = re.IGNORECASE) -> Extractor:
    """First capture group of a regex over plain text"""
    compiled = re.compile(regex, flags)

    def extract(payload: Any) -> Any:
        if not isinstance(payload, str):
            return None
        match = compiled.search(payload)
        if not match:
            return None
        value = match.group(group)
        return value.strip() if value else None

    extract.__name__ = f"pattern({regex})"
    return extract


def _usable(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def first_match(payload: Any, extractors: Iterable[Extractor]) -> Any:
    """Return the first non-null, non-empty extractor result, else None"""
    for extractor in extractors:
        try:
            value = extractor(payload)
        except (TypeError, ValueError, KeyError, IndexError, AttributeError):
            continue
        if _usable(value):
            return value
    return None


@dataclass
class FieldSpec:
    """Ordered candidate lookups for one output field plus an optional converter"""
    name: str
    extractors: List[Extractor] = field(default_factory=list)
    convert: Optional[Callable[[Any], Any]] = None

    def extract(self, payload: Any) -> Any:
        if self.convert is None:
            return first_match(payload, self.extractors)
        # Try candidates until one survives conversion
        for extractor in self.extractors:
            value = first_match(payload, [extractor])
            if value is None:
                continue
            converted = self.convert(value)
            if converted is not None:
                return converted
        return None


def normalize(payload: Any, specs: Iterable[FieldSpec]) -> Dict[str, Any]:
    return {spec.name: spec.extract(payload) for spec in specs}
