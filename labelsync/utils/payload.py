"""
Safe path access over loosely-typed upstream JSON.
"""
from typing import Any, Sequence, Union

Path = Union[str, Sequence[Union[str, int]]]

_MISSING = object()


def _step(current: Any, key: Union[str, int]) -> Any:
    if isinstance(current, dict):
        return current.get(key, _MISSING)
    # Lists are indexed by position; "0" in a dotted path addresses the first element
    try:
        index = int(key)
    except (TypeError, ValueError):
        return _MISSING
    if index < 0 or index >= len(current):
        return _MISSING
    return current[index]


def get(obj: Any, path: Path, default: Any = None) -> Any:
    """
    Walk ``path`` (dotted string or pre-split keys) through dicts and lists.

    Returns ``default`` as soon as an intermediate value is None or not a
    container, or when the final key is absent. An explicit ``None`` at the
    end of the path is returned as-is. Never raises.
    """
    keys = path.split(".") if isinstance(path, str) else list(path)
    current = obj
    for key in keys:
        if current is None or current is _MISSING or not isinstance(current, (dict, list, tuple)):
            return default
        current = _step(current, key)
    return default if current is _MISSING else current


def first_present(obj: Any, paths: Sequence[Path], default: Any = None) -> Any:
    """First truthy value among ``paths``; ``default`` when none resolves."""
    for path in paths:
        value = get(obj, path)
        if value:
            return value
    return default
