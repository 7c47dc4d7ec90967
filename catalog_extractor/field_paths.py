"""Dotted / indexed paths into nested record data (``technicalSpecs.weight``, ``images[0]``)"""
import re
from typing import Any, Iterator, List, Tuple, Union

_TOKEN_RE = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def split_path(path: str) -> List[Union[str, int]]:
    """``"a.b[0].c"`` -> ``["a", "b", 0, "c"]``"""
    parts: List[Union[str, int]] = []
    for name, index in _TOKEN_RE.findall(path or ""):
        parts.append(int(index) if index else name)
    return parts


def get_path(data: Any, path: str, default: Any = None) -> Any:
    """Resolve a path against nested dicts and lists, returning default when absent"""
    if isinstance(data, dict) and path in data:
        return data[path]

    current = data
    for part in split_path(path):
        if isinstance(part, int):
            if not isinstance(current, (list, tuple)) or part >= len(current):
                return default
            current = current[part]
        else:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
    return current


def join_path(prefix: str, key: Union[str, int]) -> str:
    if isinstance(key, int):
        return f"{prefix}[{key}]"
    return f"{prefix}.{key}" if prefix else key


def iter_leaf_paths(data: Any, prefix: str = "") -> Iterator[Tuple[str, Any]]:
    """
    Yield ``(path, value)`` for every addressable leaf

    Containers are descended into; empty containers are yielded as leaves so
    they stay visible to callers.
    """
    if isinstance(data, dict):
        items = list(data.items())
    elif isinstance(data, (list, tuple)):
        items = list(enumerate(data))
    else:
        if prefix:
            yield prefix, data
        return

    if not items and prefix:
        yield prefix, data
        return

    for key, value in items:
        path = join_path(prefix, key)
        if isinstance(value, (dict, list, tuple)):
            yield from iter_leaf_paths(value, path)
        else:
            yield path, value
