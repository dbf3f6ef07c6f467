"""Field mask helpers.

Get and Update operations accept dotted field paths. Paths that are not
known for the entity are dropped, and reserved fields are never returned.
"""

from typing import Any, Dict, Iterable, List, Optional

from ..config.constants import RESERVED_FIELDS


def normalize_paths(paths: Optional[Iterable[str]], allowed: Iterable[str]) -> List[str]:
    """Keep the known paths of a field mask, dropping unknown and reserved ones.

    A path is known when it, or one of its parents, is an allowed path.
    """
    allowed_set = set(allowed)
    result = []
    for path in paths or ():
        path = path.strip()
        if not path or path.split(".")[0] in RESERVED_FIELDS:
            continue
        parts = path.split(".")
        if any(".".join(parts[: i + 1]) in allowed_set for i in range(len(parts))):
            if path not in result:
                result.append(path)
    return result


def _get_path(data: Dict[str, Any], path: str) -> Any:
    value: Any = data
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            raise KeyError(path)
        value = value[part]
    return value


def _set_path(data: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def apply_field_mask(data: Dict[str, Any], paths: Optional[Iterable[str]], always: Iterable[str] = ()) -> Dict[str, Any]:
    """Project a dictionary onto a field mask.

    Args:
        data: Full dictionary representation
        paths: Dotted paths to keep; an empty mask keeps every field
        always: Paths that are kept regardless of the mask (identifiers)

    Returns:
        Projected dictionary without reserved fields
    """
    cleaned = {key: value for key, value in data.items() if key not in RESERVED_FIELDS}
    paths = list(paths or ())
    if not paths:
        return cleaned

    result: Dict[str, Any] = {}
    for path in list(always) + paths:
        try:
            _set_path(result, path, _get_path(cleaned, path))
        except KeyError:
            continue
    return result
