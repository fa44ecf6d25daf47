"""
Media attached to an alert.

Clients send media in several shapes: nothing, a single path, a list of
paths, a JSON-encoded list, or an object such as {"url": ...} or
{"files": [...]}. normalize_media() turns all of them into one of three
variants at the API boundary; the rest of the code only calls .paths().
"""

import json
from typing import Any, List, Literal, Union

from pydantic import BaseModel

from gasy_hub.core.errors import ValidationError


class NoMedia(BaseModel):
    kind: Literal["none"] = "none"

    def paths(self) -> List[str]:
        return []


class SingleMedia(BaseModel):
    kind: Literal["single"] = "single"
    path: str

    def paths(self) -> List[str]:
        return [self.path]


class ManyMedia(BaseModel):
    kind: Literal["many"] = "many"
    items: List[str]

    def paths(self) -> List[str]:
        return list(self.items)


Media = Union[NoMedia, SingleMedia, ManyMedia]

_MAPPING_KEYS = ("url", "path", "files", "urls", "paths")


def _from_list(values: List[Any]) -> Media:
    paths: List[str] = []
    for value in values:
        if not isinstance(value, str):
            raise ValidationError(f"Invalid media entry: {value!r}")
        value = value.strip()
        if value:
            paths.append(value)

    if not paths:
        return NoMedia()
    if len(paths) == 1:
        return SingleMedia(path=paths[0])
    return ManyMedia(items=paths)


def normalize_media(raw: Any) -> Media:
    """
    Normalize any accepted media payload.

    Raises:
        ValidationError: for shapes that are not media references
    """
    if raw is None:
        return NoMedia()

    if isinstance(raw, (NoMedia, SingleMedia, ManyMedia)):
        return raw

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return NoMedia()
        # Multipart forms can only carry strings, so lists arrive JSON-encoded
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                raise ValidationError("Invalid media list: not valid JSON")
            if not isinstance(decoded, list):
                raise ValidationError("Invalid media list")
            return _from_list(decoded)
        return SingleMedia(path=text)

    if isinstance(raw, (list, tuple)):
        return _from_list(list(raw))

    if isinstance(raw, dict):
        for key in _MAPPING_KEYS:
            if key in raw:
                return normalize_media(raw[key])
        raise ValidationError(f"Unrecognized media object keys: {sorted(raw.keys())}")

    raise ValidationError(f"Unsupported media type: {type(raw).__name__}")


def merge_media(*parts: Media) -> Media:
    """Combine several normalized media values, keeping order."""
    paths: List[str] = []
    for part in parts:
        paths.extend(part.paths())
    return _from_list(paths)
