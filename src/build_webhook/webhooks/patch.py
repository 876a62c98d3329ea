"""
JSON patch construction by structural diff.

``create_patch`` normalizes two JSON-like documents and lets ``jsonpatch``
compute the RFC 6902 operations that turn the first into the second. The
result is carried as ``PatchOperation`` values so handlers and the generation
policy can append to one shared list.
"""

import json
from dataclasses import dataclass
from typing import Any, TypeAlias

import jsonpatch
from pydantic import BaseModel

from ..errors import EncodingError

JSONDocument: TypeAlias = dict[str, Any] | list[Any] | str | int | float | bool | None


@dataclass(frozen=True)
class PatchOperation:
    """A single JSON patch operation."""

    op: str
    path: str
    value: Any = None
    from_: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire form; ``remove`` has no value, ``move`` and ``copy`` use ``from``."""
        if self.op == "remove":
            return {"op": self.op, "path": self.path}
        if self.op in ("move", "copy"):
            return {"op": self.op, "from": self.from_, "path": self.path}
        return {"op": self.op, "path": self.path, "value": self.value}

    @classmethod
    def from_dict(cls, operation: dict[str, Any]) -> "PatchOperation":
        return cls(
            op=operation["op"],
            path=operation["path"],
            value=operation.get("value"),
            from_=operation.get("from"),
        )


def normalize(document: Any) -> JSONDocument:
    """
    Normalize a document to plain JSON types.

    Accepts pydantic models, raw JSON bytes/strings of a document, and any
    JSON-serializable Python structure.

    Raises:
        EncodingError: If the input cannot be represented as JSON
    """
    if isinstance(document, BaseModel):
        return document.model_dump(mode="json", by_alias=True, exclude_none=True)
    try:
        if isinstance(document, bytes | bytearray):
            return json.loads(document)
        return json.loads(json.dumps(document, allow_nan=False))
    except (TypeError, ValueError) as e:
        raise EncodingError(f"cannot normalize document: {e}", cause=e) from e


def create_patch(old: Any, new: Any) -> list[PatchOperation]:
    """
    Compute the operations transforming ``old`` into ``new``.

    Structurally equal sub-trees produce no operations.

    Raises:
        EncodingError: If either input cannot be normalized
    """
    patch = jsonpatch.make_patch(normalize(old), normalize(new))
    return [PatchOperation.from_dict(operation) for operation in patch.patch]


def serialize_patch(operations: list[PatchOperation]) -> bytes:
    """
    Encode operations as a JSON patch document.

    An empty list encodes as ``[]``, never ``null``.
    """
    return json.dumps([operation.to_dict() for operation in operations]).encode(
        "utf-8"
    )
