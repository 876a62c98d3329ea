"""
Handler registry mapping resource kinds to their admission callbacks.

The registry is built once at startup and is read-only afterwards, so it can
be shared by concurrent requests without locking.
"""

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TypeAlias

from ..models.admission import UserInfo
from ..models.common import GenericResource
from .patch import PatchOperation


@dataclass(frozen=True)
class AdmissionContext:
    """Request-scoped information handed to defaulters and validators."""

    kind: str
    namespace: str
    name: str
    operation: str
    uid: str = ""
    user_info: UserInfo | None = None
    dry_run: bool = False
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("build_webhook.webhooks")
    )


Defaulter: TypeAlias = Callable[
    [AdmissionContext, list[PatchOperation], GenericResource | None], None
]
Validator: TypeAlias = Callable[
    [
        AdmissionContext,
        list[PatchOperation],
        GenericResource | None,
        GenericResource | None,
    ],
    None,
]


@dataclass(frozen=True)
class HandlerDescriptor:
    """
    Admission callbacks for one resource kind.

    ``factory`` is the document model new and old objects are decoded into.
    Defaulters and validators signal denial by raising; mutations are
    appended to the shared patch list.
    """

    kind: str
    factory: type[GenericResource]
    validator: Validator
    defaulter: Defaulter | None = None

    def __post_init__(self):
        if not self.kind:
            raise ValueError("handler kind must not be empty")
        if self.validator is None:
            raise ValueError(f"handler for {self.kind} requires a validator")


class HandlerRegistry(Mapping[str, HandlerDescriptor]):
    """Immutable kind -> handler table."""

    def __init__(self, handlers: Iterable[HandlerDescriptor]):
        table: dict[str, HandlerDescriptor] = {}
        for handler in handlers:
            if handler.kind in table:
                raise ValueError(f"duplicate handler for kind {handler.kind!r}")
            table[handler.kind] = handler
        self._handlers = MappingProxyType(table)

    def __getitem__(self, kind: str) -> HandlerDescriptor:
        return self._handlers[kind]

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"HandlerRegistry({sorted(self._handlers)})"
