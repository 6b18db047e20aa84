"""Object store contract consumed by the bridge."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ObjectStoreError(RuntimeError):
    """Raised when the host store cannot be reached or rejects a call."""


class ObjectKind(IntEnum):
    """Host object kinds."""

    CATEGORY = 0
    INSTANCE = 1
    VARIABLE = 2
    SCRIPT = 3
    EVENT = 4
    MEDIA = 5
    LINK = 6


class VariableType(IntEnum):
    """Declared variable value types."""

    BOOLEAN = 0
    INTEGER = 1
    FLOAT = 2
    STRING = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: Any) -> "VariableType":
        """Map a host type code to a member; unknown codes read as STRING."""
        try:
            return cls(int(value))
        except (TypeError, ValueError, OverflowError):
            return cls.STRING


@dataclass(slots=True)
class ObjectInfo:
    """Tree node as reported by the host."""

    object_id: int
    name: str
    kind: ObjectKind
    parent_id: int = 0
    ident: str = ""
    children: list[int] = field(default_factory=list)

    @property
    def is_variable(self) -> bool:
        return self.kind == ObjectKind.VARIABLE

    @property
    def is_instance(self) -> bool:
        return self.kind == ObjectKind.INSTANCE


@dataclass(slots=True)
class VariableInfo:
    """Variable metadata (value is read separately)."""

    var_id: int
    type: VariableType
    profile: str = ""
    custom_profile: str = ""
    changed_at: int = 0
    updated_at: int = 0

    @property
    def effective_profile(self) -> str:
        return self.profile or self.custom_profile


class ObjectStore(ABC):
    """Narrow read/write view over the host's object tree.

    Lookups of vanished objects return ``None``/``False`` rather than raising;
    implementations only raise :class:`ObjectStoreError` for transport faults
    or rejected writes.
    """

    name: str = "base"

    @abstractmethod
    def object_exists(self, object_id: int) -> bool:
        """Whether ``object_id`` currently resolves."""

    @abstractmethod
    def get_object(self, object_id: int) -> ObjectInfo | None:
        """Object header, or ``None`` when it does not exist."""

    @abstractmethod
    def variable_exists(self, var_id: int) -> bool:
        """Whether ``var_id`` resolves to a variable."""

    @abstractmethod
    def get_variable(self, var_id: int) -> VariableInfo | None:
        """Variable metadata, or ``None`` when it does not exist."""

    @abstractmethod
    def get_value(self, var_id: int) -> Any:
        """Current stored value."""

    @abstractmethod
    def set_value(self, var_id: int, value: Any) -> None:
        """Write ``value`` straight into the variable's stored value."""

    @abstractmethod
    def profile_exists(self, name: str) -> bool:
        """Whether a value profile called ``name`` exists."""

    @abstractmethod
    def get_profile(self, name: str) -> dict[str, Any] | None:
        """Profile metadata, or ``None`` when it does not exist."""

    @abstractmethod
    def children_of(self, object_id: int) -> list[int]:
        """Child ids of ``object_id`` in host order (``0`` is the tree root)."""

    @abstractmethod
    def request_action(self, instance_id: int, ident: str, value: Any) -> bool:
        """Ask the owning instance to actuate ``ident``; ``False`` when refused."""

    def close(self) -> None:
        """Release backend resources."""
