"""Variable directory projection and remote command protocol."""

from varbridge.bridge.coercion import coerce_value
from varbridge.bridge.dispatcher import Action, CommandDispatcher, HookRequest, is_authorized
from varbridge.bridge.errors import (
    AuthError,
    BridgeError,
    InternalError,
    MethodError,
    NotFoundError,
    ValidationError,
    WriteFailed,
)
from varbridge.bridge.paging import Page, paginate
from varbridge.bridge.registry import Device, DeviceRegistry, DeviceRegistryEntry
from varbridge.bridge.walker import VariableRecord, build_path, walk_variables
from varbridge.bridge.writer import WriteResult, write_variable

__all__ = [
    "Action",
    "AuthError",
    "BridgeError",
    "CommandDispatcher",
    "Device",
    "DeviceRegistry",
    "DeviceRegistryEntry",
    "HookRequest",
    "InternalError",
    "MethodError",
    "NotFoundError",
    "Page",
    "ValidationError",
    "VariableRecord",
    "WriteFailed",
    "WriteResult",
    "build_path",
    "coerce_value",
    "is_authorized",
    "paginate",
    "walk_variables",
    "write_variable",
]
