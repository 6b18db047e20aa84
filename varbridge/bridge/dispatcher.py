"""Single-endpoint command dispatcher: authorize, route, execute, respond."""

from __future__ import annotations

import hmac
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from http import HTTPStatus
from typing import Any, Callable

from loguru import logger

from varbridge.bridge.envelope import ActionRequest, envelope_for_error, ok_envelope
from varbridge.bridge.errors import (
    AuthError,
    BridgeError,
    InternalError,
    MethodError,
    NotFoundError,
    ValidationError,
)
from varbridge.bridge.paging import DEFAULT_PAGE_SIZE, paginate
from varbridge.bridge.registry import DeviceRegistry
from varbridge.bridge.walker import read_record, walk_variables
from varbridge.bridge.writer import write_variable
from varbridge.store.base import ObjectStore


class Action(StrEnum):
    """Actions accepted in the request envelope."""

    LIST_VARIABLES = "list_variables"
    GET_VAR = "get_var"
    SET_VAR = "set_var"
    LIST_DEVICES = "list_devices"
    PING = "ping"


@dataclass(slots=True)
class HookRequest:
    """Transport-neutral view of one inbound request."""

    method: str
    headers: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    body_error: str = ""


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, item in headers.items():
            if str(key).lower() == lowered:
                value = item
                break
    return str(value or "").strip()


def _first_query_value(params: Mapping[str, list[str]], *keys: str) -> str | None:
    for key in keys:
        values = params.get(key, [])
        if values:
            return str(values[0])
    return None


def _to_int_value(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return int(default)


def presented_token(headers: Mapping[str, str], query: Mapping[str, list[str]]) -> str:
    """Token from ``Authorization`` (``Bearer x`` or raw), else ``?token=``."""
    raw_auth = _header(headers, "Authorization")
    if raw_auth.lower().startswith("bearer "):
        candidate = raw_auth[7:].strip()
    else:
        candidate = raw_auth
    if not candidate:
        candidate = str(_first_query_value(query, "token") or "")
    return candidate


def is_authorized(
    headers: Mapping[str, str],
    query: Mapping[str, list[str]],
    *,
    token: str,
    allow_no_auth: bool = False,
) -> bool:
    if allow_no_auth:
        return True
    expected = (token or "").strip()
    if not expected:
        return False
    return hmac.compare_digest(presented_token(headers, query).encode("utf-8"), expected.encode("utf-8"))


class CommandDispatcher:
    """Maps an authenticated action envelope onto bridge operations.

    Stateless between requests; every call to :meth:`handle` yields exactly one
    ``(status, envelope)`` pair whose status equals ``error.code`` on failure.
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: DeviceRegistry,
        *,
        auth_token: str = "",
        allow_no_auth: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.registry = registry
        self.auth_token = auth_token
        self.allow_no_auth = bool(allow_no_auth)
        self._clock = clock
        self._handlers: dict[Action, Callable[[dict[str, Any]], dict[str, Any]]] = {
            Action.LIST_VARIABLES: self._list_variables,
            Action.GET_VAR: self._get_var,
            Action.SET_VAR: self._set_var,
            Action.LIST_DEVICES: self._list_devices,
            Action.PING: self._ping,
        }

    @property
    def actions(self) -> list[Action]:
        return list(self._handlers)

    def handle(self, request: HookRequest) -> tuple[HTTPStatus, dict[str, Any]]:
        try:
            self._authorize(request)
            action_request = self._route(request)
            result = self.execute(action_request)
        except BridgeError as e:
            return HTTPStatus(e.code), envelope_for_error(e)
        return HTTPStatus.OK, ok_envelope(result)

    def _authorize(self, request: HookRequest) -> None:
        if not is_authorized(
            request.headers,
            request.query,
            token=self.auth_token,
            allow_no_auth=self.allow_no_auth,
        ):
            raise AuthError()

    def _route(self, request: HookRequest) -> ActionRequest:
        if request.method.upper() != "POST":
            raise MethodError()
        if request.body_error:
            raise ValidationError(request.body_error)
        return ActionRequest.from_body(request.body)

    def execute(self, request: ActionRequest) -> dict[str, Any]:
        """Run one parsed action; unexpected failures become InternalError."""
        try:
            action = Action(request.action)
        except ValueError:
            raise ValidationError("Unknown action", {"action": request.action}) from None
        handler = self._handlers[action]
        try:
            return handler(request.args)
        except BridgeError:
            raise
        except Exception as e:
            logger.exception(f"action {action} failed")
            raise InternalError("Exception", {"message": str(e)}) from e

    def _list_variables(self, args: dict[str, Any]) -> dict[str, Any]:
        root_id = _to_int_value(args.get("root_id"), 0)
        page = paginate(
            walk_variables(self.store, root_id),
            filter_text=str(args.get("filter") or ""),
            page=_to_int_value(args.get("page"), 1),
            page_size=_to_int_value(args.get("page_size"), DEFAULT_PAGE_SIZE),
        )
        return {"root_id": root_id, **page.to_dict()}

    def _get_var(self, args: dict[str, Any]) -> dict[str, Any]:
        var_id = _to_int_value(args.get("var_id"), 0)
        var = self.store.get_variable(var_id)
        record = read_record(self.store, var_id) if var is not None else None
        if var is None or record is None:
            raise NotFoundError("Variable not found", {"var_id": var_id})
        profile_info = None
        if record.profile and self.store.profile_exists(record.profile):
            profile_info = self.store.get_profile(record.profile)
        return {
            **record.to_dict(),
            "changed": var.changed_at,
            "updated": var.updated_at,
            "profile_info": profile_info,
        }

    def _set_var(self, args: dict[str, Any]) -> dict[str, Any]:
        var_id = _to_int_value(args.get("var_id"), 0)
        return write_variable(self.store, var_id, args.get("value")).to_dict()

    def _list_devices(self, args: dict[str, Any]) -> dict[str, Any]:
        del args
        return {"devices": [device.to_dict() for device in self.registry.list_devices()]}

    def _ping(self, args: dict[str, Any]) -> dict[str, Any]:
        del args
        return {"pong": True, "time": int(self._clock())}
