"""JSON-RPC object store for IP-Symcon style automation hosts."""

from __future__ import annotations

import itertools
import threading
from typing import Any, Callable

import httpx
from loguru import logger

from varbridge.store.base import (
    ObjectInfo,
    ObjectKind,
    ObjectStore,
    ObjectStoreError,
    VariableInfo,
    VariableType,
)

RpcCaller = Callable[[str, list[Any]], Any]


class SymconObjectStore(ObjectStore):
    """Maps the store contract onto the host's JSON-RPC API (``/api/``)."""

    name = "symcon"

    def __init__(
        self,
        *,
        url: str = "http://127.0.0.1:3777/api/",
        username: str = "",
        password: str = "",
        timeout_seconds: float = 5.0,
        caller: RpcCaller | None = None,
    ) -> None:
        self.url = str(url or "").strip()
        self.timeout_seconds = max(0.2, float(timeout_seconds))
        self._ids = itertools.count(1)
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()
        self._auth = (username, password) if username or password else None
        self._caller = caller or self._http_call

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def call(self, method: str, *params: Any) -> Any:
        return self._caller(method, list(params))

    def _http_call(self, method: str, params: list[Any]) -> Any:
        if not self.url:
            raise ObjectStoreError("host url is not configured")
        body = {"jsonrpc": "2.0", "method": method, "params": params, "id": next(self._ids)}
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(timeout=self.timeout_seconds, auth=self._auth)
            client = self._client
        try:
            resp = client.post(self.url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ObjectStoreError(f"{method} failed: {e}") from e
        if not isinstance(data, dict):
            raise ObjectStoreError(f"{method} returned a malformed response")
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ObjectStoreError(f"{method}: {message}")
        return data.get("result")

    def object_exists(self, object_id: int) -> bool:
        return bool(self.call("IPS_ObjectExists", int(object_id)))

    def get_object(self, object_id: int) -> ObjectInfo | None:
        if not self.object_exists(object_id):
            return None
        try:
            raw = self.call("IPS_GetObject", int(object_id))
        except ObjectStoreError as e:
            logger.debug(f"object {object_id} vanished: {e}")
            return None
        if not isinstance(raw, dict):
            return None
        try:
            kind = ObjectKind(int(raw.get("ObjectType", 0)))
        except ValueError:
            kind = ObjectKind.CATEGORY
        return ObjectInfo(
            object_id=int(raw.get("ObjectID", object_id)),
            name=str(raw.get("ObjectName") or ""),
            kind=kind,
            parent_id=int(raw.get("ParentID") or 0),
            ident=str(raw.get("ObjectIdent") or ""),
            children=[int(c) for c in raw.get("ChildrenIDs") or []],
        )

    def variable_exists(self, var_id: int) -> bool:
        return bool(self.call("IPS_VariableExists", int(var_id)))

    def get_variable(self, var_id: int) -> VariableInfo | None:
        if not self.variable_exists(var_id):
            return None
        try:
            raw = self.call("IPS_GetVariable", int(var_id))
        except ObjectStoreError as e:
            logger.debug(f"variable {var_id} vanished: {e}")
            return None
        if not isinstance(raw, dict):
            return None
        return VariableInfo(
            var_id=int(raw.get("VariableID", var_id)),
            type=VariableType.parse(raw.get("VariableType")),
            profile=str(raw.get("VariableProfile") or ""),
            custom_profile=str(raw.get("VariableCustomProfile") or ""),
            changed_at=int(raw.get("VariableChanged") or 0),
            updated_at=int(raw.get("VariableUpdated") or 0),
        )

    def get_value(self, var_id: int) -> Any:
        return self.call("GetValue", int(var_id))

    def set_value(self, var_id: int, value: Any) -> None:
        if self.call("SetValue", int(var_id), value) is False:
            raise ObjectStoreError(f"SetValue rejected for variable {var_id}")

    def profile_exists(self, name: str) -> bool:
        return bool(self.call("IPS_VariableProfileExists", name))

    def get_profile(self, name: str) -> dict[str, Any] | None:
        if not self.profile_exists(name):
            return None
        raw = self.call("IPS_GetVariableProfile", name)
        return raw if isinstance(raw, dict) else None

    def children_of(self, object_id: int) -> list[int]:
        raw = self.call("IPS_GetChildrenIDs", int(object_id))
        return [int(c) for c in raw or []]

    def request_action(self, instance_id: int, ident: str, value: Any) -> bool:
        result = self.call("IPS_RequestAction", int(instance_id), ident, value)
        return result is not False
