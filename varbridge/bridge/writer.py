"""Write path selection: actuate through the owning instance, else set directly."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from varbridge.bridge.coercion import coerce_value
from varbridge.bridge.errors import NotFoundError, WriteFailed
from varbridge.bridge.walker import find_instance_id
from varbridge.store.base import ObjectStore

PATH_ACTUATE = "actuate"
PATH_DIRECT_SET = "direct-set"
PATH_JOINER = " -> "


@dataclass(slots=True)
class WriteResult:
    var_id: int
    used: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"var_id": self.var_id, "used": self.used, "value": self.value}


def write_variable(store: ObjectStore, var_id: int, raw_value: Any) -> WriteResult:
    """Coerce ``raw_value`` to the variable's type and write it.

    Raises NotFoundError when ``var_id`` is not a variable and WriteFailed when
    neither write path succeeds. The returned value is re-read from the store.
    """
    var_id = int(var_id)
    var = store.get_variable(var_id)
    obj = store.get_object(var_id)
    if var is None or obj is None:
        raise NotFoundError("Variable not found", {"var_id": var_id})

    coerced = coerce_value(raw_value, var.type)
    tried: list[str] = []
    error: str | None = None
    ok = False

    instance_id = find_instance_id(store, var_id) if obj.ident else 0
    if obj.ident and instance_id:
        tried.append(PATH_ACTUATE)
        try:
            ok = bool(store.request_action(instance_id, obj.ident, coerced))
            if not ok:
                error = f"action request for {obj.ident!r} was refused"
        except Exception as e:
            error = str(e)
        if not ok:
            logger.warning(f"actuate failed for variable {var_id}, falling back to direct set: {error}")

    if not ok:
        tried.append(PATH_DIRECT_SET)
        try:
            store.set_value(var_id, coerced)
            ok = True
        except Exception as e:
            error = str(e)

    used = PATH_JOINER.join(tried)
    if not ok:
        raise WriteFailed("Set failed", {"var_id": var_id, "used": used, "error": error})
    return WriteResult(var_id=var_id, used=used, value=store.get_value(var_id))
