"""Action envelope: ``{action, args}`` in, ``{ok, result|error}`` out."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from varbridge.bridge.errors import BridgeError, ValidationError


@dataclass(slots=True)
class ActionRequest:
    action: str
    args: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_body(cls, body: bytes | str) -> "ActionRequest":
        """Parse a request body; anything but a JSON object is rejected."""
        try:
            text = body.decode("utf-8") if isinstance(body, bytes) else body
            data = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError("Invalid JSON") from e
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON")
        args = data.get("args")
        return cls(
            action=str(data.get("action") or ""),
            args=dict(args) if isinstance(args, dict) else {},
        )


def ok_envelope(result: dict[str, Any]) -> dict[str, Any]:
    return {"ok": True, "result": result}


def error_envelope(message: str, *, code: int = 500, data: Any = None) -> dict[str, Any]:
    return {"ok": False, "error": {"message": message, "code": int(code), "data": data}}


def envelope_for_error(error: BridgeError) -> dict[str, Any]:
    return error_envelope(error.message, code=error.code, data=error.data)


def dump_envelope(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, default=str).encode("utf-8")
