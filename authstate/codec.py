"""JSON codec that carries binary payloads as base64 ``Buffer`` objects.

Encoded form of ``b"\\x01\\x02"``::

    {"type": "Buffer", "data": "AQI="}

Decoding also accepts ``data`` as a list of byte values, which is how
Node.js serializes a Buffer with ``Buffer.toJSON()``.
"""

from __future__ import annotations

import base64
import json
from typing import Any

BUFFER_TYPE = "Buffer"


def _replacer(obj: Any) -> Any:
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return {"type": BUFFER_TYPE, "data": base64.b64encode(bytes(obj)).decode("ascii")}
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _reviver(obj: dict) -> Any:
    if obj.get("type") == BUFFER_TYPE and "data" in obj:
        data = obj["data"]
        if isinstance(data, str):
            return base64.b64decode(data, validate=True)
        if isinstance(data, list):
            return bytes(data)
    return obj


def encode(value: Any) -> str:
    """Serialize a value to JSON text, encoding bytes as Buffer objects."""
    return json.dumps(value, default=_replacer, separators=(",", ":"))


def decode(text: str) -> Any:
    """Inverse of :func:`encode`.

    Raises ValueError on malformed JSON or base64, TypeError on a Buffer
    whose byte list holds non-integers.
    """
    return json.loads(text, object_hook=_reviver)
