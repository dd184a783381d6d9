from __future__ import annotations

import json
from typing import Any

from fastapi import Request
from starlette.requests import ClientDisconnect

from humanivio.core.errors import HumanivioError, InvalidInputError


async def read_json_body(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ClientDisconnect as exc:
        raise HumanivioError("Client disconnected", status_code=499) from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidInputError("Invalid JSON body") from exc

    if not isinstance(payload, dict):
        raise InvalidInputError("JSON body must be an object")

    return payload
