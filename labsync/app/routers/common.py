"""Request helpers shared by the routers."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

from fastapi import Header, HTTPException, Request, status
from starlette.datastructures import UploadFile

from labsync.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_USER_ID = "anonymous"


async def get_current_user(x_user_id: Optional[str] = Header(None)) -> Dict[str, str]:
    """Caller identity from the ``X-User-Id`` header; authentication is upstream."""

    return {"user_id": x_user_id or DEFAULT_USER_ID}


def is_multipart(request: Request) -> bool:
    return "multipart/form-data" in request.headers.get("content-type", "")


async def read_json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body"
        ) from exc
    if not isinstance(body, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="JSON body must be an object"
        )
    return body


async def read_form(request: Request, file_field: str) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """Text fields and the named upload from a multipart request."""

    form = await request.form()
    upload = form.get(file_field)
    fields = {k: v for k, v in form.items() if isinstance(v, str)}
    return fields, upload if isinstance(upload, UploadFile) else None
