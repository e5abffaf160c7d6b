"""Helpers shared by the resource routers."""

import json
import mimetypes
from urllib.parse import quote

from fastapi import Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from tenantfiles.core.exceptions import BadArgumentError

OCTET_STREAM = "application/octet-stream"


def parse_form_payload(schema: type[BaseModel], raw: str | None) -> BaseModel:
    """Validate the JSON ``data`` part of a multipart request.

    Raises:
        BadArgumentError: If the part is missing or not JSON
        RequestValidationError: If the JSON does not match the schema
    """
    if raw is None or not raw.strip():
        raise BadArgumentError("Form field 'data' is required")
    try:
        return schema.model_validate_json(raw)
    except ValidationError as exc:
        try:
            json.loads(raw)
        except ValueError:
            raise BadArgumentError("Form field 'data' must be a JSON object") from None
        raise RequestValidationError(exc.errors(include_url=False)) from None


def file_response(data: bytes, file_name: str | None, media_type: str | None = None) -> Response:
    """Binary response offering the content as a download named ``file_name``."""
    name = file_name or "file"
    media_type = media_type or mimetypes.guess_type(name)[0] or OCTET_STREAM
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(name)}"},
    )
