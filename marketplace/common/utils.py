from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from marketplace.common.constants import request_id_ctx


def now() -> datetime:
    return datetime.now(timezone.utc)


def _envelope(status: str, data: Optional[Dict[str, Any]], error: Optional[Dict[str, Any]],
              request_id: Optional[str], trace_id: Optional[str]) -> Dict[str, Any]:
    return {
        "status": status,
        "data": data,
        "error": error,
        "trace_id": trace_id,
        "request_id": request_id if request_id is not None else request_id_ctx.get(),
    }


def build_success(data: Dict[str, Any], trace_id: Optional[str] = None,
                  request_id: Optional[str] = None) -> Dict[str, Any]:
    return _envelope("ok", data, None, request_id, trace_id)


def build_error(code: Union[str, int] = "UNKNOWN_ERROR", details: Optional[Any] = None,
                request_id: Optional[str] = None, trace_id: Optional[str] = None) -> Dict[str, Any]:
    return _envelope("error", None, {"code": code, "details": details}, request_id, trace_id)


def json_response(content: Dict[str, Any], status_code: int = 200, headers=None) -> JSONResponse:
    # datetimes and uuids in payloads
    return JSONResponse(jsonable_encoder(content), status_code=status_code, headers=headers)


def success_response(data: Dict[str, Any], status_code: int = 200,
                     headers: Optional[Dict[str, Any]] = None) -> JSONResponse:
    return json_response(build_success(data), status_code=status_code, headers=headers)


def error_response(code: Union[str, int], details: Any, status_code: int, headers=None) -> JSONResponse:
    return json_response(build_error(code=code, details=details), status_code=status_code, headers=headers)
