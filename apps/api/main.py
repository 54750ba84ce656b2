"""FastAPI wrapper for the label analysis and safe-edit pipeline."""

from __future__ import annotations

import importlib.metadata
import json
import logging
import os
import time
import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.config.models import EngineSettings
from core.config.settings_loader import load_settings
from core.orchestrator.pipeline import analysis_payload, analyze_label, edit_label
from core.render.preview_client import render_preview_async
from core.utils.errors import PreviewRenderError, ProtectedFieldError
from core.zpl.models import FieldRole
from core.zpl.templates import TEMPLATES

app = FastAPI(title="labelops API", version="0.1.0")
logger = logging.getLogger("labelops.api")

_REQUEST_ID_HEADER = "X-Labelops-Request-Id"
_DEFAULT_MAX_LABEL_BYTES = 256 * 1024


class AnalyzeRequest(BaseModel):
    """Body of ``POST /v1/analyze``."""

    model_config = ConfigDict(extra="forbid")

    zpl: str
    values: dict[str, str] | None = None
    preview_width: int | None = Field(default=None, gt=0)
    preview_height: int | None = Field(default=None, gt=0)


class EditRequest(BaseModel):
    """Body of ``POST /v1/edit``."""

    model_config = ConfigDict(extra="forbid")

    zpl: str
    edits: dict[str, str]
    mapping: dict[str, int] | None = None
    values: dict[str, str] | None = None
    strict: bool = False
    include_layers: bool = False
    preserve_prefix: bool = False


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(_REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Supported roles and templates for UI bootstrap."""

    request_id = _request_id_from_request(request)
    if not _meta_enabled():
        return _error_response(
            status_code=404,
            error_code="NOT_FOUND",
            message="meta endpoint is disabled",
            request_id=request_id,
            detail={"path": request.url.path},
        )

    payload = {
        "field_roles": [role.value for role in FieldRole],
        "templates": {
            name: {
                "description": template.description,
                "anchors": {role.value: list(xy) for role, xy in template.anchors.items()},
            }
            for name, template in TEMPLATES.items()
        },
        "version": app.version,
        "package_version": _package_version(),
    }
    return JSONResponse(status_code=200, headers={_REQUEST_ID_HEADER: request_id}, content=payload)


@app.post("/v1/analyze")
async def analyze_v1(request: Request) -> JSONResponse:
    """Extract fields, detect the template and return the role mapping."""

    started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "validate_inputs"

    try:
        body = AnalyzeRequest.model_validate(await _read_json_body(request))
        _check_label_size(body.zpl)
        failure_stage = "load_settings"
        settings = _load_settings_with_api_error()

        _log_event(logging.INFO, "start", request_id, endpoint="analyze", label_bytes=len(body.zpl))

        failure_stage = "analyze"
        result = analyze_label(body.zpl, settings, values=body.values)
        payload = analysis_payload(
            result,
            settings,
            preview_width=body.preview_width,
            preview_height=body.preview_height,
        )
    except ValidationError as exc:
        return _invalid_argument(request_id, failure_stage, exc)
    except ApiRequestError as exc:
        return _api_error(request_id, failure_stage, exc)

    _log_event(
        logging.INFO,
        "done",
        request_id,
        endpoint="analyze",
        status_code=200,
        field_count=len(payload["fields"]),
        template=payload["template"],
        total_ms=_elapsed_ms(started),
    )
    return JSONResponse(status_code=200, headers={_REQUEST_ID_HEADER: request_id}, content=payload)


@app.post("/v1/edit")
async def edit_v1(request: Request) -> JSONResponse:
    """Apply role edits; barcode and QR blocks are never modified."""

    started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "validate_inputs"

    try:
        body = EditRequest.model_validate(await _read_json_body(request))
        _check_label_size(body.zpl)
        failure_stage = "load_settings"
        settings = _load_settings_with_api_error()

        _log_event(
            logging.INFO,
            "start",
            request_id,
            endpoint="edit",
            label_bytes=len(body.zpl),
            edit_count=len(body.edits),
            strict=body.strict,
        )

        failure_stage = "edit"
        output = edit_label(
            body.zpl,
            body.edits,
            settings,
            fallback=body.mapping,
            values=body.values,
            strict=body.strict,
            include_layers=body.include_layers,
            preserve_prefix=body.preserve_prefix,
        )
    except ValidationError as exc:
        return _invalid_argument(request_id, failure_stage, exc)
    except ValueError as exc:
        return _api_error(
            request_id,
            failure_stage,
            ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message=str(exc),
            ),
        )
    except ProtectedFieldError as exc:
        report = exc.report.model_dump(mode="json") if exc.report is not None else None
        return _api_error(
            request_id,
            failure_stage,
            ApiRequestError(
                status_code=409,
                error_code="PROTECTED_FIELD",
                message="edit targets a barcode or QR block",
                detail={"report": report},
            ),
        )
    except ApiRequestError as exc:
        return _api_error(request_id, failure_stage, exc)

    summary = output.report.summary
    _log_event(
        logging.INFO,
        "done",
        request_id,
        endpoint="edit",
        status_code=200,
        replaced_count=summary.replaced_count,
        removed_count=summary.removed_count,
        rejected_count=summary.rejected_count,
        unmapped_count=summary.unmapped_count,
        total_ms=_elapsed_ms(started),
    )
    return JSONResponse(
        status_code=200,
        headers={_REQUEST_ID_HEADER: request_id},
        content={"zpl": output.zpl, "report": output.report.model_dump(mode="json")},
    )


@app.post("/v1/preview", response_model=None)
async def preview_v1(request: Request) -> Response | JSONResponse:
    """Forward raw label text to the preview renderer and return the PNG."""

    started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "validate_inputs"

    try:
        raw = (await request.body()).decode("utf-8")
        if not raw.strip():
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message="label text is empty",
            )
        _check_label_size(raw)
        failure_stage = "load_settings"
        settings = _load_settings_with_api_error()

        _log_event(logging.INFO, "start", request_id, endpoint="preview", label_bytes=len(raw))

        failure_stage = "render"
        image = await render_preview_async(raw, settings)
    except UnicodeDecodeError:
        return _api_error(
            request_id,
            failure_stage,
            ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message="label text must be UTF-8",
            ),
        )
    except PreviewRenderError as exc:
        return _api_error(
            request_id,
            failure_stage,
            ApiRequestError(
                status_code=502,
                error_code="RENDERER_ERROR",
                message=str(exc),
                detail={
                    "upstream_status": exc.status_code,
                    "upstream_message": exc.upstream_message,
                },
            ),
        )
    except ApiRequestError as exc:
        return _api_error(request_id, failure_stage, exc)

    _log_event(
        logging.INFO,
        "done",
        request_id,
        endpoint="preview",
        status_code=200,
        image_bytes=len(image),
        total_ms=_elapsed_ms(started),
    )
    return Response(
        content=image,
        media_type="image/png",
        headers={_REQUEST_ID_HEADER: request_id, "Cache-Control": "no-store"},
    )


async def _read_json_body(request: Request) -> Any:
    try:
        return json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="request body must be a JSON object",
        ) from exc


def _check_label_size(raw: str) -> None:
    max_bytes = _max_label_bytes()
    size = len(raw.encode("utf-8"))
    if size > max_bytes:
        raise ApiRequestError(
            status_code=413,
            error_code="PAYLOAD_TOO_LARGE",
            message="label text is too large",
            detail={"max_label_bytes": max_bytes, "label_bytes": size},
        )


def _load_settings_with_api_error() -> EngineSettings:
    try:
        return load_settings()
    except ValueError as exc:
        raise ApiRequestError(
            status_code=500,
            error_code="CONFIG_ERROR",
            message=str(exc),
        ) from exc


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _meta_enabled() -> bool:
    raw = os.getenv("LABELOPS_ENABLE_META", "1").strip().lower()
    return raw not in {"0", "false", "off", "no"}


def _max_label_bytes() -> int:
    raw = os.getenv("LABELOPS_MAX_LABEL_BYTES")
    if raw is None:
        return _DEFAULT_MAX_LABEL_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_LABEL_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_LABEL_BYTES


def _package_version() -> str:
    try:
        return importlib.metadata.version("labelops")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _invalid_argument(request_id: str, failure_stage: str, exc: ValidationError) -> JSONResponse:
    return _api_error(
        request_id,
        failure_stage,
        ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="invalid request body",
            detail={"errors": exc.errors(include_url=False, include_context=False)},
        ),
    )


def _api_error(request_id: str, failure_stage: str, exc: ApiRequestError) -> JSONResponse:
    _log_event(
        logging.ERROR,
        "error",
        request_id,
        error_code=exc.error_code,
        status_code=exc.status_code,
        failure_stage=failure_stage,
    )
    return _error_response(
        status_code=exc.status_code,
        error_code=exc.error_code,
        message=exc.message,
        request_id=request_id,
        detail=exc.detail,
    )


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={_REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
