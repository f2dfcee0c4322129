"""
HTTP endpoint the proxy server calls for every lifecycle event
"""

import json

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..core.metrics import PLUGIN_REQUESTS
from .dispatcher import PluginDispatcher, PluginError
from .models import ErrorResponse, PluginOp, PluginResponse

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Plugin"])


def get_dispatcher(request: Request) -> PluginDispatcher:
    return request.app.state.dispatcher


@router.post(
    "/handler",
    response_model=PluginResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def handle_plugin_request(
    request: Request,
    dispatcher: PluginDispatcher = Depends(get_dispatcher)
):
    """
    Proxy-server plugin entry point

    Policy denials are answered with 200 and reject=true; only requests that
    cannot be decoded or name an unknown operation get an error status.
    """
    try:
        envelope = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("plugin_request_malformed", path=request.url.path, error=str(e))
        PLUGIN_REQUESTS.labels(op="unknown", outcome="error").inc()
        return JSONResponse(status_code=400, content={"msg": f"invalid JSON body: {e}"})

    try:
        result = dispatcher.handle(envelope)
    except PluginError as e:
        op = envelope.get("op") if isinstance(envelope, dict) else None
        logger.warning(
            "plugin_request_failed",
            op=op,
            status=e.status_code,
            error=str(e)
        )
        PLUGIN_REQUESTS.labels(op=_metric_op(op), outcome="error").inc()
        return JSONResponse(status_code=e.status_code, content={"msg": str(e)})
    except Exception as e:
        logger.error("plugin_request_error", path=request.url.path, error=str(e))
        PLUGIN_REQUESTS.labels(op="unknown", outcome="error").inc()
        return JSONResponse(status_code=500, content={"msg": str(e)})

    decision = result.decision
    outcome = "allow" if decision.allowed else "reject"
    response = decision.to_response()
    logger.info(
        "plugin_request",
        op=result.op.value,
        user=result.user,
        outcome=outcome,
        reason=decision.reason.value if decision.reason else None,
        reject_reason=response.reject_reason or None
    )
    PLUGIN_REQUESTS.labels(op=result.op.value, outcome=outcome).inc()
    return response


def _metric_op(op) -> str:
    """Keep the metric label set bounded to known operations"""
    known = {member.value for member in PluginOp}
    return op if isinstance(op, str) and op in known else "unknown"
