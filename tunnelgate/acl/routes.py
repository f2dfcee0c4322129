"""
FastAPI routes for user/token administration
"""

import json
import logging
from typing import Any, Type, TypeVar

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ValidationError

from ..core.metrics import ADMIN_OPERATIONS
from ..core.security import require_admin
from .exceptions import ACLError, ResultCode
from .models import (
    OperationResponse,
    QueryResponse,
    TokenInfo,
    TokenSearch,
    TokenUpdate,
    UsersRequest
)
from .store import TokenStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

router = APIRouter(
    tags=["Users"],
    dependencies=[Depends(require_admin)]
)


class _BadBody(Exception):
    pass


def get_store(request: Request) -> TokenStore:
    """Dependency returning the application's TokenStore"""
    return request.app.state.store


async def _parse_body(request: Request, model: Type[M]) -> M:
    try:
        payload: Any = await request.json()
        return model.model_validate(payload)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
        raise _BadBody(str(e)) from e


def _failed(operation: str, code: ResultCode, detail: str) -> OperationResponse:
    ADMIN_OPERATIONS.labels(operation=operation, code=code.name).inc()
    return OperationResponse(
        success=False,
        code=code,
        message=f"user {operation} failed, {detail}"
    )


def _succeeded(operation: str) -> OperationResponse:
    ADMIN_OPERATIONS.labels(operation=operation, code=ResultCode.SUCCESS.name).inc()
    return OperationResponse(message=f"user {operation} success")


@router.get("/tokens", response_model=QueryResponse, response_model_by_alias=True)
async def query_tokens(
    user: str = Query(""),
    token: str = Query(""),
    comment: str = Query(""),
    page: str = Query("1"),
    limit: str = Query("0"),
    store: TokenStore = Depends(get_store)
):
    """
    List users filtered by user/token/comment substrings

    Results are sorted by user. limit=0 returns every match; otherwise page is
    1-indexed and out-of-range pages are empty. Non-integer page or limit
    answers ParamError in the same envelope.
    """
    try:
        search = TokenSearch(user=user, token=token, comment=comment, page=page, limit=limit)
    except ValidationError as e:
        logger.warning("query tokens failed, param error: %s", e)
        ADMIN_OPERATIONS.labels(operation="query", code=ResultCode.PARAM_ERROR.name).inc()
        return QueryResponse(
            code=ResultCode.PARAM_ERROR,
            message="query tokens failed, param error"
        )

    results, total = store.query(search)
    return QueryResponse(
        code=ResultCode.SUCCESS,
        message="query tokens success",
        total_count=total,
        results=[record.to_info() for record in results]
    )


@router.post("/add", response_model=OperationResponse)
async def add_token(request: Request, store: TokenStore = Depends(get_store)):
    """Create a user; new users start enabled"""
    try:
        info = await _parse_body(request, TokenInfo)
    except _BadBody as e:
        logger.warning("user add failed, param error: %s", e)
        return _failed("add", ResultCode.PARAM_ERROR, "param error")

    try:
        store.add(info)
    except ACLError as e:
        logger.warning("user add failed for %r: %s", info.user, e)
        return _failed("add", e.code, str(e))

    return _succeeded("add")


@router.post("/update", response_model=OperationResponse)
async def update_token(request: Request, store: TokenStore = Depends(get_store)):
    """Replace token, comment and allow-lists of an existing user"""
    try:
        update = await _parse_body(request, TokenUpdate)
    except _BadBody as e:
        logger.warning("user update failed, param error: %s", e)
        return _failed("update", ResultCode.PARAM_ERROR, "param error")

    try:
        store.update(update.before, update.after)
    except ACLError as e:
        logger.warning("user update failed for %r: %s", update.before.user, e)
        return _failed("update", e.code, str(e))

    return _succeeded("update")


@router.post("/remove", response_model=OperationResponse)
async def remove_tokens(request: Request, store: TokenStore = Depends(get_store)):
    """Delete users together with their allow-lists"""
    try:
        body = await _parse_body(request, UsersRequest)
    except _BadBody as e:
        logger.warning("user remove failed, param error: %s", e)
        return _failed("remove", ResultCode.PARAM_ERROR, "param error")

    try:
        store.remove(body.user_ids())
    except ACLError as e:
        return _failed("remove", e.code, str(e))

    return _succeeded("remove")


@router.post("/disable", response_model=OperationResponse)
async def disable_tokens(request: Request, store: TokenStore = Depends(get_store)):
    """Disable users; disabled users fail every plugin check"""
    return await _set_enabled(request, store, enabled=False)


@router.post("/enable", response_model=OperationResponse)
async def enable_tokens(request: Request, store: TokenStore = Depends(get_store)):
    return await _set_enabled(request, store, enabled=True)


async def _set_enabled(request: Request, store: TokenStore, enabled: bool) -> OperationResponse:
    operation = "enable" if enabled else "disable"
    try:
        body = await _parse_body(request, UsersRequest)
    except _BadBody as e:
        logger.warning("user %s failed, param error: %s", operation, e)
        return _failed(operation, ResultCode.PARAM_ERROR, "param error")

    try:
        store.set_enabled(body.user_ids(), enabled)
    except ACLError as e:
        return _failed(operation, e.code, str(e))

    return _succeeded(operation)
