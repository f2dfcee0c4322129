"""
Plugin request dispatcher

Decodes the proxy-server envelope, routes it to the policy evaluator by
operation tag and turns the decision into a response envelope.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple, Type

from pydantic import BaseModel, ValidationError

from .models import (
    LoginContent,
    NewProxyContent,
    NewUserConnContent,
    NewWorkConnContent,
    PingContent,
    PluginOp,
    PluginRequest
)
from .policy import Decision, PolicyEvaluator

logger = logging.getLogger(__name__)


class PluginError(Exception):
    """Request could not be handled; carries the HTTP status to answer with"""
    status_code = 500


class MalformedRequestError(PluginError):
    status_code = 400


class UnsupportedOperationError(PluginError):
    status_code = 400


@dataclass(frozen=True)
class DispatchResult:
    """Operation, user and decision of one handled event"""
    op: PluginOp
    user: str
    decision: Decision


class PluginDispatcher:
    """Routes lifecycle events to the PolicyEvaluator"""

    def __init__(self, evaluator: PolicyEvaluator):
        self.evaluator = evaluator
        self._handlers: Dict[PluginOp, Tuple[Type[BaseModel], Callable[[Any], Decision]]] = {
            PluginOp.LOGIN: (LoginContent, evaluator.login),
            PluginOp.NEW_PROXY: (NewProxyContent, evaluator.new_proxy),
            PluginOp.PING: (PingContent, evaluator.ping),
            PluginOp.NEW_WORK_CONN: (NewWorkConnContent, evaluator.new_work_conn),
            PluginOp.NEW_USER_CONN: (NewUserConnContent, evaluator.new_user_conn),
        }
        missing = set(PluginOp) - set(self._handlers)
        if missing:
            raise RuntimeError(f"no handler for operations {sorted(op.value for op in missing)}")

    def decode(self, envelope: Any) -> PluginRequest:
        try:
            return PluginRequest.model_validate(envelope)
        except ValidationError as e:
            raise MalformedRequestError(f"invalid plugin request: {e}") from e

    def handle(self, envelope: Any) -> DispatchResult:
        """
        Handle one decoded JSON envelope

        Raises:
            MalformedRequestError: envelope or content does not decode
            UnsupportedOperationError: op is not a known lifecycle operation
        """
        request = self.decode(envelope)

        try:
            op = PluginOp(request.op)
        except ValueError:
            raise UnsupportedOperationError(f"unsupported operation [{request.op}]") from None

        content_model, handler = self._handlers[op]
        if request.content is None:
            raise MalformedRequestError(f"{op.value} request has no content")
        try:
            content = content_model.model_validate_json(json.dumps(request.content))
        except ValidationError as e:
            raise MalformedRequestError(f"invalid {op.value} content: {e}") from e

        decision = handler(content)
        return DispatchResult(op=op, user=_user_of(content), decision=decision)


def _user_of(content: BaseModel) -> str:
    user = getattr(content, "user", "")
    return user if isinstance(user, str) else user.user
