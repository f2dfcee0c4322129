"""
Proxy-server plugin: lifecycle event dispatch and admission policy
"""

from .dispatcher import (
    DispatchResult,
    MalformedRequestError,
    PluginDispatcher,
    PluginError,
    UnsupportedOperationError
)
from .models import PluginOp, PluginRequest, PluginResponse
from .policy import Decision, DenyReason, PolicyEvaluator
from .routes import router

__all__ = [
    'DispatchResult',
    'MalformedRequestError',
    'PluginDispatcher',
    'PluginError',
    'UnsupportedOperationError',
    'PluginOp',
    'PluginRequest',
    'PluginResponse',
    'Decision',
    'DenyReason',
    'PolicyEvaluator',
    'router'
]
