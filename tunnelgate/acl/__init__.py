"""
Token/ACL store: per-user tokens and port/domain/subdomain allow-lists
"""

from .exceptions import (
    ACLError,
    ParamError,
    ResultCode,
    SaveError,
    StoreLoadError,
    TokenEmptyError,
    UserEmptyError,
    UserExistsError,
    UserNotFoundError
)
from .models import TokenInfo, TokenSearch, TokenUpdate, UserRecord
from .routes import router
from .store import TokenStore

__all__ = [
    'ACLError',
    'ParamError',
    'ResultCode',
    'SaveError',
    'StoreLoadError',
    'TokenEmptyError',
    'UserEmptyError',
    'UserExistsError',
    'UserNotFoundError',
    'TokenInfo',
    'TokenSearch',
    'TokenUpdate',
    'UserRecord',
    'TokenStore',
    'router'
]
