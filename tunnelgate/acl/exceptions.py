"""
ACL store errors and result codes
"""

from enum import IntEnum


class ResultCode(IntEnum):
    """Result codes returned by the administrative endpoints"""
    SUCCESS = 0
    PARAM_ERROR = 1
    USER_EXIST = 2
    SAVE_ERROR = 3
    USER_EMPTY = 4
    TOKEN_EMPTY = 5


class ACLError(Exception):
    """Base class for store operation failures"""
    code = ResultCode.PARAM_ERROR


class ParamError(ACLError):
    """Malformed or inconsistent input"""
    code = ResultCode.PARAM_ERROR


class UserNotFoundError(ParamError):
    """Operation references a user that does not exist"""


class UserExistsError(ACLError):
    code = ResultCode.USER_EXIST


class UserEmptyError(ACLError):
    code = ResultCode.USER_EMPTY


class TokenEmptyError(ACLError):
    code = ResultCode.TOKEN_EMPTY


class SaveError(ACLError):
    """Durable save failed; in-memory state was left untouched"""
    code = ResultCode.SAVE_ERROR


class StoreLoadError(Exception):
    """Backing file exists but could not be read"""
