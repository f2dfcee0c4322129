"""
Pydantic models for the token/ACL store
"""

import re
from typing import Any, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ResultCode

_ALL_SPACE = re.compile(r"\s")
_LINE_BREAKS = re.compile(r"[\n\t\r]")


def strip_all_space(value: str) -> str:
    """Remove every whitespace character, including newlines and tabs"""
    return _ALL_SPACE.sub("", value or "")


def strip_line_breaks(value: str) -> str:
    return _LINE_BREAKS.sub("", value or "")


def split_list(value: str) -> Tuple[str, ...]:
    """
    Parse a comma-separated allow-list

    Whitespace is removed first, empty items are dropped and duplicates
    collapse onto their first occurrence.
    """
    items: List[str] = []
    for item in strip_all_space(value).split(","):
        if item and item not in items:
            items.append(item)
    return tuple(items)


def join_list(items: Tuple[str, ...]) -> str:
    return ",".join(items)


class UserRecord(BaseModel):
    """Authoritative per-user entry held by the store"""
    model_config = ConfigDict(frozen=True)

    user: str = Field(..., description="Unique, case-sensitive user identifier")
    token: str = Field(..., description="Opaque token the client must present")
    comment: str = Field(default="", description="Administrator annotation")
    ports: Tuple[str, ...] = Field(
        default=(),
        description="Allowed remote ports or ranges, empty for unrestricted"
    )
    domains: Tuple[str, ...] = Field(
        default=(),
        description="Allowed custom domains, empty for unrestricted"
    )
    subdomains: Tuple[str, ...] = Field(
        default=(),
        description="Allowed subdomains, empty for unrestricted"
    )
    enabled: bool = Field(default=True, description="Disabled users fail every check")

    def to_info(self) -> "TokenInfo":
        return TokenInfo(
            user=self.user,
            token=self.token,
            comment=self.comment,
            ports=join_list(self.ports),
            domains=join_list(self.domains),
            subdomains=join_list(self.subdomains),
            status=self.enabled
        )


class TokenInfo(BaseModel):
    """Wire representation of a user record"""
    user: str = ""
    token: str = ""
    comment: str = ""
    ports: str = ""
    domains: str = ""
    subdomains: str = ""
    status: bool = True

    @field_validator("user", "token", "comment", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("ports", "domains", "subdomains", mode="before")
    @classmethod
    def join_lists(cls, v: Any) -> Any:
        """Accept either a comma-separated string or a JSON list"""
        if v is None:
            return ""
        if isinstance(v, (list, tuple)):
            return ",".join(str(item) for item in v)
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class TokenSearch(BaseModel):
    """Filter and pagination parameters for listing users"""
    user: str = ""
    token: str = ""
    comment: str = ""
    page: int = 1
    limit: int = 0


class TokenUpdate(BaseModel):
    before: TokenInfo
    after: TokenInfo


class UserRef(BaseModel):
    user: str


class UsersRequest(BaseModel):
    """Body shared by the remove, disable and enable endpoints"""
    users: List[UserRef]

    def user_ids(self) -> List[str]:
        return [ref.user for ref in self.users]


class OperationResponse(BaseModel):
    success: bool = True
    code: ResultCode = ResultCode.SUCCESS
    message: str = ""


class QueryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: ResultCode = ResultCode.SUCCESS
    message: str = ""
    total_count: int = Field(default=0, alias="totalCount")
    results: List[TokenInfo] = Field(default_factory=list)
