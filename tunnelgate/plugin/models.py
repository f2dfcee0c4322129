"""
Pydantic models for the proxy-server plugin protocol

Payload shapes follow the frp server-plugin contract. Unknown fields are
accepted and ignored so newer proxy servers keep working.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PluginOp(str, Enum):
    """Lifecycle operations the proxy server sends to the plugin"""
    LOGIN = "Login"
    NEW_PROXY = "NewProxy"
    PING = "Ping"
    NEW_WORK_CONN = "NewWorkConn"
    NEW_USER_CONN = "NewUserConn"


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PluginRequest(_Payload):
    """Outer envelope; content is decoded later by operation"""
    version: str = ""
    op: str
    content: Any = None


class UserInfo(_Payload):
    """Client identity attached to every post-login event"""
    user: str = ""
    metas: Dict[str, str] = Field(default_factory=dict)
    run_id: str = ""

    @field_validator("metas", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def token(self) -> Optional[str]:
        return self.metas.get("token")


class LoginContent(_Payload):
    version: str = ""
    hostname: str = ""
    os: str = ""
    arch: str = ""
    user: str = ""
    timestamp: int = 0
    privilege_key: str = ""
    run_id: str = ""
    pool_count: int = 0
    metas: Dict[str, str] = Field(default_factory=dict)
    client_address: str = ""

    @field_validator("metas", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def token(self) -> Optional[str]:
        return self.metas.get("token")


class NewProxyContent(_Payload):
    user: UserInfo = Field(default_factory=UserInfo)
    proxy_name: str = ""
    proxy_type: str = ""
    use_encryption: bool = False
    use_compression: bool = False
    bandwidth_limit: str = ""
    bandwidth_limit_mode: str = ""
    group: str = ""
    group_key: str = ""
    remote_port: int = 0
    custom_domains: List[str] = Field(default_factory=list)
    subdomain: str = ""
    locations: List[str] = Field(default_factory=list)
    http_user: str = ""
    http_pwd: str = ""
    host_header_rewrite: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    sk: str = ""
    multiplexer: str = ""
    metas: Dict[str, str] = Field(default_factory=dict)

    @field_validator("custom_domains", "locations", mode="before")
    @classmethod
    def none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("headers", "metas", mode="before")
    @classmethod
    def none_as_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v


class PingContent(_Payload):
    user: UserInfo = Field(default_factory=UserInfo)
    timestamp: int = 0
    privilege_key: str = ""


class NewWorkConnContent(_Payload):
    user: UserInfo = Field(default_factory=UserInfo)
    run_id: str = ""
    timestamp: int = 0
    privilege_key: str = ""


class NewUserConnContent(_Payload):
    user: UserInfo = Field(default_factory=UserInfo)
    proxy_name: str = ""
    proxy_type: str = ""
    remote_addr: str = ""


class PluginResponse(BaseModel):
    """
    Response envelope understood by the proxy server

    The plugin never rewrites content, so unchange is always true.
    """
    reject: bool = False
    reject_reason: str = ""
    unchange: bool = True


class ErrorResponse(BaseModel):
    msg: str
