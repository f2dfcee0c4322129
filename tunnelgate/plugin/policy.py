"""
Admission policy for proxy-server lifecycle events

Each entry point returns a Decision and never mutates the store.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ..acl.models import UserRecord
from ..acl.store import TokenStore
from .models import (
    LoginContent,
    NewProxyContent,
    NewUserConnContent,
    NewWorkConnContent,
    PingContent,
    PluginResponse,
    UserInfo
)

logger = logging.getLogger(__name__)

LOGIN_REJECT_REASON = "invalid user or token"


class DenyReason(Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    USER_NOT_FOUND = "user_not_found"
    USER_DISABLED = "user_disabled"
    TOKEN_MISMATCH = "token_mismatch"
    PORT_NOT_ALLOWED = "port_not_allowed"
    DOMAIN_NOT_ALLOWED = "domain_not_allowed"
    SUBDOMAIN_NOT_ALLOWED = "subdomain_not_allowed"


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy check"""
    allowed: bool
    reason: Optional[DenyReason] = None
    message: str = ""

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason, message: str) -> "Decision":
        return cls(allowed=False, reason=reason, message=message)

    def to_response(self) -> PluginResponse:
        if self.allowed:
            return PluginResponse()
        return PluginResponse(reject=True, reject_reason=self.message)


def port_allowed(port: int, allowed: Sequence[str]) -> bool:
    """
    Check a port against entries such as "8080" or "8000-8100"

    Entries that are not numeric never match.
    """
    for entry in allowed:
        low, sep, high = entry.partition("-")
        try:
            if sep:
                if int(low) <= port <= int(high):
                    return True
            elif int(entry) == port:
                return True
        except ValueError:
            logger.debug("Ignoring malformed port entry %r", entry)
    return False


class PolicyEvaluator:
    """Decides allow/deny for each lifecycle event against a TokenStore"""

    def __init__(self, store: TokenStore):
        self.store = store

    def login(self, content: LoginContent) -> Decision:
        """
        Allow iff the user exists, the token matches and the user is enabled

        The client only ever sees a generic rejection so that user names
        cannot be enumerated; the precise cause is logged.
        """
        record = self.store.get(content.user) if content.user else None
        decision = self._judge(record, content.user, content.token or "", require_token=True)
        if decision.allowed:
            return decision
        logger.info("Login rejected for %r: %s", content.user, decision.reason.value)
        return Decision.deny(DenyReason.INVALID_CREDENTIALS, LOGIN_REJECT_REASON)

    def new_proxy(self, content: NewProxyContent) -> Decision:
        """
        Allow iff the user is enabled and the requested port, custom domains
        and subdomain are within the user's allow-lists

        Empty allow-lists are unrestricted. frp fills remote_port only for
        tcp/udp proxies and domains only for http/https/tcpmux, so each check
        applies only when the proxy type carries that field.
        """
        user = content.user.user
        record = self.store.get(user) if user else None
        decision = self._judge(record, user, content.user.token, require_token=False)
        if not decision.allowed:
            return decision

        if content.remote_port and record.ports and not port_allowed(content.remote_port, record.ports):
            return Decision.deny(
                DenyReason.PORT_NOT_ALLOWED,
                f"user [{user}] port [{content.remote_port}] is not allowed"
            )

        if record.domains:
            for domain in content.custom_domains:
                if domain not in record.domains:
                    return Decision.deny(
                        DenyReason.DOMAIN_NOT_ALLOWED,
                        f"user [{user}] domain [{domain}] is not allowed"
                    )

        if content.subdomain and record.subdomains and content.subdomain not in record.subdomains:
            return Decision.deny(
                DenyReason.SUBDOMAIN_NOT_ALLOWED,
                f"user [{user}] subdomain [{content.subdomain}] is not allowed"
            )

        return Decision.allow()

    def ping(self, content: PingContent) -> Decision:
        return self._check_session(content.user)

    def new_work_conn(self, content: NewWorkConnContent) -> Decision:
        # port/domain were validated when the proxy was registered
        return self._check_session(content.user)

    def new_user_conn(self, content: NewUserConnContent) -> Decision:
        return self._check_session(content.user)

    def _check_session(self, info: UserInfo) -> Decision:
        """Re-validate a logged-in client; a token in metas must still match"""
        record = self.store.get(info.user) if info.user else None
        return self._judge(record, info.user, info.token, require_token=False)

    @staticmethod
    def _judge(
        record: Optional[UserRecord],
        user: str,
        token: Optional[str],
        require_token: bool
    ) -> Decision:
        if record is None:
            return Decision.deny(DenyReason.USER_NOT_FOUND, f"user [{user}] not exist")
        if not record.enabled:
            return Decision.deny(DenyReason.USER_DISABLED, f"user [{user}] is disabled")
        if (require_token or token is not None) and token != record.token:
            return Decision.deny(
                DenyReason.TOKEN_MISMATCH,
                f"invalid meta token for user [{user}]"
            )
        return Decision.allow()
