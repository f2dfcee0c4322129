"""
Token/ACL store for tunnelgate
Owns the user records and mirrors them onto the section file
"""

import logging
from pathlib import Path
from threading import RLock
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..storage import SectionFile, SectionFileError
from .exceptions import (
    ParamError,
    SaveError,
    StoreLoadError,
    TokenEmptyError,
    UserEmptyError,
    UserExistsError,
    UserNotFoundError
)
from .models import (
    TokenInfo,
    TokenSearch,
    UserRecord,
    join_list,
    split_list,
    strip_line_breaks
)
from .query import query_records

logger = logging.getLogger(__name__)

USERS_SECTION = "users"
PORTS_SECTION = "ports"
DOMAINS_SECTION = "domains"
SUBDOMAINS_SECTION = "subdomains"
DISABLED_SECTION = "disabled"

# record field -> (section, comment label)
LIST_SECTIONS = {
    "ports": (PORTS_SECTION, "ports"),
    "domains": (DOMAINS_SECTION, "domains"),
    "subdomains": (SUBDOMAINS_SECTION, "subdomains"),
}

DISABLED_MARKER = "disable"

# leading characters configparser reads as a section header or comment
_KEY_LEADERS = ("[", ";", "#")


def check_storable(field: str, value: str, key: bool = False) -> None:
    """
    Reject values the section file would not reproduce on reload

    Raises:
        ParamError: value holds a line break, has surrounding whitespace,
            or (for keys) contains "=" or starts with a header or comment marker
    """
    if "\n" in value or "\r" in value:
        raise ParamError(f"{field} cannot contain line breaks")
    if value != value.strip():
        raise ParamError(f"{field} cannot start or end with whitespace")
    if key:
        if "=" in value:
            raise ParamError(f"{field} cannot contain '='")
        if value.startswith(_KEY_LEADERS):
            raise ParamError(f"{field} cannot start with {value[0]!r}")


class TokenStore:
    """
    Thread-safe user store backed by a section file

    Every mutation is staged on a copy of the record map, written to disk,
    and only swapped in once the save succeeded. A failed save therefore
    leaves both memory and file at their previous state.
    """

    def __init__(
        self,
        path: Union[str, Path],
        records: Optional[Dict[str, UserRecord]] = None,
        document: Optional[SectionFile] = None
    ):
        self.path = Path(path)
        self._lock = RLock()
        self._records: Dict[str, UserRecord] = dict(records or {})
        self._document = document or SectionFile()

    @classmethod
    def load(cls, path: Union[str, Path]) -> "TokenStore":
        """
        Rehydrate a store from its section file

        Raises:
            StoreLoadError: if the file exists but cannot be parsed
        """
        try:
            document = SectionFile.load(path)
        except SectionFileError as e:
            raise StoreLoadError(str(e)) from e

        records: Dict[str, UserRecord] = {}
        for user, entry in document.items(USERS_SECTION):
            fields = {"user": user, "token": entry.value, "comment": entry.comment}
            for field, (section, _) in LIST_SECTIONS.items():
                fields[field] = split_list(document.get(section, user) or "")
            fields["enabled"] = document.get(DISABLED_SECTION, user) is None
            records[user] = UserRecord(**fields)

        for section in [s for s, _ in LIST_SECTIONS.values()] + [DISABLED_SECTION]:
            for user, _ in document.items(section):
                if user not in records:
                    logger.warning("Ignoring [%s] entry for unknown user %s", section, user)

        logger.info("Loaded %d users from %s", len(records), path)
        return cls(path, records=records, document=document)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get(self, user: str) -> Optional[UserRecord]:
        with self._lock:
            return self._records.get(user)

    def records(self) -> List[UserRecord]:
        """Snapshot of every record sorted by user"""
        with self._lock:
            return sorted(self._records.values(), key=lambda record: record.user)

    def query(self, search: TokenSearch) -> Tuple[List[UserRecord], int]:
        with self._lock:
            snapshot = list(self._records.values())
        return query_records(snapshot, search)

    def add(self, info: TokenInfo) -> UserRecord:
        """
        Create a user, enabled

        Raises:
            UserEmptyError: identifier is blank
            ParamError: identifier or token cannot be stored as given
            UserExistsError: identifier already present
            TokenEmptyError: token is blank
            SaveError: durable save failed
        """
        if not info.user.strip():
            raise UserEmptyError("user cannot be empty")
        check_storable("user", info.user, key=True)

        with self._lock:
            if info.user in self._records:
                raise UserExistsError(f"user [{info.user}] exist")
            if not info.token.strip():
                raise TokenEmptyError("token cannot be empty")
            check_storable("token", info.token)

            record = UserRecord(
                user=info.user,
                token=info.token,
                comment=strip_line_breaks(info.comment),
                ports=split_list(info.ports),
                domains=split_list(info.domains),
                subdomains=split_list(info.subdomains),
                enabled=True
            )
            staged = dict(self._records)
            staged[record.user] = record
            self._commit(staged, "add")

        logger.info("Added user %s", record.user)
        return record

    def update(self, before: TokenInfo, after: TokenInfo) -> UserRecord:
        """
        Replace token, comment and allow-lists of an existing user

        Allow-lists are only touched when the before and after values differ,
        so an unchanged field keeps its stored form. Status is preserved.

        Raises:
            UserNotFoundError: before.user does not exist
            ParamError: after.user renames the user, or after.token cannot
                be stored as given
            TokenEmptyError: after.token is blank
            SaveError: durable save failed
        """
        if after.user and after.user != before.user:
            raise ParamError(f"user [{before.user}] cannot be renamed to [{after.user}]")
        if not after.token.strip():
            raise TokenEmptyError("token cannot be empty")
        check_storable("token", after.token)

        with self._lock:
            current = self._records.get(before.user)
            if current is None:
                raise UserNotFoundError(f"user [{before.user}] not exist")

            changes = {
                "token": after.token,
                "comment": strip_line_breaks(after.comment),
            }
            for field in LIST_SECTIONS:
                if getattr(before, field) != getattr(after, field):
                    changes[field] = split_list(getattr(after, field))

            record = current.model_copy(update=changes)
            staged = dict(self._records)
            staged[record.user] = record
            self._commit(staged, "update")

        logger.info("Updated user %s", record.user)
        return record

    def remove(self, users: Iterable[str]) -> List[str]:
        """
        Delete users and every allow-list entry they own

        Unknown identifiers are ignored. Returns the identifiers removed.
        """
        with self._lock:
            staged = dict(self._records)
            removed = [user for user in users if staged.pop(user, None) is not None]
            self._commit(staged, "remove")

        logger.info("Removed users %s", removed)
        return removed

    def set_enabled(self, users: Iterable[str], enabled: bool) -> List[str]:
        """
        Enable or disable users in place

        Unknown identifiers are skipped. Returns the identifiers changed.
        """
        action = "enable" if enabled else "disable"
        with self._lock:
            staged = dict(self._records)
            changed = []
            for user in users:
                record = staged.get(user)
                if record is None:
                    logger.warning("Cannot %s unknown user %s", action, user)
                    continue
                staged[user] = record.model_copy(update={"enabled": enabled})
                changed.append(user)
            self._commit(staged, action)

        logger.info("%s users %s", action.capitalize() + "d", changed)
        return changed

    def _commit(self, staged: Dict[str, UserRecord], operation: str) -> None:
        """Persist the staged records, then make them current"""
        document = self._render(staged)
        try:
            document.save(self.path)
        except OSError as e:
            logger.error("%s failed, cannot save %s: %s", operation, self.path, e)
            raise SaveError(f"{operation} failed, cannot save user file") from e
        self._records = staged
        self._document = document

    def _render(self, records: Dict[str, UserRecord]) -> SectionFile:
        """Build the durable document; unmanaged sections are carried over"""
        document = self._document.copy()
        for section in (USERS_SECTION, PORTS_SECTION, DOMAINS_SECTION,
                        SUBDOMAINS_SECTION, DISABLED_SECTION):
            document.clear_section(section)

        for record in records.values():
            document.set(USERS_SECTION, record.user, record.token, comment=record.comment)
            for field, (section, label) in LIST_SECTIONS.items():
                values = getattr(record, field)
                if values:
                    document.set(
                        section,
                        record.user,
                        join_list(values),
                        comment=f"user {record.user} allowed {label}"
                    )
            if not record.enabled:
                document.set(
                    DISABLED_SECTION,
                    record.user,
                    DISABLED_MARKER,
                    comment=f"disable user '{record.user}'"
                )
        return document
