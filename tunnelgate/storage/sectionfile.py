"""
Section-structured key/value file

Thin document model over configparser used as the durable backing store.
Values are parsed by configparser; key comments (the "; text" lines directly
above a key) are tracked separately because configparser discards them.
"""

import configparser
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

_SECTION_RE = re.compile(r"^\s*\[(?P<name>[^\]]+)\]\s*$")
_COMMENT_RE = re.compile(r"^\s*[#;]\s?(?P<text>.*)$")
_KEY_RE = re.compile(r"^\s*(?P<key>[^=\s][^=]*?)\s*=")


class SectionFileError(Exception):
    """Raised when a section file cannot be parsed"""


@dataclass
class Entry:
    """Single key in a section"""
    value: str
    comment: str = ""


class SectionFile:
    """
    Ordered sections of ordered key/value entries

    Keys are case-sensitive. Saving always rewrites the whole file.
    """

    def __init__(self):
        self._sections: Dict[str, Dict[str, Entry]] = {}

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SectionFile":
        """
        Load a document from disk

        A missing file yields an empty document.
        """
        path = Path(path)
        document = cls()
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("Section file %s does not exist, starting empty", path)
            return document

        parser = configparser.RawConfigParser(
            delimiters=("=",),
            comment_prefixes=("#", ";"),
            inline_comment_prefixes=None,
            strict=False,
            interpolation=None,
        )
        parser.optionxform = str
        try:
            parser.read_string(text, source=str(path))
        except configparser.Error as e:
            raise SectionFileError(f"cannot parse {path}: {e}") from e

        comments = _scan_comments(text)
        for section in parser.sections():
            entries = document.section(section)
            for key, value in parser.items(section):
                entries[key] = Entry(value=value, comment=comments.get((section, key), ""))

        logger.debug("Loaded %d sections from %s", len(document._sections), path)
        return document

    def copy(self) -> "SectionFile":
        """Deep copy of the document"""
        clone = SectionFile()
        for name, entries in self._sections.items():
            clone._sections[name] = {
                key: Entry(entry.value, entry.comment) for key, entry in entries.items()
            }
        return clone

    def sections(self) -> List[str]:
        return list(self._sections)

    def has_section(self, name: str) -> bool:
        return name in self._sections

    def section(self, name: str) -> Dict[str, Entry]:
        """Get a section, creating it when absent"""
        return self._sections.setdefault(name, {})

    def clear_section(self, name: str) -> None:
        self.section(name).clear()

    def items(self, name: str) -> Iterator[Tuple[str, Entry]]:
        return iter(list(self._sections.get(name, {}).items()))

    def get(self, name: str, key: str) -> Optional[str]:
        entry = self._sections.get(name, {}).get(key)
        return entry.value if entry else None

    def get_comment(self, name: str, key: str) -> str:
        entry = self._sections.get(name, {}).get(key)
        return entry.comment if entry else ""

    def set(self, name: str, key: str, value: str, comment: str = "") -> None:
        self.section(name)[key] = Entry(value=value, comment=comment)

    def delete(self, name: str, key: str) -> bool:
        """Delete a key; returns False when it was not present"""
        return self._sections.get(name, {}).pop(key, None) is not None

    def render(self) -> str:
        lines: List[str] = []
        for name, entries in self._sections.items():
            if lines:
                lines.append("")
            lines.append(f"[{name}]")
            for key, entry in entries.items():
                for comment_line in entry.comment.splitlines():
                    lines.append(f"; {comment_line}")
                lines.append(f"{key} = {entry.value}")
        return "\n".join(lines) + "\n"

    def save(self, path: Union[str, Path]) -> None:
        """
        Atomically write the document to path

        Raises:
            OSError: if the file cannot be written
        """
        path = Path(path)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(self.render())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise


def _scan_comments(text: str) -> Dict[Tuple[str, str], str]:
    """Map (section, key) to the comment lines immediately above the key"""
    comments: Dict[Tuple[str, str], str] = {}
    section = None
    pending: List[str] = []
    for line in text.splitlines():
        if not line.strip():
            pending = []
            continue
        match = _SECTION_RE.match(line)
        if match:
            section = match.group("name")
            pending = []
            continue
        match = _COMMENT_RE.match(line)
        if match:
            pending.append(match.group("text"))
            continue
        match = _KEY_RE.match(line)
        if match and section is not None:
            if pending:
                comments[(section, match.group("key"))] = "\n".join(pending)
            pending = []
    return comments
