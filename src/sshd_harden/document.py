"""In-memory sshd configuration document with idempotent upsert."""

import re
from pathlib import Path
from typing import List, Optional

import structlog

from sshd_harden.catalog import Directive
from sshd_harden.exceptions import ConfigIOError
from sshd_harden.utils.file import atomic_write

logger = structlog.get_logger(__name__)

MATCH_PATTERN = re.compile(r"^\s*match(\s|$)", re.IGNORECASE)


class ConfigDocument:
    """An sshd configuration file as an ordered list of raw lines.

    Lines are kept verbatim except for the ones an :meth:`upsert` rewrites,
    so comments, blank lines and unknown keywords survive untouched.

    Only the global section is edited. sshd applies everything after the
    first ``Match`` line conditionally, so directives are looked up before
    it and new ones are inserted right above it.
    """

    def __init__(self, lines: Optional[List[str]] = None) -> None:
        self.lines: List[str] = list(lines or [])

    @classmethod
    def from_text(cls, text: str) -> "ConfigDocument":
        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        return cls(lines)

    @classmethod
    def load(cls, path: Path) -> "ConfigDocument":
        """Read a configuration file.

        Raises:
            ConfigIOError: If the file cannot be read
        """
        try:
            text = path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigIOError(f"Cannot read {path}: {e}") from e
        return cls.from_text(text)

    def _global_end(self) -> int:
        for index, line in enumerate(self.lines):
            if MATCH_PATTERN.match(line):
                return index
        return len(self.lines)

    @staticmethod
    def _parse(line: str, name: str) -> Optional[str]:
        """Return the value if ``line`` is an active ``name`` directive."""
        body = line.lstrip()
        if body.startswith("#") or not body.startswith(name):
            return None
        rest = body[len(name):]
        if rest and not rest[0].isspace():
            return None
        return rest.strip()

    def _find(self, name: str) -> List[int]:
        return [
            index
            for index in range(self._global_end())
            if self._parse(self.lines[index], name) is not None
        ]

    def get(self, name: str) -> Optional[str]:
        """Return the active value of ``name``, or None when unset."""
        found = self._find(name)
        if not found:
            return None
        return self._parse(self.lines[found[0]], name)

    def upsert(self, directive: Directive) -> Optional[str]:
        """Set a directive, replacing an active line or inserting a new one.

        Comment lines never match. Extra active lines for the same keyword are
        dropped so at most one remains.

        Returns:
            The previous value, or None if the directive was inserted
        """
        found = self._find(directive.name)
        if not found:
            self.lines.insert(self._global_end(), directive.line)
            return None

        first = found[0]
        line = self.lines[first]
        previous = self._parse(line, directive.name)
        indent = line[: len(line) - len(line.lstrip())]
        self.lines[first] = f"{indent}{directive.line}"
        for index in reversed(found[1:]):
            logger.warning(
                "Dropping duplicate directive",
                directive=directive.name,
                line=self.lines[index].strip(),
            )
            del self.lines[index]
        return previous

    def serialize(self) -> str:
        """Return the full text with a trailing newline."""
        if not self.lines:
            return ""
        return "\n".join(self.lines) + "\n"

    def save(self, path: Path) -> None:
        """Write the document over ``path`` through a same-directory rename.

        Raises:
            ConfigIOError: If any write, sync or rename step fails
        """
        try:
            atomic_write(path, self.serialize().encode("utf-8"))
        except OSError as e:
            raise ConfigIOError(f"Cannot write {path}: {e}") from e
        logger.info("Configuration saved", path=str(path), lines=len(self.lines))
