"""Static catalog of sshd hardening settings.

The catalog is built once at import time from frozen models and exposed
through a read-only mapping. Swapping a value here changes policy only; the
engine does not depend on any particular directive.
"""

import re
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from sshd_harden.exceptions import ConfigurationError
from sshd_harden.types import GroupName

KEYWORD_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")


class Directive(BaseModel):
    """A single sshd keyword with its desired value."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    description: str = ""

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not KEYWORD_PATTERN.match(v):
            raise ValueError(f"Not a single-token sshd keyword: {v!r}")
        return v

    @field_validator("value")
    @classmethod
    def check_value(cls, v: str) -> str:
        if "\n" in v or "\r" in v:
            raise ValueError("Directive values must not contain newlines")
        v = v.strip()
        if not v:
            raise ValueError("Directive values must not be empty")
        return v

    @property
    def line(self) -> str:
        return f"{self.name} {self.value}"


class SettingGroup(BaseModel):
    """A named, ordered category of directives."""

    model_config = ConfigDict(frozen=True)

    key: GroupName
    title: str
    directives: Tuple[Directive, ...]

    @model_validator(mode="after")
    def check_unique_names(self) -> "SettingGroup":
        seen = set()
        for directive in self.directives:
            if directive.name in seen:
                raise ValueError(f"Duplicate directive {directive.name} in {self.title}")
            seen.add(directive.name)
        return self

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(d.name for d in self.directives)

    def with_overrides(self, overrides: Mapping[str, str]) -> "SettingGroup":
        """Return a copy with some directive values replaced.

        Only names belonging to this group are used; others are ignored so a
        single override mapping can be passed to every group.

        Raises:
            ConfigurationError: If an override value is not a valid value
        """
        if not any(name in overrides for name in self.names):
            return self
        try:
            directives = tuple(
                make_directive(d.name, overrides[d.name], d.description)
                if d.name in overrides
                else d
                for d in self.directives
            )
        except ConfigurationError as e:
            raise ConfigurationError(f"{self.title}: {e}") from e
        return SettingGroup(key=self.key, title=self.title, directives=directives)


def make_directive(name: str, value: str, description: str = "") -> Directive:
    """Build a directive, turning model validation errors into ConfigurationError."""
    try:
        return Directive(name=name, value=value, description=description)
    except ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise ConfigurationError(f"Invalid directive {name!r}: {messages}") from e


def _group(key: GroupName, title: str, *entries: Tuple[str, str, str]) -> SettingGroup:
    return SettingGroup(
        key=key,
        title=title,
        directives=tuple(make_directive(*entry) for entry in entries),
    )


BASIC = _group(
    GroupName.BASIC,
    "Basic Security",
    ("Port", "2222", "Change default SSH port"),
    ("PermitRootLogin", "no", "Disable direct root login"),
    ("MaxAuthTries", "3", "Limit authentication attempts"),
    ("PermitEmptyPasswords", "no", "Prevent empty password logins"),
    ("PasswordAuthentication", "no", "Force key-based authentication"),
)

ADVANCED = _group(
    GroupName.ADVANCED,
    "Advanced Security",
    ("X11Forwarding", "no", "Disable X11 forwarding"),
    ("AllowTcpForwarding", "no", "Disable TCP forwarding"),
    ("LoginGraceTime", "60", "Set login grace time"),
    ("ClientAliveInterval", "300", "Set client alive interval"),
    ("ClientAliveCountMax", "2", "Set maximum client alive count"),
)

ENCRYPTION = _group(
    GroupName.ENCRYPTION,
    "Encryption",
    ("Ciphers", "chacha20-poly1305@openssh.com,aes256-gcm@openssh.com", "Modern encryption"),
    ("KexAlgorithms", "curve25519-sha256@libssh.org", "Secure key exchange"),
    ("MACs", "hmac-sha2-512-etm@openssh.com", "Strong authentication"),
)

CATALOG: Mapping[GroupName, SettingGroup] = MappingProxyType(
    {group.key: group for group in (BASIC, ADVANCED, ENCRYPTION)}
)


def get_group(name: Union[GroupName, str]) -> SettingGroup:
    """Look up a group by enum member or value.

    Raises:
        ConfigurationError: If no such group exists
    """
    try:
        return CATALOG[GroupName(name)]
    except ValueError as e:
        known = ", ".join(g.value for g in GroupName)
        raise ConfigurationError(f"Unknown setting group {name!r} (known: {known})") from e


def iter_groups(selected: Iterable[Union[GroupName, str]]) -> Iterator[SettingGroup]:
    """Yield the selected groups in catalog order."""
    wanted = {get_group(name).key for name in selected}
    for key, group in CATALOG.items():
        if key in wanted:
            yield group
