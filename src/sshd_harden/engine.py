"""Apply setting groups to a configuration document."""

from typing import Iterable, List, Sequence

import structlog

from sshd_harden.catalog import SettingGroup, make_directive
from sshd_harden.document import ConfigDocument
from sshd_harden.exceptions import ConfigurationError
from sshd_harden.types import ChangeKind, DirectiveChange
from sshd_harden.utils.validation import Validator

logger = structlog.get_logger(__name__)

ALLOW_USERS_GROUP = "Allowed Users"


class ApplicationEngine:
    """Upsert catalog directives into a document and report what changed.

    Groups applied one after another against the same document see each
    other's edits, so overlapping names resolve to the last group applied.
    """

    def apply(self, document: ConfigDocument, group: SettingGroup) -> List[DirectiveChange]:
        """Apply every directive of ``group`` in order."""
        changes: List[DirectiveChange] = []
        for directive in group.directives:
            previous = document.upsert(directive)
            kind = ChangeKind.INSERTED if previous is None else ChangeKind.REPLACED
            change = DirectiveChange(
                group=group.title,
                name=directive.name,
                value=directive.value,
                kind=kind,
                previous=previous,
            )
            changes.append(change)
            if change.changed:
                logger.info(
                    "Directive applied",
                    group=group.title,
                    directive=directive.name,
                    value=directive.value,
                    action=kind.value,
                    previous=previous,
                )
            else:
                logger.debug("Directive already set", directive=directive.name)
        return changes

    def apply_all(
        self, document: ConfigDocument, groups: Iterable[SettingGroup]
    ) -> List[DirectiveChange]:
        changes: List[DirectiveChange] = []
        for group in groups:
            changes.extend(self.apply(document, group))
        return changes

    def allow_users(
        self, document: ConfigDocument, users: Sequence[str]
    ) -> DirectiveChange:
        """Set the ``AllowUsers`` directive to exactly ``users``.

        Raises:
            ConfigurationError: If the list is empty or has invalid names
        """
        errors = Validator.validate_users(list(users))
        if errors:
            raise ConfigurationError("; ".join(errors))
        unique = list(dict.fromkeys(users))
        directive = make_directive("AllowUsers", " ".join(unique), "Restrict SSH logins")
        previous = document.upsert(directive)
        kind = ChangeKind.INSERTED if previous is None else ChangeKind.REPLACED
        logger.info("Allowed users configured", users=" ".join(unique), action=kind.value)
        return DirectiveChange(
            group=ALLOW_USERS_GROUP,
            name=directive.name,
            value=directive.value,
            kind=kind,
            previous=previous,
        )
