"""Value objects for the Fabric aggregate.

Immutable, validated domain primitives. All validation occurs at
construction time and fails with :class:`ValidationError` naming the rule.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from textura.foundation.domain.exceptions import ValidationError

CODE_MIN_LENGTH = 2
CODE_MAX_LENGTH = 30
NAME_MAX_LENGTH = 250

_CODE_PATTERN = re.compile(r"^[A-Z0-9]+$")


class FabricStatus(StrEnum):
    """Fabric lifecycle states.

    Deletion is a status transition; rows are never removed::

        ACTIVE --delete()--> DELETED --create()--> ACTIVE
    """

    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


@dataclass(frozen=True, slots=True)
class FabricCode:
    """Validated fabric code: 2-30 characters of ``A-Z`` and ``0-9``.

    Attributes:
        value: The validated code string.

    Raises:
        ValidationError: If the code is out of range or has other characters.
    """

    value: str

    def __post_init__(self) -> None:
        if not CODE_MIN_LENGTH <= len(self.value) <= CODE_MAX_LENGTH:
            raise ValidationError(
                "code",
                f"the fabric code length must be {CODE_MIN_LENGTH}-{CODE_MAX_LENGTH}",
            )
        if not _CODE_PATTERN.match(self.value):
            raise ValidationError("code", "the fabric code can contain A-Z and 0-9 characters")


@dataclass(frozen=True, slots=True)
class FabricName:
    """Validated fabric display name: 1-250 characters."""

    value: str

    def __post_init__(self) -> None:
        if not 1 <= len(self.value) <= NAME_MAX_LENGTH:
            raise ValidationError("name", f"the fabric name length must be 1-{NAME_MAX_LENGTH}")
