"""Trip roles and their ordering."""

import enum
from typing import Optional


class Role(str, enum.Enum):
    """Role on a trip. Members are declared lowest privilege first."""

    VIEWER = "viewer"
    EDITOR = "editor"

    @property
    def rank(self) -> int:
        return list(Role).index(self)

    def satisfies(self, required: "Role") -> bool:
        """True if holding this role meets a `required` role check."""
        return self.rank >= required.rank

    @classmethod
    def parse(cls, value: object) -> Optional["Role"]:
        """Return the matching Role, or None for anything that is not a role name."""
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


# SQL CHECK clause shared by every table with a role column
ROLE_CHECK_SQL = "role IN ({})".format(", ".join(f"'{r.value}'" for r in Role))
