"""Operations that can be exercised on catalog resources."""

from __future__ import annotations

from enum import Enum


class MetadataOperation(str, Enum):
    """
    Capability tag named by rules and requested by callers.

    Values are the names used in policy documents (``ViewAll``, ``EditTests``).
    ``ALL`` only has meaning on the rule side, where it matches any request.
    """

    ALL = "All"
    CREATE = "Create"
    DELETE = "Delete"

    VIEW_ALL = "ViewAll"
    VIEW_BASIC = "ViewBasic"
    VIEW_USAGE = "ViewUsage"
    VIEW_TESTS = "ViewTests"
    VIEW_QUERIES = "ViewQueries"
    VIEW_DATA_PROFILE = "ViewDataProfile"
    VIEW_SAMPLE_DATA = "ViewSampleData"

    EDIT_ALL = "EditAll"
    EDIT_DESCRIPTION = "EditDescription"
    EDIT_DISPLAY_NAME = "EditDisplayName"
    EDIT_OWNER = "EditOwner"
    EDIT_TAGS = "EditTags"
    EDIT_TESTS = "EditTests"
    EDIT_LINEAGE = "EditLineage"
    EDIT_CUSTOM_FIELDS = "EditCustomFields"
    EDIT_USERS = "EditUsers"
    EDIT_POLICY = "EditPolicy"
    EDIT_TEAMS = "EditTeams"
    EDIT_ROLE = "EditRole"

    def __str__(self) -> str:
        return self.value

    @property
    def is_view(self) -> bool:
        return self.name.startswith("VIEW_")

    @classmethod
    def parse(cls, raw: str | MetadataOperation) -> MetadataOperation:
        """Accept ``EditTests``, ``EDIT_TESTS`` or ``edittests``."""
        if isinstance(raw, MetadataOperation):
            return raw
        key = str(raw).strip().replace("_", "").lower()
        for op in cls:
            if op.value.lower() == key:
                return op
        raise ValueError(f"Unknown operation {raw!r}")


def operation_names(operations) -> list[str]:
    """Sorted display names, e.g. ``['EditTests', 'ViewAll']``."""
    return sorted(str(op) for op in operations)
