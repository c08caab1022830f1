"""
Entity link expressions.

An entity link points at an entity, or at a field of one:

    <#E::table::svc.db.schema.orders>
    <#E::table::svc.db.schema.orders::columns::amount>
    <#E::table::svc.db.schema.orders::columns::amount::description>

Test cases carry such a link to say which table (or column) they check, and
are authorized against that table.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from catalog_authz import messages
from catalog_authz.errors import MalformedContext

_PREFIX = "<#E"
_SEPARATOR = "::"
_LINK_RE = re.compile(r"^<#E::(?P<body>.+)>$")


@dataclass(frozen=True)
class EntityLink:
    entity_type: str
    entity_fqn: str
    field_name: str | None = None
    array_field_name: str | None = None
    array_field_value: str | None = None

    @classmethod
    def parse(cls, text: str) -> EntityLink:
        if not text:
            raise MalformedContext(messages.failed_to_parse("empty entity link"))
        match = _LINK_RE.match(text.strip())
        if match is None:
            raise MalformedContext(messages.failed_to_parse(f"entity link {text!r} must look like <#E::type::fqn>"))

        parts = match.group("body").split(_SEPARATOR)
        if len(parts) < 2 or len(parts) > 5 or any(not p.strip() for p in parts):
            raise MalformedContext(messages.failed_to_parse(f"entity link {text!r} has invalid segments"))

        parts += [None] * (5 - len(parts))
        entity_type, entity_fqn, field_name, array_field_name, array_field_value = parts
        return cls(
            entity_type=entity_type.strip(),
            entity_fqn=entity_fqn.strip(),
            field_name=field_name,
            array_field_name=array_field_name,
            array_field_value=array_field_value,
        )

    @property
    def fully_qualified_field_value(self) -> str:
        """FQN of the thing linked to: the entity itself or e.g. one of its columns."""
        if self.array_field_name is None:
            return self.entity_fqn
        return f"{self.entity_fqn}.{self.array_field_name}"

    @property
    def link_string(self) -> str:
        segments = [self.entity_type, self.entity_fqn]
        for part in (self.field_name, self.array_field_name, self.array_field_value):
            if part is None:
                break
            segments.append(part)
        return f"{_PREFIX}{_SEPARATOR}{_SEPARATOR.join(segments)}>"

    def __str__(self) -> str:
        return self.link_string
