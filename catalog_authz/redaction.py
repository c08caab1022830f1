"""
Decision-gated redaction of sensitive sub-fields.

List and get responses stay successful for subjects without fine-grained
visibility; only the sensitive payload (e.g. a pipeline's connection config)
is cleared. The redactor consumes a verdict that was already computed and
never evaluates policy itself, so it is not an authorization check for writes.
"""

from __future__ import annotations

from collections.abc import Iterable, MutableMapping
import logging
from typing import Any, TypeVar

from catalog_authz.engine.evaluator import Verdict

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SENSITIVE_FIELD = "source_config.config"


class DecisionGatedRedactor:
    def __init__(self, field_path: str = DEFAULT_SENSITIVE_FIELD) -> None:
        parts = [p for p in field_path.split(".") if p]
        if not parts:
            raise ValueError("field_path must name at least one field")
        self._parents = parts[:-1]
        self._leaf = parts[-1]
        self.field_path = ".".join(parts)

    def apply(self, verdict: Verdict, entity: T) -> T:
        """Return ``entity``, with the sensitive field set to None when the verdict is a denial."""
        if verdict.allowed:
            return entity

        container: Any = entity
        for name in self._parents:
            container = _get(container, name)
            if container is None:
                logger.debug("Redaction skipped: %s missing on %s", name, type(entity).__name__)
                return entity

        if not _clear(container, self._leaf):
            logger.debug("Redaction skipped: %s missing on %s", self.field_path, type(entity).__name__)
        return entity

    def apply_many(self, pairs: Iterable[tuple[Verdict, T]]) -> list[T]:
        return [self.apply(verdict, entity) for verdict, entity in pairs]


def _get(container: Any, name: str) -> Any:
    if isinstance(container, MutableMapping):
        return container.get(name)
    return getattr(container, name, None)


def _clear(container: Any, name: str) -> bool:
    if isinstance(container, MutableMapping):
        if name not in container:
            return False
        container[name] = None
        return True
    if not hasattr(container, name):
        return False
    try:
        setattr(container, name, None)
    except (AttributeError, TypeError, ValueError) as exc:
        # Frozen or validating models: best effort only.
        logger.debug("Redaction skipped: cannot clear %s (%s)", name, type(exc).__name__)
        return False
    return True
