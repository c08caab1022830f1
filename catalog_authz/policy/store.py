from __future__ import annotations

import logging
from pathlib import Path
import threading

from catalog_authz.policy.loader import load_policy_model
from catalog_authz.policy.model import PolicyModel

logger = logging.getLogger(__name__)


class PolicySnapshotStore:
    """
    Holds the current policy snapshot.

    Readers take ``snapshot()`` once per decision and keep using it; a refresh
    replaces the reference in one assignment, so an in-flight evaluation never
    sees a half-applied update. The lock only serializes writers.
    """

    def __init__(self, model: PolicyModel | None = None) -> None:
        self._model = model or PolicyModel.empty()
        self._write_lock = threading.Lock()
        self._generation = 0

    def snapshot(self) -> PolicyModel:
        return self._model

    @property
    def generation(self) -> int:
        return self._generation

    def refresh(self, model: PolicyModel) -> PolicyModel:
        """Swap in a new snapshot and return the previous one."""
        with self._write_lock:
            previous = self._model
            self._model = model
            self._generation += 1
        logger.info("Policy snapshot refreshed generation=%s roles=%s", self._generation, len(model.roles))
        return previous

    def reload_from(self, path: Path) -> PolicyModel:
        # Parse outside the lock; only the swap is serialized.
        model = load_policy_model(path)
        self.refresh(model)
        return model
