"""Retraction orchestrator: delete a cookbook and all of its versions.

Flow
----
1. Look the cookbook up; if it does not exist, stop with ``NotFound``
   without consulting the authorization gate.
2. Authorize; on denial stop with no mutation and no effects.
3. Capture a snapshot (including the latest-version URL) while the
   cookbook still exists.
4. Delete it in one transaction.
5. Only if the store confirms the deletion, dispatch the effects.
"""

from __future__ import annotations

import logging

from pantry.auth.authorization import AuthorizationGate
from pantry.core.store import RegistryStore
from pantry.effects.dispatcher import SideEffectDispatcher
from pantry.models.cookbooks import CookbookSnapshot
from pantry.models.identity import Identity
from pantry.models.results import Denied, NotFound, RetractCommitted, RetractOutcome

logger = logging.getLogger(__name__)


class RetractionOrchestrator:
    """Drives locate -> authorize -> capture -> delete -> dispatch."""

    def __init__(
        self,
        store: RegistryStore,
        gate: AuthorizationGate,
        dispatcher: SideEffectDispatcher,
        *,
        base_url: str = "",
    ) -> None:
        self._store = store
        self._gate = gate
        self._dispatcher = dispatcher
        self._base_url = base_url

    def retract(self, identity: Identity, cookbook_name: str) -> RetractOutcome:
        cookbook = self._store.find_cookbook(cookbook_name)
        if cookbook is None:
            return NotFound(cookbook_name=cookbook_name)

        if not self._gate.authorize(identity, cookbook).allowed:
            logger.info(
                "Retraction denied: %r may not delete %r.", identity.username, cookbook_name
            )
            return Denied()

        snapshot = CookbookSnapshot.capture(cookbook, self._base_url)

        if not self._store.delete_cookbook(cookbook):
            # Deleted by someone else between lookup and delete
            logger.info("Cookbook %r vanished before deletion.", cookbook_name)
            return NotFound(cookbook_name=cookbook_name)

        self._dispatcher.retracted(identity, snapshot)
        return RetractCommitted(snapshot=snapshot)
