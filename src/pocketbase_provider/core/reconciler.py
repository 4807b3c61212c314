"""Reconciliation of one collection instance against the remote API.

Each operation runs validate -> read (when something exists) -> diff -> at
most one mutating call -> merge, and returns the new state together with
every diagnostic gathered on the way. State is only advanced when the
remote call succeeded.

A ``Reconciler`` holds no per-resource state; callers must not run two
operations for the same collection id at the same time.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from pocketbase_provider.client.errors import (
    NotFoundError,
    ProviderError,
    ReplacementRequiredError,
)
from pocketbase_provider.core.diagnostics import Diagnostics
from pocketbase_provider.core.diff import (
    Plan,
    PlanAction,
    plan_create,
    plan_delete,
    plan_update,
)
from pocketbase_provider.core.schema import COLLECTION_SCHEMA, ResourceSchema
from pocketbase_provider.core.state import (
    DesiredConfig,
    build_payload,
    merge_state,
    refresh_state,
    state_from_remote,
)
from pocketbase_provider.models.collection import PersistedState, RemoteResource

logger = logging.getLogger(__name__)


class RemoteFacade(Protocol):
    """The only way the reconciler talks to the server."""

    def create(self, resource_type: str, attributes: dict[str, Any]) -> RemoteResource: ...

    def read(self, resource_id: str) -> RemoteResource: ...

    def update(self, resource_id: str, changed: dict[str, Any]) -> RemoteResource: ...

    def delete(self, resource_id: str) -> None: ...


@dataclass
class ReconcileResult:
    """Outcome of one operation. ``state`` is None when nothing should be tracked."""

    state: PersistedState | None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    requires_replacement: bool = False
    plan: Plan | None = None

    @property
    def absent(self) -> bool:
        return self.state is None


class Reconciler:
    resource_type = "collection"

    def __init__(self, facade: RemoteFacade, schema: ResourceSchema = COLLECTION_SCHEMA) -> None:
        self.facade = facade
        self.schema = schema

    def validate(self, raw: Any) -> Diagnostics:
        return self.schema.validate(raw)

    def _desired(self, raw: Mapping[str, Any], diags: Diagnostics) -> DesiredConfig | None:
        diags.extend(self.validate(raw))
        if diags.has_error():
            return None
        return DesiredConfig.from_raw(raw, self.schema)

    def _remote_error(self, diags: Diagnostics, operation: str, target: str, exc: ProviderError) -> None:
        logger.error("%s of collection %s failed: %s", operation, target, exc)
        diags.add_error(
            f"Error during collection {operation.lower()}",
            f"{operation} of collection {target} failed: {exc}",
        )

    def reconcile(
        self,
        prior: PersistedState | None,
        desired: Mapping[str, Any] | None,
    ) -> ReconcileResult:
        """Converge one instance given what was recorded and what is wanted."""
        if prior is None and desired is None:
            return ReconcileResult(None, plan=Plan(PlanAction.NOOP))
        if prior is None:
            return self.create(desired)  # type: ignore[arg-type]
        if desired is None:
            return self.delete(prior)
        return self.update(prior, desired)

    def plan(
        self,
        prior: PersistedState | None,
        desired: Mapping[str, Any] | None,
    ) -> ReconcileResult:
        """Refresh and compute the plan without changing anything remotely."""
        diags = Diagnostics()
        config = self._desired(desired, diags) if desired is not None else None
        if diags.has_error():
            return ReconcileResult(prior, diags)
        observed = prior
        if prior is not None:
            refreshed = self.read(prior)
            diags.extend(refreshed.diagnostics)
            if diags.has_error():
                return ReconcileResult(prior, diags)
            observed = refreshed.state
        if observed is None:
            if config is None:
                return ReconcileResult(None, diags, plan=Plan(PlanAction.NOOP))
            return ReconcileResult(None, diags, plan=plan_create(config))
        if config is None:
            return ReconcileResult(observed, diags, plan=plan_delete(observed))
        plan = plan_update(config, observed)
        return ReconcileResult(observed, diags, plan.requires_replacement, plan)

    def create(self, desired: Mapping[str, Any]) -> ReconcileResult:
        diags = Diagnostics()
        config = self._desired(desired, diags)
        if config is None:
            return ReconcileResult(None, diags)
        return self._create(config, diags)

    def _create(self, config: DesiredConfig, diags: Diagnostics) -> ReconcileResult:
        plan = plan_create(config)
        try:
            remote = self.facade.create(self.resource_type, build_payload(config))
        except ProviderError as exc:
            self._remote_error(diags, "Create", repr(config.name), exc)
            return ReconcileResult(None, diags, plan=plan)
        state = merge_state(None, config, remote)
        logger.info("Created collection %s (%s)", state.name, state.id)
        return ReconcileResult(state, diags, plan=plan)

    def read(self, prior: PersistedState) -> ReconcileResult:
        """Refresh *prior*. A collection gone from the server yields absent state."""
        diags = Diagnostics()
        plan = Plan(PlanAction.READ, resource_id=prior.id)
        try:
            remote = self.facade.read(prior.id)
        except NotFoundError:
            logger.warning("Collection %s no longer exists, dropping it from state", prior.id)
            return ReconcileResult(None, diags, plan=plan)
        except ProviderError as exc:
            self._remote_error(diags, "Read", prior.id, exc)
            return ReconcileResult(prior, diags, plan=plan)
        return ReconcileResult(refresh_state(prior, remote), diags, plan=plan)

    def update(self, prior: PersistedState, desired: Mapping[str, Any]) -> ReconcileResult:
        diags = Diagnostics()
        config = self._desired(desired, diags)
        if config is None:
            return ReconcileResult(prior, diags)

        try:
            remote = self.facade.read(prior.id)
        except NotFoundError:
            logger.warning("Collection %s was deleted outside of management", prior.id)
            diags.add_warning(
                "Collection no longer exists",
                f"Collection {prior.id} was not found on the server and will be created again.",
            )
            return self._create(config, diags)
        except ProviderError as exc:
            self._remote_error(diags, "Read", prior.id, exc)
            return ReconcileResult(prior, diags)

        observed = refresh_state(prior, remote)
        plan = plan_update(config, observed)
        if plan.action is PlanAction.NOOP:
            return ReconcileResult(observed, diags, plan=plan)
        try:
            plan.raise_for_replacement()
        except ReplacementRequiredError as exc:
            diags.add_warning("Replacement required", str(exc), exc.attributes[0])
            return ReconcileResult(observed, diags, requires_replacement=True, plan=plan)

        changed = build_payload(config, observed, only=plan.changed_attributes())
        try:
            remote = self.facade.update(observed.id, changed)
        except ProviderError as exc:
            self._remote_error(diags, "Update", observed.id, exc)
            return ReconcileResult(prior, diags, plan=plan)
        state = merge_state(observed, config, remote)
        logger.info(
            "Updated collection %s (%s): %s",
            state.name, state.id, ", ".join(sorted(changed)),
        )
        return ReconcileResult(state, diags, plan=plan)

    def delete(self, prior: PersistedState) -> ReconcileResult:
        diags = Diagnostics()
        plan = plan_delete(prior)
        try:
            self.facade.delete(prior.id)
        except NotFoundError:
            logger.debug("Collection %s already absent", prior.id)
        except ProviderError as exc:
            self._remote_error(diags, "Delete", prior.id, exc)
            return ReconcileResult(prior, diags, plan=plan)
        logger.info("Deleted collection %s (%s)", prior.name, prior.id)
        return ReconcileResult(None, diags, plan=plan)

    def import_state(self, resource_id: str) -> ReconcileResult:
        """Adopt an existing collection by id or name."""
        diags = Diagnostics()
        plan = Plan(PlanAction.READ, resource_id=resource_id)
        try:
            remote = self.facade.read(resource_id)
        except NotFoundError:
            diags.add_error(
                "Cannot import non-existent collection",
                f"No collection with id or name {resource_id!r} exists on the server.",
                "id",
            )
            return ReconcileResult(None, diags, plan=plan)
        except ProviderError as exc:
            self._remote_error(diags, "Import", resource_id, exc)
            return ReconcileResult(None, diags, plan=plan)
        return ReconcileResult(state_from_remote(remote), diags, plan=plan)
