"""Schema, state model, diagnostics and reconciler for managed collections."""

from pocketbase_provider.core.diagnostics import Diagnostic, Diagnostics, Severity
from pocketbase_provider.core.diff import AttributeChange, Plan, PlanAction
from pocketbase_provider.core.reconciler import ReconcileResult, Reconciler, RemoteFacade
from pocketbase_provider.core.schema import COLLECTION_SCHEMA, FIELD_SCHEMA, validate_collection
from pocketbase_provider.core.state import DesiredConfig, merge_state
from pocketbase_provider.core.values import NULL, UNKNOWN, Value

__all__ = [
    "COLLECTION_SCHEMA",
    "FIELD_SCHEMA",
    "NULL",
    "UNKNOWN",
    "AttributeChange",
    "DesiredConfig",
    "Diagnostic",
    "Diagnostics",
    "Plan",
    "PlanAction",
    "ReconcileResult",
    "Reconciler",
    "RemoteFacade",
    "Severity",
    "Value",
    "merge_state",
    "validate_collection",
]
