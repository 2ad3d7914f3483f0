"""
OCSF event and object models with runtime validation.

Generated version packages live next to this file (v1_5, v1_6, v1_7), and ``latest``
re-exports the newest one.
"""

from ocsf_models.base import OcsfEvent, OcsfModel, OcsfObject, bind_deferred_refs
from ocsf_models.sibling import SiblingPair, reconcile_siblings
from ocsf_models.uid import UidConfig, prefill_uids

__all__ = [
    "OcsfEvent",
    "OcsfModel",
    "OcsfObject",
    "SiblingPair",
    "UidConfig",
    "bind_deferred_refs",
    "prefill_uids",
    "reconcile_siblings",
]
