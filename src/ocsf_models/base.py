"""
Base classes of the generated OCSF models.

Generated object modules that take part in a reference cycle cannot import every
referenced model eagerly. Such a module lists its lazily bound models in a module level
``DEFERRED_REFS`` mapping (local name to sibling module and exported name) and
imports them only for type checkers. Pydantic leaves a model whose annotations cannot
be resolved yet incomplete and rebuilds it on first use; ``OcsfModel.model_rebuild``
binds the deferred names first, so the rebuild succeeds.
"""

import importlib
import logging
import sys
import threading
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from ocsf_models.sibling import SiblingPair, reconcile_siblings
from ocsf_models.uid import UidConfig, prefill_uids

logger = logging.getLogger(__name__)

_bind_lock = threading.RLock()
_bound_modules: set[str] = set()


def _version_package(module_name: str) -> str:
    # <root>.<version>.<objects|events>.<module> -> <root>.<version>
    return module_name.rsplit(".", 2)[0]


def bind_deferred_refs(module_name: str) -> None:
    """
    Bind the deferred references of every loaded generated module in the version
    package of module_name. Binding imports target modules, which may load more modules
    with deferred references, so this repeats until nothing is left to bind.
    Safe to call any number of times from any thread.
    """
    prefix = _version_package(module_name) + "."
    with _bind_lock:
        while True:
            pending = sorted(
                name
                for name, module in list(sys.modules.items())
                if name.startswith(prefix)
                and name not in _bound_modules
                and hasattr(module, "DEFERRED_REFS")
            )
            if not pending:
                return
            for name in pending:
                module = sys.modules[name]
                package = name.rsplit(".", 1)[0]
                for local_name, (sibling, exported) in module.DEFERRED_REFS.items():
                    target = importlib.import_module(f"{package}.{sibling}")
                    setattr(module, local_name, getattr(target, exported))
                _bound_modules.add(name)
                logger.debug(
                    "Bound %d deferred references of %s",
                    len(module.DEFERRED_REFS),
                    name,
                )


class OcsfModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    @classmethod
    def model_rebuild(cls, *, _parent_namespace_depth: int = 2, **kwargs: Any):
        bind_deferred_refs(cls.__module__)
        # One more frame between the caller and pydantic
        return super().model_rebuild(
            _parent_namespace_depth=_parent_namespace_depth + 1, **kwargs
        )

    def to_dict(self) -> dict[str, Any]:
        """Dump to an OCSF JSON compatible dictionary, using schema attribute names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class OcsfObject(OcsfModel):
    """Base of all generated OCSF objects. Objects keep unknown attributes."""

    model_config = ConfigDict(extra="allow")


class OcsfEvent(OcsfModel):
    """
    Base of all generated OCSF event classes. Events reject unknown attributes.

    Before field validation, a dictionary payload has its id/label sibling attributes
    reconciled and its derivable UIDs filled in.
    """

    model_config = ConfigDict(extra="forbid")

    UID_CONFIG: ClassVar[Optional[UidConfig]] = None
    SIBLING_PAIRS: ClassVar[tuple[SiblingPair, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def preprocess_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = reconcile_siblings(data, cls.SIBLING_PAIRS)
        if cls.UID_CONFIG is not None:
            data = prefill_uids(data, cls.UID_CONFIG)
        return data
