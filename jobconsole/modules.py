"""
Module factory for payload, encoder and handler modules.

Modules are configuration-bearing units identified by name. jobconsole
never runs them; it reads their default options, builds a merged datastore
and hands it to a handler module, which starts a job in the registry.

The catalog format (YAML or dict):

    handler: multi/handler
    payloads:
      generic/shell_reverse_tcp:
        description: Reverse TCP shell
        options: {LHOST: null, LPORT: 4444}
        advanced: {EnableStageEncoding: false, StageEncoder: ""}
    encoders:
      generic/none:
        description: No encoding
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml

from jobconsole.errors import CatalogError
from jobconsole.registry import Job, JobRegistry

logger = logging.getLogger(__name__)


DEFAULT_HANDLER = "multi/handler"

DEFAULT_CATALOG: dict[str, Any] = {
    "handler": DEFAULT_HANDLER,
    "payloads": {
        "generic/shell_reverse_tcp": {
            "description": "Connect back to the handler and spawn a command shell",
            "options": {"LHOST": None, "LPORT": 4444},
            "advanced": {"EnableStageEncoding": False, "StageEncoder": ""},
        },
        "generic/shell_bind_tcp": {
            "description": "Listen on the target and spawn a command shell",
            "options": {"RHOST": None, "LPORT": 4444},
            "advanced": {"EnableStageEncoding": False, "StageEncoder": ""},
        },
        "generic/shell_bind_remote": {
            "description": "Connect to a listener already running on the target",
            "options": {"RHOST": None, "RPORT": 4444},
        },
        "generic/reverse_https": {
            "description": "Tunnel a staged session over HTTPS",
            "options": {"LHOST": None, "LPORT": 8443, "LURI": "/"},
            "advanced": {"EnableStageEncoding": False, "StageEncoder": "", "SessionExpirationTimeout": 604800},
        },
    },
    "encoders": {
        "generic/none": {"description": "Pass the stage through unchanged"},
        "x86/xor_dynamic": {"description": "Dynamic key XOR stage encoder"},
        "x64/xor": {"description": "Static key XOR stage encoder"},
    },
}


@dataclass
class Module:
    """
    A named, configurable unit.

    Attributes:
        refname: Catalog name, e.g. "generic/shell_reverse_tcp"
        kind: "payload", "encoder" or "handler"
        description: One-line description
        datastore: Default option values (basic and advanced)
        advanced: Names of datastore keys that are advanced options
    """
    refname: str
    kind: str
    description: str = ""
    datastore: dict[str, Any] = field(default_factory=dict)
    advanced: frozenset[str] = frozenset()

    def basic_options(self) -> dict[str, Any]:
        return {k: v for k, v in self.datastore.items() if k not in self.advanced}

    def advanced_options(self) -> dict[str, Any]:
        return {k: v for k, v in self.datastore.items() if k in self.advanced}


class HandlerModule(Module):
    """
    Handler module that starts a background job when launched.

    The launched job's context is the handler itself, so the job's final
    datastore stays inspectable through the registry.
    """

    def __init__(self, refname: str, registry: JobRegistry, description: str = ""):
        super().__init__(refname=refname, kind="handler", description=description)
        self._registry = registry
        self.job_id: Optional[int] = None

    def launch(self, datastore: dict[str, Any], advanced: Iterable[str] = ()) -> Job:
        """
        Apply the datastore and start the handler as a job.

        Args:
            datastore: Fully merged handler configuration
            advanced: Datastore keys to treat as advanced options

        Returns:
            The newly registered Job
        """
        self.datastore = dict(datastore)
        self.advanced = frozenset(advanced)
        job = self._registry.start(f"Handler: {self.refname}", ctx=self)
        self.job_id = job.job_id
        return job


class ModuleFactory(ABC):
    """Abstract factory constructing modules by name."""

    @abstractmethod
    def create_payload(self, name: str) -> Optional[Module]:
        """Return a fresh payload module, or None if the name is unknown."""
        pass

    @abstractmethod
    def create_encoder(self, name: str) -> Optional[Module]:
        """Return a fresh encoder module, or None if the name is unknown."""
        pass

    @abstractmethod
    def create_handler(self) -> HandlerModule:
        """Return a fresh handler module."""
        pass

    def list_payloads(self) -> list[str]:
        """Names of known payloads, when the factory can enumerate them."""
        return []

    def list_encoders(self) -> list[str]:
        """Names of known encoders, when the factory can enumerate them."""
        return []


class CatalogModuleFactory(ModuleFactory):
    """
    ModuleFactory backed by a catalog mapping.

    Every create_* call returns a new instance with its own copy of the
    default options, so callers can never alter the catalog.
    """

    def __init__(
        self,
        registry: JobRegistry,
        catalog: dict[str, Any] | None = None,
        handler: Optional[str] = None,
    ):
        catalog = DEFAULT_CATALOG if catalog is None else catalog
        self._registry = registry
        self._handler = handler or catalog.get("handler") or DEFAULT_HANDLER
        self._payloads: dict[str, dict] = dict(catalog.get("payloads") or {})
        self._encoders: dict[str, dict] = dict(catalog.get("encoders") or {})

    @classmethod
    def from_file(
        cls,
        path: Path | str,
        registry: JobRegistry,
        handler: Optional[str] = None,
    ) -> "CatalogModuleFactory":
        """
        Load a catalog from a YAML file.

        Raises:
            CatalogError: If the file is missing, unparseable or malformed
        """
        path = Path(path).expanduser()
        if not path.exists():
            raise CatalogError(f"Module catalog not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CatalogError(f"Invalid YAML in module catalog {path}: {e}")

        if not isinstance(data, dict):
            raise CatalogError(f"Module catalog {path} must be a mapping")
        for section in ("payloads", "encoders"):
            entries = data.get(section) or {}
            if not isinstance(entries, dict):
                raise CatalogError(f"Section '{section}' in {path} must be a mapping")
            for name, entry in entries.items():
                if entry is not None and not isinstance(entry, dict):
                    raise CatalogError(f"Entry '{name}' in section '{section}' must be a mapping")

        logger.debug(f"Loaded module catalog from {path}")
        return cls(registry, data, handler=handler)

    def create_payload(self, name: str) -> Optional[Module]:
        if name not in self._payloads:
            logger.debug(f"Unknown payload: {name}")
            return None
        entry = self._payloads[name] or {}
        options = copy.deepcopy(entry.get("options") or {})
        advanced = copy.deepcopy(entry.get("advanced") or {})
        return Module(
            refname=name,
            kind="payload",
            description=entry.get("description", ""),
            datastore={**options, **advanced},
            advanced=frozenset(advanced),
        )

    def create_encoder(self, name: str) -> Optional[Module]:
        if name not in self._encoders:
            logger.debug(f"Unknown encoder: {name}")
            return None
        entry = self._encoders[name] or {}
        return Module(refname=name, kind="encoder", description=entry.get("description", ""))

    def create_handler(self) -> HandlerModule:
        return HandlerModule(self._handler, self._registry)

    def list_payloads(self) -> list[str]:
        return sorted(self._payloads)

    def list_encoders(self) -> list[str]:
        return sorted(self._encoders)
