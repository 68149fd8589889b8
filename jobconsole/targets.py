"""
Target field resolution for handler payloads.

A payload exposes its host and port under one of several key conventions:
local (LHOST/LPORT) for payloads that connect back, remote (RHOST/RPORT) for
payloads the handler connects to. Host and port are resolved independently,
first matching convention wins.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from jobconsole.errors import UnresolvableTarget


class TargetKind(str, Enum):
    HOST = "host"
    PORT = "port"


@dataclass(frozen=True)
class TargetConvention:
    """
    A pair of datastore keys used for host and port.

    Attributes:
        name: Convention name, for diagnostics
        host_key: Datastore key holding the host
        port_key: Datastore key holding the port
    """
    name: str
    host_key: str
    port_key: str

    def key_for(self, kind: TargetKind) -> str:
        return self.host_key if kind is TargetKind.HOST else self.port_key

    def claims(self, datastore: Mapping[str, Any], kind: TargetKind) -> bool:
        """True if the datastore exposes this convention's key for kind."""
        return self.key_for(kind) in datastore


LOCAL = TargetConvention("local", "LHOST", "LPORT")
REMOTE = TargetConvention("remote", "RHOST", "RPORT")

DEFAULT_CONVENTIONS: tuple[TargetConvention, ...] = (LOCAL, REMOTE)


class TargetResolver:
    """
    Picks the datastore key a host or port value is written to.

    Usage:
        resolver = TargetResolver()
        resolver.resolve({"RHOST": None, "LPORT": 4444}, TargetKind.HOST)  # "RHOST"
        resolver.resolve({"RHOST": None, "LPORT": 4444}, TargetKind.PORT)  # "LPORT"
    """

    def __init__(self, conventions: Iterable[TargetConvention] = DEFAULT_CONVENTIONS):
        self.conventions = tuple(conventions)

    def resolve(self, datastore: Mapping[str, Any], kind: TargetKind, payload: str = "") -> str:
        """
        Return the key to write kind into.

        Raises:
            UnresolvableTarget: If no convention matches
        """
        for convention in self.conventions:
            if convention.claims(datastore, kind):
                return convention.key_for(kind)
        raise UnresolvableTarget(kind.value, payload)
