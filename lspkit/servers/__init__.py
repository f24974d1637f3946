"""
Language server acquisition and supervision.

This package locates, downloads, verifies and installs language server
binaries (ArtifactResolver) and supervises their processes
(ProcessSupervisor).
"""

from .identity import (
    ArtifactSpec,
    DownloadDescriptor,
    Provenance,
    ResolvedBinary,
    ToolIdentity,
)
from .registry import DEFAULT_SERVER, ServerRegistry, identity_from_dict
from .resolver import ArtifactResolver
from .supervisor import ProcessSupervisor, SupervisorState, create_supervisor
from .bridge import StdioBridge

__all__ = [
    "ArtifactSpec",
    "DownloadDescriptor",
    "Provenance",
    "ResolvedBinary",
    "ToolIdentity",
    "DEFAULT_SERVER",
    "ServerRegistry",
    "identity_from_dict",
    "ArtifactResolver",
    "ProcessSupervisor",
    "SupervisorState",
    "create_supervisor",
    "StdioBridge",
]
