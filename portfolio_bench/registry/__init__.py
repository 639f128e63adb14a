"""Token registry - known-symbol table and deployment lookup."""

from .metadata import DEFAULT_TOKEN_METADATA, KnownTokenTable, TokenMetadata
from .token_registry import (
    DeploymentFileSource,
    MappingSource,
    TokenRegistryClient,
    TokenSource,
)

__all__ = [
    "DEFAULT_TOKEN_METADATA",
    "KnownTokenTable",
    "TokenMetadata",
    "DeploymentFileSource",
    "MappingSource",
    "TokenRegistryClient",
    "TokenSource",
]
