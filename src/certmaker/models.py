"""Shared domain models used across certmaker."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from cryptography import x509
from pydantic import BaseModel, ConfigDict, Field


class ProviderType(str, Enum):
    AWS = "awskms"
    GCP = "gcpkms"
    AZURE = "azurekms"
    HASHIVAULT = "hashivault"


class Stage(str, Enum):
    ROOT = "root"
    INTERMEDIATE = "intermediate"
    LEAF = "leaf"


class KMSConfig(BaseModel):
    """Configuration for one chain build.

    ``root_key_id`` always names the key a gateway call should bind to. The
    chain builder addresses the intermediate and leaf keys by copying the
    config through :meth:`with_active_key`.
    """

    model_config = ConfigDict(frozen=True)

    common_name: str = ""
    type: str = ""
    root_key_id: str = ""
    intermediate_key_id: str = ""
    leaf_key_id: str = ""
    options: Dict[str, str] = Field(default_factory=dict)

    def option(self, name: str) -> str:
        return self.options.get(name, "") if self.options else ""

    def with_active_key(self, key_id: str) -> "KMSConfig":
        return self.model_copy(update={"root_key_id": key_id})


@dataclass(slots=True)
class CertificateChain:
    root: x509.Certificate
    leaf: x509.Certificate
    intermediate: Optional[x509.Certificate] = None

    def ordered(self) -> list[x509.Certificate]:
        """Return the chain leaf first, the order TLS and code signing expect."""
        certs = [self.leaf]
        if self.intermediate is not None:
            certs.append(self.intermediate)
        certs.append(self.root)
        return certs


__all__ = ["CertificateChain", "KMSConfig", "ProviderType", "Stage"]
