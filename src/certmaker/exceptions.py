"""Central exception hierarchy for certmaker."""
from __future__ import annotations


class CertMakerError(Exception):
    """Base exception for all failures"""


class ConfigurationError(CertMakerError, ValueError):
    """Raised when the KMS type, options or key identifiers are malformed"""


class ProviderError(CertMakerError):
    """Raised when a KMS backend rejects a request or cannot be reached"""


class CapabilityError(CertMakerError):
    """Raised when a signer cannot produce signatures for certificates"""


class TemplateError(CertMakerError):
    """Raised when a certificate template is missing, unreadable or invalid"""


class CertificateError(CertMakerError):
    """Raised when a certificate cannot be assembled or signed"""


class CertificateWriteError(CertificateError):
    """Raised when a certificate cannot be persisted"""


class ChainBuildError(CertMakerError):
    """Raised when a stage of the chain build fails

    ``stage`` names the certificate being built and ``__cause__`` carries the
    underlying error.
    """

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


__all__ = [
    "CertMakerError",
    "ConfigurationError",
    "ProviderError",
    "CapabilityError",
    "TemplateError",
    "CertificateError",
    "CertificateWriteError",
    "ChainBuildError",
]
