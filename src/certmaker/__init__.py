"""Create KMS-backed root, intermediate and leaf certificates."""
from .chain import create_certificates
from .exceptions import CertMakerError
from .kms import init_kms, validate_kms_config
from .models import CertificateChain, KMSConfig, ProviderType, Stage
from .version import __version__

__all__ = [
    "CertMakerError",
    "CertificateChain",
    "KMSConfig",
    "ProviderType",
    "Stage",
    "__version__",
    "create_certificates",
    "init_kms",
    "validate_kms_config",
]
