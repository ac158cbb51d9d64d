"""Certificate primitives: algorithm selection, issuance and persistence."""
from .builder import CertificateTemplate, create_certificate, is_ca_certificate
from .signature import SignatureAlgorithm, to_signature_algorithm
from .writer import classify_certificate, write_certificate_to_file

__all__ = [
    "CertificateTemplate",
    "SignatureAlgorithm",
    "classify_certificate",
    "create_certificate",
    "is_ca_certificate",
    "to_signature_algorithm",
    "write_certificate_to_file",
]
