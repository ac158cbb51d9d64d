from __future__ import annotations

import pytest

from certmaker.exceptions import ConfigurationError
from certmaker.kms.validation import split_azure_key_id, validate_kms_config
from certmaker.models import KMSConfig

_GCP_KEY = "projects/p/locations/global/keyRings/r/cryptoKeys/k/cryptoKeyVersions/1"


def _config(kms_type: str, options: dict, root: str = "", leaf: str = "", intermediate: str = "") -> KMSConfig:
    return KMSConfig(
        common_name="test",
        type=kms_type,
        root_key_id=root,
        intermediate_key_id=intermediate,
        leaf_key_id=leaf,
        options=options,
    )


@pytest.mark.parametrize(
    "kms_type, options, root, leaf",
    [
        ("awskms", {"aws-region": "us-west-2"}, "arn:aws:kms:us-west-2:123456789012:key/root", "alias/leaf"),
        ("gcpkms", {"gcp-credentials-file": "/tmp/creds.json"}, _GCP_KEY, _GCP_KEY),
        ("azurekms", {"azure-tenant-id": "tenant"}, "azurekms:name=root;vault=v", "azurekms:name=leaf;vault=v"),
        (
            "hashivault",
            {"vault-token": "s.token", "vault-address": "http://vault:8200"},
            "transit/keys/root",
            "transit/keys/leaf",
        ),
    ],
)
def test_validate_accepts_well_formed_config(kms_type: str, options: dict, root: str, leaf: str) -> None:
    validate_kms_config(_config(kms_type, options, root=root, leaf=leaf, intermediate=root))


@pytest.mark.parametrize(
    "kms_type, root, leaf, missing",
    [
        ("awskms", "alias/root", "alias/leaf", "aws-region"),
        ("gcpkms", _GCP_KEY, _GCP_KEY, "gcp-credentials-file"),
        ("azurekms", "azurekms:name=a;vault=v", "azurekms:name=b;vault=v", "azure-tenant-id"),
        ("hashivault", "transit/keys/a", "transit/keys/b", "vault-token"),
    ],
)
def test_missing_provider_option_is_named(kms_type: str, root: str, leaf: str, missing: str) -> None:
    with pytest.raises(ConfigurationError, match=missing):
        validate_kms_config(_config(kms_type, {}, root=root, leaf=leaf))


def test_hashivault_requires_address() -> None:
    config = _config("hashivault", {"vault-token": "t"}, root="transit/keys/a", leaf="transit/keys/b")
    with pytest.raises(ConfigurationError, match="vault-address is required for HashiVault KMS"):
        validate_kms_config(config)


@pytest.mark.parametrize("kms_type", ["", "pkcs11", "AWSKMS"])
def test_unknown_or_empty_type_is_rejected(kms_type: str) -> None:
    with pytest.raises(ConfigurationError):
        validate_kms_config(_config(kms_type, {}, root="alias/a", leaf="alias/b"))


def test_aws_region_mismatch() -> None:
    config = _config(
        "awskms",
        {"aws-region": "us-east-1"},
        root="arn:aws:kms:eu-west-1:123456789012:key/abc",
        leaf="alias/leaf",
    )
    with pytest.raises(ConfigurationError) as excinfo:
        validate_kms_config(config)
    assert str(excinfo.value) == "region in ARN (eu-west-1) does not match configured region (us-east-1)"


@pytest.mark.parametrize(
    "key_id, message",
    [
        ("arn:aws:kms:us-east-1:123", "invalid AWS KMS ARN format for RootKeyID"),
        ("alias/", "alias name cannot be empty for RootKeyID"),
        ("key/abc", "awskms RootKeyID must start with 'arn:aws:kms:' or 'alias/'"),
    ],
)
def test_aws_key_id_grammar(key_id: str, message: str) -> None:
    config = _config("awskms", {"aws-region": "us-east-1"}, root=key_id, leaf="alias/leaf")
    with pytest.raises(ConfigurationError) as excinfo:
        validate_kms_config(config)
    assert str(excinfo.value) == message


def test_gcp_components_may_appear_in_any_order() -> None:
    reordered = "x/cryptoKeyVersions/1/cryptoKeys/k/keyRings/r/locations/l/projects/p"
    config = _config("gcpkms", {"gcp-credentials-file": "c.json"}, root=reordered, leaf=_GCP_KEY)
    validate_kms_config(config)


def test_gcp_reports_first_missing_component() -> None:
    key_id = "projects/p/locations/l/keyRings/r/cryptoKeys/k"
    config = _config("gcpkms", {"gcp-credentials-file": "c.json"}, root=_GCP_KEY, leaf=key_id)
    with pytest.raises(ConfigurationError, match="gcpkms LeafKeyID must contain '/cryptoKeyVersions/'"):
        validate_kms_config(config)


@pytest.mark.parametrize(
    "key_id, message",
    [
        ("name=a;vault=v", "azurekms RootKeyID must start with 'azurekms:name='"),
        ("azurekms:name=a", "azurekms RootKeyID must contain ';vault=' parameter"),
        ("azurekms:name=;vault=v", "key name cannot be empty for RootKeyID"),
        ("azurekms:name=a;vault=", "vault name cannot be empty for RootKeyID"),
    ],
)
def test_azure_key_id_grammar(key_id: str, message: str) -> None:
    config = _config("azurekms", {"azure-tenant-id": "t"}, root=key_id, leaf="azurekms:name=b;vault=v")
    with pytest.raises(ConfigurationError) as excinfo:
        validate_kms_config(config)
    assert str(excinfo.value) == message


@pytest.mark.parametrize(
    "key_id, message",
    [
        ("transit/keys", "hashivault RootKeyID must be in format: transit/keys/keyname"),
        ("kv/keys/root", "hashivault RootKeyID must start with 'transit/keys/'"),
        ("transit/key/root", "hashivault RootKeyID must start with 'transit/keys/'"),
        ("transit/keys/", "key name cannot be empty for RootKeyID"),
    ],
)
def test_hashivault_key_id_grammar(key_id: str, message: str) -> None:
    config = _config(
        "hashivault",
        {"vault-token": "t", "vault-address": "http://vault"},
        root=key_id,
        leaf="transit/keys/leaf",
    )
    with pytest.raises(ConfigurationError) as excinfo:
        validate_kms_config(config)
    assert str(excinfo.value) == message


def test_intermediate_key_id_is_checked_when_present() -> None:
    config = _config(
        "awskms",
        {"aws-region": "us-east-1"},
        root="alias/root",
        intermediate="not-a-key",
        leaf="alias/leaf",
    )
    with pytest.raises(ConfigurationError, match="IntermediateKeyID"):
        validate_kms_config(config)


def test_empty_intermediate_key_id_is_allowed() -> None:
    validate_kms_config(_config("awskms", {"aws-region": "us-east-1"}, root="alias/root", leaf="alias/leaf"))


def test_required_key_ids_are_checked_after_provider_rules() -> None:
    # A malformed leaf wins over the missing root.
    config = _config("awskms", {"aws-region": "us-east-1"}, leaf="bogus")
    with pytest.raises(ConfigurationError, match="LeafKeyID must start with"):
        validate_kms_config(config)

    config = _config("awskms", {}, leaf="alias/leaf")
    with pytest.raises(ConfigurationError, match="aws-region is required"):
        validate_kms_config(config)


def test_required_root_then_leaf() -> None:
    options = {"aws-region": "us-east-1"}
    with pytest.raises(ConfigurationError, match="^RootKeyID must be specified$"):
        validate_kms_config(_config("awskms", options, leaf="alias/leaf"))
    with pytest.raises(ConfigurationError, match="^LeafKeyID must be specified$"):
        validate_kms_config(_config("awskms", options, root="alias/root"))


def test_split_azure_key_id() -> None:
    assert split_azure_key_id("azurekms:name=signing;vault=corp") == ("signing", "corp")
    assert split_azure_key_id("azurekms:name=signing") is None
    assert split_azure_key_id("azurekms://corp.vault.azure.net/signing") is None
