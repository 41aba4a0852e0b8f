import copy

import pytest

from genochain.core.config import EncryptionConfig
from genochain.core.crypto.cipher import AEADCipher
from genochain.core.crypto.kdf import derive_key
from genochain.core.errors import (
    AccessLevelUnavailableError,
    AccessTokenExpiredError,
    AuthenticationError,
    IntegrityError,
    InvalidAccessLevelError,
    InvalidDataError,
    InvalidParameterError,
)
from genochain.schemas.genomic import GeneticDataset
from genochain.schemas.package import EncryptedPackage
from genochain.storage.encryption import EncryptionManager, generate_checksum, verify_integrity
from genochain.storage.tiers import TierPartitioner

PASSWORD = "Str0ng!Passphrase"

# ═══════════════════════════════════════════════════════════════════════════════
# ENCRYPT / DECRYPT TESTS
# ═══════════════════════════════════════════════════════════════════════════════

def test_package_shape(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    assert len(package.master_salt) == 32
    assert sorted(package.encrypted_tiers) == [1, 2, 3]
    assert sorted(package.access_keys) == [1, 2, 3]
    assert package.encrypted_tiers[1].algorithm == "aes-128-gcm"
    assert package.encrypted_tiers[2].algorithm == "aes-192-gcm"
    assert package.encrypted_tiers[3].algorithm == "aes-256-gcm"
    assert package.checksum == generate_checksum(brca1_dataset)


def test_tier_one_hides_records(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    tier = manager.decrypt(package, PASSWORD, 1)
    assert tier.access_level == 1
    assert tier.data["totalVariants"] == 1
    assert tier.data["totalGenes"] == 1
    assert "chromosome" not in tier.data
    assert "position" not in tier.data
    assert "variants" not in tier.data
    assert tier.integrity_verified is None


def test_brca1_round_trip_at_tiers_one_and_three(manager):
    dataset = {
        "variants": [
            {"chromosome": "1", "position": 123456, "reference": "A", "alternate": "G", "gene": "BRCA1", "type": "SNP"},
        ],
        "genes": [{"symbol": "BRCA1", "name": "BRCA1 DNA Repair Associated", "chromosome": "17"}],
    }
    package = manager.encrypt(dataset, "SecurePassword123!")

    basic = manager.decrypt(package, "SecurePassword123!", 1)
    assert basic.data["totalVariants"] == 1
    assert basic.data["totalGenes"] == 1
    assert "chromosome" not in basic.data
    assert "position" not in basic.data

    full = manager.decrypt(package, "SecurePassword123!", 3)
    assert TierPartitioner.strip_full_marker(full.data) == dataset
    assert full.integrity_verified is True


def test_tier_three_returns_original(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    tier = manager.decrypt(package, PASSWORD, 3)
    assert tier.data["accessLevel"] == 3
    assert {k: v for k, v in tier.data.items() if k != "accessLevel"} == brca1_dataset
    assert tier.integrity_verified is True


def test_round_trip_matches_projection_for_every_tier(manager, rich_dataset):
    package = manager.encrypt(rich_dataset, PASSWORD)
    model = GeneticDataset.from_input(rich_dataset)
    partitioner = TierPartitioner()
    expected = {1: partitioner.basic(model), 2: partitioner.detailed(model), 3: partitioner.full(model)}
    for level, view in expected.items():
        assert manager.decrypt(package, PASSWORD, level).data == view


def test_encrypt_does_not_mutate_input(manager, rich_dataset):
    before = copy.deepcopy(rich_dataset)
    manager.encrypt(rich_dataset, PASSWORD)
    assert rich_dataset == before


def test_two_encryptions_share_no_salt_or_iv(manager, brca1_dataset):
    first = manager.encrypt(brca1_dataset, PASSWORD)
    second = manager.encrypt(brca1_dataset, PASSWORD)
    assert first.master_salt != second.master_salt
    for level in (1, 2, 3):
        assert first.access_keys[level].salt != second.access_keys[level].salt
        assert first.encrypted_tiers[level].iv != second.encrypted_tiers[level].iv


def test_wrong_password_fails_authentication(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, "correct-Password1!")
    with pytest.raises(AuthenticationError):
        manager.decrypt(package, "wrong", 1)


def test_tampered_tier_fails_authentication(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    blob = package.encrypted_tiers[2]
    tampered = blob.model_copy(update={"ciphertext": bytes([blob.ciphertext[0] ^ 1]) + blob.ciphertext[1:]})
    package = package.model_copy(update={"encrypted_tiers": {**package.encrypted_tiers, 2: tampered}})
    with pytest.raises(AuthenticationError):
        manager.decrypt(package, PASSWORD, 2)
    # other tiers are unaffected
    assert manager.decrypt(package, PASSWORD, 1).access_level == 1


def test_swapped_key_slot_fails_authentication(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    keys = dict(package.access_keys)
    keys[1] = keys[1].model_copy(update={"salt": b"\x00" * 32})
    with pytest.raises(AuthenticationError):
        manager.decrypt(package.model_copy(update={"access_keys": keys}), PASSWORD, 1)


@pytest.mark.parametrize("level", [0, 4, "1", True])
def test_invalid_access_level(manager, brca1_dataset, level):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    with pytest.raises(InvalidAccessLevelError):
        manager.decrypt(package, PASSWORD, level)


def test_missing_tier_is_unavailable(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD, {"tiers": [1]})
    assert sorted(package.encrypted_tiers) == [1]
    with pytest.raises(AccessLevelUnavailableError):
        manager.decrypt(package, PASSWORD, 3)


def test_custom_tier_round_trip(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD, {"customTiers": {2: {"note": "curated"}}})
    assert manager.decrypt(package, PASSWORD, 2).data == {"note": "curated"}


@pytest.mark.parametrize("dataset", [None, {}, "text", 42])
def test_encrypt_rejects_bad_dataset(manager, dataset):
    with pytest.raises(InvalidDataError):
        manager.encrypt(dataset, PASSWORD)


def test_encrypt_rejects_empty_password(manager, brca1_dataset):
    with pytest.raises(InvalidParameterError):
        manager.encrypt(brca1_dataset, "")


def test_password_policy_enforced_when_configured(brca1_dataset):
    strict = EncryptionManager(EncryptionConfig(key_derivation_iterations=1000, enforce_password_policy=True))
    with pytest.raises(InvalidParameterError):
        strict.encrypt(brca1_dataset, "password123")
    strict.encrypt(brca1_dataset, "Gen0mic!Vault#2024")


def test_package_survives_storage_serialization(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    restored = EncryptedPackage.from_bytes(package.to_bytes())
    assert restored == package
    assert manager.decrypt(restored, PASSWORD, 3).integrity_verified is True


def test_malformed_package_bytes():
    with pytest.raises(InvalidDataError):
        EncryptedPackage.from_bytes(b"{not json")

# ═══════════════════════════════════════════════════════════════════════════════
# TIER INDEPENDENCE TESTS
# ═══════════════════════════════════════════════════════════════════════════════

def test_tier_keys_are_independent(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    iterations = manager.config.key_derivation_iterations
    master = derive_key(PASSWORD, package.master_salt, iterations, 32)
    tier1_key = derive_key(master.hex(), package.access_keys[1].salt, iterations, 16)

    # tier 1 key opens tier 1 only
    assert AEADCipher(tier1_key).decrypt(package.encrypted_tiers[1])
    widened = derive_key(tier1_key.hex(), package.access_keys[2].salt, iterations, 24)
    with pytest.raises(IntegrityError):
        AEADCipher(widened).decrypt(package.encrypted_tiers[2])

# ═══════════════════════════════════════════════════════════════════════════════
# ACCESS TOKEN TESTS
# ═══════════════════════════════════════════════════════════════════════════════

def test_recipient_token_grants_tier_without_password(manager, rich_dataset):
    package = manager.encrypt(rich_dataset, PASSWORD)
    token = manager.generate_access_key(package, PASSWORD, 2, recipient_key="recipient-secret")
    assert token.access_level == 2
    assert token.recipient_fingerprint is not None

    tier = manager.decrypt_with_token(package, token, recipient_key="recipient-secret")
    assert tier.data == manager.decrypt(package, PASSWORD, 2).data


def test_owner_token_opens_with_password(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    token = manager.generate_access_key(package, PASSWORD, 1)
    payload = manager.open_access_token(package, token, password=PASSWORD)
    assert payload.access_level == 1
    assert payload.tier_salt == package.access_keys[1].salt
    assert payload.algorithm == "aes-128-gcm"
    assert len(payload.nonce) == 16


def test_token_rejects_wrong_recipient(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    token = manager.generate_access_key(package, PASSWORD, 1, recipient_key="alice")
    with pytest.raises(AuthenticationError):
        manager.decrypt_with_token(package, token, recipient_key="mallory")


def test_token_expires(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    token = manager.generate_access_key(package, PASSWORD, 1, recipient_key="alice")
    with pytest.raises(AccessTokenExpiredError):
        manager.open_access_token(package, token, recipient_key="alice", now=token.valid_until + 1)


def test_token_issue_requires_correct_password(manager, brca1_dataset):
    package = manager.encrypt(brca1_dataset, PASSWORD)
    with pytest.raises(AuthenticationError):
        manager.generate_access_key(package, "nope", 1)

# ═══════════════════════════════════════════════════════════════════════════════
# INTEGRITY AND PASSWORD HELPER TESTS
# ═══════════════════════════════════════════════════════════════════════════════

def test_verify_integrity(brca1_dataset):
    checksum = generate_checksum(brca1_dataset)
    assert verify_integrity(brca1_dataset, checksum)
    assert not verify_integrity({"genes": []}, checksum)


def test_generate_secure_password():
    password = EncryptionManager.generate_secure_password(40)
    assert len(password) == 40
    assert password != EncryptionManager.generate_secure_password(40)


def test_analyze_password_strength():
    weak = EncryptionManager.analyze_password_strength("abc")
    strong = EncryptionManager.analyze_password_strength("Gen0mic!Vault#2024")
    assert weak.strength == "very_weak"
    assert strong.strength == "very_strong"
    assert strong.has_uppercase and strong.has_special_chars


def test_password_policy_violations(manager):
    assert manager.check_password_policy("Gen0mic!Vault#2024") == []
    violations = manager.check_password_policy("qwerty")
    assert any("forbidden" in v for v in violations)
    assert any("shorter" in v for v in violations)
