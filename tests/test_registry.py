"""
Tests for key slot declaration and the per-type registry.
"""
import pytest

from navigator_kms import (
    EncryptedAttribute,
    KMSEncrypted,
    KeySlot,
    KeySlotRegistry,
    has_kms_key,
)
from navigator_kms.exceptions import ConfigurationError, NotFoundError
from navigator_kms.registry import slot_method_name


@pytest.fixture
def registry():
    return KeySlotRegistry(owner="User")


class TestSlotNaming:
    """Slot naming conventions."""

    @pytest.mark.parametrize("name,prefix,expected", [
        (None, None, "kms_key"),
        ("phone", None, "kms_key_phone"),
        (None, "billing", "billing_kms_key"),
    ])
    def test_slot_method_name(self, name, prefix, expected):
        """Test default, named and prefixed slot names."""
        assert slot_method_name(name, prefix) == expected

    def test_name_and_prefix_conflict(self):
        """Test that a slot cannot have both a name and a prefix."""
        with pytest.raises(ConfigurationError):
            slot_method_name("phone", "billing")

    def test_envelope_column(self):
        """Test the encrypted_<slot> column name."""
        assert KeySlot("kms_key_phone").envelope_column == "encrypted_kms_key_phone"


class TestKeySlotRegistry:
    """Register, lookup and freeze."""

    def test_register_and_lookup(self, registry):
        """Test that a registered slot can be looked up."""
        slot = registry.register("kms_key", "alias/users")
        assert registry.lookup("kms_key") is slot
        assert "kms_key" in registry
        assert len(registry) == 1

    def test_duplicate(self, registry):
        """Test that registering a slot twice fails."""
        registry.register("kms_key", "alias/users")
        with pytest.raises(ConfigurationError):
            registry.register("kms_key", "alias/other")

    def test_unknown_slot(self, registry):
        """Test lookup of an unregistered slot."""
        with pytest.raises(NotFoundError):
            registry.lookup("kms_key_missing")

    def test_frozen(self, registry):
        """Test that a frozen registry rejects new slots."""
        registry.register("kms_key", "alias/users")
        registry.freeze()
        assert registry.frozen is True
        with pytest.raises(ConfigurationError):
            registry.register("kms_key_phone", "alias/users")


class TestHasKmsKey:
    """Declaration helper and environment fallback."""

    def test_explicit_key(self):
        """Test a named slot with an explicit key identifier."""
        slot = has_kms_key("alias/users", name="phone")
        assert slot.slot_name == "kms_key_phone"
        assert slot.key_identifier == "alias/users"

    def test_env_fallback(self, monkeypatch):
        """Test the KMS_KEY_ID fallback."""
        monkeypatch.setenv("KMS_KEY_ID", "insecure-test-key")
        assert has_kms_key().key_identifier == "insecure-test-key"

    def test_no_key(self):
        """Test a slot declared without any key identifier."""
        assert has_kms_key().key_identifier is None

    def test_context_resolver(self):
        """Test that resolver output is stringified and defaults to empty."""
        slot = has_kms_key("alias/users", context=lambda r: {"Id": r})
        assert slot.context_for(5) == {"Id": "5"}
        assert has_kms_key("alias/users").context_for(5) == {}


class TestRecordTypeRegistry:
    """Registries built for KMSEncrypted subclasses."""

    def test_registry_is_frozen_and_per_type(self):
        """Test that each record type gets its own frozen registry."""
        class Account(KMSEncrypted):
            kms_keys = (has_kms_key("alias/a"),)

        class Invoice(KMSEncrypted):
            kms_keys = (has_kms_key("alias/b"), has_kms_key("alias/b", prefix="billing"))

        assert Account.kms_registry().frozen
        assert list(Account.kms_registry()) == ["kms_key"]
        assert list(Invoice.kms_registry()) == ["kms_key", "billing_kms_key"]

    def test_duplicate_slot_in_declaration(self):
        """Test that duplicate declarations fail at class creation."""
        with pytest.raises(ConfigurationError):
            class Broken(KMSEncrypted):
                kms_keys = (has_kms_key("alias/a"), has_kms_key("alias/b"))

    def test_attribute_bound_to_unknown_slot(self):
        """Test that attributes must reference a declared slot."""
        with pytest.raises(ConfigurationError):
            class Broken(KMSEncrypted):
                kms_keys = (has_kms_key("alias/a"),)
                phone = EncryptedAttribute(key="kms_key_phone")

    def test_encrypted_attribute_bindings(self):
        """Test the attribute to slot mapping read by rotation."""
        class Person(KMSEncrypted):
            kms_keys = (has_kms_key("alias/a"), has_kms_key("alias/a", name="phone"))
            email = EncryptedAttribute()
            phone = EncryptedAttribute(key="kms_key_phone")

        assert Person.encrypted_attributes() == {"email": "kms_key", "phone": "kms_key_phone"}
        assert Person.email.column == "encrypted_email"
