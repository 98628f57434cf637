"""Test doubles: in-process KMS fakes and an in-memory record store."""
import os
import base64
from types import SimpleNamespace

import orjson
from botocore.exceptions import ClientError
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from google.api_core.exceptions import InvalidArgument
from hvac.exceptions import InvalidRequest

AWS_KEY = "arn:aws:kms:us-east-1:123456789012:key/1234abcd-12ab-34cd-56ef-1234567890ab"
GCP_KEY = "projects/acme/locations/global/keyRings/records/cryptoKeys/users"
VAULT_KEY = "vault/users"


class _Sealer:
    """AES-GCM stand-in for a remote master key."""

    def __init__(self):
        self._cipher = AESGCM(AESGCM.generate_key(bit_length=256))

    def seal(self, plaintext: bytes, aad: bytes) -> bytes:
        nonce = os.urandom(12)
        return nonce + self._cipher.encrypt(nonce, plaintext, aad)

    def open(self, blob: bytes, aad: bytes) -> bytes:
        return self._cipher.decrypt(blob[:12], blob[12:], aad)


class FakeAWSKMSClient:
    """Mimics the boto3 KMS client's encrypt/decrypt."""

    def __init__(self):
        self._sealer = _Sealer()
        self.calls: list[str] = []

    @staticmethod
    def _aad(key_id: str, context: dict) -> bytes:
        return key_id.encode() + b"\0" + orjson.dumps(context, option=orjson.OPT_SORT_KEYS)

    def encrypt(self, KeyId, Plaintext, EncryptionContext):
        self.calls.append("encrypt")
        blob = self._sealer.seal(Plaintext, self._aad(KeyId, EncryptionContext))
        return {"CiphertextBlob": KeyId.encode() + b"|" + blob, "KeyId": KeyId}

    def decrypt(self, CiphertextBlob, EncryptionContext):
        self.calls.append("decrypt")
        key_id, _, blob = CiphertextBlob.partition(b"|")
        try:
            plaintext = self._sealer.open(blob, self._aad(key_id.decode(), EncryptionContext))
        except InvalidTag:
            raise ClientError(
                {"Error": {"Code": "InvalidCiphertextException", "Message": ""}},
                "Decrypt",
            )
        return {"Plaintext": plaintext, "KeyId": key_id.decode()}


class FakeCloudKMSClient:
    """Mimics google.cloud.kms.KeyManagementServiceClient."""

    def __init__(self, version: int = 3):
        self._sealer = _Sealer()
        self.version = version
        self.requests: list[dict] = []

    def encrypt(self, request):
        self.requests.append(request)
        aad = request["name"].encode() + b"\0" + request["additional_authenticated_data"]
        return SimpleNamespace(
            name=f"{request['name']}/cryptoKeyVersions/{self.version}",
            ciphertext=self._sealer.seal(request["plaintext"], aad),
        )

    def decrypt(self, request):
        self.requests.append(request)
        aad = request["name"].encode() + b"\0" + request["additional_authenticated_data"]
        try:
            plaintext = self._sealer.open(request["ciphertext"], aad)
        except InvalidTag:
            raise InvalidArgument("Decryption failed: the ciphertext is invalid.")
        return SimpleNamespace(plaintext=plaintext)


class FakeTransit:
    """Mimics hvac's client.secrets.transit."""

    def __init__(self):
        self._sealer = _Sealer()
        self.calls: list[dict] = []

    @staticmethod
    def _aad(name, context, mount_point) -> bytes:
        return f"{mount_point}/{name}".encode() + b"\0" + (context or "").encode()

    def encrypt_data(self, name, plaintext, context=None, mount_point="transit"):
        self.calls.append({"op": "encrypt", "name": name, "context": context, "mount_point": mount_point})
        blob = self._sealer.seal(base64.b64decode(plaintext), self._aad(name, context, mount_point))
        return {"data": {"ciphertext": "vault:v1:" + base64.b64encode(blob).decode()}}

    def decrypt_data(self, name, ciphertext, context=None, mount_point="transit"):
        self.calls.append({"op": "decrypt", "name": name, "context": context, "mount_point": mount_point})
        blob = base64.b64decode(ciphertext[len("vault:v1:"):])
        try:
            plaintext = self._sealer.open(blob, self._aad(name, context, mount_point))
        except InvalidTag:
            raise InvalidRequest("cipher: message authentication failed")
        return {"data": {"plaintext": base64.b64encode(plaintext).decode()}}


# --- In-memory persistence collaborator ---

class Store:
    """Row storage keyed by record id; every write is all-or-nothing."""

    def __init__(self):
        self.rows: dict = {}
        self.reject = False
        self.writes = 0

    def write(self, record_id, values: dict) -> None:
        if self.reject:
            raise RuntimeError("write rejected")
        self.rows[record_id] = dict(values)
        self.writes += 1


class Record:
    """Minimal record framework: columns, save() and reload()."""

    columns: tuple[str, ...] = ()

    def __init__(self, store: Store, id: int):
        self.store = store
        self.id = id
        for column in self.columns:
            setattr(self, column, None)

    def save(self) -> None:
        self.store.write(self.id, {c: getattr(self, c) for c in self.columns})

    def reload(self) -> "Record":
        for column, value in self.store.rows[self.id].items():
            setattr(self, column, value)
        self.invalidate_keys()
        return self

    @classmethod
    def load(cls, store: Store, id: int) -> "Record":
        record = cls(store, id)
        for column, value in store.rows[id].items():
            setattr(record, column, value)
        return record

