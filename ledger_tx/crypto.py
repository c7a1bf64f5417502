# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the cryptographic helpers of the transaction client:
hashing, extended public keys, public child derivation and witness checks.
The curve arithmetic is delegated to bip_utils and ecdsa.
"""
from dataclasses import dataclass
import hashlib

from bip_utils import Bip32KeyData, Bip32KeyError, Bip32KholawEd25519
from ecdsa.curves import Ed25519
from ecdsa.errors import MalformedPointError
from ecdsa.keys import BadSignatureError, VerifyingKey

from ledger_tx.app_def import DERIVATION_SCHEME_V2, HARDENED_THRESHOLD
from ledger_tx.errors import KeyDerivationError


PUBLIC_KEY_LENGTH = 32
CHAIN_CODE_LENGTH = 32
XPUB_LENGTH = PUBLIC_KEY_LENGTH + CHAIN_CODE_LENGTH
SIGNATURE_LENGTH = 64
TX_HASH_LENGTH = 32
KEY_HASH_LENGTH = 28


def blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def blake2b_224(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=KEY_HASH_LENGTH).digest()


@dataclass(frozen=True)
class ExtendedPublicKey:
    publicKey: bytes
    chainCode: bytes

    def __post_init__(self) -> None:
        if len(self.publicKey) != PUBLIC_KEY_LENGTH or len(self.chainCode) != CHAIN_CODE_LENGTH:
            raise KeyDerivationError("Malformed extended public key")

    @classmethod
    def from_bytes(cls, xpub: bytes) -> "ExtendedPublicKey":
        """Build the key from its 64 bytes form (public key || chain code)"""

        if len(xpub) != XPUB_LENGTH:
            raise KeyDerivationError(f"Extended public key must be {XPUB_LENGTH} bytes, got {len(xpub)}")
        return cls(xpub[:PUBLIC_KEY_LENGTH], xpub[PUBLIC_KEY_LENGTH:])

    def to_bytes(self) -> bytes:
        return self.publicKey + self.chainCode

    def hex(self) -> str:
        return self.to_bytes().hex()


def derive_child_xpub(parent: ExtendedPublicKey,
                      index: int,
                      ed25519Mode: int = DERIVATION_SCHEME_V2) -> ExtendedPublicKey:
    """Non-hardened ed25519-bip32 child derivation from a public key

    Args:
        parent (ExtendedPublicKey): The parent extended public key
        index (int): Non-hardened child index
        ed25519Mode (int): Derivation scheme, only V2 is supported

    Returns:
        The child extended public key
    """

    if ed25519Mode != DERIVATION_SCHEME_V2:
        raise KeyDerivationError(f"Unsupported derivation scheme: {ed25519Mode}")
    if index >= HARDENED_THRESHOLD:
        raise KeyDerivationError(f"Cannot derive hardened index {index} from a public key")

    try:
        ctx = Bip32KholawEd25519.FromPublicKey(parent.publicKey,
                                               Bip32KeyData(chain_code=parent.chainCode))
        child = ctx.ChildKey(index)
        # bip_utils prefixes ed25519 public keys with a 0x00 byte
        pubKey = child.PublicKey().RawCompressed().ToBytes()[-PUBLIC_KEY_LENGTH:]
        chainCode = child.ChainCode().ToBytes()
    except (Bip32KeyError, ValueError, TypeError) as err:
        raise KeyDerivationError(f"Child derivation failed for index {index}") from err
    return ExtendedPublicKey(pubKey, chainCode)


def verify_witness(publicKey: bytes, signature: bytes, txHash: bytes) -> bool:
    """Check an ed25519 witness signature over a transaction hash

    Args:
        publicKey (bytes): The witness public key
        signature (bytes): The witness signature
        txHash (bytes): The signed transaction hash

    Returns:
        True if the signature is valid
    """

    if len(signature) != SIGNATURE_LENGTH:
        return False
    try:
        pk: VerifyingKey = VerifyingKey.from_string(publicKey, curve=Ed25519)
        return pk.verify(signature, txHash, hashlib.sha512)
    except (BadSignatureError, MalformedPointError, ValueError):
        return False
