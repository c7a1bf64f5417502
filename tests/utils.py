# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the tests utility functions and fake collaborators
"""
import asyncio
from typing import Any, Dict, List, Optional, Set
import hashlib

import bech32m.codecs as bech32
from ecdsa.curves import Ed25519
from ecdsa.keys import SigningKey

from ledger_tx.crypto import ExtendedPublicKey
from ledger_tx.derivation_path import DerivationPath, parse_path, path_to_string
from ledger_tx.errors import KeyDerivationError
from ledger_tx.ledger_params import LedgerSignTxRequest, LedgerSignTxResponse, LedgerWitness


def idTestFunc(testCase: Any) -> str:
    """Retrieve the test case name for friendly display

    Args:
        testCase (xxxTestCase): Targeted test case

    Returns:
        Test case name
    """
    return testCase.name


def bech32_address(hrp: str, addressHex: str) -> str:
    """Encode raw address bytes as bech32

    Args:
        hrp (str): Human readable part ("addr", "stake", ...)
        addressHex (str): Raw address bytes, hex encoded

    Returns:
        The bech32 address
    """

    data5bit = bech32.convertbits(bytes.fromhex(addressHex), 8, 5)
    return bech32.bech32_encode(hrp, data5bit, bech32.Encoding.BECH32)


class FakeKeyStore:
    """Deterministic key custody: one ed25519 key per derivation path.

    The chain code of each xpub identifies its path, so the public child
    derivation can answer with the key of parent path + index.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.hardenedCalls: List[DerivationPath] = []
        self.childCalls: List[DerivationPath] = []
        self.failing: Set[DerivationPath] = set()
        self._paths: Dict[bytes, DerivationPath] = {}


    def signing_key(self, path: DerivationPath) -> SigningKey:
        seed = hashlib.blake2b(path_to_string(path).encode(), digest_size=32).digest()
        return SigningKey.from_string(seed, curve=Ed25519)


    def xpub(self, path: DerivationPath) -> ExtendedPublicKey:
        publicKey = self.signing_key(path).get_verifying_key().to_string()
        chainCode = hashlib.blake2b(b"cc" + path_to_string(path).encode(), digest_size=32).digest()
        self._paths[chainCode] = path
        return ExtendedPublicKey(publicKey, chainCode)


    def sign(self, path: DerivationPath, data: bytes) -> bytes:
        return self.signing_key(path).sign_deterministic(data)


    async def derive_hardened(self, path: DerivationPath) -> ExtendedPublicKey:
        self.hardenedCalls.append(path)
        await asyncio.sleep(self.delay)
        if path in self.failing:
            raise KeyDerivationError(f"Device refused {path_to_string(path)}")
        return self.xpub(path)


    async def derive_child(self, parent: ExtendedPublicKey, index: int, ed25519Mode: int) -> ExtendedPublicKey:
        path = self._paths[parent.chainCode] + (index,)
        self.childCalls.append(path)
        await asyncio.sleep(self.delay)
        if path in self.failing:
            raise ValueError("point is not on the curve")
        return self.xpub(path)


class FakeSigner:
    """Signing device answering with witnesses of the given paths"""

    def __init__(self,
                 keyStore: FakeKeyStore,
                 txHashHex: str,
                 witnessPaths: List[str],
                 signedHashHex: Optional[str] = None) -> None:
        self.keyStore = keyStore
        self.txHashHex = txHashHex
        self.witnessPaths = witnessPaths
        # lets a test sign something else than the reported hash
        self.signedHashHex = signedHashHex or txHashHex
        self.requests: List[LedgerSignTxRequest] = []


    def sign_transaction(self, request: LedgerSignTxRequest) -> LedgerSignTxResponse:
        self.requests.append(request)
        witnesses = []
        for path in self.witnessPaths:
            signature = self.keyStore.sign(parse_path(path), bytes.fromhex(self.signedHashHex))
            witnesses.append(LedgerWitness(list(parse_path(path)), signature.hex()))
        return LedgerSignTxResponse(self.txHashHex, witnesses)
