# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the Shelley transaction client definitions.
It contains the enumerations and constants shared by the codecs.
"""
from enum import IntEnum
from dataclasses import dataclass
from typing import Dict, Union


HARDENED_THRESHOLD = 0x80000000

# ed25519-bip32 derivation scheme V2 (Icarus / Shelley wallets)
DERIVATION_SCHEME_V2 = 2

MAX_PATH_LENGTH = 10


class ProtocolMagics(IntEnum):
    MAINNET = 0x2D964A09        # 764824073
    TESTNET = 0x2A              # 42, For integration tests


class NetworkIds(IntEnum):
    TESTNET = 0x00
    MAINNET = 0x01


class AddressType(IntEnum):
    BASE_PAYMENT_KEY_STAKE_KEY = 0x00
    BASE_PAYMENT_SCRIPT_STAKE_KEY = 0x01
    BASE_PAYMENT_KEY_STAKE_SCRIPT = 0x02
    BASE_PAYMENT_SCRIPT_STAKE_SCRIPT = 0x03
    POINTER_KEY = 0x04
    POINTER_SCRIPT = 0x05
    ENTERPRISE_KEY = 0x06
    ENTERPRISE_SCRIPT = 0x07
    BYRON = 0x08
    REWARD_KEY = 0x0E
    REWARD_SCRIPT = 0x0F


class CertificateType(IntEnum):
    STAKE_REGISTRATION = 0
    STAKE_DEREGISTRATION = 1
    STAKE_DELEGATION = 2
    STAKE_POOL_RETIREMENT = 4


class StakeCredentialType(IntEnum):
    KEY_HASH = 0
    SCRIPT_HASH = 1


class TxBodyKey(IntEnum):
    INPUTS = 0
    OUTPUTS = 1
    FEE = 2
    TTL = 3
    CERTIFICATES = 4
    WITHDRAWALS = 5


class WitnessType(IntEnum):
    VKEY = 0


# certificate_type values returned by the cardano-wallet coin selection
WALLET_CERTIFICATE_TYPES: Dict[str, CertificateType] = {
    "register_reward_account": CertificateType.STAKE_REGISTRATION,
    "quit_pool": CertificateType.STAKE_DEREGISTRATION,
    "join_pool": CertificateType.STAKE_DELEGATION,
}


@dataclass(frozen=True)
class NetworkDesc:
    networkId: Union[NetworkIds, int]
    protocol: Union[ProtocolMagics, int]

    @property
    def isMainnet(self) -> bool:
        return self.networkId == NetworkIds.MAINNET


Mainnet = NetworkDesc(NetworkIds.MAINNET, ProtocolMagics.MAINNET)
Testnet = NetworkDesc(NetworkIds.TESTNET, ProtocolMagics.TESTNET)
