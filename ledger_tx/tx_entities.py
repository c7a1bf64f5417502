# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the transaction entity builders.

Builders are pure: they validate and decode their input once, and return
immutable entities. The serialization of every entity lives in
ledger_tx.tx_aux.encode.
"""

from dataclasses import dataclass
from typing import Optional

from ledger_tx.address import decode_address
from ledger_tx.coin_selection import CoinSelectionInput, CoinSelectionOutput, CoinSelectionWithdrawal
from ledger_tx.crypto import PUBLIC_KEY_LENGTH, SIGNATURE_LENGTH, TX_HASH_LENGTH
from ledger_tx.derivation_path import DerivationPath
from ledger_tx.errors import EncodingError


@dataclass(frozen=True)
class TxInput:
    txid: bytes
    outputIndex: int
    coins: int
    address: str
    path: Optional[DerivationPath] = None

    @property
    def txHashHex(self) -> str:
        return self.txid.hex()


@dataclass(frozen=True)
class TxOutput:
    address: str
    addressBytes: bytes
    coins: int
    isChange: bool
    # signing flow metadata, not part of the encoded body
    spendingPath: Optional[DerivationPath] = None
    stakingPath: Optional[DerivationPath] = None


@dataclass(frozen=True)
class TxFee:
    fee: int


@dataclass(frozen=True)
class TxTtl:
    ttl: int


@dataclass(frozen=True)
class TxWithdrawal:
    rewardAddress: str
    addressBytes: bytes
    coins: int
    path: Optional[DerivationPath] = None


@dataclass(frozen=True)
class TxWitness:
    publicKey: bytes
    signature: bytes


def _check_uint(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise EncodingError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def build_tx_input(utxoInput: CoinSelectionInput) -> TxInput:
    """Build a transaction input from a coin selection input

    Args:
        utxoInput (CoinSelectionInput): The selected UTxO

    Returns:
        The input entity
    """

    try:
        txid = bytes.fromhex(utxoInput.id)
    except (TypeError, ValueError) as err:
        raise EncodingError(f"Invalid transaction id: {utxoInput.id!r}") from err
    if len(txid) != TX_HASH_LENGTH:
        raise EncodingError(f"Transaction id must be {TX_HASH_LENGTH} bytes, got {len(txid)}")
    return TxInput(txid,
                   _check_uint(utxoInput.index, "Output index"),
                   _check_uint(utxoInput.amount, "Input amount"),
                   utxoInput.address,
                   utxoInput.derivationPath)


def build_tx_output(output: CoinSelectionOutput,
                    stakingPath: Optional[DerivationPath] = None) -> TxOutput:
    """Build a transaction output from a coin selection output

    Outputs with a derivation path are change outputs: they return funds to
    the wallet keys and are shown to the device by path.

    Args:
        output (CoinSelectionOutput): The selected output
        stakingPath (DerivationPath): Staking path of change outputs

    Returns:
        The output entity
    """

    isChange = output.derivationPath is not None
    return TxOutput(output.address,
                    decode_address(output.address),
                    _check_uint(output.amount, "Output amount"),
                    isChange,
                    output.derivationPath if isChange else None,
                    stakingPath if isChange else None)


def build_tx_fee(fee: int) -> TxFee:
    return TxFee(_check_uint(fee, "Fee"))


def build_tx_ttl(ttl: int) -> TxTtl:
    return TxTtl(_check_uint(ttl, "TTL"))


def build_tx_withdrawal(withdrawal: CoinSelectionWithdrawal) -> TxWithdrawal:
    return TxWithdrawal(withdrawal.stakeAddress,
                        decode_address(withdrawal.stakeAddress),
                        _check_uint(withdrawal.amount, "Withdrawal amount"),
                        withdrawal.derivationPath)


def build_tx_witness(publicKey: bytes, signature: bytes) -> TxWitness:
    if len(publicKey) != PUBLIC_KEY_LENGTH:
        raise EncodingError(f"Witness public key must be {PUBLIC_KEY_LENGTH} bytes")
    if len(signature) != SIGNATURE_LENGTH:
        raise EncodingError(f"Witness signature must be {SIGNATURE_LENGTH} bytes")
    return TxWitness(bytes(publicKey), bytes(signature))
