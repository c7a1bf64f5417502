# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the unsigned transaction aggregator and the signed
transaction assembler, with the shared CBOR encoder of all entities.

Transaction body (definite length map, ascending keys):
    0: inputs         [[txid, output index], ...]
    1: outputs        [[address bytes, coins], ...]
    2: fee
    3: ttl
    4: certificates   omitted when empty
    5: withdrawals    {reward address bytes: coins}, omitted when empty
The transaction id is the blake2b-256 hash of the encoded body.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

import cbor

from ledger_tx.app_def import TxBodyKey, WitnessType
from ledger_tx.certificates import TxCertificate, certificate_cbor_value
from ledger_tx.crypto import blake2b_256
from ledger_tx.errors import EncodingError
from ledger_tx.tx_entities import TxFee, TxInput, TxOutput, TxTtl, TxWithdrawal, TxWitness
from ledger_tx.tx_entities import build_tx_fee, build_tx_ttl


@dataclass(frozen=True)
class TxAux:
    inputs: Tuple[TxInput, ...]
    outputs: Tuple[TxOutput, ...]
    fee: Optional[TxFee]
    ttl: Optional[TxTtl]
    certificates: Tuple[TxCertificate, ...] = ()
    withdrawals: Tuple[TxWithdrawal, ...] = ()

    def encode(self) -> bytes:
        return encode(self)

    def get_id(self) -> str:
        """Return the transaction id as lowercase hex"""
        return blake2b_256(self.encode()).hex()


@dataclass(frozen=True)
class SignedTransaction:
    txAux: TxAux
    witnesses: Dict[int, Tuple[TxWitness, ...]] = field(default_factory=dict)
    # reserved, always None for now
    metadata: Any = None

    def encode(self) -> bytes:
        return encode(self)

    def get_id(self) -> str:
        # witnesses are not part of the hashed body
        return self.txAux.get_id()

    def to_hex(self) -> str:
        return self.encode().hex()


def _body_map(txAux: TxAux) -> Dict[int, Any]:
    if not txAux.inputs:
        raise EncodingError("Transaction body has no inputs")
    if not txAux.outputs:
        raise EncodingError("Transaction body has no outputs")
    if txAux.fee is None:
        raise EncodingError("Transaction body has no fee")
    if txAux.ttl is None:
        raise EncodingError("Transaction body has no ttl")

    body: Dict[int, Any] = {}
    body[TxBodyKey.INPUTS] = [cbor_value(i) for i in txAux.inputs]
    body[TxBodyKey.OUTPUTS] = [cbor_value(o) for o in txAux.outputs]
    body[TxBodyKey.FEE] = cbor_value(txAux.fee)
    body[TxBodyKey.TTL] = cbor_value(txAux.ttl)
    if txAux.certificates:
        body[TxBodyKey.CERTIFICATES] = [cbor_value(c) for c in txAux.certificates]
    if txAux.withdrawals:
        withdrawals: Dict[bytes, int] = {}
        for withdrawal in sorted(txAux.withdrawals, key=lambda w: w.addressBytes):
            if withdrawal.addressBytes in withdrawals:
                raise EncodingError(f"Duplicate withdrawal from {withdrawal.rewardAddress}")
            withdrawals[withdrawal.addressBytes] = withdrawal.coins
        body[TxBodyKey.WITHDRAWALS] = withdrawals
    # plain int keys, so the encoder never sees the enum type
    return {int(k): v for k, v in body.items()}


def cbor_value(entity: Any) -> Any:
    """Map a transaction entity to the plain structure handed to the CBOR encoder

    Args:
        entity: Any transaction entity

    Returns:
        Nested lists, dicts, ints and bytes
    """

    if isinstance(entity, TxInput):
        return [entity.txid, entity.outputIndex]
    if isinstance(entity, TxOutput):
        return [entity.addressBytes, entity.coins]
    if isinstance(entity, TxFee):
        return entity.fee
    if isinstance(entity, TxTtl):
        return entity.ttl
    if isinstance(entity, TxCertificate):
        return certificate_cbor_value(entity)
    if isinstance(entity, TxWitness):
        return [entity.publicKey, entity.signature]
    if isinstance(entity, TxAux):
        return _body_map(entity)
    if isinstance(entity, SignedTransaction):
        witnesses = {int(k): [cbor_value(w) for w in v] for k, v in sorted(entity.witnesses.items())}
        return [cbor_value(entity.txAux), witnesses, entity.metadata]
    raise EncodingError(f"Cannot encode {type(entity).__name__}")


def encode(entity: Any) -> bytes:
    """Serialize a transaction entity to canonical CBOR"""

    return cbor.dumps(cbor_value(entity))


def prepare_tx_aux(txInputs: Sequence[TxInput],
                   txOutputs: Sequence[TxOutput],
                   fee: int,
                   ttl: int,
                   certificates: Iterable[TxCertificate] = (),
                   withdrawals: Iterable[TxWithdrawal] = ()) -> TxAux:
    """Assemble the unsigned transaction

    Args:
        txInputs (Sequence[TxInput]): Inputs, in body order
        txOutputs (Sequence[TxOutput]): Outputs, in body order
        fee (int): The fee in lovelace
        ttl (int): The validity upper bound slot
        certificates (Iterable[TxCertificate]): Certificates, in body order
        withdrawals (Iterable[TxWithdrawal]): Reward withdrawals

    Returns:
        The unsigned transaction
    """

    return TxAux(tuple(txInputs),
                 tuple(txOutputs),
                 build_tx_fee(fee),
                 build_tx_ttl(ttl),
                 tuple(certificates),
                 tuple(withdrawals))


def build_witness_set(witnesses: Iterable[TxWitness]) -> Dict[int, Tuple[TxWitness, ...]]:
    vkeyWitnesses = tuple(witnesses)
    if not vkeyWitnesses:
        return {}
    return {WitnessType.VKEY: vkeyWitnesses}


def prepare_body(txAux: TxAux, txWitnesses: Dict[int, Tuple[TxWitness, ...]]) -> str:
    """Encode the signed transaction as hex, ready for submission"""

    return SignedTransaction(txAux, txWitnesses, None).to_hex()
