# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the device facing preparers.
It translates the transaction entities into the parameters of the signing
device, and defines the shape of its answer.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Union

from ledger_tx.address import address_type
from ledger_tx.app_def import CertificateType, NetworkDesc
from ledger_tx.certificates import TxCertificate
from ledger_tx.derivation_path import DerivationPath, path_to_string, to_device_path
from ledger_tx.errors import EncodingError
from ledger_tx.tx_aux import TxAux
from ledger_tx.tx_entities import TxInput, TxOutput, TxWithdrawal


@dataclass
class LedgerTxInput:
    txHashHex: str
    outputIndex: int
    signingPath: Optional[List[int]] = None


@dataclass
class LedgerChangeOutput:
    addressType: int
    spendingPath: List[int]
    amount: int
    stakingPath: Optional[List[int]] = None


@dataclass
class LedgerThirdPartyOutput:
    amount: int
    addressHex: str


LedgerTxOutput = Union[LedgerChangeOutput, LedgerThirdPartyOutput]


@dataclass
class LedgerCertificate:
    type: CertificateType
    path: str
    poolKeyHashHex: Optional[str] = None


@dataclass
class LedgerWithdrawal:
    path: List[int]
    amount: int


@dataclass
class LedgerSignTxRequest:
    network: NetworkDesc
    inputs: List[LedgerTxInput]
    outputs: List[LedgerTxOutput]
    fee: int
    ttl: int
    certificates: List[LedgerCertificate] = field(default_factory=list)
    withdrawals: List[LedgerWithdrawal] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict form, without the unset optional fields"""

        return _drop_none(asdict(self))


@dataclass
class LedgerWitness:
    path: List[int]
    witnessSignatureHex: str


@dataclass
class LedgerSignTxResponse:
    txHashHex: str
    witnesses: List[LedgerWitness]


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value]
    return value


def _device_path(path: Optional[DerivationPath]) -> Optional[List[int]]:
    return to_device_path(path) if path is not None else None


def prepare_ledger_input(txInput: TxInput) -> LedgerTxInput:
    return LedgerTxInput(txInput.txHashHex, txInput.outputIndex, _device_path(txInput.path))


def prepare_ledger_output(txOutput: TxOutput) -> LedgerTxOutput:
    """Prepare an output for the device

    Change outputs are given by path so the device can check they belong to
    the wallet; third party outputs are given by their raw address.

    Args:
        txOutput (TxOutput): The output entity

    Returns:
        LedgerChangeOutput or LedgerThirdPartyOutput
    """

    if txOutput.isChange:
        return LedgerChangeOutput(int(address_type(txOutput.addressBytes)),
                                  to_device_path(txOutput.spendingPath),
                                  txOutput.coins,
                                  _device_path(txOutput.stakingPath))
    return LedgerThirdPartyOutput(txOutput.coins, txOutput.addressBytes.hex())


def prepare_ledger_certificate(cert: TxCertificate) -> LedgerCertificate:
    """Prepare a certificate for the device

    Args:
        cert (TxCertificate): The certificate entity, with its reward account path

    Returns:
        The device certificate
    """

    if cert.path is None:
        raise EncodingError(f"{cert.type.name} certificate has no signing path")
    return LedgerCertificate(cert.type,
                             path_to_string(cert.path),
                             cert.poolKeyHash.hex() if cert.poolKeyHash is not None else None)


def prepare_ledger_withdrawal(withdrawal: TxWithdrawal) -> LedgerWithdrawal:
    if withdrawal.path is None:
        raise EncodingError(f"Withdrawal from {withdrawal.rewardAddress} has no signing path")
    return LedgerWithdrawal(to_device_path(withdrawal.path), withdrawal.coins)


def prepare_sign_tx_request(txAux: TxAux, network: NetworkDesc) -> LedgerSignTxRequest:
    """Prepare the whole unsigned transaction for the device

    Args:
        txAux (TxAux): The unsigned transaction
        network (NetworkDesc): The target network

    Returns:
        The sign request, carrying the same logical data as the hashed body
    """

    if txAux.fee is None or txAux.ttl is None:
        raise EncodingError("Transaction has no fee or ttl")
    return LedgerSignTxRequest(network,
                               [prepare_ledger_input(i) for i in txAux.inputs],
                               [prepare_ledger_output(o) for o in txAux.outputs],
                               txAux.fee.fee,
                               txAux.ttl.ttl,
                               [prepare_ledger_certificate(c) for c in txAux.certificates],
                               [prepare_ledger_withdrawal(w) for w in txAux.withdrawals])
