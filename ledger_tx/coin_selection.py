# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the coin selection shapes consumed by the builders.
They mirror the cardano-wallet coin selection API response.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ledger_tx.app_def import CertificateType
from ledger_tx.derivation_path import DerivationPath, parse_path
from ledger_tx.errors import EncodingError


LOVELACE_UNIT = "lovelace"

Amount = Union[int, Dict[str, Any]]


def parse_amount(amount: Amount) -> int:
    """Parse a lovelace amount given as int or as {"quantity": n, "unit": "lovelace"}"""

    if isinstance(amount, dict):
        if amount.get("unit", LOVELACE_UNIT) != LOVELACE_UNIT:
            raise EncodingError(f"Unsupported amount unit: {amount.get('unit')}")
        amount = amount.get("quantity")
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise EncodingError(f"Invalid amount: {amount!r}")
    if amount < 0:
        raise EncodingError(f"Negative amount: {amount}")
    return amount


def _optional_path(value: Optional[Any]) -> Optional[DerivationPath]:
    if value is None:
        return None
    return parse_path(value)


@dataclass(frozen=True)
class CoinSelectionInput:
    address: str
    amount: int
    id: str
    index: int
    derivationPath: DerivationPath

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoinSelectionInput":
        return cls(data["address"],
                   parse_amount(data["amount"]),
                   data["id"],
                   data["index"],
                   parse_path(data["derivation_path"]))


@dataclass(frozen=True)
class CoinSelectionOutput:
    address: str
    amount: int
    derivationPath: Optional[DerivationPath] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoinSelectionOutput":
        return cls(data["address"],
                   parse_amount(data["amount"]),
                   _optional_path(data.get("derivation_path")))


@dataclass(frozen=True)
class CoinSelectionCertificate:
    certificateType: Union[CertificateType, int, str]
    rewardAccountPath: DerivationPath
    pool: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoinSelectionCertificate":
        return cls(data["certificate_type"],
                   parse_path(data["reward_account_path"]),
                   data.get("pool"))


@dataclass(frozen=True)
class CoinSelectionWithdrawal:
    stakeAddress: str
    amount: int
    derivationPath: Optional[DerivationPath] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoinSelectionWithdrawal":
        return cls(data["stake_address"],
                   parse_amount(data["amount"]),
                   _optional_path(data.get("derivation_path")))


@dataclass(frozen=True)
class CoinSelection:
    inputs: List[CoinSelectionInput]
    outputs: List[CoinSelectionOutput]
    change: List[CoinSelectionOutput] = field(default_factory=list)
    certificates: List[CoinSelectionCertificate] = field(default_factory=list)
    withdrawals: List[CoinSelectionWithdrawal] = field(default_factory=list)
    deposits: int = 0
    depositsReturned: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoinSelection":
        """Parse a cardano-wallet coin selection response

        Args:
            data (dict): The decoded JSON response

        Returns:
            The coin selection
        """

        return cls([CoinSelectionInput.from_dict(i) for i in data["inputs"]],
                   [CoinSelectionOutput.from_dict(o) for o in data["outputs"]],
                   [CoinSelectionOutput.from_dict(c) for c in data.get("change", [])],
                   [CoinSelectionCertificate.from_dict(c) for c in data.get("certificates", [])],
                   [CoinSelectionWithdrawal.from_dict(w) for w in data.get("withdrawals", [])],
                   sum(parse_amount(d) for d in data.get("deposits_taken", data.get("deposits", []))),
                   sum(parse_amount(d) for d in data.get("deposits_returned", [])))

    @property
    def allOutputs(self) -> List[CoinSelectionOutput]:
        """Payment outputs followed by change outputs, in body order"""
        return list(self.outputs) + list(self.change)

    @property
    def fee(self) -> int:
        balance = sum(i.amount for i in self.inputs) \
            + sum(w.amount for w in self.withdrawals) \
            + self.depositsReturned \
            - sum(o.amount for o in self.allOutputs) \
            - self.deposits
        if balance < 0:
            raise EncodingError(f"Coin selection is unbalanced by {balance} lovelace")
        return balance
