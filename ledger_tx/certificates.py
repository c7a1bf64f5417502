# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the staking certificate encoder.

Encoded shapes (Shelley ledger CDDL):
    stake registration:   [0, stake_credential]
    stake deregistration: [1, stake_credential]
    stake delegation:     [2, stake_credential, pool_keyhash]
    pool retirement:      [4, stake_credential, pool_keyhash]
with stake_credential = [credential type, 28 bytes hash].
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from ledger_tx.address import pool_key_hash, stake_credential
from ledger_tx.app_def import CertificateType, StakeCredentialType, WALLET_CERTIFICATE_TYPES
from ledger_tx.derivation_path import DerivationPath
from ledger_tx.errors import InvalidCertificateError


@dataclass(frozen=True)
class TxCertificate:
    type: CertificateType
    accountAddress: str
    stakeCredential: Tuple[StakeCredentialType, bytes]
    poolKeyHash: Optional[bytes] = None
    # signing flow metadata, not part of the encoded body
    path: Optional[DerivationPath] = None


def resolve_certificate_type(value: Union[CertificateType, int, str]) -> CertificateType:
    """Resolve a certificate type given as enum, ledger code or cardano-wallet name"""

    if isinstance(value, str):
        if value in WALLET_CERTIFICATE_TYPES:
            return WALLET_CERTIFICATE_TYPES[value]
        try:
            return CertificateType[value.upper()]
        except KeyError:
            raise InvalidCertificateError(f"Unknown certificate type: {value!r}") from None
    if isinstance(value, bool):
        raise InvalidCertificateError(f"Unknown certificate type: {value!r}")
    try:
        return CertificateType(value)
    except ValueError:
        raise InvalidCertificateError(f"Unknown certificate type: {value!r}") from None


def build_tx_certificate(certificateType: Union[CertificateType, int, str],
                         accountAddress: str,
                         pool: Optional[str] = None,
                         path: Optional[DerivationPath] = None) -> TxCertificate:
    """Build a certificate from its logical description

    Args:
        certificateType (CertificateType | int | str): The certificate type
        accountAddress (str): The reward account address ("stake1...")
        pool (str): Pool id ("pool1...") or pool key hash hex, if any
        path (DerivationPath): Signing path of the reward account key

    Returns:
        The certificate entity
    """

    certType = resolve_certificate_type(certificateType)
    credential = stake_credential(accountAddress)
    poolHash = pool_key_hash(pool) if pool else None

    if certType in (CertificateType.STAKE_DELEGATION, CertificateType.STAKE_POOL_RETIREMENT) \
            and poolHash is None:
        raise InvalidCertificateError(f"{certType.name} certificate needs a pool")

    return TxCertificate(certType, accountAddress, credential, poolHash, path)


def certificate_cbor_value(cert: TxCertificate) -> List[Any]:
    """Map a certificate to its canonical CBOR structure"""

    credType, credHash = cert.stakeCredential
    credential = [int(credType), credHash]
    if cert.type in (CertificateType.STAKE_REGISTRATION, CertificateType.STAKE_DEREGISTRATION):
        return [int(cert.type), credential]
    if cert.type in (CertificateType.STAKE_DELEGATION, CertificateType.STAKE_POOL_RETIREMENT):
        return [int(cert.type), credential, cert.poolKeyHash]
    raise InvalidCertificateError(f"Unknown certificate type: {cert.type!r}")
