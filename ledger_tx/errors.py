# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the Shelley transaction client errors.
"""


class LedgerTxError(Exception):
    """Base class of all transaction client errors"""


class InvalidPathError(LedgerTxError, ValueError):
    """Malformed derivation path or index"""


class AddressDecodeError(LedgerTxError, ValueError):
    """Address which cannot be decoded to raw bytes"""


class KeyDerivationError(LedgerTxError):
    """Failure of a key derivation primitive (including device disconnection)"""


class InvalidCertificateError(LedgerTxError, ValueError):
    """Unrecognized certificate type or incomplete certificate"""


class EncodingError(LedgerTxError):
    """Transaction entity which cannot be serialized"""


class TransactionIdMismatchError(LedgerTxError):
    """The signing device hashed a different transaction body"""

    def __init__(self, expected: str, received: str) -> None:
        super().__init__(f"Device signed tx {received}, expected {expected}")
        self.expected = expected
        self.received = received


class WitnessVerificationError(LedgerTxError):
    """A returned witness signature does not verify against the tx id"""
