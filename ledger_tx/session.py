# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the signing session: the boundary where a coin
selection becomes an unsigned transaction, is handed to the signing device,
and comes back as a signed transaction ready for submission.
"""

from dataclasses import dataclass
import inspect
import logging
from typing import Awaitable, List, Optional, Protocol, Set, Union

from ledger_tx.address import reward_address
from ledger_tx.app_def import DERIVATION_SCHEME_V2, Mainnet, NetworkDesc
from ledger_tx.certificates import build_tx_certificate
from ledger_tx.coin_selection import CoinSelection
from ledger_tx.crypto import ExtendedPublicKey, derive_child_xpub, verify_witness
from ledger_tx.derivation_path import DerivationPath, PathLike, parse_path, path_to_string, stake_path_for
from ledger_tx.errors import EncodingError, TransactionIdMismatchError, WitnessVerificationError
from ledger_tx.ledger_params import LedgerSignTxRequest, LedgerSignTxResponse, prepare_sign_tx_request
from ledger_tx.tx_aux import SignedTransaction, TxAux, build_witness_set, prepare_tx_aux
from ledger_tx.tx_entities import TxWitness, build_tx_input, build_tx_output, build_tx_withdrawal, build_tx_witness
from ledger_tx.xpub_cache import CachedXpubDeriver, DeriveChildFn, DeriveHardenedFn


logger = logging.getLogger(__name__)


class LedgerSigner(Protocol):
    """The signing device, as seen by the session"""

    def sign_transaction(self, request: LedgerSignTxRequest) \
            -> Union[LedgerSignTxResponse, Awaitable[LedgerSignTxResponse]]:
        ...


@dataclass
class SessionConfig:
    network: NetworkDesc = Mainnet
    # Staking path of change outputs. When unset, the first stake key of the
    # account owning the change spending path is used.
    stakingPath: Optional[DerivationPath] = None
    ed25519Mode: int = DERIVATION_SCHEME_V2
    verifyWitnesses: bool = True


class ShelleySigningSession:
    """One hardware wallet signing session"""

    def __init__(self,
                 deriveHardened: DeriveHardenedFn,
                 signer: LedgerSigner,
                 config: Optional[SessionConfig] = None,
                 deriveChild: DeriveChildFn = derive_child_xpub) -> None:
        self.config = config or SessionConfig()
        self._signer = signer
        self._xpubs = CachedXpubDeriver(deriveHardened, deriveChild, self.config.ed25519Mode)


    async def __aenter__(self) -> "ShelleySigningSession":
        return self


    async def __aexit__(self, *exc_info) -> None:
        self.close()


    def close(self) -> None:
        logger.debug("Closing signing session, dropping %d cached xpubs", len(self._xpubs))
        self._xpubs.clear()


    async def get_xpub(self, path: PathLike) -> ExtendedPublicKey:
        absPath = parse_path(path)
        logger.debug("Resolving xpub for %s", path_to_string(absPath))
        return await self._xpubs.derive_xpub(absPath)


    async def reward_address(self, path: PathLike) -> str:
        """Return the reward account address of a stake key path"""

        xpub = await self.get_xpub(path)
        return reward_address(xpub.publicKey, self.config.network)


    def _staking_path(self, spendingPath: DerivationPath) -> DerivationPath:
        if self.config.stakingPath is not None:
            return self.config.stakingPath
        return stake_path_for(spendingPath)


    async def build_transaction(self, coinSelection: CoinSelection, ttl: int) -> TxAux:
        """Build the unsigned transaction of a coin selection

        Args:
            coinSelection (CoinSelection): The coin selection
            ttl (int): Validity upper bound slot

        Returns:
            The unsigned transaction
        """

        txInputs = [build_tx_input(i) for i in coinSelection.inputs]
        txOutputs = []
        for output in coinSelection.allOutputs:
            stakingPath = self._staking_path(output.derivationPath) if output.derivationPath is not None else None
            txOutputs.append(build_tx_output(output, stakingPath))

        txCertificates = []
        for cert in coinSelection.certificates:
            accountAddress = await self.reward_address(cert.rewardAccountPath)
            txCertificates.append(build_tx_certificate(cert.certificateType,
                                                       accountAddress,
                                                       cert.pool,
                                                       cert.rewardAccountPath))
        txWithdrawals = [build_tx_withdrawal(w) for w in coinSelection.withdrawals]

        txAux = prepare_tx_aux(txInputs, txOutputs, coinSelection.fee, ttl, txCertificates, txWithdrawals)
        logger.info("Built transaction %s: %d inputs, %d outputs, %d certificates, %d withdrawals, fee %d",
                    txAux.get_id(), len(txInputs), len(txOutputs), len(txCertificates),
                    len(txWithdrawals), coinSelection.fee)
        return txAux


    def prepare_sign_request(self, txAux: TxAux) -> LedgerSignTxRequest:
        request = prepare_sign_tx_request(txAux, self.config.network)
        logger.debug("Prepared sign request: %s", request.to_dict())
        return request


    async def _request_signatures(self, request: LedgerSignTxRequest) -> LedgerSignTxResponse:
        response = self._signer.sign_transaction(request)
        if inspect.isawaitable(response):
            response = await response
        return response


    async def collect_witnesses(self, txAux: TxAux, response: LedgerSignTxResponse) -> List[TxWitness]:
        """Turn the device witnesses into transaction witnesses

        The device returns (path, signature) pairs; the public keys come from
        the xpub cache.

        Args:
            txAux (TxAux): The unsigned transaction
            response (LedgerSignTxResponse): The device answer

        Returns:
            One witness per distinct signing path
        """

        txId = txAux.get_id()
        if response.txHashHex.lower() != txId:
            raise TransactionIdMismatchError(txId, response.txHashHex)

        witnesses: List[TxWitness] = []
        seen: Set[DerivationPath] = set()
        for ledgerWitness in response.witnesses:
            path = parse_path(ledgerWitness.path)
            if path in seen:
                logger.warning("Dropping duplicate witness for %s", path_to_string(path))
                continue
            seen.add(path)

            xpub = await self.get_xpub(path)
            try:
                signature = bytes.fromhex(ledgerWitness.witnessSignatureHex)
            except ValueError as err:
                raise EncodingError(f"Invalid witness signature for {path_to_string(path)}") from err
            if self.config.verifyWitnesses and not verify_witness(xpub.publicKey, signature, bytes.fromhex(txId)):
                raise WitnessVerificationError(f"Invalid witness signature for {path_to_string(path)}")
            witnesses.append(build_tx_witness(xpub.publicKey, signature))
        return witnesses


    async def sign_transaction(self, coinSelection: CoinSelection, ttl: int) -> SignedTransaction:
        """Build, sign and assemble a transaction

        Args:
            coinSelection (CoinSelection): The coin selection
            ttl (int): Validity upper bound slot

        Returns:
            The signed transaction
        """

        txAux = await self.build_transaction(coinSelection, ttl)
        response = await self._request_signatures(self.prepare_sign_request(txAux))
        witnesses = await self.collect_witnesses(txAux, response)

        signedTx = SignedTransaction(txAux, build_witness_set(witnesses))
        logger.info("Signed transaction %s with %d witnesses, %d bytes",
                    signedTx.get_id(), len(witnesses), len(signedTx.encode()))
        return signedTx
