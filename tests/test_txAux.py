# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the tests of the transaction body encoding
"""

from dataclasses import replace
from typing import List

import cbor
import pytest

from ledger_tx.certificates import TxCertificate, build_tx_certificate
from ledger_tx.coin_selection import CoinSelectionInput, CoinSelectionOutput, CoinSelectionWithdrawal
from ledger_tx.crypto import blake2b_256
from ledger_tx.derivation_path import parse_path
from ledger_tx.errors import EncodingError
from ledger_tx.tx_aux import SignedTransaction, TxAux, build_witness_set, encode, prepare_body, prepare_tx_aux
from ledger_tx.tx_entities import build_tx_input, build_tx_output, build_tx_withdrawal, build_tx_witness

from input_files.txAux import STAKE_KEY_HASH, TxAuxTestCase, addresses, inputs, outputs
from input_files.txAux import testsShelleyNoCertificates, testsShelleyWithCertificates
from utils import idTestFunc


def _certificates(testCase: TxAuxTestCase) -> List[TxCertificate]:
    return [build_tx_certificate(c.type, c.accountAddress, c.pool, parse_path(c.path))
            for c in testCase.certificates]


def _tx_aux(testCase: TxAuxTestCase) -> TxAux:
    return prepare_tx_aux([build_tx_input(i) for i in testCase.inputs],
                          [build_tx_output(o) for o in testCase.outputs],
                          testCase.fee,
                          testCase.ttl,
                          _certificates(testCase))


def _example_tx_aux() -> TxAux:
    utxo = CoinSelectionInput(addresses["internalBaseWithStakingPath"], 1000000, "aa" * 32, 0,
                              parse_path("m/1852'/1815'/0'/0/0"))
    change = CoinSelectionOutput(addresses["internalBaseWithStakingPath"], 700000,
                                 parse_path("m/1852'/1815'/0'/1/0"))
    foreign = CoinSelectionOutput(addresses["externalEnterprise"], 290000)
    return prepare_tx_aux([build_tx_input(utxo)],
                          [build_tx_output(change, parse_path("m/1852'/1815'/0'/2/0")),
                           build_tx_output(foreign)],
                          10000,
                          500000)


@pytest.mark.parametrize(
    "testCase",
    testsShelleyNoCertificates + testsShelleyWithCertificates,
    ids=idTestFunc
)
def test_body_encoding(testCase: TxAuxTestCase) -> None:
    """Check the body is byte for byte the one hashed by the device"""

    txAux = _tx_aux(testCase)
    assert txAux.encode().hex() == testCase.txBody
    assert txAux.get_id() == blake2b_256(bytes.fromhex(testCase.txBody)).hex()


def test_example_body() -> None:
    txAux = _example_tx_aux()
    body = cbor.loads(txAux.encode())

    assert sorted(body.keys()) == [0, 1, 2, 3]
    assert body[0] == [[bytes.fromhex("aa" * 32), 0]]
    assert len(body[1]) == 2
    assert len(body[1][1][0]) == 29
    assert body[1][1][1] == 290000
    assert body[2] == 10000
    assert body[3] == 500000
    # the id is a pure function of the content
    assert txAux.get_id() == _example_tx_aux().get_id()
    assert len(txAux.get_id()) == 64


def test_certificates_key_present_only_when_needed() -> None:
    testCase = testsShelleyWithCertificates[0]
    body = cbor.loads(_tx_aux(testCase).encode())
    assert sorted(body.keys()) == [0, 1, 2, 3, 4]

    bodyWithout = cbor.loads(_tx_aux(replace(testCase, certificates=[])).encode())
    assert sorted(bodyWithout.keys()) == [0, 1, 2, 3]


def test_withdrawals() -> None:
    testCase = testsShelleyNoCertificates[0]
    otherReward = addresses["rewardScriptMainnet"]
    withdrawals = [build_tx_withdrawal(CoinSelectionWithdrawal(otherReward, 7)),
                   build_tx_withdrawal(CoinSelectionWithdrawal(addresses["rewardMainnet"], 1000,
                                                               parse_path("m/1852'/1815'/0'/2/0")))]
    txAux = replace(_tx_aux(testCase), withdrawals=tuple(withdrawals))
    body = cbor.loads(txAux.encode())

    assert sorted(body.keys()) == [0, 1, 2, 3, 5]
    # every withdrawal is kept
    assert body[5] == {bytes.fromhex("e1" + STAKE_KEY_HASH): 1000,
                       bytes.fromhex("f1" + STAKE_KEY_HASH): 7}
    encoded = txAux.encode().hex()
    assert encoded.index("e1" + STAKE_KEY_HASH) < encoded.index("f1" + STAKE_KEY_HASH)


def test_duplicate_withdrawals() -> None:
    withdrawal = build_tx_withdrawal(CoinSelectionWithdrawal(addresses["rewardMainnet"], 1000))
    txAux = replace(_tx_aux(testsShelleyNoCertificates[0]), withdrawals=(withdrawal, withdrawal))
    with pytest.raises(EncodingError):
        txAux.encode()


def test_witnesses_do_not_change_id() -> None:
    txAux = _example_tx_aux()
    witness = build_tx_witness(bytes(32), bytes(64))
    signedTx = SignedTransaction(txAux, build_witness_set([witness]))

    assert signedTx.get_id() == txAux.get_id()
    assert SignedTransaction(txAux).get_id() == txAux.get_id()


def test_signed_transaction_encoding() -> None:
    txAux = _example_tx_aux()
    witnesses = [build_tx_witness(bytes([1]) * 32, bytes([2]) * 64),
                 build_tx_witness(bytes([3]) * 32, bytes([4]) * 64)]
    signedHex = prepare_body(txAux, build_witness_set(witnesses))

    decoded = cbor.loads(bytes.fromhex(signedHex))
    assert len(decoded) == 3
    assert decoded[0] == cbor.loads(txAux.encode())
    assert decoded[1] == {0: [[bytes([1]) * 32, bytes([2]) * 64], [bytes([3]) * 32, bytes([4]) * 64]]}
    assert decoded[2] is None
    # the body is embedded verbatim
    assert txAux.encode().hex() in signedHex


def test_empty_witness_set() -> None:
    txAux = _example_tx_aux()
    assert build_witness_set([]) == {}
    assert cbor.loads(SignedTransaction(txAux).encode())[1] == {}


def test_missing_fields() -> None:
    txAux = _example_tx_aux()
    for missing in (dict(inputs=()), dict(outputs=()), dict(fee=None), dict(ttl=None)):
        with pytest.raises(EncodingError):
            replace(txAux, **missing).encode()


def test_builders_reject_bad_values() -> None:
    utxo = inputs["utxoShelley"]
    with pytest.raises(EncodingError):
        build_tx_input(replace(utxo, id="aa" * 31))
    with pytest.raises(EncodingError):
        build_tx_input(replace(utxo, id="not hex"))
    with pytest.raises(EncodingError):
        build_tx_output(replace(outputs["externalByronMainnet"], amount=-1))
    with pytest.raises(EncodingError):
        prepare_tx_aux([build_tx_input(utxo)], [build_tx_output(outputs["externalByronMainnet"])], 42, -1)
    with pytest.raises(EncodingError):
        build_tx_witness(bytes(31), bytes(64))
    with pytest.raises(EncodingError):
        encode(object())


def test_change_output_metadata_is_not_encoded() -> None:
    output = outputs["internalBaseWithStakingPath"]
    withPath = build_tx_output(output, parse_path("m/1852'/1815'/0'/2/0"))
    withoutPath = build_tx_output(replace(output, derivationPath=None))

    assert withPath.isChange
    assert not withoutPath.isChange
    assert withoutPath.stakingPath is None
    assert encode(withPath) == encode(withoutPath)
