# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the address codec used by the transaction builders.

Shelley addresses are bech32 strings whose payload starts with a header byte
(address type in the high nibble, network id in the low nibble). Byron
addresses are base58 encoded CBOR structures.
"""
from typing import Tuple

import base58
import bech32m.codecs as bech32

from ledger_tx.app_def import AddressType, NetworkDesc, StakeCredentialType
from ledger_tx.crypto import KEY_HASH_LENGTH, blake2b_224
from ledger_tx.errors import AddressDecodeError


BECH32_SEPARATOR = "1"
BECH32_CHECKSUM_LENGTH = 6
REWARD_ADDRESS_LENGTH = 1 + KEY_HASH_LENGTH
POOL_ID_HRP = "pool"


def decode_bech32(address: str) -> Tuple[str, bytes]:
    """Decode a bech32 string without the 90 characters limit of BIP173

    Args:
        address (str): The bech32 string

    Returns:
        Tuple of:
            - The human readable part
            - The decoded payload
    """

    if not isinstance(address, str) or not address:
        raise AddressDecodeError(f"Invalid bech32 string: {address!r}")
    if any(ord(c) < 33 or ord(c) > 126 for c in address):
        raise AddressDecodeError(f"Invalid character in bech32 string: {address!r}")
    if address.lower() != address and address.upper() != address:
        raise AddressDecodeError(f"Mixed case bech32 string: {address!r}")
    address = address.lower()
    pos = address.rfind(BECH32_SEPARATOR)
    if pos < 1 or pos + BECH32_CHECKSUM_LENGTH + 1 > len(address):
        raise AddressDecodeError(f"Invalid bech32 separator position: {address!r}")

    hrp = address[:pos]
    if any(c not in bech32.CHARSET for c in address[pos + 1:]):
        raise AddressDecodeError(f"Invalid bech32 character in {address!r}")
    data5bit = bytes(bech32.CHARSET.find(c) for c in address[pos + 1:])
    try:
        encoding = bech32.bech32_verify_checksum(hrp, data5bit)
        data = bech32.convertbits(data5bit[:-BECH32_CHECKSUM_LENGTH], 5, 8, False)
    except bech32.DecodeError as err:
        raise AddressDecodeError(f"Invalid bech32 checksum or padding: {address!r}") from err
    # Shelley addresses use the original bech32 constant, never bech32m
    if encoding != bech32.Encoding.BECH32:
        raise AddressDecodeError(f"Invalid bech32 checksum: {address!r}")
    return hrp, bytes(data)


def encode_bech32(hrp: str, data: bytes) -> str:
    data5bit = bytes(bech32.convertbits(data, 8, 5))
    return bech32.bech32_encode(hrp, data5bit, bech32.Encoding.BECH32)


def _is_bech32(address: str) -> bool:
    return BECH32_SEPARATOR in address and address.lower().startswith(("addr", "stake"))


def decode_address(address: str) -> bytes:
    """Decode a Shelley (bech32) or Byron (base58) address to its raw bytes

    Args:
        address (str): The address string

    Returns:
        The raw address bytes
    """

    if not isinstance(address, str) or not address:
        raise AddressDecodeError(f"Invalid address: {address!r}")
    if _is_bech32(address):
        _, data = decode_bech32(address)
    else:
        try:
            data = base58.b58decode(address)
        except ValueError as err:
            raise AddressDecodeError(f"Invalid base58 address: {address!r}") from err
        if not data or data[0] >> 4 != AddressType.BYRON:
            raise AddressDecodeError(f"Not a Byron address: {address!r}")
    if not data:
        raise AddressDecodeError(f"Empty address payload: {address!r}")
    return data


def address_type(addressBytes: bytes) -> AddressType:
    try:
        return AddressType(addressBytes[0] >> 4)
    except (IndexError, ValueError) as err:
        raise AddressDecodeError(f"Unknown address header: {addressBytes[:1].hex()}") from err


def address_network_id(addressBytes: bytes) -> int:
    if address_type(addressBytes) == AddressType.BYRON:
        raise AddressDecodeError("Byron addresses carry a protocol magic, not a network id")
    return addressBytes[0] & 0x0F


def stake_credential(rewardAddress: str) -> Tuple[StakeCredentialType, bytes]:
    """Extract the stake credential of a reward account address

    Args:
        rewardAddress (str): bech32 reward address ("stake1...")

    Returns:
        Tuple of:
            - The credential type (key hash or script hash)
            - The raw 28 bytes credential hash
    """

    data = decode_address(rewardAddress)
    addrType = address_type(data)
    if addrType not in (AddressType.REWARD_KEY, AddressType.REWARD_SCRIPT):
        raise AddressDecodeError(f"Not a reward address: {rewardAddress}")
    if len(data) != REWARD_ADDRESS_LENGTH:
        raise AddressDecodeError(f"Invalid reward address length: {len(data)}")
    if addrType == AddressType.REWARD_SCRIPT:
        return StakeCredentialType.SCRIPT_HASH, data[1:]
    return StakeCredentialType.KEY_HASH, data[1:]


def pool_key_hash(pool: str) -> bytes:
    """Resolve a pool given as "pool1..." bech32 id or as hex hash"""

    if pool.lower().startswith(POOL_ID_HRP + BECH32_SEPARATOR):
        hrp, data = decode_bech32(pool)
        if hrp != POOL_ID_HRP:
            raise AddressDecodeError(f"Invalid pool id prefix: {hrp}")
    else:
        try:
            data = bytes.fromhex(pool)
        except ValueError as err:
            raise AddressDecodeError(f"Invalid pool key hash: {pool!r}") from err
    if len(data) != KEY_HASH_LENGTH:
        raise AddressDecodeError(f"Pool key hash must be {KEY_HASH_LENGTH} bytes, got {len(data)}")
    return data


def reward_address(publicKey: bytes, network: NetworkDesc) -> str:
    """Build the reward account address of a stake public key"""

    header = (AddressType.REWARD_KEY << 4) | int(network.networkId)
    hrp = "stake" if network.isMainnet else "stake_test"
    return encode_bech32(hrp, bytes([header]) + blake2b_224(publicKey))
