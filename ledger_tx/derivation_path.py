# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the derivation path codec.

Paths are immutable tuples of unsigned 32-bit indices. They are accepted in
the notations used around the signing flow:
    - "m/1852'/1815'/0'/0/0" (with or without the "m/" prefix)
    - cardano-wallet index strings, e.g. ["1852H", "1815H", "0H", "0", "0"]
    - raw integer sequences, e.g. [0x8000073c, 0x80000717, 0x80000000, 0, 0]
BIP32 notation is parsed and rendered by bip_utils.
"""

from enum import Enum
from typing import List, Sequence, Tuple, Union

from bip_utils import Bip32KeyIndex, Bip32Path, Bip32PathError, Bip32PathParser

from ledger_tx.app_def import HARDENED_THRESHOLD, MAX_PATH_LENGTH
from ledger_tx.errors import InvalidPathError


# Shelley account structure: purpose'/coin_type'/account'/role/index
STAKING_ROLE = 2
ACCOUNT_PATH_LENGTH = 3

# bip_utils accepts "'", "h" and "p", cardano-wallet writes "H"
WALLET_HARDENED_CHAR = "H"
HARDENED_CHAR = "'"

DerivationPath = Tuple[int, ...]
PathLike = Union[str, Sequence[Union[int, str]]]


class IndexKind(Enum):
    HARDENED = "hardened"
    NON_HARDENED = "non_hardened"


def _key_index(index: int) -> Bip32KeyIndex:
    # bool is an int subclass, but never a valid index
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidPathError(f"Invalid derivation index: {index!r}")
    try:
        return Bip32KeyIndex(index)
    except ValueError as err:
        raise InvalidPathError(f"Derivation index out of range: {index}") from err


def harden(index: int) -> int:
    """Return the hardened form of a non-hardened index"""

    keyIndex = _key_index(index)
    if keyIndex.IsHardened():
        raise InvalidPathError(f"Index {index} is already hardened")
    return keyIndex.Harden().ToInt()


def classify(index: int) -> IndexKind:
    """Classify a raw derivation index

    Args:
        index (int): Raw 32-bit index

    Returns:
        IndexKind.HARDENED if the index is at or above the hardened threshold
    """

    if _key_index(index).IsHardened():
        return IndexKind.HARDENED
    return IndexKind.NON_HARDENED


def is_hardened_index(index: int) -> bool:
    return classify(index) == IndexKind.HARDENED


def is_hardened_path(path: DerivationPath) -> bool:
    """Check whether deriving the key at this path needs the root key material

    Only the last index governs. The empty path denotes the master key and
    is treated as hardened.
    """

    if len(path) == 0:
        return True
    return is_hardened_index(path[-1])


def _normalize_element(item: str) -> str:
    text = item.strip()
    if not text.endswith((WALLET_HARDENED_CHAR, HARDENED_CHAR, "h", "p")):
        return text
    value = text[:-1]
    # the parser would silently accept an already hardened value
    if value.isdecimal() and int(value) >= HARDENED_THRESHOLD:
        raise InvalidPathError(f"Hardened index out of range: {item!r}")
    return value + HARDENED_CHAR


def _parse_bip32(text: str) -> Bip32Path:
    elements = [_normalize_element(e) for e in text.split("/")]
    try:
        return Bip32PathParser.Parse("/".join(elements))
    except (Bip32PathError, ValueError) as err:
        raise InvalidPathError(f"Invalid derivation path: {text!r}") from err


def parse_index(item: Union[int, str]) -> int:
    """Parse a single index given as an int or as "1852'", "1852H", "0"

    Args:
        item (int | str): Index value

    Returns:
        Raw 32-bit index
    """

    if not isinstance(item, str):
        return _key_index(item).ToInt()
    bip32Path = _parse_bip32(item)
    if bip32Path.Length() != 1 or bip32Path.IsAbsolute():
        raise InvalidPathError(f"Invalid derivation index: {item!r}")
    return bip32Path[0].ToInt()


def parse_path(value: PathLike) -> DerivationPath:
    """Parse a derivation path from any supported notation

    Args:
        value (str | Sequence): Path string or sequence of indices

    Returns:
        The path as a tuple of raw indices
    """

    if isinstance(value, str):
        path = tuple(_parse_bip32(value).ToList())
    elif isinstance(value, (list, tuple)):
        path = tuple(parse_index(item) for item in value)
    else:
        raise InvalidPathError(f"Invalid derivation path: {value!r}")

    if len(path) > MAX_PATH_LENGTH:
        raise InvalidPathError(f"Derivation path too long: {len(path)} indices")
    return path


def path_to_string(path: DerivationPath) -> str:
    """Render a path as "m/1852'/1815'/0'/0/0"

    This rendering is also the canonical key of the xpub cache.
    """

    return Bip32Path([_key_index(index) for index in path], True).ToStr()


def to_device_path(path: PathLike) -> List[int]:
    """Convert a path to the raw index list expected by the signing device"""

    return list(parse_path(path))


def parent_path(path: DerivationPath) -> DerivationPath:
    if len(path) == 0:
        raise InvalidPathError("The master key has no parent")
    return tuple(path[:-1])


def stake_path_for(spendingPath: DerivationPath) -> DerivationPath:
    """Return the first stake key path of the account owning spendingPath

    Args:
        spendingPath (DerivationPath): e.g. m/1852'/1815'/0'/1/0

    Returns:
        The account stake key path, e.g. m/1852'/1815'/0'/2/0
    """

    if len(spendingPath) < ACCOUNT_PATH_LENGTH or \
            not all(is_hardened_index(i) for i in spendingPath[:ACCOUNT_PATH_LENGTH]):
        raise InvalidPathError(f"Not an account key path: {path_to_string(spendingPath)}")
    return tuple(spendingPath[:ACCOUNT_PATH_LENGTH]) + (STAKING_ROLE, 0)
