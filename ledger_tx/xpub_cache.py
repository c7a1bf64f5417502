# -*- coding: utf-8 -*-
# SPDX-FileCopyrightText: 2024 Ledger SAS
# SPDX-License-Identifier: LicenseRef-LEDGER
"""
This module provides the extended public key derivation cache.

Hardened paths are derived by the root key custody (the signing device),
non-hardened paths from their parent public key. Each distinct path is
derived at most once per session, even with concurrent callers: the first
caller claims the path by registering the derivation task, later callers
wait for that same task.
"""

import asyncio
from enum import Enum
import inspect
from typing import Any, Awaitable, Callable, Dict, Union

from ledger_tx.app_def import DERIVATION_SCHEME_V2
from ledger_tx.crypto import ExtendedPublicKey, derive_child_xpub
from ledger_tx.derivation_path import DerivationPath, PathLike, is_hardened_path, parent_path, parse_path
from ledger_tx.derivation_path import path_to_string
from ledger_tx.errors import KeyDerivationError


XpubResult = Union[ExtendedPublicKey, Awaitable[ExtendedPublicKey]]
DeriveHardenedFn = Callable[[DerivationPath], XpubResult]
DeriveChildFn = Callable[[ExtendedPublicKey, int, int], XpubResult]


class DerivationState(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class CachedXpubDeriver:
    """Memoized xpub derivation, scoped to one signing session"""

    def __init__(self,
                 deriveHardened: DeriveHardenedFn,
                 deriveChild: DeriveChildFn = derive_child_xpub,
                 ed25519Mode: int = DERIVATION_SCHEME_V2) -> None:
        """Class initializer

        Args:
            deriveHardened (callable): Derives the xpub of an absolute path from the root key
            deriveChild (callable): Derives a non-hardened child xpub from its parent xpub
            ed25519Mode (int): Derivation scheme passed to deriveChild
        """

        self._deriveHardened = deriveHardened
        self._deriveChild = deriveChild
        self._ed25519Mode = ed25519Mode
        self._derivations: Dict[str, "asyncio.Task[ExtendedPublicKey]"] = {}


    def __len__(self) -> int:
        return len(self._derivations)


    def state(self, path: PathLike) -> DerivationState:
        task = self._derivations.get(path_to_string(parse_path(path)))
        if task is None:
            return DerivationState.NOT_STARTED
        if task.done():
            return DerivationState.DONE
        return DerivationState.IN_PROGRESS


    def clear(self) -> None:
        """Drop every entry, cancelling the derivations still running"""

        for task in self._derivations.values():
            if not task.done():
                task.cancel()
        self._derivations.clear()


    async def derive_xpub(self, path: PathLike) -> ExtendedPublicKey:
        """Return the extended public key of an absolute path

        Args:
            path (PathLike): The absolute derivation path

        Returns:
            The extended public key
        """

        absPath = parse_path(path)
        task = self._claim(absPath)
        # a cancelled caller must not cancel the derivation other callers wait for
        return await asyncio.shield(task)


    def _claim(self, path: DerivationPath) -> "asyncio.Task[ExtendedPublicKey]":
        # No suspension point between the lookup and the registration: on the
        # event loop this check-then-claim sequence is atomic.
        key = path_to_string(path)
        task = self._derivations.get(key)
        if task is None:
            task = asyncio.ensure_future(self._derive(path))
            self._derivations[key] = task
            task.add_done_callback(lambda t, k=key: self._release_failed(k, t))
        return task


    def _release_failed(self, key: str, task: "asyncio.Task[ExtendedPublicKey]") -> None:
        if not task.cancelled() and task.exception() is None:
            return
        # failed slots go back to NOT_STARTED, so a later call may retry
        if self._derivations.get(key) is task:
            del self._derivations[key]


    async def _derive(self, path: DerivationPath) -> ExtendedPublicKey:
        if is_hardened_path(path):
            return await self._call(self._deriveHardened, path)
        parentXpub = await self.derive_xpub(parent_path(path))
        return await self._call(self._deriveChild, parentXpub, path[-1], self._ed25519Mode)


    async def _call(self, fn: Callable[..., XpubResult], *args: Any) -> ExtendedPublicKey:
        try:
            if inspect.iscoroutinefunction(fn):
                result = await fn(*args)
            else:
                # blocking primitives run off the event loop
                result = await asyncio.to_thread(fn, *args)
                if inspect.isawaitable(result):
                    result = await result
        except KeyDerivationError:
            raise
        except asyncio.CancelledError:
            raise
        except Exception as err:
            raise KeyDerivationError(f"Key derivation failed: {err}") from err

        if isinstance(result, (bytes, bytearray)):
            result = ExtendedPublicKey.from_bytes(bytes(result))
        if not isinstance(result, ExtendedPublicKey):
            raise KeyDerivationError(f"Key derivation returned {type(result).__name__}")
        return result
