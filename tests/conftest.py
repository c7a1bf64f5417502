import pytest

from ledger_tx.app_def import Mainnet
from ledger_tx.session import SessionConfig, ShelleySigningSession

from utils import FakeKeyStore


@pytest.fixture(name="keyStore")
def keyStore_fixture() -> FakeKeyStore:
    return FakeKeyStore()


@pytest.fixture(name="slowKeyStore")
def slowKeyStore_fixture() -> FakeKeyStore:
    # long enough for concurrent callers to overlap
    return FakeKeyStore(delay=0.01)


@pytest.fixture(name="sessionConfig")
def sessionConfig_fixture() -> SessionConfig:
    return SessionConfig(Mainnet)


@pytest.fixture(name="makeSession")
def makeSession_fixture(keyStore: FakeKeyStore, sessionConfig: SessionConfig):
    """Build a signing session on the fake key store, for a given signer"""

    def _make(signer) -> ShelleySigningSession:
        return ShelleySigningSession(keyStore.derive_hardened,
                                     signer,
                                     sessionConfig,
                                     keyStore.derive_child)
    return _make
