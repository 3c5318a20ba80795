"""Pytest configuration and fixtures."""

import asyncio
import os

import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["CHAIN_BACKEND"] = "simulated"
os.environ["STRICT_ALLOWANCE"] = "false"
os.environ["SIGNER_PRIVATE_KEY"] = ""

from savingsvault.client.session import VaultSession
from savingsvault.config import get_settings
from savingsvault.contracts import ERC20Token, SavingsLedger, SimulatedChain
from savingsvault.contracts.base import normalize
from savingsvault.units import parse_units
from savingsvault.wallet.factory import build_simulated_chain, reset_provider_cache
from savingsvault.wallet.simulated import SimulatedProvider

# Well-known dev accounts
ALICE = normalize("0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1")
BOB = "0xffcf8fdee72ac11b5c542428b35eef5769c409f0"
CAROL = "0x22d491bde2303f2f43325b2108d26f1eaba1e32b"


def units(value: str) -> int:
    """Decimal string to 18-decimal base units."""
    return parse_units(value, 18)


async def wait_until(predicate, attempts: int = 100) -> None:
    """Yield to the event loop until predicate() holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


@pytest.fixture(autouse=True)
def clear_caches():
    """Fresh settings and provider for every test."""
    get_settings.cache_clear()
    reset_provider_cache()
    yield
    get_settings.cache_clear()
    reset_provider_cache()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def chain(settings) -> SimulatedChain:
    """Chain with wINJ and the vault deployed; Alice holds 2 INJ and 1 wINJ."""
    return build_simulated_chain(settings)


@pytest.fixture
def token(chain, settings) -> ERC20Token:
    return chain.contracts[normalize(settings.token_address)]


@pytest.fixture
def ledger(chain, settings) -> SavingsLedger:
    return chain.contracts[normalize(settings.vault_address)]


@pytest.fixture
def provider(chain) -> SimulatedProvider:
    return SimulatedProvider(chain, accounts=[ALICE])


@pytest.fixture
def session(provider, settings) -> VaultSession:
    return VaultSession(provider, settings)


@pytest_asyncio.fixture
async def connected(session) -> VaultSession:
    """Session connected as Alice, not yet authorized."""
    await session.connect()
    return session


@pytest_asyncio.fixture
async def authorized(connected) -> VaultSession:
    """Session connected as Alice with the vault approved."""
    await connected.approve()
    return connected
