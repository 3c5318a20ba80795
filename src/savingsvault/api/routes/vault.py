"""Session and action endpoints over a VaultSession."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from savingsvault.client.models import ActionPhase, ActionUpdate
from savingsvault.client.session import NATIVE_ASSET, TOKEN_ASSET, VaultSession
from savingsvault.client.synchronizer import BalanceSyncError
from savingsvault.units import format_units
from savingsvault.utils.inflight import ActionInProgressError
from savingsvault.wallet.base import ProviderError, ProviderUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Vault"])


async def get_session(request: Request) -> VaultSession:
    """Session bound to the application."""
    return request.app.state.session


# Request/Response models
class AmountRequest(BaseModel):
    """Deposit or withdraw request."""
    amount: str = Field(..., description="Decimal amount as string")


class TransferRequest(BaseModel):
    """Native or ledger asset transfer."""
    asset: str = Field(default=NATIVE_ASSET, pattern=f"^({NATIVE_ASSET}|{TOKEN_ASSET})$")
    recipient: str = Field(..., description="Destination address")
    amount: str = Field(..., description="Decimal amount as string")


class AccountsRequest(BaseModel):
    """Accounts reported by the wallet after a change."""
    accounts: list[str] = Field(default_factory=list)


class SessionResponse(BaseModel):
    """Current session snapshot."""
    connected: bool
    account: Optional[str] = None
    native_balance: str = "0"
    token_balance: str = "0"
    vault_balance: str = "0"
    allowance: str = "0"
    is_approved: bool = False
    needs_authorization: bool = False
    status: dict
    pending: list[str]
    inputs: dict


class ActionResponse(BaseModel):
    """Terminal outcome of an action."""
    success: bool
    action: str
    phase: str
    message: str
    tx_hash: Optional[str] = None
    failure: Optional[str] = None


def _snapshot(session: VaultSession) -> SessionResponse:
    state = session.store.state
    decimals = session.settings.token_decimals
    return SessionResponse(
        connected=state.is_connected,
        account=state.account,
        native_balance=f"{format_units(state.native_balance, 18):f}",
        token_balance=f"{format_units(state.token_balance, decimals):f}",
        vault_balance=f"{format_units(state.vault_balance, decimals):f}",
        allowance=str(state.allowance),
        is_approved=state.is_approved,
        needs_authorization=session.needs_authorization,
        status=session.store.status.model_dump(mode="json"),
        pending=sorted(a.value for a in session.store.pending),
        inputs=session.store.inputs.model_dump(),
    )


def _action_response(update: ActionUpdate) -> ActionResponse:
    return ActionResponse(
        success=update.phase == ActionPhase.CONFIRMED,
        action=update.action.value,
        phase=update.phase.value,
        message=update.message,
        tx_hash=update.tx_hash,
        failure=update.failure.value if update.failure else None,
    )


def _raise_http(error: Exception) -> None:
    if isinstance(error, ActionInProgressError):
        raise HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ProviderUnavailableError):
        raise HTTPException(status_code=503, detail=error.message)
    if isinstance(error, ProviderError):
        raise HTTPException(status_code=400, detail=error.message)
    if isinstance(error, BalanceSyncError):
        raise HTTPException(status_code=502, detail=str(error))
    raise error


# ======================
# Session
# ======================

@router.get("/session", response_model=SessionResponse)
async def get_session_state(session: VaultSession = Depends(get_session)):
    """Current balances, status and pending actions."""
    return _snapshot(session)


@router.post("/session/connect", response_model=SessionResponse)
async def connect(session: VaultSession = Depends(get_session)):
    """Connect the wallet and switch it to the vault's chain."""
    try:
        await session.connect()
    except (ProviderError, BalanceSyncError) as e:
        logger.warning(f"Connect failed: {e}")
        _raise_http(e)
    return _snapshot(session)


@router.post("/session/disconnect", response_model=SessionResponse)
async def disconnect(session: VaultSession = Depends(get_session)):
    """Forget the connected account."""
    session.disconnect()
    return _snapshot(session)


@router.post("/session/accounts", response_model=SessionResponse)
async def accounts_changed(
    request: AccountsRequest,
    session: VaultSession = Depends(get_session),
):
    """Follow an account change reported by the wallet."""
    try:
        await session.accounts_changed(request.accounts)
    except (ProviderError, BalanceSyncError) as e:
        _raise_http(e)
    return _snapshot(session)


@router.post("/session/watch-asset")
async def watch_asset(session: VaultSession = Depends(get_session)):
    """Ask the wallet to track the ledger asset."""
    try:
        added = await session.watch_asset()
    except ProviderError as e:
        _raise_http(e)
    return {"success": added, "token": session.settings.token_address}


# ======================
# Actions
# ======================

@router.post("/actions/approve", response_model=ActionResponse)
async def approve(session: VaultSession = Depends(get_session)):
    """Authorize the vault to pull the ledger asset."""
    try:
        update = await session.approve()
    except (ActionInProgressError, ProviderUnavailableError) as e:
        _raise_http(e)
    return _action_response(update)


@router.post("/actions/deposit", response_model=ActionResponse)
async def deposit(request: AmountRequest, session: VaultSession = Depends(get_session)):
    """Deposit ledger asset into the vault."""
    try:
        update = await session.deposit(request.amount)
    except (ActionInProgressError, ProviderUnavailableError) as e:
        _raise_http(e)
    return _action_response(update)


@router.post("/actions/withdraw", response_model=ActionResponse)
async def withdraw(request: AmountRequest, session: VaultSession = Depends(get_session)):
    """Withdraw ledger asset from the vault."""
    try:
        update = await session.withdraw(request.amount)
    except (ActionInProgressError, ProviderUnavailableError) as e:
        _raise_http(e)
    return _action_response(update)


@router.post("/actions/transfer", response_model=ActionResponse)
async def transfer(request: TransferRequest, session: VaultSession = Depends(get_session)):
    """Send native or ledger asset to another address."""
    try:
        update = await session.transfer(request.asset, request.recipient, request.amount)
    except (ActionInProgressError, ProviderUnavailableError) as e:
        _raise_http(e)
    return _action_response(update)
