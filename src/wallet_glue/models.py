"""Shared models used across the wallet glue."""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Decision(str, enum.Enum):
    """Answer given by the test harness to a wallet request."""

    APPROVE = "approve"
    REJECT = "reject"


class RequestKind(str, enum.Enum):
    """Wallet request kinds that can be answered through a popup."""

    REQUEST_ACCOUNTS = "requestaccounts"
    SEND_TRANSACTION = "sendtransaction"
    SIGN_TRANSACTION = "signtransaction"
    SIGN_MESSAGE = "signmessage"


class AdapterState(str, enum.Enum):
    """Lifecycle states of the protocol adapter."""

    INITIALIZING = "initializing"
    READY = "ready"
    ACTIVE = "active"
    TERMINATED = "terminated"


class RequestAccountsPayload(BaseModel):
    accounts: list[str] = Field(default_factory=list)


class TransactionPayload(BaseModel):
    """Transaction fields reported by the wallet, ``value`` in base units."""

    from_: str = Field(alias="from")
    to: str
    data: str = ""
    value: str = "0"

    model_config = ConfigDict(populate_by_name=True)


class SignMessagePayload(BaseModel):
    message: str


class RequestAccountsEvent(BaseModel):
    type: Literal[RequestKind.REQUEST_ACCOUNTS] = RequestKind.REQUEST_ACCOUNTS
    window_id: str
    payload: RequestAccountsPayload = Field(default_factory=RequestAccountsPayload)


class SendTransactionEvent(BaseModel):
    type: Literal[RequestKind.SEND_TRANSACTION] = RequestKind.SEND_TRANSACTION
    window_id: str
    payload: TransactionPayload


class SignTransactionEvent(BaseModel):
    type: Literal[RequestKind.SIGN_TRANSACTION] = RequestKind.SIGN_TRANSACTION
    window_id: str
    payload: TransactionPayload


class SignMessageEvent(BaseModel):
    type: Literal[RequestKind.SIGN_MESSAGE] = RequestKind.SIGN_MESSAGE
    window_id: str
    payload: SignMessagePayload


SemanticEvent = Annotated[
    Union[RequestAccountsEvent, SendTransactionEvent, SignTransactionEvent, SignMessageEvent],
    Field(discriminator="type"),
]


class ActivateChain(BaseModel):
    """Request to add and activate an EVM chain in the wallet."""

    chain_id: str
    rpc_url: str


class Report(BaseModel):
    """Terminal value delivered by the harness when the run is over."""

    value: Any = None
