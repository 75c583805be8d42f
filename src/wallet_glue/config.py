"""Configuration models for the wallet glue."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserConfig(BaseModel):
    """Settings for the Chromium instance that hosts the extension."""

    extension_path: Optional[Path] = None
    channel: Optional[str] = Field(
        default=None,
        description="Playwright browser channel, e.g. 'chrome' or 'chrome-beta'.",
    )
    profile_path: Optional[Path] = None
    headless: bool = False
    virtual_display: bool = False
    viewport_width: int = 1280
    viewport_height: int = 720


class WalletConfig(BaseModel):
    """Credentials used to import the test wallet."""

    password: str = "ethereum1"
    recovery_phrase: str = (
        "basket cradle actor pizza similar liar suffer another all fade flag brave"
    )


class TimingConfig(BaseModel):
    """Polling intervals and timeouts, in seconds."""

    poll_interval: float = 0.5
    ui_timeout: float = 2.0
    discovery_timeout: float = 10.0
    implicit_wait: float = 10.0
    window_timeout: float = 10.0


class ControlPair(BaseModel):
    """Selectors of the approve and reject controls of one popup kind."""

    approve: str
    reject: str


class RouteConfig(BaseModel):
    """How a popup URL maps onto a request kind."""

    query_param: str = "page"
    request_accounts: str = "/dapp-permission"
    transaction: str = "/sign-transaction"
    sign_message: str = "signEthereumMessage"


class SelectorConfig(BaseModel):
    """Selectors and markers of the wallet extension pages."""

    routes: RouteConfig = Field(default_factory=RouteConfig)

    broadcast_marker: str = "[data-broadcast-on-sign]"
    broadcast_attribute: str = "data-broadcast-on-sign"
    recipient: str = "#recipientAddress"
    sender: str = ".account_info_label"
    spend_amount: str = ".spend_amount"
    message_content: str = "[data-testid='message-content']"

    request_accounts: ControlPair = Field(
        default_factory=lambda: ControlPair(
            approve="#grantPermission:not([disabled])",
            reject="#denyPermission:not([disabled])",
        )
    )
    sign_message: ControlPair = Field(
        default_factory=lambda: ControlPair(
            approve="[data-testid='sign-message']:not([disabled])",
            reject="[data-testid='cancel-message']:not([disabled])",
        )
    )
    send_transaction: ControlPair = Field(
        default_factory=lambda: ControlPair(
            approve="[data-testid='request-confirm-button']:not([disabled])",
            reject="[data-testid='request-cancel-button']:not([disabled])",
        )
    )
    sign_transaction: ControlPair = Field(
        default_factory=lambda: ControlPair(
            approve="#sign:not(.disabled)",
            reject="#reject:not(.disabled)",
        )
    )

    connect_button: str = "#connect"
    dismiss_overlay: str = "#close"
    grant_permission: str = "#grantPermission"
    add_chain: str = "#addNewChain"

    import_existing: str = "#existingWallet"
    import_by_phrase: str = "#importSeed"
    password: str = "#password"
    password_confirm: str = "#passwordConfirm"
    password_continue: str = "#confirm:not([disabled])"
    recovery_phrase: str = "#recovery_phrase"
    import_wallet: str = "#import"
    import_done: str = "[src$='.gif']"


class ChainConfig(BaseModel):
    """Metadata sent with ``wallet_addEthereumChain`` during chain activation."""

    chain_list_url: str = "https://chainlist.org/"
    chain_name: str = "BNB Chain LlamaNodes"
    currency_name: str = "BNB Chain Native Token"
    currency_symbol: str = "BNB"
    currency_decimals: int = 18
    block_explorer_urls: list[str] = Field(default_factory=lambda: ["https://bscscan.com"])
    requester: str = "0xb7b4d68047536a87f0926a76dd0b96b3a044c8cf"
    requester_name: str = "Chainlist"


class HarnessConfig(BaseModel):
    """Location of the wallet test framework page."""

    test_url: str = "https://wallet-test-framework.herokuapp.com/"
    glue_url: Optional[str] = None


class GlueConfig(BaseSettings):
    """Top-level configuration for running the wallet glue."""

    model_config = SettingsConfigDict(
        env_prefix="WALLET_GLUE_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    selectors: SelectorConfig = Field(default_factory=SelectorConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    harness: HarnessConfig = Field(default_factory=HarnessConfig)
    max_pending_acquisitions: Optional[int] = Field(
        default=None,
        description="Bound on queued session acquisitions; unbounded when unset.",
    )


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> GlueConfig:
    """Build a :class:`GlueConfig` from YAML, the environment and keyword overrides.

    Precedence, highest first: ``overrides``, the YAML file at ``path``,
    ``WALLET_GLUE_*`` environment variables, ``env_file``, then defaults.
    Nested sections are merged key by key rather than replaced.
    """

    data: dict[str, Any] = _read_yaml(path) if path else {}
    _deep_update(data, overrides)
    if env_file is not None:
        return GlueConfig(_env_file=env_file, **data)
    return GlueConfig(**data)


def _read_yaml(path: Path) -> dict[str, Any]:
    import yaml

    return yaml.safe_load(path.read_text()) or {}


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    for key, value in updates.items():
        existing = target.get(key)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            merged = dict(existing)
            _deep_update(merged, value)
            target[key] = merged
        else:
            target[key] = value
