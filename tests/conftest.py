from __future__ import annotations

import pytest

from fakes import CollectingSubscriber, FakeAutomationSession
from wallet_glue.config import GlueConfig


@pytest.fixture
def fake() -> FakeAutomationSession:
    return FakeAutomationSession()


@pytest.fixture
def config() -> GlueConfig:
    return GlueConfig.model_validate(
        {
            "timing": {
                "poll_interval": 0.01,
                "ui_timeout": 0.05,
                "discovery_timeout": 0.05,
                "implicit_wait": 0.05,
                "window_timeout": 0.05,
            },
        }
    )


@pytest.fixture
def subscriber() -> CollectingSubscriber:
    return CollectingSubscriber()
