import asyncio

import pytest

from fakes import FakeElement, popup_url
from wallet_glue.browser.base import AutomationError
from wallet_glue.classifier import EventClassifier, PopupRoute, classify_url
from wallet_glue.config import RouteConfig, SelectorConfig
from wallet_glue.models import RequestKind


def transaction_elements(broadcast: str) -> dict[str, FakeElement]:
    return {
        "[data-broadcast-on-sign]": FakeElement(attributes={"data-broadcast-on-sign": broadcast}),
        "#recipientAddress": FakeElement(attributes={"title": "Recipient: 0xRecipient"}),
        ".account_info_label": FakeElement(attributes={"title": "0xSender"}),
        ".spend_amount": FakeElement(text="1.5 BNB"),
    }


def build_classifier(subscriber) -> EventClassifier:
    return EventClassifier(SelectorConfig(), subscriber)


def test_classify_url_reads_page_parameter():
    routes = RouteConfig()
    assert classify_url(popup_url("/dapp-permission"), routes) is PopupRoute.REQUEST_ACCOUNTS
    assert classify_url(popup_url("/sign-transaction"), routes) is PopupRoute.TRANSACTION
    assert classify_url(popup_url("signEthereumMessage"), routes) is PopupRoute.SIGN_MESSAGE
    assert classify_url(popup_url("/wallet"), routes) is None
    assert classify_url("https://example.com/", routes) is None


def test_classify_url_is_stable_for_unchanged_target():
    url = popup_url("/sign-transaction")
    assert classify_url(url, RouteConfig()) == classify_url(url, RouteConfig())


def test_request_accounts_popup(fake, subscriber):
    origin = fake.open_window("https://harness.example/")
    fake.current = origin
    popup = fake.open_window(popup_url("/dapp-permission"))

    events = asyncio.run(build_classifier(subscriber).classify_batch(fake, [popup]))

    assert [event.type for event in events] == [RequestKind.REQUEST_ACCOUNTS]
    assert events[0].window_id == popup
    assert events[0].payload.accounts == []
    assert subscriber.events == events
    assert fake.current == origin


@pytest.mark.parametrize(
    ("broadcast", "kind"),
    [("true", RequestKind.SEND_TRANSACTION), ("false", RequestKind.SIGN_TRANSACTION)],
)
def test_transaction_popup_uses_broadcast_marker(fake, subscriber, broadcast, kind):
    popup = fake.open_window(popup_url("/sign-transaction"), transaction_elements(broadcast))

    events = asyncio.run(build_classifier(subscriber).classify_batch(fake, [popup]))

    assert len(events) == 1
    event = events[0]
    assert event.type is kind
    assert event.payload.to == "0xRecipient"
    assert event.payload.from_ == "0xSender"
    assert event.payload.data == ""
    assert event.payload.value == "1500000000000000000"
    assert event.payload.model_dump(by_alias=True)["from"] == "0xSender"


def test_transaction_popup_without_marker_emits_nothing(fake, subscriber):
    elements = transaction_elements("true")
    del elements["[data-broadcast-on-sign]"]
    popup = fake.open_window(popup_url("/sign-transaction"), elements)

    events = asyncio.run(build_classifier(subscriber).classify_batch(fake, [popup]))

    assert events == []
    assert subscriber.events == []


def test_transaction_popup_rendered_late_is_still_classified(fake, subscriber):
    popup = fake.open_window(popup_url("/sign-transaction"))
    fake.implicit_wait = 2.0

    async def scenario():
        async def render():
            await asyncio.sleep(0.05)
            fake.windows[popup].elements.update(transaction_elements("true"))

        renderer = asyncio.create_task(render())
        events = await build_classifier(subscriber).classify_batch(fake, [popup])
        await renderer
        return events

    events = asyncio.run(scenario())

    assert [event.type for event in events] == [RequestKind.SEND_TRANSACTION]
    assert events[0].payload.value == "1500000000000000000"


def test_sign_message_popup_reads_message_verbatim(fake, subscriber):
    popup = fake.open_window(
        popup_url("signEthereumMessage"),
        {"[data-testid='message-content']": FakeElement(text="Hello\n  world")},
    )

    events = asyncio.run(build_classifier(subscriber).classify_batch(fake, [popup]))

    assert events[0].type is RequestKind.SIGN_MESSAGE
    assert events[0].payload.message == "Hello\n  world"


def test_unknown_popup_is_logged_and_skipped(fake, subscriber, caplog):
    origin = fake.open_window("https://harness.example/")
    fake.current = origin
    popup = fake.open_window(popup_url("/onboarding"), title="Taho")

    events = asyncio.run(build_classifier(subscriber).classify_batch(fake, [popup]))

    assert events == []
    assert "Unknown event from window" in caplog.text
    assert fake.current == origin


def test_vanished_window_does_not_abort_batch(fake, subscriber):
    origin = fake.open_window("https://harness.example/")
    fake.current = origin
    gone = fake.open_window(popup_url("/dapp-permission"))
    survivor = fake.open_window(popup_url("/dapp-permission"))
    fake.close(gone)

    events = asyncio.run(build_classifier(subscriber).classify_batch(fake, [gone, survivor]))

    assert [event.window_id for event in events] == [survivor]
    assert fake.current == origin


def test_window_closing_while_read_is_skipped(fake, subscriber):
    closing = fake.open_window(popup_url("signEthereumMessage"))
    survivor = fake.open_window(popup_url("/dapp-permission"))
    original_text = fake.text

    async def vanishing_text(selector):
        fake.close(closing)
        return await original_text(selector)

    fake.text = vanishing_text

    events = asyncio.run(build_classifier(subscriber).classify_batch(fake, [closing, survivor]))

    assert [event.window_id for event in events] == [survivor]


def test_read_failure_on_open_window_propagates(fake, subscriber):
    origin = fake.open_window("https://harness.example/")
    fake.current = origin
    popup = fake.open_window(popup_url("signEthereumMessage"))

    with pytest.raises(AutomationError):
        asyncio.run(build_classifier(subscriber).classify_batch(fake, [popup]))
    assert fake.current == origin


def test_missing_origin_is_tolerated(fake, subscriber):
    popup = fake.open_window(popup_url("/dapp-permission"))

    events = asyncio.run(build_classifier(subscriber).classify_batch(fake, [popup]))

    assert len(events) == 1
    assert fake.current == popup
