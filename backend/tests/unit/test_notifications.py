"""
Unit Tests: Outcome Notifications

Test cases:
- One fixed template per outcome
- Delivery through the chat client
- Delivery failures never escape notify()
- Exactly one notification per run, even when the run raises
"""

import asyncio

import pytest

from fakes import FakeChatClient
from shipline.notifications import Notifier, build_notification
from shipline.pipeline.models import Outcome
from shipline.pipeline.runner import run_pipeline
from shipline.pipeline.stage import Stage


@pytest.mark.parametrize(
    "outcome, color, marker",
    [
        (Outcome.SUCCESS, "good", "SUCCESSFUL"),
        (Outcome.UNSTABLE, "warning", "UNSTABLE"),
        (Outcome.FAILURE, "danger", "FAILED"),
    ],
)
def test_templates(outcome, color, marker) -> None:
    notification = build_notification(outcome, "web-app", 42)

    assert notification.color == color
    assert notification.text == f"{marker}: Job 'web-app [42]'"


def test_render_escapes_html() -> None:
    rendered = build_notification(Outcome.SUCCESS, "web<app>", 1).render()

    assert "web&lt;app&gt;" in rendered
    assert rendered.startswith("\U0001F7E2 <b>")


def test_notify_sends_single_message() -> None:
    client = FakeChatClient()
    notifier = Notifier(client_factory=lambda: client)

    asyncio.run(notifier.notify(Outcome.UNSTABLE, "web-app", 42))

    assert len(client.messages) == 1
    assert "UNSTABLE" in client.messages[0]
    assert "[42]" in client.messages[0]


def test_undelivered_message_is_swallowed() -> None:
    client = FakeChatClient(deliver=False)
    notifier = Notifier(client_factory=lambda: client)

    asyncio.run(notifier.notify(Outcome.FAILURE, "web-app", 42))

    assert len(client.messages) == 1


def test_transport_exception_is_swallowed() -> None:
    client = FakeChatClient(raise_on_send=ConnectionError("network unreachable"))
    notifier = Notifier(client_factory=lambda: client)

    asyncio.run(notifier.notify(Outcome.SUCCESS, "web-app", 42))


def test_unconfigured_notifier_does_nothing(settings) -> None:
    notifier = Notifier.from_settings(settings)

    assert notifier.client_factory is None
    asyncio.run(notifier.notify(Outcome.SUCCESS, "web-app", 42))


def test_unexpected_error_still_notifies_once(settings, runner, cluster, notifier) -> None:
    class Exploding(list):
        def __iter__(self):
            raise RuntimeError("stage list corrupted")

    with pytest.raises(RuntimeError):
        asyncio.run(
            run_pipeline(
                settings,
                stages=Exploding([Stage(name="never")]),
                notifier=notifier,
                runner=runner,
                cluster=cluster,
            )
        )

    assert notifier.calls == [(Outcome.FAILURE, "web-app", 42)]


def test_only_success_is_silent() -> None:
    client = FakeChatClient()
    notifier = Notifier(client_factory=lambda: client)

    for outcome in (Outcome.SUCCESS, Outcome.UNSTABLE, Outcome.FAILURE):
        asyncio.run(notifier.notify(outcome, "web-app", 42))

    assert client.silent == [True, False, False]


def test_disabled_notifier_does_not_send() -> None:
    client = FakeChatClient()
    notifier = Notifier(client_factory=lambda: client, enabled=False)

    asyncio.run(notifier.notify(Outcome.FAILURE, "web-app", 42))

    assert client.messages == []


def test_configured_bot_builds_telegram_factory(settings) -> None:
    settings.telegram_bot_token = "123456:ABC-DEF"
    settings.telegram_chat_id = "-100123"

    notifier = Notifier.from_settings(settings)
    client = notifier.client_factory()

    assert client.config.chat_id == "-100123"
    assert client.config.parse_mode == "HTML"


def test_environ_notifier_without_bot_variables() -> None:
    assert Notifier.from_environ({}).client_factory is None


def test_environ_notifier_reads_bot_variables() -> None:
    notifier = Notifier.from_environ(
        {"TELEGRAM_BOT_TOKEN": "123456:ABC-DEF", "TELEGRAM_CHAT_ID": "-100123"}
    )

    assert notifier.client_factory().config.chat_id == "-100123"
