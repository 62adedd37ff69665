import asyncio

import httpx

from certifyme.models.result import Err, ErrorKind, Ok
from certifyme.services.notices import NoticeBoard


def test_checkout_requires_login(context, backend) -> None:
    notices = NoticeBoard()

    result = asyncio.run(context.payments(notices).start(1))

    assert isinstance(result, Err)
    assert result.error.status_code == 401
    assert backend.calls["POST /api/payments/checkout"] == 0
    assert notices.drain("en")[0]["text"] == "Please sign in first"


def test_checkout_remembers_test(context, backend, store) -> None:
    store.set_token("abc")
    backend.set("POST", "/api/payments/checkout", body={"url": "https://pay.test/s/9"})

    result = asyncio.run(context.payments(NoticeBoard()).start(9))

    assert result == Ok("https://pay.test/s/9")
    assert store.get_last_paid_test() == 9


def test_checkout_without_url_shows_backend_message(context, backend, store) -> None:
    store.set_token("abc")
    backend.set("POST", "/api/payments/checkout", body={"message": "Already purchased"})
    notices = NoticeBoard()

    result = asyncio.run(context.payments(notices).start(1))

    assert isinstance(result, Err)
    assert notices.drain("ua")[0]["text"] == "Already purchased"
    assert store.get_last_paid_test() is None


def test_checkout_network_error(context, backend, store) -> None:
    def refuse(request):
        raise httpx.ConnectError("down", request=request)

    store.set_token("abc")
    backend.set("POST", "/api/payments/checkout", handler=refuse)
    notices = NoticeBoard()

    result = asyncio.run(context.payments(notices).start(1))

    assert result.error.kind is ErrorKind.NETWORK
    assert notices.drain("en")[0]["text"] == "Network error"


def test_confirm_failure_keeps_pending_test(context, backend, store) -> None:
    store.set_token("abc")
    store.set_last_paid_test(4)
    backend.set("POST", "/api/payments/confirm-local", body={"success": False, "message": "not paid"})
    notices = NoticeBoard()

    result = asyncio.run(context.payments(notices).confirm())

    assert isinstance(result, Err)
    assert backend.last_json("POST", "/api/payments/confirm-local") == {"testId": 4}
    assert store.get_last_paid_test() == 4
    assert notices.drain("en")[0]["text"] == "⚠️ Failed to grant access"


def test_confirm_plays_sound_for_unlocks_once_audio_is_unlocked(context, backend, store) -> None:
    store.set_token("abc")
    context.audio.unlock()
    backend.set("POST", "/api/payments/confirm-local", body={
        "success": True,
        "unlocked": [{"id": 1, "title_en": "Buyer"}],
    })
    notices = NoticeBoard()

    result = asyncio.run(context.payments(notices).confirm(2))

    assert [a.title_en for a in result.value] == ["Buyer"]
    assert notices.drain("en") == [
        {"level": "success", "text": "✅ Payment successful! Access granted.", "play_sound": True},
        {"level": "success", "text": "🏆 Buyer", "play_sound": False},
    ]
