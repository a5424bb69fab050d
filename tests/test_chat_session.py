import asyncio
from unittest.mock import patch

import pytest

from yamifit_chatbot.core.config import MAX_INPUT_CHARS
from yamifit_chatbot.core.exceptions import BadRequest, StoreUnavailable
from yamifit_chatbot.schemas.chat import TurnRequest
from yamifit_chatbot.services.chat_session import ChatSessionService
from yamifit_chatbot.services.model_client import ModelClient
from yamifit_chatbot.services.prompts import ARABIC_LANGUAGE_HINT, FALLBACK_REPLY_DEFAULT, IDENTITY_CONTRACT, NAME_REPLY
from yamifit_chatbot.utils.language import detect_arabic

from conftest import FakeGenAIClient, USER_A, USER_B


def send(service, text, user_id=USER_A, locale="en", attachments=()):
    return asyncio.run(
        service.handle_send(TurnRequest(user_id=user_id, text=text, attachments=attachments, locale=locale))
    )


def make_service(store, **fake_kwargs):
    fake = FakeGenAIClient(**fake_kwargs)
    client = ModelClient(api_key=None, model_name="test-model", timeout_seconds=0.5, client=fake)
    return ChatSessionService(store=store, model_client=client), fake


def test_first_contact_in_english(store):
    service, fake = make_service(store, reply=NAME_REPLY)

    result = send(service, "Hi, what is your name?")

    assert result.assistant_message.content == "My name is YamiFit Chatbot."
    assert len(result.history) == 2
    assert {m.user_id for m in result.history.messages} == {USER_A}
    sent = fake.models.calls[0]["contents"]
    assert sent[0].parts[0].text == "System instructions: " + IDENTITY_CONTRACT
    assert sent[-1].parts[0].text == "Hi, what is your name?"


def test_arabic_text_gets_hint_even_with_english_locale(store):
    service, fake = make_service(store, reply="اسمي YamiFit Chatbot، كيف أساعدك اليوم؟")

    result = send(service, "ما اسمك؟", locale="en")

    assert fake.models.calls[0]["contents"][-1].parts[0].text == "ما اسمك؟" + ARABIC_LANGUAGE_HINT
    assert detect_arabic(result.assistant_message.content)


def test_model_outage_persists_fallback_reply(store):
    service, _ = make_service(store, error=ConnectionError("model unavailable"))
    before = len(store.load_window(USER_A, 40))

    result = send(service, "Suggest a snack")

    assert result.assistant_message.content == FALLBACK_REPLY_DEFAULT
    assert result.assistant_message.role == "assistant"
    assert len(store.load_window(USER_A, 40)) == before + 2


def test_history_ends_with_this_turn(store, clock):
    service, _ = make_service(store)
    for text in ("one", "two", "three"):
        result = send(service, text)
        clock.advance(seconds=30)

        tail = result.history.messages[-2:]
        assert [m.id for m in tail] == [result.user_message.id, result.assistant_message.id]
        assert result.assistant_message.created_at > result.user_message.created_at


def test_pending_text_is_not_replayed_twice(store):
    service, fake = make_service(store)
    send(service, "first question")
    send(service, "second question")

    texts = [c.parts[0].text for c in fake.models.calls[1]["contents"]]
    assert texts.count("second question") == 1
    assert texts[2:-1] == ["first question", "Try Greek yogurt with berries."]


def test_attachments_are_passed_through_on_user_message_only(store):
    service, _ = make_service(store)
    attachment = {"url": "https://cdn.example/plate.jpg", "mimeType": "image/jpeg", "name": "plate.jpg"}

    result = send(service, "Is this plate balanced?", attachments=(attachment,))

    assert result.user_message.attachments == (attachment,)
    assert result.assistant_message.attachments == ()


def test_user_text_is_trimmed(store):
    service, _ = make_service(store)
    result = send(service, "   protein ideas?  ")
    assert result.user_message.content == "protein ideas?"


@pytest.mark.parametrize("text", ["", "    ", "\n\t"])
def test_empty_message_is_rejected_without_writes(store, text):
    service, fake = make_service(store)
    with pytest.raises(BadRequest):
        send(service, text)
    assert len(store.load_window(USER_A, 40)) == 0
    assert fake.models.calls == []


def test_message_length_boundary(store):
    service, _ = make_service(store)

    accepted = send(service, "a" * MAX_INPUT_CHARS)
    assert len(accepted.user_message.content) == 4000

    with pytest.raises(BadRequest):
        send(service, "a" * (MAX_INPUT_CHARS + 1))


def test_length_is_counted_in_code_points(store):
    service, _ = make_service(store)
    result = send(service, "م" * MAX_INPUT_CHARS)
    assert len(result.user_message.content) == MAX_INPUT_CHARS


def test_expired_messages_are_swept_and_excluded_on_send(store, clock):
    service, fake = make_service(store)
    send(service, "old question")
    clock.advance(hours=25)

    result = send(service, "new question")

    assert [m.content for m in result.history.messages] == ["new question", "Try Greek yogurt with berries."]
    # Only the contract turns and the pending turn reach the model
    assert len(fake.models.calls[1]["contents"]) == 3
    assert store.delete_expired() == 0


def test_failed_sweep_does_not_fail_the_turn(store, clock):
    service, _ = make_service(store)
    send(service, "old")
    clock.advance(hours=25)

    with patch.object(store, "delete_expired", side_effect=StoreUnavailable("down")):
        result = send(service, "still works?")

    assert [m.content for m in result.history.messages][0] == "still works?"


def test_failed_reply_append_keeps_the_user_message(store):
    service, _ = make_service(store)
    original_append = store.append

    def flaky_append(user_id, role, content, attachments=()):
        if role == "assistant":
            raise StoreUnavailable("Failed to save message")
        return original_append(user_id, role, content, attachments)

    with patch.object(store, "append", side_effect=flaky_append):
        with pytest.raises(StoreUnavailable):
            send(service, "orphan question")

    window = store.load_window(USER_A, 40)
    assert [(m.role, m.content) for m in window.messages] == [("user", "orphan question")]


def test_load_failure_propagates_before_any_write(store):
    service, fake = make_service(store)
    with patch.object(store, "load_window", side_effect=StoreUnavailable("down")):
        with pytest.raises(StoreUnavailable):
            send(service, "hello")
    assert fake.models.calls == []


def test_replay_after_full_sweep_yields_fresh_two_message_tail(store, clock):
    service, _ = make_service(store)
    send(service, "Suggest a snack")
    clock.advance(hours=25)
    store.delete_expired()

    result = send(service, "Suggest a snack")

    assert len(result.history) == 2
    assert [m.role for m in result.history.messages] == ["user", "assistant"]


def test_window_limit_bounds_returned_history(store, clock):
    fake = FakeGenAIClient()
    client = ModelClient(api_key=None, model_name="test-model", timeout_seconds=0.5, client=fake)
    service = ChatSessionService(store=store, model_client=client, window_limit=4)
    for i in range(5):
        result = send(service, f"q{i}")
        clock.advance(seconds=1)
    assert len(result.history) == 4
    assert result.history.messages[-2].content == "q4"


def test_users_do_not_see_each_other(store):
    service, _ = make_service(store)
    send(service, "from a", user_id=USER_A)
    result = send(service, "from b", user_id=USER_B)
    assert [m.content for m in result.history.messages if m.role == "user"] == ["from b"]


def test_get_history_and_clear(store):
    service, _ = make_service(store)
    send(service, "one")
    send(service, "two")

    assert len(service.get_history(USER_A, 40)) == 4
    service.clear_history(USER_A)
    assert len(service.get_history(USER_A, 40)) == 0


def test_cancelled_turn_aborts_model_call_and_keeps_user_message(store):
    fake = FakeGenAIClient(delay=5.0)
    client = ModelClient(api_key=None, model_name="test-model", timeout_seconds=10, client=fake)
    service = ChatSessionService(store=store, model_client=client)

    async def cancel_mid_generation():
        task = asyncio.create_task(service.handle_send(TurnRequest(user_id=USER_A, text="hello", locale="en")))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(cancel_mid_generation())

    assert len(fake.models.calls) == 1
    window = store.load_window(USER_A, 40)
    assert [(m.role, m.content) for m in window.messages] == [("user", "hello")]
