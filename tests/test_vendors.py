import httpx
import pytest

from palavraviva.config import get_settings
from palavraviva.content import llm, storage, tts


@pytest.fixture()
def elevenlabs(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "ELEVENLABS_API_KEY", "xi-test")
    return settings


def test_llm_without_key_returns_none():
    assert llm.get_verse_suggestion() is None
    assert llm.generate_reflection("jo 3:16", "Porque Deus amou o mundo") is None


def test_storage_without_credentials_returns_none():
    assert storage.upload_audio("daily/2026-01-01/free.mp3", b"mp3") is None


def test_tts_without_key_returns_none():
    assert tts.synthesize_speech("Olá", "voice-1") is None


def test_tts_posts_to_voice_endpoint(elevenlabs, monkeypatch):
    seen = {}

    def fake_post(url, json, headers, timeout):
        seen.update(url=url, json=json, headers=headers)
        return httpx.Response(200, content=b"ID3-audio")

    monkeypatch.setattr(httpx, "post", fake_post)
    assert tts.synthesize_speech("Olá", "voice-1") == b"ID3-audio"
    assert seen["url"] == "https://api.elevenlabs.io/v1/text-to-speech/voice-1"
    assert seen["headers"]["xi-api-key"] == "xi-test"
    assert seen["json"]["text"] == "Olá"


@pytest.mark.parametrize("response", [httpx.Response(401, text="unauthorized"), httpx.Response(200, content=b"")])
def test_tts_bad_response_returns_none(elevenlabs, monkeypatch, response):
    monkeypatch.setattr(httpx, "post", lambda *a, **kw: response)
    assert tts.synthesize_speech("Olá", "voice-1") is None


def test_tts_network_error_returns_none(elevenlabs, monkeypatch):
    def fail(*a, **kw):
        raise httpx.ConnectError("unreachable")

    monkeypatch.setattr(httpx, "post", fail)
    assert tts.synthesize_speech("Olá", "voice-1") is None


def test_tts_requires_voice(elevenlabs):
    assert tts.synthesize_speech("Olá", "") is None


class _Completion:
    def __init__(self, content):
        message = type("Message", (), {"content": content})()
        self.choices = [type("Choice", (), {"message": message})()]


@pytest.mark.parametrize(
    "answer, expected",
    [
        ('"sl 23:1".', "sl 23:1"),
        ("jo 3:16\nPorque Deus amou o mundo", "jo 3:16"),
        ("Salmo vinte e três", None),
    ],
)
def test_verse_suggestion_is_cleaned_and_validated(monkeypatch, answer, expected):
    monkeypatch.setattr(get_settings(), "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(llm, "_complete", lambda client, prompt, temperature, max_tokens: answer)
    assert llm.get_verse_suggestion("esperança") == expected
