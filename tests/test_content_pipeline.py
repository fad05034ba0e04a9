from datetime import date, timedelta

import pytest

from palavraviva.content import llm, storage, tts
from palavraviva.content.bible import import_bible
from palavraviva.models.sql_models import DailyContent
from palavraviva.services.content import ContentService, audio_url_for, format_date_for_db, utc_today

BIBLE = [{"abbrev": "sl", "name": "Salmos", "chapters": [[f"Salmo 1 verso {n}" for n in range(1, 7)]]}]
TARGET = date(2026, 3, 1)


@pytest.fixture()
def bible(db):
    import_bible(db, BIBLE, "nvi")


@pytest.fixture()
def vendors(monkeypatch):
    """Fake OpenAI, ElevenLabs and storage; records what was asked for."""
    calls = {"reflection": [], "tts": [], "upload": []}

    monkeypatch.setattr(llm, "get_verse_suggestion", lambda theme=None: "sl 1:3")

    def fake_reflection(ref, text):
        calls["reflection"].append((ref, text))
        return "Uma reflexão pastoral."

    def fake_tts(text, voice_id):
        calls["tts"].append(voice_id)
        return b"ID3-mp3"

    def fake_upload(path, data):
        calls["upload"].append(path)
        return f"https://storage.test/{path}"

    monkeypatch.setattr(llm, "generate_reflection", fake_reflection)
    monkeypatch.setattr(tts, "synthesize_speech", fake_tts)
    monkeypatch.setattr(storage, "upload_audio", fake_upload)
    return calls


def test_format_date_for_db():
    from datetime import datetime, timezone

    assert format_date_for_db(date(2026, 1, 5)) == "2026-01-05"
    # 23:30 in São Paulo is already the next day in UTC
    sp = timezone(timedelta(hours=-3))
    assert format_date_for_db(datetime(2026, 1, 5, 23, 30, tzinfo=sp)) == "2026-01-06"


@pytest.mark.anyio
async def test_generates_and_stores_content(db, bible, vendors):
    result = await ContentService(db).generate_daily_content(TARGET)

    assert result.success is True
    assert result.date == "2026-03-01"
    assert result.message == "Successfully generated and saved content for date: 2026-03-01"
    assert vendors["reflection"] == [("sl 1:3", "Salmo 1 verso 3")]
    assert vendors["upload"] == ["daily/2026-03-01/free.mp3", "daily/2026-03-01/premium.mp3"]

    row = db.query(DailyContent).one()
    assert row.content_date == TARGET
    assert row.verse_ref == "sl 1:3"
    assert row.verse_text == "Salmo 1 verso 3"
    assert row.reflection_text == "Uma reflexão pastoral."
    assert row.audio_url_free == "https://storage.test/daily/2026-03-01/free.mp3"
    assert row.audio_url_premium == "https://storage.test/daily/2026-03-01/premium.mp3"


@pytest.mark.anyio
async def test_defaults_to_tomorrow(db, bible, vendors):
    result = await ContentService(db).generate_daily_content()
    assert result.date == (utc_today() + timedelta(days=1)).isoformat()


@pytest.mark.anyio
async def test_existing_day_is_skipped(db, bible, vendors, monkeypatch):
    await ContentService(db).generate_daily_content(TARGET)

    def must_not_run(theme=None):
        raise AssertionError("suggestion requested for an existing day")

    monkeypatch.setattr(llm, "get_verse_suggestion", must_not_run)
    result = await ContentService(db).generate_daily_content(TARGET)
    assert result.success is True
    assert "already exists" in result.message
    assert db.query(DailyContent).count() == 1


@pytest.mark.anyio
async def test_missing_suggestion_fails(db, bible, vendors, monkeypatch):
    monkeypatch.setattr(llm, "get_verse_suggestion", lambda theme=None: None)
    result = await ContentService(db).generate_daily_content(TARGET)
    assert result.success is False
    assert db.query(DailyContent).count() == 0


@pytest.mark.anyio
async def test_unknown_verse_fails_with_reference(db, bible, vendors, monkeypatch):
    monkeypatch.setattr(llm, "get_verse_suggestion", lambda theme=None: "sl 99:1")
    result = await ContentService(db).generate_daily_content(TARGET)
    assert result.success is False
    assert result.message == "Failed to get verse text for reference: sl 99:1"
    assert vendors["reflection"] == []


@pytest.mark.anyio
async def test_missing_reflection_fails(db, bible, vendors, monkeypatch):
    monkeypatch.setattr(llm, "generate_reflection", lambda ref, text: None)
    result = await ContentService(db).generate_daily_content(TARGET)
    assert result.success is False
    assert vendors["tts"] == []
    assert db.query(DailyContent).count() == 0


@pytest.mark.anyio
async def test_audio_failures_do_not_block_content(db, bible, vendors, monkeypatch):
    def broken_tts(text, voice_id):
        raise RuntimeError("ElevenLabs is down")

    monkeypatch.setattr(tts, "synthesize_speech", broken_tts)
    result = await ContentService(db).generate_daily_content(TARGET)

    assert result.success is True
    row = db.query(DailyContent).one()
    assert row.audio_url_free is None
    assert row.audio_url_premium is None


@pytest.mark.anyio
async def test_regenerate_audio(db, bible, vendors, monkeypatch):
    service = ContentService(db)
    monkeypatch.setattr(storage, "upload_audio", lambda path, data: None)
    await service.generate_daily_content(TARGET)
    assert db.query(DailyContent).one().audio_url_free is None

    monkeypatch.setattr(storage, "upload_audio", lambda path, data: f"https://cdn.test/{path}")
    content = await service.regenerate_audio(TARGET)
    assert content.audio_url_free == "https://cdn.test/daily/2026-03-01/free.mp3"
    assert content.audio_url_premium == "https://cdn.test/daily/2026-03-01/premium.mp3"


@pytest.mark.anyio
async def test_regenerate_audio_without_content(db):
    from fastapi import HTTPException

    with pytest.raises(HTTPException) as exc:
        await ContentService(db).regenerate_audio(TARGET)
    assert exc.value.status_code == 404


def test_audio_url_for_tier():
    row = DailyContent(audio_url_free="free.mp3", audio_url_premium="premium.mp3")
    assert audio_url_for(row, premium=True) == "premium.mp3"
    assert audio_url_for(row, premium=False) == "free.mp3"
