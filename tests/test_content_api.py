from datetime import date

import pytest

from palavraviva.models.sql_models import DailyContent
from palavraviva.services import content as content_service
from palavraviva.services.content import utc_today

CRON_HEADERS = {"Authorization": "Bearer cron-test-secret"}


def _store(db, day):
    db.add(
        DailyContent(
            content_date=day,
            verse_ref="jo 14:27",
            verse_text="Deixo-lhes a paz; a minha paz lhes dou.",
            reflection_text="Reflexão sobre a paz.",
            audio_url_free="https://storage.test/free.mp3",
            audio_url_premium="https://storage.test/premium.mp3",
        )
    )
    db.commit()


@pytest.mark.anyio
async def test_today_serves_premium_audio_during_trial(client, db, make_user, auth_headers):
    _store(db, utc_today())
    user = make_user(status="trialing", trial_days=3)

    resp = await client.get("/api/v1/content/today", headers=auth_headers(user))
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["verse_ref"] == "jo 14:27"
    assert body["is_premium"] is True
    assert body["audio_url"] == "https://storage.test/premium.mp3"


@pytest.mark.anyio
async def test_expired_trial_gets_free_audio(client, db, make_user, auth_headers):
    _store(db, date(2026, 2, 1))
    user = make_user(status="trialing", trial_days=-1)

    resp = await client.get("/api/v1/content/2026-02-01", headers=auth_headers(user))
    assert resp.status_code == 200
    assert resp.json()["is_premium"] is False
    assert resp.json()["audio_url"] == "https://storage.test/free.mp3"


@pytest.mark.anyio
async def test_missing_content(client, make_user, auth_headers):
    resp = await client.get("/api/v1/content/today", headers=auth_headers(make_user()))
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Conteúdo do dia ainda não disponível."


@pytest.mark.anyio
async def test_content_requires_login(client):
    assert (await client.get("/api/v1/content/today")).status_code == 401


@pytest.mark.anyio
async def test_cron_rejects_wrong_secret(client):
    resp = await client.get("/api/v1/cron/generate-daily-content", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
    assert (await client.get("/api/v1/cron/generate-daily-content")).status_code == 401


@pytest.mark.anyio
async def test_cron_without_configured_secret(client, monkeypatch):
    from palavraviva.config import get_settings

    monkeypatch.setattr(get_settings(), "CRON_SECRET", "")
    resp = await client.get("/api/v1/cron/generate-daily-content", headers=CRON_HEADERS)
    assert resp.status_code == 500


@pytest.mark.anyio
async def test_cron_generates_for_requested_date(client, monkeypatch):
    seen = {}

    async def fake_generate(self, target_date=None, theme=None):
        seen["date"] = target_date
        return content_service.GenerationResult(success=True, message="ok", date=target_date.isoformat())

    monkeypatch.setattr(content_service.ContentService, "generate_daily_content", fake_generate)
    resp = await client.get("/api/v1/cron/generate-daily-content?date=2026-05-10", headers=CRON_HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"message": "ok", "date_generated_for": "2026-05-10"}
    assert seen["date"] == date(2026, 5, 10)


@pytest.mark.anyio
async def test_cron_reports_pipeline_failure(client, monkeypatch):
    async def fake_generate(self, target_date=None, theme=None):
        return content_service.GenerationResult(success=False, message="Failed to get verse text", date="2026-05-11")

    monkeypatch.setattr(content_service.ContentService, "generate_daily_content", fake_generate)
    resp = await client.get("/api/v1/cron/generate-daily-content", headers=CRON_HEADERS)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to generate daily content", "details": "Failed to get verse text"}


@pytest.mark.anyio
async def test_cron_regenerate_audio_unknown_date(client):
    resp = await client.post("/api/v1/cron/regenerate-audio?date=2026-05-12", headers=CRON_HEADERS)
    assert resp.status_code == 404
