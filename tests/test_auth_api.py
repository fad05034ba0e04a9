import pytest
import stripe

from palavraviva.core.security import verify_password
from palavraviva.models.sql_models import ActivityLog, User

from conftest import PASSWORD


def _actions(db, user_id):
    db.expire_all()
    rows = db.query(ActivityLog).filter(ActivityLog.user_id == user_id).order_by(ActivityLog.id).all()
    return [r.action.value for r in rows]


@pytest.mark.anyio
async def test_sign_up_starts_trial_and_signs_in(client, db):
    resp = await client.post("/api/v1/auth/sign-up", json={"email": "Maria@Example.com", "password": PASSWORD})
    assert resp.status_code == 201, resp.text
    assert resp.json() == {"success": "Conta criada com sucesso."}
    assert "session" in resp.cookies

    me = await client.get("/api/v1/auth/me")
    assert me.status_code == 200, me.text
    body = me.json()
    assert body["user"]["email"] == "maria@example.com"
    assert body["subscription"]["subscription_status"] == "trialing"
    assert body["subscription"]["plan_name"] == "free"
    assert body["is_premium"] is True

    user = db.query(User).filter(User.email == "maria@example.com").one()
    assert user.trial_end_date is not None
    assert user.account.name == "maria@example.com's Account"
    assert _actions(db, user.id) == ["CREATE_ACCOUNT", "SIGN_UP"]


@pytest.mark.anyio
async def test_sign_up_rejects_taken_email(client, make_user):
    make_user(email="ana@example.com")
    resp = await client.post("/api/v1/auth/sign-up", json={"email": "ana@example.com", "password": PASSWORD})
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Este email já está em uso. Tente fazer login."


@pytest.mark.anyio
async def test_sign_up_requires_eight_character_password(client):
    resp = await client.post("/api/v1/auth/sign-up", json={"email": "a@example.com", "password": "curta"})
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_sign_in_with_wrong_password(client, make_user):
    make_user(email="joao@example.com")
    resp = await client.post("/api/v1/auth/sign-in", json={"email": "joao@example.com", "password": "errada123"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Email ou senha inválidos. Tente novamente."


@pytest.mark.anyio
async def test_sign_in_logs_activity(client, db, make_user):
    user = make_user(email="joao@example.com")
    resp = await client.post("/api/v1/auth/sign-in", json={"email": "joao@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    assert "session" in resp.cookies
    assert _actions(db, user.id) == ["SIGN_IN"]


@pytest.mark.anyio
async def test_sign_in_with_price_redirects_to_checkout(client, make_user, monkeypatch):
    user = make_user(email="pagante@example.com")
    calls = {}

    def fake_create(**kwargs):
        calls.update(kwargs)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    resp = await client.post(
        "/api/v1/auth/sign-in",
        json={"email": "pagante@example.com", "password": PASSWORD, "price_id": "price_base"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["url"] == "https://checkout.stripe.test/cs_test_1"
    assert calls["client_reference_id"] == str(user.id)
    assert calls["line_items"] == [{"price": "price_base", "quantity": 1}]
    assert calls["subscription_data"] == {"trial_period_days": 7}
    assert calls["success_url"] == "http://app.test/api/v1/stripe/checkout?session_id={CHECKOUT_SESSION_ID}"
    assert calls["cancel_url"] == "http://app.test/pricing"


@pytest.mark.anyio
async def test_sign_out_clears_session(client, db):
    await client.post("/api/v1/auth/sign-up", json={"email": "sai@example.com", "password": PASSWORD})
    resp = await client.post("/api/v1/auth/sign-out")
    assert resp.status_code == 200
    assert (await client.get("/api/v1/auth/me")).status_code == 401

    user = db.query(User).filter(User.email == "sai@example.com").one()
    assert _actions(db, user.id)[-1] == "SIGN_OUT"


@pytest.mark.anyio
async def test_me_requires_session(client):
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_invalid_token_is_rejected(client):
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_update_password_rules(client, db, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    url = "/api/v1/account/password"

    wrong = await client.put(
        url,
        json={"current_password": "nao-e-esta", "new_password": "nova-senha-1", "confirm_password": "nova-senha-1"},
        headers=headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Senha atual incorreta."

    same = await client.put(
        url,
        json={"current_password": PASSWORD, "new_password": PASSWORD, "confirm_password": PASSWORD},
        headers=headers,
    )
    assert same.status_code == 400
    assert same.json()["detail"] == "Nova senha deve ser diferente da senha atual."

    mismatch = await client.put(
        url,
        json={"current_password": PASSWORD, "new_password": "nova-senha-1", "confirm_password": "nova-senha-2"},
        headers=headers,
    )
    assert mismatch.status_code == 422

    ok = await client.put(
        url,
        json={"current_password": PASSWORD, "new_password": "nova-senha-1", "confirm_password": "nova-senha-1"},
        headers=headers,
    )
    assert ok.status_code == 200
    assert ok.json() == {"success": "Senha atualizada com sucesso."}

    db.expire_all()
    assert verify_password("nova-senha-1", db.get(User, user.id).password_hash)
    assert "UPDATE_PASSWORD" in _actions(db, user.id)


@pytest.mark.anyio
async def test_update_account_rejects_email_of_other_user(client, make_user, auth_headers):
    make_user(email="ocupado@example.com")
    user = make_user(email="eu@example.com")
    resp = await client.put(
        "/api/v1/account",
        json={"name": "Eu", "email": "ocupado@example.com"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 409

    ok = await client.put(
        "/api/v1/account",
        json={"name": "Eu Mesmo", "email": "novo@example.com"},
        headers=auth_headers(user),
    )
    assert ok.status_code == 200
    assert ok.json() == {"success": "Conta atualizada com sucesso."}


@pytest.mark.anyio
async def test_delete_account_soft_deletes_and_frees_email(client, db, make_user, auth_headers):
    user = make_user(email="adeus@example.com")
    headers = auth_headers(user)

    wrong = await client.post("/api/v1/account/delete", json={"password": "errada-123"}, headers=headers)
    assert wrong.status_code == 400

    resp = await client.post("/api/v1/account/delete", json={"password": PASSWORD}, headers=headers)
    assert resp.status_code == 200, resp.text

    db.expire_all()
    deleted = db.get(User, user.id)
    assert deleted.deleted_at is not None
    assert deleted.email == f"adeus@example.com-{user.id}-deleted"
    assert deleted.name == "Usuário Excluído"
    assert deleted.password_hash == ""
    assert "DELETE_ACCOUNT" in _actions(db, user.id)

    # The old session no longer resolves to a user
    assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 401

    again = await client.post("/api/v1/auth/sign-up", json={"email": "adeus@example.com", "password": PASSWORD})
    assert again.status_code == 201


@pytest.mark.anyio
async def test_preferences_log_theme_and_notifications(client, db, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)

    bad_tz = await client.patch("/api/v1/account/preferences", json={"notification_tz": "Marte/Olympus"}, headers=headers)
    assert bad_tz.status_code == 422

    resp = await client.patch(
        "/api/v1/account/preferences",
        json={
            "theme": "dark",
            "notification_time": "06:30",
            "notification_tz": "America/Recife",
            "push_subscription": {"endpoint": "https://push.test/abc", "keys": {"p256dh": "x", "auth": "y"}},
        },
        headers=headers,
    )
    assert resp.status_code == 200, resp.text

    db.expire_all()
    updated = db.get(User, user.id)
    assert updated.theme == "dark"
    assert updated.notification_tz == "America/Recife"
    assert updated.notification_time.strftime("%H:%M") == "06:30"
    assert updated.push_subscription["endpoint"] == "https://push.test/abc"
    assert _actions(db, user.id) == ["CHANGE_THEME", "ENABLE_NOTIFICATIONS"]

    # Same theme again is not a change
    await client.patch("/api/v1/account/preferences", json={"theme": "dark"}, headers=headers)
    assert _actions(db, user.id) == ["CHANGE_THEME", "ENABLE_NOTIFICATIONS"]
