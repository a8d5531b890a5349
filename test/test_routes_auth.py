"""
Tests for registration, login, logout, guards and password confirmation
"""

import pytest
from sqlalchemy import select

from portal.config import settings
from portal.constants import LOGIN_ID_SESSION_KEY, PASSWORD_CONFIRMED_SESSION_KEY, USER_SESSION_KEY
from portal.models.user import User
from utils.mock_utils import INERTIA, PASSWORD, confirm_password, login_as, read_session


def registration(**overrides) -> dict:
    data = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "password": "correct-horse",
        "password_confirmation": "correct-horse",
    }
    data.update(overrides)
    return data


class TestRegistration:
    """Tests for POST /register"""

    @pytest.mark.asyncio
    async def test_register_logs_in_and_sends_verification(self, client, test_db, sent_emails):
        response = await client.post("/register", json=registration())

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

        user = (await test_db.execute(select(User).where(User.email == "ada@example.com"))).scalar_one()
        assert user.email_verified_at is None
        assert user.hashed_password != "correct-horse"
        assert read_session(client)[USER_SESSION_KEY] == user.id

        sent_emails.assert_called_once()
        to_email, subject, _html, text_body = sent_emails.call_args.args
        assert to_email == "ada@example.com"
        assert subject == "Verify Email Address"
        assert f"/verify-email/{user.id}/" in text_body

    @pytest.mark.asyncio
    async def test_register_resolves_language(self, client, test_db, sent_emails):
        response = await client.post("/register", json=registration(language="fr-CA"))

        assert response.status_code == 303
        user = (await test_db.execute(select(User).where(User.email == "ada@example.com"))).scalar_one()
        assert user.language == "fr"
        assert read_session(client)["locale"] == "fr"
        assert sent_emails.call_args.args[1] == "Vérification de l'adresse email"

    @pytest.mark.asyncio
    async def test_register_unsupported_language_uses_default(self, client, test_db):
        await client.post("/register", json=registration(language="de-DE"))

        user = (await test_db.execute(select(User).where(User.email == "ada@example.com"))).scalar_one()
        assert user.language == "en"

    @pytest.mark.asyncio
    async def test_register_lowercases_email(self, client, test_db):
        await client.post("/register", json=registration(email="Ada@Example.COM"))

        user = (await test_db.execute(select(User))).scalar_one()
        assert user.email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client, test_user):
        response = await client.post("/register", json=registration(email=test_user.email))

        assert response.status_code == 422
        assert response.json()["errors"] == {"email": ["The email has already been taken."]}

    @pytest.mark.asyncio
    async def test_register_password_mismatch(self, client):
        response = await client.post("/register", json=registration(password_confirmation="something-else"))

        assert response.status_code == 422
        assert response.json()["errors"]["password"] == ["The password field confirmation does not match."]

    @pytest.mark.asyncio
    async def test_register_short_password(self, client):
        response = await client.post("/register", json=registration(password="short", password_confirmation="short"))

        assert response.status_code == 422
        assert response.json()["errors"]["password"] == ["The password field must be at least 8 characters."]

    @pytest.mark.asyncio
    async def test_register_missing_field(self, client):
        data = registration()
        del data["name"]

        response = await client.post("/register", json=data)

        body = response.json()
        assert response.status_code == 422
        assert body["errors"]["name"] == ["This field is required."]
        assert body["message"] == "This field is required."


class TestLogin:
    """Tests for POST /login"""

    @pytest.mark.asyncio
    async def test_login_success(self, client, test_user):
        response = await client.post("/login", json={"email": test_user.email, "password": PASSWORD})

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"
        assert read_session(client)[USER_SESSION_KEY] == test_user.id

    @pytest.mark.asyncio
    async def test_login_email_is_case_insensitive(self, client, test_user):
        response = await client.post("/login", json={"email": test_user.email.upper(), "password": PASSWORD})

        assert response.status_code == 303

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client, test_user):
        response = await client.post("/login", json={"email": test_user.email, "password": "wrong-password"})

        body = response.json()
        assert response.status_code == 422
        assert body["errors"] == {"email": ["These credentials do not match our records."]}
        assert body["message"] == "These credentials do not match our records."
        assert USER_SESSION_KEY not in read_session(client)

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client, setup_test_database):
        response = await client.post("/login", json={"email": "nobody@example.com", "password": PASSWORD})

        assert response.status_code == 422
        assert response.json()["errors"]["email"] == ["These credentials do not match our records."]

    @pytest.mark.asyncio
    async def test_login_error_follows_accept_language(self, client, test_user):
        response = await client.post(
            "/login",
            json={"email": test_user.email, "password": "wrong-password"},
            headers={"Accept-Language": "fr-FR,fr;q=0.9"},
        )

        assert response.json()["errors"]["email"] == ["Ces identifiants ne correspondent pas à nos enregistrements."]

    @pytest.mark.asyncio
    async def test_login_is_throttled_after_five_failures(self, client, test_user):
        for _ in range(5):
            response = await client.post("/login", json={"email": test_user.email, "password": "wrong-password"})
            assert response.json()["errors"]["email"] == ["These credentials do not match our records."]

        response = await client.post("/login", json={"email": test_user.email, "password": PASSWORD})

        assert response.status_code == 422
        assert response.json()["errors"]["email"][0].startswith("Too many login attempts.")

    @pytest.mark.asyncio
    async def test_successful_login_clears_failures(self, client, test_user):
        for _ in range(4):
            await client.post("/login", json={"email": test_user.email, "password": "wrong-password"})
        await login_as(client, test_user)
        await client.post("/logout")

        for _ in range(4):
            await client.post("/login", json={"email": test_user.email, "password": "wrong-password"})

        response = await client.post("/login", json={"email": test_user.email, "password": PASSWORD})
        assert response.status_code == 303

    @pytest.mark.asyncio
    async def test_login_with_two_factor_starts_challenge(self, client, two_factor_user):
        response = await client.post(
            "/login", json={"email": two_factor_user.email, "password": PASSWORD, "remember": True}
        )

        session = read_session(client)
        assert response.status_code == 303
        assert response.headers["location"] == "/two-factor-challenge"
        assert session[LOGIN_ID_SESSION_KEY] == two_factor_user.id
        assert session["login.remember"] is True
        assert USER_SESSION_KEY not in session

    @pytest.mark.asyncio
    async def test_login_redirects_to_intended_url(self, client, test_user):
        response = await client.get("/account/preferences")
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

        response = await login_as(client, test_user)

        assert response.headers["location"] == "/account/preferences"


class TestGuards:
    """Tests for the guest, auth and verified guards"""

    @pytest.mark.asyncio
    async def test_root_redirects_to_login(self, client):
        response = await client.get("/")

        assert response.status_code == 302
        assert response.headers["location"] == "/login"

    @pytest.mark.asyncio
    async def test_guest_is_redirected_to_login(self, client):
        response = await client.get("/dashboard")

        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    @pytest.mark.asyncio
    async def test_json_guest_gets_401(self, client):
        response = await client.get("/dashboard", headers={"Accept": "application/json"})

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "AUTH_FAILED"

    @pytest.mark.asyncio
    async def test_authenticated_user_is_redirected_from_guest_pages(self, client, test_user):
        await login_as(client, test_user)

        response = await client.get("/login")

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

    @pytest.mark.asyncio
    async def test_unverified_user_is_redirected_to_notice(self, client, unverified_user):
        await login_as(client, unverified_user)

        response = await client.get("/dashboard")

        assert response.status_code == 303
        assert response.headers["location"] == "/verify-email"

    @pytest.mark.asyncio
    async def test_logout(self, client, test_user):
        await login_as(client, test_user)

        response = await client.post("/logout")
        assert response.status_code == 303
        assert response.headers["location"] == "/"

        response = await client.get("/dashboard")
        assert response.headers["location"] == "/login"

    @pytest.mark.asyncio
    async def test_session_for_deleted_user_is_cleared(self, client, test_db, test_user):
        await login_as(client, test_user)
        await test_db.delete(test_user)
        await test_db.commit()

        response = await client.get("/dashboard")

        assert response.headers["location"] == "/login"


class TestPages:
    """Tests for page rendering"""

    @pytest.mark.asyncio
    async def test_full_page_load_embeds_page_object(self, client):
        response = await client.get("/login")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert '<html lang="en">' in response.text
        assert "data-page=" in response.text
        assert "auth/login" in response.text

    @pytest.mark.asyncio
    async def test_html_lang_follows_locale(self, client):
        response = await client.get("/login", headers={"Accept-Language": "fr"})

        assert '<html lang="fr">' in response.text

    @pytest.mark.asyncio
    async def test_inertia_request_gets_json(self, client):
        response = await client.get("/login", headers=INERTIA)

        page = response.json()
        assert response.headers["X-Inertia"] == "true"
        assert page["component"] == "auth/login"
        assert page["url"] == "/login"
        assert page["props"]["auth"] == {"user": None}
        assert page["props"]["locale"] == "en"
        assert page["props"]["supportedLocales"]["en"]["regional"] == "en-GB"

    @pytest.mark.asyncio
    async def test_shared_user_props(self, client, test_user):
        await login_as(client, test_user)

        response = await client.get("/dashboard", headers=INERTIA)

        user = response.json()["props"]["auth"]["user"]
        assert user["id"] == test_user.id
        assert user["email"] == test_user.email
        assert user["initials"] == "TU"
        assert user["avatarUrl"] is None
        assert "hashedPassword" not in user
        assert "twoFactorSecret" not in user


class TestConfirmPassword:
    """Tests for password confirmation"""

    @pytest.mark.asyncio
    async def test_show_confirm_password(self, client, test_user):
        await login_as(client, test_user)

        response = await client.get("/confirm-password", headers=INERTIA)

        assert response.json()["component"] == "auth/confirm-password"

    @pytest.mark.asyncio
    async def test_confirm_password(self, client, test_user):
        await login_as(client, test_user)

        response = await client.post("/confirm-password", json={"password": PASSWORD})

        assert response.status_code == 303
        assert PASSWORD_CONFIRMED_SESSION_KEY in read_session(client)

    @pytest.mark.asyncio
    async def test_confirm_wrong_password(self, client, test_user):
        await login_as(client, test_user)

        response = await client.post("/confirm-password", json={"password": "wrong-password"})

        assert response.status_code == 422
        assert response.json()["errors"] == {"password": ["The provided password is incorrect."]}
        assert PASSWORD_CONFIRMED_SESSION_KEY not in read_session(client)

    @pytest.mark.asyncio
    async def test_two_factor_settings_require_confirmation(self, client, test_user):
        await login_as(client, test_user)

        response = await client.get("/two-factor/recovery-codes")
        assert response.status_code == 303
        assert response.headers["location"] == "/confirm-password"

        response = await confirm_password(client)
        assert response.headers["location"] == "/two-factor/recovery-codes"

        response = await client.get("/two-factor/recovery-codes")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_confirmation_expires_after_timeout(self, client, test_user, monkeypatch):
        await login_as(client, test_user)
        await confirm_password(client)
        monkeypatch.setattr(settings, "password_timeout", 0)

        response = await client.post("/two-factor")

        assert response.status_code == 303
        assert response.headers["location"] == "/confirm-password"

    @pytest.mark.asyncio
    async def test_json_caller_gets_423(self, client, test_user):
        await login_as(client, test_user)

        response = await client.get("/two-factor/recovery-codes", headers={"Accept": "application/json"})

        assert response.status_code == 423
        assert response.json()["error"]["error_code"] == "PASSWORD_CONFIRMATION_REQUIRED"

    @pytest.mark.asyncio
    async def test_login_resets_confirmation(self, client, test_user):
        await login_as(client, test_user)
        await confirm_password(client)
        await client.post("/logout")
        await login_as(client, test_user)

        response = await client.get("/two-factor/recovery-codes")

        assert response.headers["location"] == "/confirm-password"


class TestRememberMe:
    """Tests for the remember-me cookie"""

    async def login_remembered(self, client, user):
        response = await client.post("/login", json={"email": user.email, "password": PASSWORD, "remember": True})
        assert response.status_code == 303
        return response

    @pytest.mark.asyncio
    async def test_remembered_login_outlives_session(self, client, test_db, test_user):
        await self.login_remembered(client, test_user)

        await test_db.refresh(test_user)
        assert test_user.remember_token is not None
        assert client.cookies.get(settings.remember_cookie)

        client.cookies.delete(settings.session_cookie)
        response = await client.get("/dashboard", headers=INERTIA)

        assert response.status_code == 200
        assert read_session(client)[USER_SESSION_KEY] == test_user.id

    @pytest.mark.asyncio
    async def test_plain_login_ends_with_session(self, client, test_user):
        await login_as(client, test_user)

        assert client.cookies.get(settings.remember_cookie) is None

        client.cookies.delete(settings.session_cookie)
        response = await client.get("/dashboard")

        assert response.headers["location"] == "/login"

    @pytest.mark.asyncio
    async def test_logout_invalidates_cookie(self, client, test_db, test_user):
        await self.login_remembered(client, test_user)
        stolen = client.cookies.get(settings.remember_cookie)
        await test_db.refresh(test_user)
        token = test_user.remember_token

        await client.post("/logout")

        assert client.cookies.get(settings.remember_cookie) is None
        await test_db.refresh(test_user)
        assert test_user.remember_token != token

        client.cookies.delete(settings.session_cookie)
        client.cookies.set(settings.remember_cookie, stolen, domain="testserver.local")
        response = await client.get("/dashboard")

        assert response.headers["location"] == "/login"

    @pytest.mark.asyncio
    async def test_tampered_cookie_is_ignored(self, client, test_user):
        client.cookies.set(settings.remember_cookie, "1.not-a-signature", domain="testserver.local")

        response = await client.get("/dashboard")

        assert response.headers["location"] == "/login"
