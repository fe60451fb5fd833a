from healthy_meal.core.config import Config

from .conftest import TEST_EMAIL, TEST_USER_ID


def test_sign_in_sets_session_cookies(anon_client):
    response = anon_client.post("/api/auth/sign-in", json={"email": TEST_EMAIL, "password": "Secret123"})

    assert response.status_code == 200
    assert response.json() == {"user": {"id": TEST_USER_ID, "email": TEST_EMAIL}}
    cookies = response.headers.get_list("set-cookie")
    assert any(c.startswith("sb-access-token=token-1") and "HttpOnly" in c for c in cookies)
    assert any(c.startswith("sb-refresh-token=") for c in cookies)


def test_sign_in_with_wrong_password(anon_client, monkeypatch):
    monkeypatch.setattr(Config, "ENVIRONMENT", "production")

    response = anon_client.post("/api/auth/sign-in", json={"email": TEST_EMAIL, "password": "wrong"})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid email or password"


def test_sign_in_shows_cause_in_development(anon_client, monkeypatch):
    monkeypatch.setattr(Config, "ENVIRONMENT", "development")

    response = anon_client.post("/api/auth/sign-in", json={"email": TEST_EMAIL, "password": "wrong"})

    assert response.json()["error"]["message"] == "Invalid email or password (Invalid login credentials)"


def test_sign_in_validates_body(anon_client):
    response = anon_client.post("/api/auth/sign-in", json={"email": "nope", "password": ""})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["message"] == "Invalid request data"
    assert error["details"] == {
        "email": "Please enter a valid email address",
        "password": "Password is required",
    }


def test_sign_up(anon_client, fake_supabase):
    response = anon_client.post(
        "/api/auth/sign-up",
        json={
            "email": "new@example.com",
            "password": "Secret123",
            "confirmPassword": "Secret123",
            "displayName": "New Cook",
        },
    )

    assert response.status_code == 201
    assert response.json()["message"] == "Account created successfully"
    assert fake_supabase.auth.sign_ups[0]["options"] == {"data": {"display_name": "New Cook"}}


def test_sign_up_existing_email_conflicts(anon_client, monkeypatch):
    monkeypatch.setattr(Config, "ENVIRONMENT", "production")

    response = anon_client.post(
        "/api/auth/sign-up",
        json={"email": TEST_EMAIL, "password": "Secret123", "confirmPassword": "Secret123"},
    )

    assert response.status_code == 409
    assert response.json()["error"]["message"] == "An account with this email already exists"


def test_sign_out_clears_cookies(client, fake_supabase):
    response = client.post("/api/auth/sign-out")

    assert response.status_code == 200
    assert response.json() == {"message": "Signed out successfully"}
    assert fake_supabase.auth.admin.signed_out == ["token-1"]
    assert any(c.startswith("sb-access-token=") for c in response.headers.get_list("set-cookie"))


def test_forgot_password_always_succeeds(anon_client, fake_supabase):
    fake_supabase.auth.fail_with = "rate limited"

    response = anon_client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})

    assert response.status_code == 200
    assert response.json()["message"] == (
        "If an account exists with this email, you will receive password reset instructions"
    )


def test_forgot_password_redirects_to_reset_page(anon_client, fake_supabase, monkeypatch):
    monkeypatch.setattr(Config, "SITE_URL", "https://meals.example.com/")

    anon_client.post("/api/auth/forgot-password", json={"email": TEST_EMAIL})

    assert fake_supabase.auth.reset_requests == [
        (TEST_EMAIL, {"redirect_to": "https://meals.example.com/reset-password"})
    ]


def test_reset_password(client, fake_supabase):
    response = client.post(
        "/api/auth/reset-password", json={"password": "NewSecret1", "confirmPassword": "NewSecret1"}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Password reset successfully"}
    assert fake_supabase.auth.admin.password_updates == [(TEST_USER_ID, {"password": "NewSecret1"})]


def test_reset_password_mismatch(client):
    response = client.post(
        "/api/auth/reset-password", json={"password": "NewSecret1", "confirmPassword": "NewSecret2"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"confirmPassword": "Passwords do not match"}


def test_reset_password_requires_session(anon_client):
    response = anon_client.post(
        "/api/auth/reset-password", json={"password": "NewSecret1", "confirmPassword": "NewSecret1"}
    )

    assert response.status_code == 401


def test_me_without_profile(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json() == {
        "user": {"id": TEST_USER_ID, "email": TEST_EMAIL, "emailConfirmed": True, "profile": None}
    }


def test_me_with_profile(client, fake_supabase):
    fake_supabase.seed("user_profiles", user_id=TEST_USER_ID, display_name="Cook",
                       extra={"diets": ["vegan"]}, allergens=None, disliked_ingredients=["olives"],
                       calorie_target=2000)

    profile = client.get("/api/auth/me").json()["user"]["profile"]

    assert profile["displayName"] == "Cook"
    assert profile["diets"] == ["vegan"]
    assert profile["allergens"] == []
    assert profile["dislikedIngredients"] == ["olives"]
    assert profile["calorieTarget"] == 2000


def test_update_profile_creates_row(client, fake_supabase):
    response = client.patch("/api/auth/profile", json={"displayName": "Cook", "diets": ["keto"]})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Profile updated successfully"
    assert body["profile"]["displayName"] == "Cook"
    assert body["profile"]["diets"] == ["keto"]
    assert fake_supabase.tables["user_profiles"][0]["user_id"] == TEST_USER_ID


def test_update_profile_only_writes_supplied_fields(client, fake_supabase):
    fake_supabase.seed("user_profiles", user_id=TEST_USER_ID, display_name="Cook",
                       extra={}, allergens=["nuts"], disliked_ingredients=[], calorie_target=None)

    response = client.patch("/api/auth/profile", json={"calorieTarget": 1500})

    profile = response.json()["profile"]
    assert profile["calorieTarget"] == 1500
    assert profile["displayName"] == "Cook"
    assert profile["allergens"] == ["nuts"]


def test_update_profile_validation(client):
    response = client.patch("/api/auth/profile", json={"calorieTarget": 20000})

    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"calorieTarget": "Calorie target must be less than 10000"}
