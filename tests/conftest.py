# tests/conftest.py
import os
import tempfile
from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

# main.py reads settings at import time; keep that first read away from logs/ and data/
os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG__TO_FILE", "false")
os.environ.setdefault("STORAGE__ROOT", tempfile.mkdtemp(prefix="liveops-storage-"))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from core.config import initialize_settings, reset_settings  # noqa: E402
from core.security import create_access_token  # noqa: E402
from database import profiles_repo  # noqa: E402
from database.db import DatabaseManager  # noqa: E402
from services.content_generator import set_content_generator  # noqa: E402
from services.deep_translator import set_deep_translator  # noqa: E402
from services.translation_gateway import set_translation_gateway  # noqa: E402

ADMIN_CODE = "letmein-2024"
LISTED_ADMIN_EMAIL = "boss@example.com"


class FakeGateway:
    """Stands in for TranslationGateway: tags text with the target language and counts calls."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []
        self.closed = False

    async def translate(self, text: str, target_lang: str) -> str:
        self.calls.append((text, target_lang))
        if self.fail:
            return text
        return f"[{target_lang}]{text}"

    async def aclose(self) -> None:
        self.closed = True

    async def smart_translate(self, text: str) -> Dict[str, str]:
        self.calls.append((text, "*"))
        if not text:
            return {k: "" for k in ("CN", "EN", "VN", "TH", "PH", "MY")}
        return {
            "CN": text,
            "EN": f"EN:{text}",
            "VN": f"VN:{text}",
            "TH": f"TH:{text}",
            "PH": f"EN:{text}",
            "MY": f"MY:{text}",
        }


@pytest.fixture(autouse=True)
def settings(tmp_path):
    reset_settings()
    instance = initialize_settings({
        "DATABASE_URL": f"sqlite:///{tmp_path / 'liveops.db'}",
        "LOG__TO_FILE": False,
        "STORAGE__ROOT": str(tmp_path / "storage"),
        "JWT_SECRET_KEY": "test-secret",
        "AUTH__ADMIN_INVITE_CODE": ADMIN_CODE,
        "AUTH__ADMIN_EMAILS": [LISTED_ADMIN_EMAIL],
        "TRANSLATION__ENGINE_URL": "",
        "TRANSLATION__SCRIPT_URL": "",
        "TRANSLATION__CALL_DELAY_MS": 0,
        "TRANSLATION__FALLBACK_DELAY_MS": 0,
        "CATALOG__IMPORT_DELAY_MS": 0,
        "GEMINI__API_KEY": "",
        "DEBUG": True,
    })
    DatabaseManager.dispose()
    DatabaseManager.initialize()
    DatabaseManager.create_all()
    set_translation_gateway(None)
    set_deep_translator(None)
    set_content_generator(None)
    yield instance
    set_translation_gateway(None)
    set_deep_translator(None)
    set_content_generator(None)
    DatabaseManager.dispose()
    reset_settings()


@pytest.fixture
def fake_gateway():
    gateway = FakeGateway()
    set_translation_gateway(gateway)
    return gateway


@pytest.fixture
def client(settings):
    from main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


def make_profile(email: str, role: str = "creator", username: Optional[str] = None,
                 country: str = "VN", password_hash: str = "!") -> Dict[str, Any]:
    profile = profiles_repo.create_profile(email, password_hash, username or email.split("@")[0], country, role)
    assert profile is not None
    return profile


def bearer(profile: Dict[str, Any]) -> Dict[str, str]:
    token = create_access_token({"sub": profile["id"], "email": profile["email"]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin():
    return make_profile("admin@example.com", role="admin", username="Admin")


@pytest.fixture
def creator():
    return make_profile("linh@example.com", username="Linh")


@pytest.fixture
def other_creator():
    return make_profile("somchai@example.com", username="Somchai", country="TH")
