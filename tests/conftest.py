from __future__ import annotations

import pytest


CREDENTIAL_ENV = (
    "ADBLITZ_API_BASE_URL",
    "ADBLITZ_OPENAI_API_KEY",
    "ADBLITZ_FAL_API_KEY",
    "ADBLITZ_CREATIFY_API_ID",
    "ADBLITZ_CREATIFY_API_KEY",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in CREDENTIAL_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ADBLITZ_MEDIA_ROOT", str(tmp_path / "media"))
