from __future__ import annotations

import asyncio

import pytest

from src.adblitz.domain.models import AspectRatio, ProviderJobState, RenderRequest
from src.adblitz.errors import ConfigurationError, ProviderTimeoutError, UpstreamError
from src.adblitz.providers.catalog_cache import CatalogCache
from src.adblitz.providers.providers_creatify import CreatifyDriver, pick_voice
from tests.helpers.http import DummyAsyncClient, FakeClock, install, json_response

PERSONAS = [
    {"id": "p-idle", "is_active": False, "creator_name": "Idle"},
    {"id": "p-live", "is_active": True, "creator_name": "Live"},
]
VOICES = [
    {"name": "Carlos", "gender": "male", "accents": [{"id": "acc-mx-m", "accent_name": "Mexican Spanish"}]},
    {"name": "Lucia", "gender": "female", "accents": [{"id": "acc-es-f", "accent_name": "Spanish (Spain)"}]},
    {"name": "Ana", "gender": "female", "accents": [{"id": "acc-br-f", "accent_name": "Brazilian"}]},
    {"name": "Mute", "gender": "female", "accents": []},
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def driver(clock: FakeClock) -> CreatifyDriver:
    return CreatifyDriver(api_id="id-1", api_key="key-1", sleep=clock.sleep, clock=clock)


def test_pick_voice_prefers_gender_and_accent():
    assert pick_voice(VOICES, "es") == "acc-es-f"


def test_pick_voice_falls_back_to_accent_only():
    voices = [v for v in VOICES if v["name"] != "Lucia"]

    assert pick_voice(voices, "es") == "acc-mx-m"


def test_pick_voice_falls_back_to_first_voice_with_accents():
    assert pick_voice(VOICES, "zh") == "acc-mx-m"


def test_pick_voice_unknown_language_uses_english_preferences():
    voices = [{"name": "Amy", "gender": "female", "accents": [{"id": "acc-us", "accent_name": "American"}]}]

    assert pick_voice(voices, "fr") == "acc-us"


def test_pick_voice_returns_none_without_accent_data():
    assert pick_voice([{"name": "Mute", "gender": "female", "accents": []}], "en") is None


def test_submit_resolves_avatar_and_voice(monkeypatch, driver):
    client = install(
        monkeypatch,
        DummyAsyncClient(
            get_queue=[json_response(200, PERSONAS), json_response(200, VOICES)],
            post_queue=[json_response(200, {"id": "lip-1"})],
        ),
    )

    status = asyncio.run(
        driver.submit(
            RenderRequest(prompt="Hola!", duration=10, aspect_ratio=AspectRatio.LANDSCAPE, language="es")
        )
    )

    assert status.id == "lip-1"
    assert status.status is ProviderJobState.QUEUED
    post = client.calls[-1]
    assert post.url == "https://api.creatify.ai/api/lipsyncs/"
    assert post.headers["X-API-ID"] == "id-1"
    assert post.headers["X-API-KEY"] == "key-1"
    assert post.json == {
        "text": "Hola!",
        "creator": "p-live",
        "accent": "acc-es-f",
        "aspect_ratio": "16x9",
        "model_version": "standard",
        "no_caption": False,
        "no_music": True,
    }


def test_lookups_are_cached_per_process(monkeypatch, clock):
    voice_cache, avatar_cache = CatalogCache(), CatalogCache()
    client = install(
        monkeypatch,
        DummyAsyncClient(
            get_queue=[json_response(200, PERSONAS), json_response(200, VOICES)],
            post_queue=[json_response(200, {"id": "lip-1"}), json_response(200, {"id": "lip-2"})],
        ),
    )
    first = CreatifyDriver(api_id="i", api_key="k", voice_cache=voice_cache, avatar_cache=avatar_cache)
    second = CreatifyDriver(api_id="i", api_key="k", voice_cache=voice_cache, avatar_cache=avatar_cache)

    async def scenario():
        await first.submit(RenderRequest(prompt="a", duration=8, language="pt"))
        await second.submit(RenderRequest(prompt="b", duration=8, language="pt"))

    asyncio.run(scenario())

    assert [call.method for call in client.calls] == ["GET", "GET", "POST", "POST"]
    assert voice_cache.get("pt") == "acc-br-f"
    assert avatar_cache.get("default") == "p-live"


def test_explicit_ids_skip_lookups(monkeypatch):
    client = install(monkeypatch, DummyAsyncClient(post_queue=[json_response(200, {"id": "lip-9"})]))
    driver = CreatifyDriver(api_id="i", api_key="k", avatar_id="av", voice_id="vo")

    asyncio.run(driver.submit(RenderRequest(prompt="x", duration=8)))

    assert len(client.calls) == 1
    assert client.calls[0].json["creator"] == "av"
    assert client.calls[0].json["accent"] == "vo"


def test_missing_credentials_is_configuration_error():
    driver = CreatifyDriver(api_id="only-id")

    with pytest.raises(ConfigurationError):
        asyncio.run(driver.submit(RenderRequest(prompt="x", duration=8)))


def test_empty_persona_catalog_is_upstream_error(monkeypatch, driver):
    install(monkeypatch, DummyAsyncClient(get_queue=[json_response(200, [])]))

    with pytest.raises(UpstreamError, match="personas"):
        asyncio.run(driver.default_avatar_id())


@pytest.mark.parametrize(
    ("native", "state", "progress"),
    [
        ("pending", ProviderJobState.QUEUED, 0),
        ("in_queue", ProviderJobState.QUEUED, 0),
        ("running", ProviderJobState.PROCESSING, 50),
        ("failed", ProviderJobState.FAILED, 0),
    ],
)
def test_poll_once_maps_native_status(monkeypatch, driver, native, state, progress):
    install(monkeypatch, DummyAsyncClient(get_queue=[json_response(200, {"status": native})]))

    status = asyncio.run(driver.poll_once("lip-1"))

    assert status.status is state
    assert status.progress == progress


def test_await_completion_polls_every_eight_seconds(monkeypatch, driver, clock):
    install(
        monkeypatch,
        DummyAsyncClient(
            get_queue=[
                json_response(200, {"status": "in_queue"}),
                json_response(200, {"status": "running"}),
                json_response(200, {"status": "done", "output": "https://cdn.creatify/out.mp4"}),
            ]
        ),
    )
    seen = []

    result = asyncio.run(driver.await_completion("lip-1", seen.append))

    assert result.video_url == "https://cdn.creatify/out.mp4"
    assert [s.progress for s in seen] == [0, 50, 100]
    assert clock.sleeps == [8.0, 8.0, 8.0]


def test_await_completion_raises_with_failed_reason(monkeypatch, driver):
    install(
        monkeypatch,
        DummyAsyncClient(get_queue=[json_response(200, {"status": "failed", "failed_reason": "bad text"})]),
    )

    with pytest.raises(UpstreamError, match="bad text"):
        asyncio.run(driver.await_completion("lip-1"))


def test_await_completion_times_out(monkeypatch, clock):
    driver = CreatifyDriver(
        api_id="i", api_key="k", poll_budget_seconds=16, sleep=clock.sleep, clock=clock
    )
    install(monkeypatch, DummyAsyncClient(get_queue=[json_response(200, {"status": "running"})] * 4))

    with pytest.raises(ProviderTimeoutError):
        asyncio.run(driver.await_completion("lip-1"))


def test_http_error_status_is_upstream_error(monkeypatch, driver):
    install(monkeypatch, DummyAsyncClient(get_queue=[json_response(500, {"detail": "boom"})]))

    with pytest.raises(UpstreamError, match="boom"):
        asyncio.run(driver.poll_once("lip-1"))
