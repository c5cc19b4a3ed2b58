import importlib.util
import json
import sys
from pathlib import Path

import pytest

from src.adblitz.providers.providers_factory import BackendSelector
from tests.mocks.providers import MockDriver, MockScenario


PROJECT_ROOT = Path(__file__).resolve().parents[3]
MODULE_PATH = PROJECT_ROOT / "scripts" / "run_batch.py"
SPEC = importlib.util.spec_from_file_location("run_batch_module", MODULE_PATH)
run_batch = importlib.util.module_from_spec(SPEC)
assert SPEC and SPEC.loader
sys.modules["run_batch_module"] = run_batch
SPEC.loader.exec_module(run_batch)


@pytest.fixture
def driver(monkeypatch):
    driver = MockDriver(provider_id="sora", name="Sora 2")
    selector = BackendSelector()
    selector.register("sora", driver)
    monkeypatch.setattr(run_batch, "create_selector", lambda config: selector)
    monkeypatch.setattr(run_batch, "configure_logging", lambda: None)
    return driver


def write_input(tmp_path: Path, payload: dict) -> Path:
    path = tmp_path / "batch.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def payload(**options) -> dict:
    return {
        "product": {"product_name": "Glow Serum", "images": ["https://cdn.example/serum.png"]},
        "scripts": [
            {"id": "s1", "type_id": "listicle", "type_name": "Listicle", "sora_prompt": "one"},
            {"id": "s2", "type_id": "listicle", "type_name": "Listicle", "sora_prompt": "two"},
        ],
        "options": options,
    }


def test_completed_batch_exits_zero(tmp_path, driver, capsys):
    code = run_batch.main([str(write_input(tmp_path, payload()))])

    out = capsys.readouterr().out
    assert code == 0
    assert "[completed] 100% (2/2 tasks finished)" in out
    assert "task_s1: completed https://cdn.adblitz.test/sora-1.mp4" in out
    assert driver.requests[0].image_url == "https://cdn.example/serum.png"


def test_partial_batch_exits_one(tmp_path, driver, capsys):
    driver.scenarios = {"two": MockScenario.TIMEOUT}

    code = run_batch.main([str(write_input(tmp_path, payload()))])

    assert code == 1
    assert "task_s2: failed Mock render timed out" in capsys.readouterr().out


def test_model_flag_overrides_options(tmp_path, driver, capsys):
    code = run_batch.main([str(write_input(tmp_path, payload(video_model="veo"))), "--model", "sora"])

    assert code == 0
    assert len(driver.requests) == 2


def test_unknown_model_exits_two(tmp_path, driver, capsys):
    code = run_batch.main([str(write_input(tmp_path, payload())), "--model", "runway"])

    assert code == 2
    assert "configuration error" in capsys.readouterr().err
    assert driver.requests == []


def test_invalid_input_exits_two(tmp_path, driver, capsys):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    assert run_batch.main([str(path)]) == 2
    assert run_batch.main([str(tmp_path / "missing.json")]) == 2
    assert "invalid input" in capsys.readouterr().err
