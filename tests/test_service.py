import asyncio
import json

import pytest

from wcdiag import create_service
from wcdiag.event_manager import EventManager, EventType
from wcdiag.models.types import RuleName
from wcdiag.settings import EngineSettings

from helpers import make_manifest


@pytest.fixture
def settings(workspace):
    return EngineSettings(workspace_root=workspace, debounce_window=0.01)


@pytest.mark.asyncio
async def test_start_and_validate_text(settings):
    service = create_service(settings=settings)
    index = await service.start()

    assert index.count() == 2
    assert await service.all_tags() == ["my-badge", "old-card"]
    diagnostics = await service.validate_text('<my-badge size="medium"></my-badge>')
    assert [d.rule for d in diagnostics] == [RuleName.INVALID_ATTRIBUTE_VALUE]


@pytest.mark.asyncio
async def test_invalid_config_falls_back_to_defaults(workspace, settings):
    (workspace / "wc.config.json").write_text(json.dumps({"include": 5}))
    service = create_service(settings=settings)

    await service.start()

    (diagnostic,) = service.config_diagnostics()
    assert diagnostic.rule is RuleName.INVALID_CONFIG
    assert (await service.get_element("my-badge")) is not None


@pytest.mark.asyncio
async def test_yaml_config_formats_tags(workspace, settings):
    (workspace / "wc.config.yaml").write_text(
        "tagFormatter: 'x-{tag}'\n"
        "diagnosticSeverity:\n"
        "  unknownElement: error\n"
    )
    service = create_service(settings=settings)
    await service.start()

    assert await service.all_tags() == ["x-my-badge", "x-old-card"]
    (diagnostic,) = await service.validate_text("<my-badge></my-badge>")
    assert diagnostic.rule is RuleName.UNKNOWN_ELEMENT
    assert diagnostic.to_dict()["severity"] == 1


@pytest.mark.asyncio
async def test_validate_files_respects_include(workspace, settings):
    (workspace / "src").mkdir()
    (workspace / "lib").mkdir()
    (workspace / "src" / "bad.html").write_text('<my-badge pill="maybe"></my-badge>')
    (workspace / "src" / "good.html").write_text("<my-badge pill></my-badge>")
    (workspace / "lib" / "bad.html").write_text('<my-badge pill="maybe"></my-badge>')
    service = create_service(settings=settings, config={"include": ["src/**/*.html"]})
    await service.start()

    results = await service.validate_files([
        workspace / "src" / "bad.html",
        workspace / "src" / "good.html",
        workspace / "lib" / "bad.html",
    ])

    assert list(results) == [str(workspace / "src" / "bad.html")]
    assert await service.validate_file("lib/bad.html") == []


@pytest.mark.asyncio
async def test_manifest_change_triggers_reload(workspace, settings):
    events = EventManager()
    completed = []
    events.subscribe(EventType.RELOAD_COMPLETE, lambda reasons, generation: completed.append(reasons))
    service = create_service(settings=settings, event_manager=events)
    await service.start()

    manifest_path = workspace / "custom-elements.json"
    manifest_path.write_text(json.dumps(make_manifest("my-badge", "new-thing")))

    assert not service.on_file_changed(workspace / "README.md")
    assert service.on_file_changed(manifest_path)
    await service.scheduler.flush()

    assert await service.all_tags() == ["my-badge", "new-thing"]
    assert service.scheduler.cycles == 1
    assert completed[-1] == [f"changed {manifest_path}"]


@pytest.mark.asyncio
async def test_config_file_changes_are_relevant(workspace, settings):
    service = create_service(settings=settings)
    await service.start()

    assert service.is_relevant_change(workspace / "wc.config.yaml")
    assert service.is_relevant_change(workspace / "package.json")
    assert not service.is_relevant_change(workspace / "src" / "index.html")


@pytest.mark.asyncio
async def test_inline_config_replacement(settings):
    service = create_service(settings=settings)
    await service.start()

    service.set_config({"diagnosticSeverity": {"invalidAttributeValue": "off"}})
    await service.scheduler.flush()

    assert await service.validate_text('<my-badge size="medium"></my-badge>') == []


@pytest.mark.asyncio
async def test_dispose_empties_index(settings):
    service = create_service(settings=settings)
    await service.start()

    await service.dispose()

    assert service.schema.count() == 0
    assert await service.validate_text("<my-badge></my-badge>") != []


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("WCDIAG_DEBOUNCE_MS", "50")
    monkeypatch.setenv("WCDIAG_FETCH_TIMEOUT", "not-a-number")
    monkeypatch.setenv("WCDIAG_CONFIG_FILE", "custom.yaml")
    monkeypatch.setenv("WCDIAG_LOG_LEVEL", "debug")

    settings = EngineSettings.from_environment(tmp_path)

    assert settings.workspace_root == tmp_path
    assert settings.debounce_window == pytest.approx(0.05)
    assert settings.fetch_timeout == 10.0
    assert str(settings.config_file) == "custom.yaml"
    assert settings.log_level == "DEBUG"


def test_event_handler_errors_are_isolated():
    events = EventManager()
    received = []

    def broken(**data):
        raise ValueError("handler failure")

    events.subscribe(EventType.SCHEMA_LOADED, broken)
    events.subscribe(EventType.SCHEMA_LOADED, lambda **data: received.append(data["count"]))
    delivered = events.emit(EventType.SCHEMA_LOADED, count=3)

    assert delivered == 1
    assert received == [3]
    events.unsubscribe(EventType.SCHEMA_LOADED, broken)
    events.clear()
    events.emit(EventType.SCHEMA_LOADED, count=4)
    assert received == [3]


@pytest.mark.asyncio
async def test_undecodable_config_falls_back_to_defaults(workspace, settings):
    (workspace / "wc.config.json").write_bytes(b'{"debug": "\xff\xfe"}')
    service = create_service(settings=settings)

    index = await service.start()

    assert index.count() == 2
    (diagnostic,) = service.config_diagnostics()
    assert diagnostic.rule is RuleName.INVALID_CONFIG


@pytest.mark.asyncio
async def test_undecodable_config_during_reload_keeps_validating(workspace, settings):
    service = create_service(settings=settings)
    await service.start()

    config_path = workspace / "wc.config.json"
    config_path.write_bytes(b'{"debug": "\xff\xfe"}')
    assert service.on_file_changed(config_path)
    await service.scheduler.flush()

    diagnostics = await asyncio.wait_for(
        service.validate_text('<my-badge size="medium"></my-badge>'), timeout=2
    )
    assert [d.rule for d in diagnostics] == [RuleName.INVALID_ATTRIBUTE_VALUE]
    assert len(service.config_diagnostics()) == 1


@pytest.mark.asyncio
async def test_failed_reload_releases_waiters_with_previous_index(monkeypatch, settings):
    service = create_service(settings=settings)
    await service.start()

    def broken_sources(*args, **kwargs):
        raise RuntimeError("manifest discovery failed")

    monkeypatch.setattr("wcdiag.service.build_sources", broken_sources)

    with pytest.raises(RuntimeError):
        await service.reload(["manual"])
    assert service.schema.is_loaded

    service.scheduler.schedule("manual")
    await service.scheduler.flush()

    assert service.scheduler.cycles == 1
    assert await asyncio.wait_for(service.all_tags(), timeout=2) == ["my-badge", "old-card"]
    diagnostics = await asyncio.wait_for(
        service.validate_text('<my-badge size="medium"></my-badge>'), timeout=2
    )
    assert [d.rule for d in diagnostics] == [RuleName.INVALID_ATTRIBUTE_VALUE]


@pytest.mark.asyncio
async def test_validate_files_skips_files_that_fail(workspace, settings):
    (workspace / "a.html").write_text('<my-badge pill="maybe"></my-badge>')
    (workspace / "b.html").write_bytes(b'<my-badge pill="\xff"></my-badge>')
    service = create_service(settings=settings)
    await service.start()

    results = await service.validate_files([
        workspace / "missing.html",
        workspace / "b.html",
        workspace / "a.html",
    ])

    assert list(results) == [str(workspace / "b.html"), str(workspace / "a.html")]
    assert [d.rule for d in results[str(workspace / "a.html")]] == [RuleName.INVALID_BOOLEAN]
    assert [d.rule for d in results[str(workspace / "b.html")]] == [RuleName.INVALID_BOOLEAN]
