import os

import pytest

from conftest import FakeLLM
from hmi_agent.errors import LLMError, SessionError
from hmi_agent.services import pipeline as pipeline_module
from hmi_agent.services.pipeline import HMIPipeline, exclusive, safe_name
from hmi_agent.services.session import SessionStore
from hmi_agent.services.spec_generator import ScreenSpecGenerator


@pytest.fixture
def document(tmp_path, fds_text):
    path = tmp_path / "fds.txt"
    path.write_text(fds_text, encoding="utf-8")
    return str(path)


def test_full_run_without_model(settings, document) -> None:
    store = SessionStore()
    session = store.create(document)
    pipeline = HMIPipeline(settings)

    workflow = pipeline.run_workflow_stage(session)
    result = pipeline.run_screen_stage(session)

    assert session.identification.source == "template"
    assert workflow.system_overview.system_type == "generator_control"
    assert result.summary.total_screens == 3
    assert result.summary.successful_screens == 3
    assert result.summary.failed_screens == 0
    assert result.summary.status == "completed"
    assert set(result.summary.layout_types) == {"individual", "workflow_comprehensive", "comprehensive"}

    individual = [i for i in result.screen_images if i.screen_type == "individual"]
    assert [i.screen_name for i in individual] == ["Home Screen", "Alarm Screen", "Settings Screen"]
    for image in result.screen_images:
        assert image.error is None
        assert os.path.exists(image.image_path)
        assert image.image_url == "/outputs/" + os.path.basename(image.image_path)
    assert os.path.basename(individual[0].image_path).startswith("screen_")
    steps = {event.step for event in session.events}
    assert {"upload", "analysis", "workflow", "screen-generation"} <= steps


def test_failed_identification_uses_headings(settings, document) -> None:
    session = SessionStore().create(document)
    llm = FakeLLM(error=LLMError("unreachable"))
    HMIPipeline(settings, llm).run_workflow_stage(session)
    assert [s.screen_name for s in session.identification.screen_list] == ["Home Screen", "Alarm Screen", "Settings Screen"]
    assert len(llm.calls) == 1


def test_parallel_workers_keep_screen_order(settings, document) -> None:
    settings.render_workers = 3
    session = SessionStore().create(document)
    pipeline = HMIPipeline(settings)
    pipeline.run_workflow_stage(session)
    result = pipeline.run_screen_stage(session)
    names = [i.screen_name for i in result.screen_images if i.screen_type == "individual"]
    assert names == [s.screen_name for s in session.identification.screen_list]


def test_cancelled_session_removes_written_files(settings, document) -> None:
    session = SessionStore().create(document)
    pipeline = HMIPipeline(settings)
    pipeline.run_workflow_stage(session)
    session.cancel_event.set()

    result = pipeline.run_screen_stage(session)

    assert result.summary.status == "cancelled"
    assert result.screen_images == []
    assert session.written_files == []
    if os.path.isdir(settings.output_dir):
        assert not [f for f in os.listdir(settings.output_dir) if f.endswith(".png")]


def test_screen_stage_requires_workflow(settings, document) -> None:
    session = SessionStore().create(document)
    with pytest.raises(SessionError):
        HMIPipeline(settings).run_screen_stage(session)


def test_busy_session_is_rejected(document) -> None:
    session = SessionStore().create(document)
    with exclusive(session):
        with pytest.raises(SessionError) as excinfo:
            with exclusive(session):
                pass
    assert excinfo.value.busy


def test_store_lookup_and_cancel() -> None:
    store = SessionStore()
    session = store.create()
    assert session.session_id.startswith("session_")
    assert store.get(session.session_id) is session
    store.cancel(session.session_id)
    assert session.cancelled
    with pytest.raises(SessionError):
        store.get(session.session_id)


def test_safe_name() -> None:
    assert safe_name("screen 1/../x") == "screen_1_x"
    assert safe_name("") == "screen"


def test_unexpected_model_error_uses_headings(settings, document) -> None:
    session = SessionStore().create(document)
    HMIPipeline(settings, FakeLLM(error=RuntimeError("socket reset"))).run_workflow_stage(session)
    assert session.identification.source == "template"
    assert session.workflow.system_overview.total_screens == 3


def test_one_failed_render_is_partial_success(settings, document, monkeypatch) -> None:
    original = pipeline_module.render_screen

    def flaky(spec, *args, **kwargs):
        if spec.screen_title == "Alarm Screen":
            raise ValueError("font missing")
        return original(spec, *args, **kwargs)

    monkeypatch.setattr(pipeline_module, "render_screen", flaky)
    session = SessionStore().create(document)
    pipeline = HMIPipeline(settings)
    pipeline.run_workflow_stage(session)

    result = pipeline.run_screen_stage(session)

    assert result.summary.status == "partial_success"
    assert result.summary.successful_screens == 2
    assert result.summary.failed_screens == 1
    individual = {i.screen_name: i for i in result.screen_images if i.screen_type == "individual"}
    assert individual["Alarm Screen"].error == "font missing"
    assert os.path.exists(individual["Home Screen"].image_path)
    assert os.path.exists(individual["Settings Screen"].image_path)


def test_colliding_screen_ids_get_distinct_files(settings, document) -> None:
    session = SessionStore().create(document)
    pipeline = HMIPipeline(settings)
    pipeline.run_workflow_stage(session)
    session.identification.screen_list[0].screen_id = "screen 1"
    session.identification.screen_list[1].screen_id = "screen_1"

    result = pipeline.run_screen_stage(session)

    paths = [i.image_path for i in result.screen_images if i.screen_type == "individual"]
    assert len(set(paths)) == 3
    assert all(os.path.exists(path) for path in paths)


def test_cancel_while_generating_skips_rendering(settings, document, monkeypatch) -> None:
    session = SessionStore().create(document)
    pipeline = HMIPipeline(settings)
    pipeline.run_workflow_stage(session)
    generate = ScreenSpecGenerator.generate
    rendered = []

    def generate_then_cancel(self, screen):
        spec = generate(self, screen)
        session.cancel_event.set()
        return spec

    def counting_render(spec, *args, **kwargs):
        rendered.append(spec.screen_title)
        raise AssertionError("rendered after cancel")

    monkeypatch.setattr(ScreenSpecGenerator, "generate", generate_then_cancel)
    monkeypatch.setattr(pipeline_module, "render_screen", counting_render)

    result = pipeline.run_screen_stage(session)

    assert result.summary.status == "cancelled"
    assert rendered == []
    assert session.written_files == []


def test_finished_sessions_expire() -> None:
    store = SessionStore(ttl_seconds=0)
    done = store.create()
    store.finish(done.session_id)
    pending = store.create()

    assert len(store) == 1
    assert store.get(pending.session_id) is pending
    with pytest.raises(SessionError):
        store.get(done.session_id)


def test_running_and_fresh_sessions_are_kept() -> None:
    store = SessionStore(ttl_seconds=0, idle_seconds=3600)
    running = store.create()
    store.finish(running.session_id)
    with exclusive(running):
        assert store.sweep() == 0
    assert store.create() is not None
    assert len(store) == 1
