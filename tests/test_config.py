"""EditorConfig defaults and environment overrides."""

from flowcanvas.config import EditorConfig, get_editor_config, list_configs
from flowcanvas.config.base import find_config
from flowcanvas.config.env_utils import read_env_defaults


def test_defaults(monkeypatch):
    for env_name in EditorConfig._ENV_MAP.values():
        monkeypatch.delenv(env_name, raising=False)

    config = get_editor_config()

    assert config.debounce_ms == 100
    assert config.debounce_seconds == 0.1
    assert config.default_workflow_name == "New Workflow"
    assert config.default_created_by == "system"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("FLOWCANVAS_DEBOUNCE_MS", "250")
    monkeypatch.setenv("FLOWCANVAS_CREATED_BY", "alice")

    config = get_editor_config()

    assert config.debounce_ms == 250
    assert config.default_created_by == "alice"


def test_bad_env_value_keeps_default():
    overrides = read_env_defaults(
        EditorConfig._ENV_MAP,
        EditorConfig.__dataclass_fields__,
        environ={"FLOWCANVAS_DEBOUNCE_MS": "soon", "FLOWCANVAS_LOG_LEVEL": "DEBUG"},
    )
    assert overrides == {"log_level": "DEBUG"}


def test_config_is_cached():
    assert get_editor_config() is get_editor_config()


def test_registered():
    assert EditorConfig in list_configs()
    assert find_config("editor") is EditorConfig
    assert EditorConfig().to_dict()["storage_dir"] == "workflows"


def test_store_uses_created_by(monkeypatch):
    from flowcanvas.workflow.document_store import DocumentStore

    monkeypatch.setenv("FLOWCANVAS_CREATED_BY", "ops")
    document = DocumentStore().initialize("wf-1")
    assert document.metadata.created_by == "ops"
