from block_editor.config import ConfigManager


def test_singleton():
    assert ConfigManager() is ConfigManager()


def test_reset_reloads():
    first = ConfigManager()
    ConfigManager.reset()
    assert ConfigManager() is not first


def test_packaged_defaults_loaded():
    cfg = ConfigManager()
    editor = cfg.get_editor_settings()
    assert editor["max_history_states"] == 50
    assert editor["strict_structure"] is True
    assert "columns" in cfg.get_block_types()
    assert cfg.get_logging_config()["version"] == 1


def test_user_config_files_are_created(isolated_config):
    ConfigManager()
    for name in ("editor.yml", "block_types.yml", "logging.yml"):
        assert (isolated_config / name).exists()


def test_user_overrides_merge_deeply(isolated_config):
    isolated_config.mkdir(parents=True, exist_ok=True)
    (isolated_config / "editor.yml").write_text("max_history_states: 5\n", encoding="utf-8")
    (isolated_config / "block_types.yml").write_text(
        "columns:\n  count:\n    max: 4\n", encoding="utf-8"
    )
    cfg = ConfigManager()
    assert cfg.get_editor_settings()["max_history_states"] == 5
    assert cfg.get_editor_settings()["default_block_type"] == "text"
    columns = cfg.get_block_types()["columns"]
    assert columns["count"]["max"] == 4
    assert columns["count"]["rule"] == "dash_separated"


def test_invalid_user_override_is_ignored(isolated_config):
    isolated_config.mkdir(parents=True, exist_ok=True)
    (isolated_config / "editor.yml").write_text("- just\n- a list\n", encoding="utf-8")
    (isolated_config / "block_types.yml").write_text("key: [unclosed\n", encoding="utf-8")
    cfg = ConfigManager()
    assert cfg.get_editor_settings()["max_history_states"] == 50
    assert "text" in cfg.get_block_types()
