import pytest

from missiondeck.lib import config, paths


def test_config_loads_packaged_defaults(deck_root):
    cfg = config.load_config()
    assert cfg["watcher"]["debounce_ms"] == 500
    assert cfg["monitor"]["orchestrator"] == "lead"


def test_default_thresholds_order_review_before_assigned_before_in_progress(deck_root):
    limits = config.thresholds()
    assert limits["review"][1] < limits["assigned"][1] < limits["in_progress"][1]
    assert limits["in_progress"] == (6.0, 8.0)


def test_user_config_merges_over_defaults(deck_root):
    target = config.config_file()
    target.parent.mkdir(parents=True)
    target.write_text("watcher:\n  debounce_ms: 50\n")
    config.clear_cache()

    cfg = config.load_config()
    assert cfg["watcher"]["debounce_ms"] == 50
    assert cfg["monitor"]["interval_seconds"] == 300


def test_invalid_section_type_fails_fast(deck_root):
    target = config.config_file()
    target.parent.mkdir(parents=True)
    target.write_text("watcher: 5\n")
    config.clear_cache()

    with pytest.raises(ValueError, match="watcher"):
        config.load_config()


def test_threshold_yellow_above_red_rejected(deck_root):
    target = config.config_file()
    target.parent.mkdir(parents=True)
    target.write_text("thresholds:\n  review: {yellow: 5, red: 4}\n")
    config.clear_cache()

    with pytest.raises(ValueError, match="review"):
        config.load_config()


def test_init_config_copies_defaults_once(deck_root):
    path = config.init_config()
    assert path == paths.dot_dir(deck_root) / "config.yaml"
    assert "debounce_ms" in path.read_text()

    path.write_text("log_level: DEBUG\n")
    assert config.init_config() == path
    assert path.read_text() == "log_level: DEBUG\n"
