import os
import tempfile

from turnmark.config import Config, load_config, save_config


def test_save_and_load_config_roundtrip():
    cfg = Config(data_dir="/srv/calls", intents_path="intents.txt")
    cfg.display.annotation_window_s = 0.25
    cfg.display.select_inserted_turn = False

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "turnmark_config.yml")
        save_config(path, cfg)
        loaded = load_config(path)

    assert loaded.data_dir == "/srv/calls"
    assert loaded.intents_path == "intents.txt"
    assert loaded.slot_keys_path is None
    assert loaded.display.annotation_window_s == 0.25
    assert loaded.display.select_inserted_turn is False


def test_missing_keys_fall_back_to_defaults():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "turnmark_config.yml")
        with open(path, "w", encoding="utf-8") as handle:
            handle.write("debug: true\n")
        loaded = load_config(path)

    assert loaded.debug is True
    assert loaded.annotations_dir == "annotations"
    assert loaded.display.annotation_window_s == 0.1
