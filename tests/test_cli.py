import csv
import wave

from turnmark.cli import main


def _run(capsys, *argv):
    code = main(["--annotations-dir", "annotations", "--data-dir", "data", *argv])
    return code, capsys.readouterr().out


def test_add_show_and_export(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    code, out = _run(
        capsys, "add-turn", "c1", "v1", "3", "4", "--intent", "ask", "--slot", "item=ticket"
    )
    assert code == 0
    assert "Added turn 1 of 1." in out

    code, out = _run(capsys, "add-turn", "c1", "v1", "0.5", "1.5", "--intent", "greet")
    assert "Added turn 1 of 2." in out

    code, out = _run(capsys, "dialogue-slot", "c1", "v1", "plan=gold")
    assert code == 0

    code, out = _run(capsys, "show", "c1", "v1")
    assert "#1 greet" in out
    assert "#2 ask | item=ticket" in out
    assert "Dialogue slots: item=ticket, plan=gold" in out

    code, out = _run(capsys, "export", "--out", "out.csv")
    assert code == 0
    with open(tmp_path / "out.csv", newline="", encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["intent"] for row in rows] == ["greet", "ask"]


def test_add_turn_rejects_inverted_bounds(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    code, out = _run(capsys, "add-turn", "c1", "v1", "4", "3")
    assert code == 1
    assert "End must be after start." in out
    assert not (tmp_path / "annotations" / "c1" / "v1.annotation.json").exists()


def test_delete_turn(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    _run(capsys, "add-turn", "c1", "v1", "1", "2")
    code, out = _run(capsys, "delete-turn", "c1", "v1", "3")
    assert code == 1
    code, out = _run(capsys, "delete-turn", "c1", "v1", "1")
    assert code == 0
    code, out = _run(capsys, "show", "c1", "v1")
    assert "Turns: 0" in out


def test_show_missing_annotation(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    code, out = _run(capsys, "show", "nobody", "nothing")
    assert code == 1
    assert "No saved annotation." in out


def test_scan_and_clear(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    folder = tmp_path / "data" / "c1" / "v1"
    folder.mkdir(parents=True)
    with wave.open(str(folder / "audio_processed.wav"), "wb") as handle:
        handle.setnchannels(1)
        handle.setsampwidth(2)
        handle.setframerate(8000)
        handle.writeframes(b"\x00\x00" * 8000)
    (folder / "conversation.csv").write_text("speaker,text\n", encoding="utf-8")

    code, out = _run(capsys, "scan")
    assert "[ ] c1/v1" in out
    assert "Progress: 0/1 (0%)" in out

    _run(capsys, "dialogue-slot", "c1", "v1", "plan=gold")
    code, out = _run(capsys, "scan")
    assert "[x] c1/v1" in out

    code, out = _run(capsys, "clear", "--yes")
    assert "Removed 1 annotation(s)." in out


def test_config_command_writes_once(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["config"]) == 0
    assert (tmp_path / "turnmark_config.yml").exists()
    assert main(["config"]) == 1


def test_add_turn_with_same_bounds_annotates_the_new_turn(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    _run(capsys, "add-turn", "c1", "v1", "1", "2", "--intent", "old")
    code, out = _run(capsys, "add-turn", "c1", "v1", "1", "2", "--intent", "new")
    assert "Added turn 2 of 2." in out
    code, out = _run(capsys, "show", "c1", "v1")
    assert "#1 old" in out
    assert "#2 new" in out


def test_dialogue_slot_values_accumulate(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    _run(capsys, "dialogue-slot", "c1", "v1", "plan=gold")
    _run(capsys, "dialogue-slot", "c1", "v1", "plan=silver")
    code, out = _run(capsys, "dialogue-slot", "c1", "v1", "plan=gold")
    assert "plan=gold is already a dialogue slot." in out
    code, out = _run(capsys, "show", "c1", "v1")
    assert "Dialogue slots: plan=gold, plan=silver" in out
