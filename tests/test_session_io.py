import json
import os

import pytest

from turnmark.errors import NotFoundError, PersistenceError
from turnmark.models import (
    DialogueAnnotation,
    Segment,
    SlotValue,
    Turn,
    annotation_from_dict,
    annotation_to_dict,
)
from turnmark.session_io import (
    AnnotationRepository,
    load_vocabulary,
    read_conversation_log,
)


def _sample():
    return DialogueAnnotation(
        customer_id="cust-1",
        conversation_id="conv-7",
        turns=[
            Turn(
                segments=[Segment(0.5, 1.25)],
                intent="greet",
                slots=[SlotValue("name", "Aiko")],
            ),
            Turn(segments=[Segment(2.0, 3.0)], intent="ask_price"),
        ],
        dialogue_slots=[SlotValue("name", "Aiko"), SlotValue("plan", "gold")],
        dialogue_only_slots=[SlotValue("plan", "gold")],
    )


def test_save_and_load_roundtrip(tmp_path):
    repo = AnnotationRepository(str(tmp_path))
    annotation = _sample()
    assert repo.save("cust-1", "conv-7", annotation)
    assert repo.exists("cust-1", "conv-7")
    assert repo.load("cust-1", "conv-7") == annotation


def test_document_uses_camel_case_keys(tmp_path):
    repo = AnnotationRepository(str(tmp_path))
    repo.save("cust-1", "conv-7", _sample())
    path = tmp_path / "cust-1" / "conv-7.annotation.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["customerId"] == "cust-1"
    assert data["turns"][0]["segments"] == [{"start": 0.5, "end": 1.25}]
    assert data["dialogueSlots"][1] == {"key": "plan", "value": "gold"}


def test_saving_again_replaces_document(tmp_path):
    repo = AnnotationRepository(str(tmp_path))
    annotation = _sample()
    repo.save("cust-1", "conv-7", annotation)
    annotation.turns.pop()
    repo.save("cust-1", "conv-7", annotation)
    assert len(repo.load("cust-1", "conv-7").turns) == 1
    assert repo.list_saved() == [("cust-1", "conv-7")]


def test_missing_document(tmp_path):
    repo = AnnotationRepository(str(tmp_path))
    with pytest.raises(NotFoundError):
        repo.load("nobody", "nothing")
    fresh = repo.load_or_create("nobody", "nothing")
    assert fresh.turns == []
    assert fresh.key == ("nobody", "nothing")


def test_corrupt_document_is_a_persistence_error(tmp_path):
    repo = AnnotationRepository(str(tmp_path))
    path = repo.path_for("c", "v")
    os.makedirs(os.path.dirname(path))
    with open(path, "w", encoding="utf-8") as handle:
        handle.write("{not json")
    with pytest.raises(PersistenceError):
        repo.load("c", "v")


def test_save_failure_is_reported(tmp_path):
    blocker = tmp_path / "root"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    repo = AnnotationRepository(str(blocker))
    with pytest.raises(PersistenceError):
        repo.save("c", "v", _sample())


def test_list_and_clear(tmp_path):
    repo = AnnotationRepository(str(tmp_path / "annotations"))
    assert repo.list_saved() == []
    repo.save("b", "2", _sample())
    repo.save("a", "1", _sample())
    assert repo.list_saved() == [("a", "1"), ("b", "2")]
    assert len(repo.load_all()) == 2
    assert repo.clear_all() == 2
    assert repo.list_saved() == []


def test_older_documents_without_dialogue_only_slots():
    data = annotation_to_dict(_sample())
    del data["dialogueOnlySlots"]
    loaded = annotation_from_dict(data)
    assert loaded.dialogue_only_slots == [SlotValue("plan", "gold")]


def test_vocabulary(tmp_path):
    intents = tmp_path / "intents.txt"
    intents.write_text("greet\nask_price\n\nGoodbye\n", encoding="utf-8")
    slot_keys = tmp_path / "slots.txt"
    slot_keys.write_text("name\nplan\n", encoding="utf-8")
    vocabulary = load_vocabulary(str(intents), str(slot_keys))
    assert vocabulary.intents == ["greet", "ask_price", "Goodbye"]
    assert vocabulary.suggest_slot_keys(["name"]) == ["plan"]
    assert vocabulary.suggest_intents("g") == ["greet", "Goodbye"]
    assert vocabulary.is_known_intent("greet")
    assert load_vocabulary().intents == []


def test_read_conversation_log_skips_blank_rows(tmp_path):
    path = tmp_path / "conversation.csv"
    path.write_text(
        "speaker,text\nagent,\"Hello, how can I help?\"\n,\ncustomer,A ticket\n",
        encoding="utf-8",
    )
    rows = read_conversation_log(str(path))
    assert rows == [
        {"speaker": "agent", "text": "Hello, how can I help?"},
        {"speaker": "customer", "text": "A ticket"},
    ]


def test_document_with_segmentless_turn_is_rejected(tmp_path):
    repo = AnnotationRepository(str(tmp_path))
    data = annotation_to_dict(_sample())
    data["turns"][0]["segments"] = []
    path = repo.path_for("cust-1", "conv-7")
    os.makedirs(os.path.dirname(path))
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(data, handle)
    with pytest.raises(PersistenceError):
        repo.load("cust-1", "conv-7")
