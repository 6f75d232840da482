"""Annotation persistence and input file readers."""

from __future__ import annotations

import csv
import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from .errors import NotFoundError, PersistenceError
from .models import (
    DialogueAnnotation,
    annotation_from_dict,
    annotation_to_dict,
    empty_annotation,
)
from .storage import ANNOTATION_SUFFIX, annotation_path, ensure_dir

logger = logging.getLogger("turnmark")


def save_annotation(path: str, annotation: DialogueAnnotation) -> None:
    ensure_dir(os.path.dirname(path) or ".")
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as handle:
        json.dump(annotation_to_dict(annotation), handle, indent=2, ensure_ascii=False)
    os.replace(tmp_path, path)


def load_annotation(path: str) -> DialogueAnnotation:
    with open(path, "r", encoding="utf-8") as handle:
        return annotation_from_dict(json.load(handle))


class AnnotationRepository:
    """One JSON document per ``(customer_id, conversation_id)``."""

    def __init__(self, root: str) -> None:
        self.root = root

    def path_for(self, customer_id: str, conversation_id: str) -> str:
        return annotation_path(self.root, customer_id, conversation_id)

    def save(
        self, customer_id: str, conversation_id: str, annotation: DialogueAnnotation
    ) -> bool:
        try:
            path = self.path_for(customer_id, conversation_id)
            save_annotation(path, annotation)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Saving %s/%s failed: %s", customer_id, conversation_id, exc)
            raise PersistenceError(
                f"Could not save annotation for {customer_id}/{conversation_id}: {exc}"
            ) from exc
        logger.info("Saved annotation %s", path)
        return True

    def load(self, customer_id: str, conversation_id: str) -> DialogueAnnotation:
        path = self.path_for(customer_id, conversation_id)
        if not os.path.exists(path):
            raise NotFoundError(f"No annotation for {customer_id}/{conversation_id}.")
        try:
            return load_annotation(path)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.error("Loading %s failed: %s", path, exc)
            raise PersistenceError(f"Could not load annotation {path}: {exc}") from exc

    def load_or_create(
        self, customer_id: str, conversation_id: str
    ) -> DialogueAnnotation:
        try:
            return self.load(customer_id, conversation_id)
        except NotFoundError:
            return empty_annotation(customer_id, conversation_id)

    def exists(self, customer_id: str, conversation_id: str) -> bool:
        return os.path.exists(self.path_for(customer_id, conversation_id))

    def list_saved(self) -> List[Tuple[str, str]]:
        if not os.path.isdir(self.root):
            return []
        keys = []
        for customer_id in sorted(os.listdir(self.root)):
            customer_dir = os.path.join(self.root, customer_id)
            if not os.path.isdir(customer_dir):
                continue
            for name in sorted(os.listdir(customer_dir)):
                if name.endswith(ANNOTATION_SUFFIX):
                    keys.append((customer_id, name[: -len(ANNOTATION_SUFFIX)]))
        return keys

    def load_all(self) -> List[DialogueAnnotation]:
        return [self.load(customer, conversation) for customer, conversation in self.list_saved()]

    def clear_all(self) -> int:
        saved = self.list_saved()
        if os.path.isdir(self.root):
            try:
                shutil.rmtree(self.root)
            except OSError as exc:
                raise PersistenceError(f"Could not clear {self.root}: {exc}") from exc
        logger.info("Cleared %d saved annotations.", len(saved))
        return len(saved)


def read_text_lines(path: str) -> List[str]:
    with open(path, "r", encoding="utf-8") as handle:
        return [line.strip() for line in handle if line.strip()]


@dataclass
class Vocabulary:
    """Suggested intents and slot keys; free-form values stay allowed."""

    intents: List[str] = field(default_factory=list)
    slot_keys: List[str] = field(default_factory=list)

    def suggest_slot_keys(self, used: Iterable[str] = ()) -> List[str]:
        taken = set(used)
        return [key for key in self.slot_keys if key not in taken]

    def suggest_intents(self, prefix: str = "") -> List[str]:
        prefix = prefix.lower()
        return [intent for intent in self.intents if intent.lower().startswith(prefix)]

    def is_known_intent(self, intent: str) -> bool:
        return intent in self.intents


def load_vocabulary(
    intents_path: str | None = None, slot_keys_path: str | None = None
) -> Vocabulary:
    return Vocabulary(
        intents=read_text_lines(intents_path) if intents_path else [],
        slot_keys=read_text_lines(slot_keys_path) if slot_keys_path else [],
    )


def read_conversation_log(path: str) -> List[Dict[str, str]]:
    with open(path, "r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        return [
            dict(row)
            for row in reader
            if any(isinstance(value, str) and value.strip() for value in row.values())
        ]
