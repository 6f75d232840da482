"""Bulk CSV export of annotations."""

from __future__ import annotations

import csv
import io
import json
import logging
from typing import Iterable, List

from .models import DialogueAnnotation, slot_to_dict
from .renderer import ANNOTATION_WINDOW_S

logger = logging.getLogger("turnmark")

EXPORT_COLUMNS = [
    "customerId",
    "conversationId",
    "turnIndex",
    "utteranceStart",
    "utteranceEnd",
    "segmentStart",
    "segmentEnd",
    "intent",
    "turnSlots",
    "dialogueSlots",
]


def format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


def _slots_json(slots) -> str:
    return json.dumps(
        [slot_to_dict(slot) for slot in slots], ensure_ascii=False, separators=(",", ":")
    )


def annotation_rows(
    annotation: DialogueAnnotation, window_s: float = ANNOTATION_WINDOW_S
) -> List[list]:
    rows = []
    dialogue_slots = _slots_json(annotation.dialogue_slots)
    for turn_index, turn in enumerate(annotation.turns):
        if not turn.segments:
            logger.warning(
                "Skipping turn %d of %s/%s without a segment.",
                turn_index,
                annotation.customer_id,
                annotation.conversation_id,
            )
            continue
        segment = turn.segment
        rows.append(
            [
                annotation.customer_id,
                annotation.conversation_id,
                str(turn_index),
                format_number(segment.start),
                format_number(segment.end),
                format_number(round(max(0.0, segment.end - window_s), 6)),
                format_number(round(segment.end + window_s, 6)),
                turn.intent,
                _slots_json(turn.slots),
                dialogue_slots,
            ]
        )
    return rows


def export_annotations(
    annotations: Iterable[DialogueAnnotation], window_s: float = ANNOTATION_WINDOW_S
) -> str:
    """One CSV row per turn; the segment window brackets the utterance end."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for annotation in annotations:
        writer.writerows(annotation_rows(annotation, window_s))
    return buffer.getvalue()


def write_export(
    path: str,
    annotations: Iterable[DialogueAnnotation],
    window_s: float = ANNOTATION_WINDOW_S,
) -> int:
    annotations = list(annotations)
    text = export_annotations(annotations, window_s)
    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write(text)
    count = sum(len(a.turns) for a in annotations)
    logger.info("Exported %d turns to %s", count, path)
    return count
