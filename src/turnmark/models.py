"""Data models for turnmark."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Segment:
    start: float
    end: float


@dataclass
class SlotValue:
    key: str
    value: str


@dataclass
class Turn:
    segments: List[Segment] = field(default_factory=list)
    intent: str = ""
    slots: List[SlotValue] = field(default_factory=list)

    @property
    def segment(self) -> Segment:
        return self.segments[0]


@dataclass
class DialogueAnnotation:
    customer_id: str
    conversation_id: str
    turns: List[Turn] = field(default_factory=list)
    dialogue_slots: List[SlotValue] = field(default_factory=list)
    dialogue_only_slots: List[SlotValue] = field(default_factory=list)

    @property
    def key(self) -> tuple:
        return (self.customer_id, self.conversation_id)

    def segments(self) -> List[Segment]:
        return [turn.segment for turn in self.turns if turn.segments]


@dataclass
class ConversationData:
    customer_id: str
    conversation_id: str
    audio_path: str
    conversation_log_path: str


@dataclass
class AnnotationProgress:
    total: int
    completed: int

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.completed / self.total * 100.0


@dataclass
class ProvisionalPair:
    start: Optional[float] = None
    end: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None

    @property
    def is_complete(self) -> bool:
        return self.start is not None and self.end is not None


def slot_to_dict(slot: SlotValue) -> Dict[str, str]:
    return {"key": slot.key, "value": slot.value}


def slot_from_dict(data: Dict[str, Any]) -> SlotValue:
    return SlotValue(key=str(data["key"]), value=str(data["value"]))


def segment_to_dict(segment: Segment) -> Dict[str, float]:
    return {"start": segment.start, "end": segment.end}


def segment_from_dict(data: Dict[str, Any]) -> Segment:
    return Segment(start=float(data["start"]), end=float(data["end"]))


def annotation_to_dict(annotation: DialogueAnnotation) -> Dict[str, Any]:
    return {
        "customerId": annotation.customer_id,
        "conversationId": annotation.conversation_id,
        "turns": [
            {
                "segments": [segment_to_dict(seg) for seg in turn.segments],
                "intent": turn.intent,
                "slots": [slot_to_dict(slot) for slot in turn.slots],
            }
            for turn in annotation.turns
        ],
        "dialogueSlots": [slot_to_dict(slot) for slot in annotation.dialogue_slots],
        "dialogueOnlySlots": [
            slot_to_dict(slot) for slot in annotation.dialogue_only_slots
        ],
    }


def annotation_from_dict(data: Dict[str, Any]) -> DialogueAnnotation:
    turns = [
        Turn(
            segments=[segment_from_dict(seg) for seg in item.get("segments", [])],
            intent=item.get("intent", "") or "",
            slots=[slot_from_dict(slot) for slot in item.get("slots", [])],
        )
        for item in data.get("turns", [])
    ]
    for index, turn in enumerate(turns):
        if len(turn.segments) != 1:
            raise ValueError(
                f"Turn {index} has {len(turn.segments)} segments; exactly one is required."
            )
    dialogue_slots = [slot_from_dict(s) for s in data.get("dialogueSlots", [])]
    if "dialogueOnlySlots" in data:
        dialogue_only = [slot_from_dict(s) for s in data["dialogueOnlySlots"]]
    else:
        # Older documents only carry the merged list.
        from_turns = {(s.key, s.value) for turn in turns for s in turn.slots}
        dialogue_only = [
            s for s in dialogue_slots if (s.key, s.value) not in from_turns
        ]
    return DialogueAnnotation(
        customer_id=str(data["customerId"]),
        conversation_id=str(data["conversationId"]),
        turns=turns,
        dialogue_slots=dialogue_slots,
        dialogue_only_slots=dialogue_only,
    )


def empty_annotation(customer_id: str, conversation_id: str) -> DialogueAnnotation:
    return DialogueAnnotation(customer_id=customer_id, conversation_id=conversation_id)
