"""Turn metadata and dialogue-level slot aggregation."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .models import DialogueAnnotation, Segment, SlotValue, Turn

logger = logging.getLogger("turnmark")


def dedupe_slots(slots: Iterable[SlotValue]) -> List[SlotValue]:
    seen = set()
    output: List[SlotValue] = []
    for slot in slots:
        marker = (slot.key, slot.value)
        if marker in seen:
            continue
        seen.add(marker)
        output.append(SlotValue(key=slot.key, value=slot.value))
    return output


def upsert_slot(slots: List[SlotValue], slot: SlotValue) -> List[SlotValue]:
    updated = list(slots)
    for idx, existing in enumerate(updated):
        if existing.key == slot.key:
            updated[idx] = SlotValue(key=slot.key, value=slot.value)
            return updated
    updated.append(SlotValue(key=slot.key, value=slot.value))
    return updated


class TurnAggregator:
    """Owns the turn list of one annotation.

    Turns are bound to committed segments by position. Dialogue slots are
    derived: after any slot mutation they are rebuilt as the turn slots in
    turn order followed by the dialogue-only slots, deduplicated by
    ``(key, value)``.
    """

    def __init__(self, annotation: DialogueAnnotation) -> None:
        self.annotation = annotation
        self.dirty = False
        self.refresh_dialogue_slots()

    @property
    def turns(self) -> List[Turn]:
        return self.annotation.turns

    def _turn(self, turn_index: int) -> Turn:
        if turn_index < 0 or turn_index >= len(self.turns):
            raise IndexError(f"Turn {turn_index} does not exist.")
        return self.turns[turn_index]

    def _touch(self) -> None:
        self.dirty = True

    def refresh_dialogue_slots(self) -> List[SlotValue]:
        merged = [slot for turn in self.turns for slot in turn.slots]
        merged.extend(self.annotation.dialogue_only_slots)
        self.annotation.dialogue_slots = dedupe_slots(merged)
        return self.annotation.dialogue_slots

    def set_intent(self, turn_index: int, intent: str) -> None:
        self._turn(turn_index).intent = intent
        self._touch()

    def attach_slot(self, turn_index: int, slot: SlotValue) -> None:
        turn = self._turn(turn_index)
        turn.slots = upsert_slot(turn.slots, slot)
        self.refresh_dialogue_slots()
        self._touch()

    def remove_slot(self, turn_index: int, slot_index: int) -> SlotValue:
        turn = self._turn(turn_index)
        if slot_index < 0 or slot_index >= len(turn.slots):
            raise IndexError(f"Turn {turn_index} has no slot {slot_index}.")
        removed = turn.slots.pop(slot_index)
        self.refresh_dialogue_slots()
        self._touch()
        return removed

    def reorder_slot(self, turn_index: int, from_index: int, to_index: int) -> None:
        turn = self._turn(turn_index)
        if not 0 <= from_index < len(turn.slots):
            raise IndexError(f"Turn {turn_index} has no slot {from_index}.")
        slot = turn.slots.pop(from_index)
        to_index = max(0, min(to_index, len(turn.slots)))
        turn.slots.insert(to_index, slot)
        self.refresh_dialogue_slots()
        self._touch()

    def add_dialogue_slot(self, slot: SlotValue) -> bool:
        """Append a dialogue-level slot; returns False for an exact duplicate.

        Unlike turn slots, a key may hold several values here.
        """
        extras = self.annotation.dialogue_only_slots
        if any((s.key, s.value) == (slot.key, slot.value) for s in extras):
            return False
        self.annotation.dialogue_only_slots = extras + [SlotValue(slot.key, slot.value)]
        self.refresh_dialogue_slots()
        self._touch()
        return True

    def reorder_dialogue_slot(self, from_index: int, to_index: int) -> None:
        """Move a slot within the dialogue-only list."""
        extras = list(self.annotation.dialogue_only_slots)
        if not 0 <= from_index < len(extras):
            raise IndexError(f"No dialogue-only slot {from_index}.")
        slot = extras.pop(from_index)
        extras.insert(max(0, min(to_index, len(extras))), slot)
        self.annotation.dialogue_only_slots = extras
        self.refresh_dialogue_slots()
        self._touch()

    def remove_dialogue_slot(self, slot_index: int) -> SlotValue:
        """Remove a dialogue slot by its position in ``dialogue_slots``.

        Only dialogue-only slots can be removed this way; a slot contributed
        by a turn comes back on the next refresh, so it has to be removed
        from the turn instead.
        """
        slots = self.annotation.dialogue_slots
        if slot_index < 0 or slot_index >= len(slots):
            raise IndexError(f"No dialogue slot {slot_index}.")
        target = slots[slot_index]
        remaining = [
            slot
            for slot in self.annotation.dialogue_only_slots
            if (slot.key, slot.value) != (target.key, target.value)
        ]
        if len(remaining) == len(self.annotation.dialogue_only_slots):
            raise ValueError(
                f"Dialogue slot {target.key}={target.value} comes from a turn."
            )
        self.annotation.dialogue_only_slots = remaining
        self.refresh_dialogue_slots()
        self._touch()
        return target

    def delete_turn(self, turn_index: int) -> Turn:
        self._turn(turn_index)
        removed = self.turns.pop(turn_index)
        self.refresh_dialogue_slots()
        self._touch()
        if removed.segments:
            logger.info(
                "Deleted turn %d (%.3f-%.3fs).",
                turn_index,
                removed.segment.start,
                removed.segment.end,
            )
        else:
            logger.info("Deleted turn %d (no segment).", turn_index)
        return removed

    def apply_order(
        self, segments: Sequence[Segment], origins: Sequence[Optional[int]]
    ) -> None:
        """Rebuild the turn list for a new segment order.

        ``origins[i]`` is the previous index of ``segments[i]``; positions
        without one get a fresh, empty turn.
        """
        if len(segments) != len(origins):
            raise ValueError("Each segment needs an origin entry.")
        rebuilt: List[Turn] = []
        for segment, origin in zip(segments, origins):
            if origin is None or origin >= len(self.turns):
                turn = Turn()
            else:
                previous = self.turns[origin]
                turn = Turn(intent=previous.intent, slots=list(previous.slots))
            turn.segments = [Segment(segment.start, segment.end)]
            rebuilt.append(turn)
        self.annotation.turns = rebuilt
        self.refresh_dialogue_slots()
        self._touch()
