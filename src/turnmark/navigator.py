"""Moving between conversations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .audio_utils import get_duration
from .engine import AnnotationEngine
from .errors import InvalidSegmentError, PersistenceError
from .models import AnnotationProgress, ConversationData
from .renderer import ANNOTATION_WINDOW_S, WaveformView
from .session_io import AnnotationRepository, read_conversation_log

logger = logging.getLogger("turnmark")


@dataclass
class SaveOutcome:
    saved: bool
    error: Optional[str] = None


@dataclass
class NavigationResult:
    index: int
    moved: bool
    save: Optional[SaveOutcome] = None
    error: Optional[str] = None


class ConversationNavigator:
    """Opens one conversation at a time and saves before leaving it.

    Only one engine is live at any moment. Moving to another conversation
    first saves the current one and waits for the outcome; a failed save is
    reported in the result but does not block the move.
    """

    def __init__(
        self,
        conversations: List[ConversationData],
        repository: AnnotationRepository,
        view_factory: Optional[Callable[[ConversationData], WaveformView]] = None,
        duration_probe: Optional[Callable[[str], Optional[float]]] = get_duration,
        window_s: float = ANNOTATION_WINDOW_S,
        select_inserted: bool = True,
    ) -> None:
        self.conversations = list(conversations)
        self.repository = repository
        self.view_factory = view_factory
        self.duration_probe = duration_probe
        self.window_s = window_s
        self.select_inserted = select_inserted
        self.index = 0
        self.engine: Optional[AnnotationEngine] = None
        self.conversation_log: List[Dict[str, str]] = []
        self.last_error: Optional[str] = None

    @property
    def current(self) -> Optional[ConversationData]:
        if not self.conversations:
            return None
        return self.conversations[self.index]

    def _build_engine(
        self,
        annotation,
        view: Optional[WaveformView],
        duration: Optional[float],
    ) -> AnnotationEngine:
        return AnnotationEngine(
            annotation,
            view=view,
            duration=duration,
            window_s=self.window_s,
            select_inserted=self.select_inserted,
        )

    def open(self, index: int = 0) -> AnnotationEngine:
        if not 0 <= index < len(self.conversations):
            raise IndexError(f"Conversation {index} does not exist.")
        conversation = self.conversations[index]
        annotation = self.repository.load_or_create(
            conversation.customer_id, conversation.conversation_id
        )
        duration = None
        if self.duration_probe is not None:
            duration = self.duration_probe(conversation.audio_path)
        view = self.view_factory(conversation) if self.view_factory else None
        try:
            self.engine = self._build_engine(annotation, view, duration)
        except InvalidSegmentError as exc:
            if duration is None:
                raise
            # Saved segments may end a little past a re-encoded recording.
            self.last_error = str(exc)
            logger.warning(
                "Ignoring the %.3fs recording length for %s/%s: %s",
                duration,
                conversation.customer_id,
                conversation.conversation_id,
                exc,
            )
            self.engine = self._build_engine(annotation, view, None)
        self.conversation_log = read_conversation_log(conversation.conversation_log_path)
        self.index = index
        logger.info(
            "Opened %s/%s (%d turns).",
            conversation.customer_id,
            conversation.conversation_id,
            len(annotation.turns),
        )
        return self.engine

    def save(self) -> SaveOutcome:
        if self.engine is None:
            return SaveOutcome(saved=False, error="No conversation is open.")
        annotation = self.engine.annotation
        try:
            self.repository.save(
                annotation.customer_id, annotation.conversation_id, annotation
            )
        except PersistenceError as exc:
            self.last_error = str(exc)
            return SaveOutcome(saved=False, error=str(exc))
        self.engine.mark_saved()
        self.last_error = None
        return SaveOutcome(saved=True)

    def _go(self, target: int) -> NavigationResult:
        if not 0 <= target < len(self.conversations):
            return NavigationResult(index=self.index, moved=False)
        outcome = None
        if self.engine is not None and self.engine.dirty:
            outcome = self.save()
            if not outcome.saved:
                logger.warning("Leaving conversation with unsaved changes: %s", outcome.error)
        try:
            self.open(target)
        except (PersistenceError, InvalidSegmentError) as exc:
            self.last_error = str(exc)
            logger.error("Could not open conversation %d: %s", target, exc)
            return NavigationResult(index=self.index, moved=False, save=outcome, error=str(exc))
        return NavigationResult(index=target, moved=True, save=outcome)

    def next(self) -> NavigationResult:
        return self._go(self.index + 1)

    def previous(self) -> NavigationResult:
        return self._go(self.index - 1)

    def go_to(self, index: int) -> NavigationResult:
        return self._go(index)

    def progress(self) -> AnnotationProgress:
        saved = set(self.repository.list_saved())
        completed = sum(
            1
            for conv in self.conversations
            if (conv.customer_id, conv.conversation_id) in saved
        )
        return AnnotationProgress(total=len(self.conversations), completed=completed)
