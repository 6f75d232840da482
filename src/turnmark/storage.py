"""Directory layout and naming utilities."""

from __future__ import annotations

import os
from datetime import datetime
from typing import List

from .models import ConversationData

AUDIO_FILENAME = "audio_processed.wav"
RAW_AUDIO_FILENAME = "audio.wav"
CONVERSATION_LOG_FILENAME = "conversation.csv"
ANNOTATION_SUFFIX = ".annotation.json"


def timestamp_slug(dt: datetime | None = None) -> str:
    now = dt or datetime.now()
    return now.strftime("%Y-%m-%d")


def build_export_basename(dt: datetime | None = None) -> str:
    return f"{timestamp_slug(dt)}--annotations"


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def sanitize_component(name: str) -> str:
    value = (name or "").strip()
    if not value or value in (".", ".."):
        raise ValueError(f"Invalid path component: {name!r}")
    return value.replace("/", "_").replace("\\", "_")


def annotation_path(root: str, customer_id: str, conversation_id: str) -> str:
    return os.path.join(
        root,
        sanitize_component(customer_id),
        f"{sanitize_component(conversation_id)}{ANNOTATION_SUFFIX}",
    )


def _subdirs(path: str) -> List[str]:
    return sorted(
        name for name in os.listdir(path) if os.path.isdir(os.path.join(path, name))
    )


def scan_directory(data_dir: str) -> List[ConversationData]:
    """Find ``<customer>/<conversation>/`` folders ready for annotation.

    A conversation folder qualifies when it holds both the processed audio
    and the conversation log; anything else is skipped.
    """
    conversations: List[ConversationData] = []
    if not os.path.isdir(data_dir):
        return conversations
    for customer_id in _subdirs(data_dir):
        customer_dir = os.path.join(data_dir, customer_id)
        for conversation_id in _subdirs(customer_dir):
            folder = os.path.join(customer_dir, conversation_id)
            audio_path = os.path.join(folder, AUDIO_FILENAME)
            log_path = os.path.join(folder, CONVERSATION_LOG_FILENAME)
            if os.path.isfile(audio_path) and os.path.isfile(log_path):
                conversations.append(
                    ConversationData(
                        customer_id=customer_id,
                        conversation_id=conversation_id,
                        audio_path=audio_path,
                        conversation_log_path=log_path,
                    )
                )
    return conversations


def find_raw_audio(data_dir: str) -> List[str]:
    found = []
    for dirpath, _dirnames, filenames in os.walk(data_dir):
        if RAW_AUDIO_FILENAME in filenames:
            found.append(os.path.join(dirpath, RAW_AUDIO_FILENAME))
    return sorted(found)
