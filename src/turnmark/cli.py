"""CLI entry point."""

from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional, Tuple

from .audio_utils import convert_directory_to_mono, get_duration
from .config import Config, load_config, save_config
from .engine import AnnotationEngine
from .errors import InvalidSegmentError, NotFoundError, PersistenceError
from .export import write_export
from .logging_utils import setup_logging
from .navigator import ConversationNavigator
from .renderer import render_timeline
from .session_io import AnnotationRepository, load_vocabulary
from .storage import AUDIO_FILENAME, build_export_basename, scan_directory

DEFAULT_CONFIG = "turnmark_config.yml"


def _parse_slot(text: str) -> Tuple[str, str]:
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"Slots look like key=value, got {text!r}")
    key, value = text.split("=", 1)
    return key.strip(), value.strip()


def _load(args) -> Config:
    if args.config and os.path.exists(args.config):
        cfg = load_config(args.config)
    else:
        cfg = Config()
    if getattr(args, "data_dir", None):
        cfg.data_dir = args.data_dir
    if getattr(args, "annotations_dir", None):
        cfg.annotations_dir = args.annotations_dir
    return cfg


def _open_engine(
    cfg: Config, repo: AnnotationRepository, customer_id: str, conversation_id: str
) -> AnnotationEngine:
    annotation = repo.load_or_create(customer_id, conversation_id)
    audio_path = os.path.join(cfg.data_dir, customer_id, conversation_id, AUDIO_FILENAME)
    duration = get_duration(audio_path) if os.path.exists(audio_path) else None
    return AnnotationEngine(
        annotation,
        duration=duration,
        window_s=cfg.display.annotation_window_s,
        select_inserted=cfg.display.select_inserted_turn,
    )


def _save(repo: AnnotationRepository, engine: AnnotationEngine) -> int:
    annotation = engine.annotation
    try:
        repo.save(annotation.customer_id, annotation.conversation_id, annotation)
    except PersistenceError as exc:
        print(f"Save failed: {exc}")
        return 1
    engine.mark_saved()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="turnmark")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config file.")
    parser.add_argument("--data-dir", help="Conversation data directory.")
    parser.add_argument("--annotations-dir", help="Saved annotation directory.")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("scan", help="List conversations and progress.")

    mono_cmd = sub.add_parser("mono", help="Write audio_processed.wav from audio.wav.")
    mono_cmd.add_argument("subdir", nargs="?", help="Only this folder under data.")

    show_cmd = sub.add_parser("show", help="Print a saved annotation.")
    show_cmd.add_argument("customer_id")
    show_cmd.add_argument("conversation_id")

    add_cmd = sub.add_parser("add-turn", help="Mark an utterance and annotate it.")
    add_cmd.add_argument("customer_id")
    add_cmd.add_argument("conversation_id")
    add_cmd.add_argument("start", type=float, help="Utterance start (s).")
    add_cmd.add_argument("end", type=float, help="Utterance end (s).")
    add_cmd.add_argument("--intent", default="", help="Dialogue act.")
    add_cmd.add_argument(
        "--slot", action="append", type=_parse_slot, default=[], help="key=value"
    )

    del_cmd = sub.add_parser("delete-turn", help="Remove a turn and its segment.")
    del_cmd.add_argument("customer_id")
    del_cmd.add_argument("conversation_id")
    del_cmd.add_argument("turn", type=int, help="1-based turn number.")

    dslot_cmd = sub.add_parser("dialogue-slot", help="Add a dialogue-level slot.")
    dslot_cmd.add_argument("customer_id")
    dslot_cmd.add_argument("conversation_id")
    dslot_cmd.add_argument("slot", type=_parse_slot, help="key=value")

    export_cmd = sub.add_parser("export", help="Write every saved annotation to CSV.")
    export_cmd.add_argument("--out", help="CSV path.")

    clear_cmd = sub.add_parser("clear", help="Delete all saved annotations.")
    clear_cmd.add_argument("--yes", action="store_true", help="Do not ask.")

    sub.add_parser("vocab", help="Show intent and slot key suggestions.")
    sub.add_parser("config", help="Write a default config file.")

    args = parser.parse_args(argv)
    cfg = _load(args)
    _logger, log_path = setup_logging(
        cfg.log_dir, level=logging.DEBUG if cfg.debug else logging.INFO
    )
    repo = AnnotationRepository(cfg.annotations_dir)

    if args.command == "scan":
        conversations = scan_directory(cfg.data_dir)
        navigator = ConversationNavigator(conversations, repo, duration_probe=None)
        saved = set(repo.list_saved())
        for conv in conversations:
            mark = "x" if (conv.customer_id, conv.conversation_id) in saved else " "
            print(f"[{mark}] {conv.customer_id}/{conv.conversation_id}")
        progress = navigator.progress()
        print(f"Progress: {progress.completed}/{progress.total} ({progress.percent:.0f}%)")
        return 0

    if args.command == "mono":
        target = cfg.data_dir
        if args.subdir:
            target = os.path.join(cfg.data_dir, args.subdir)
        if not os.path.isdir(target):
            print(f"Directory not found: {target}")
            return 1
        written = convert_directory_to_mono(target)
        print(f"Converted {len(written)} file(s).")
        return 0

    if args.command == "show":
        try:
            annotation = repo.load(args.customer_id, args.conversation_id)
        except NotFoundError:
            print("No saved annotation.")
            return 1
        except PersistenceError as exc:
            print(f"Load failed: {exc}")
            return 1
        print(render_timeline(annotation))
        return 0

    if args.command in ("add-turn", "delete-turn", "dialogue-slot"):
        try:
            engine = _open_engine(cfg, repo, args.customer_id, args.conversation_id)
        except (PersistenceError, InvalidSegmentError) as exc:
            print(f"Load failed: {exc}")
            return 1

        if args.command == "add-turn":
            engine.enter_annotation_mode()
            engine.on_click(args.start)
            if not engine.on_click(args.end):
                print("End must be after start.")
                return 1
            try:
                result = engine.confirm()
            except InvalidSegmentError as exc:
                print(f"Rejected: {exc}")
                return 1
            index = result.inserted_index if result else None
            if index is None:
                print("Nothing committed.")
                return 1
            engine.set_intent(args.intent, index)
            for key, value in args.slot:
                engine.attach_slot(key, value, index)
            print(f"Added turn {index + 1} of {len(engine.annotation.turns)}.")
        elif args.command == "delete-turn":
            try:
                engine.delete_turn(args.turn - 1)
            except IndexError:
                print(f"No turn {args.turn}.")
                return 1
            print(f"Deleted turn {args.turn}.")
        else:
            key, value = args.slot
            if not engine.add_dialogue_slot(key, value):
                print(f"{key}={value} is already a dialogue slot.")
            print(f"Dialogue slots: {len(engine.annotation.dialogue_slots)}")
        return _save(repo, engine)

    if args.command == "export":
        out = args.out or cfg.export_path or f"{build_export_basename()}.csv"
        try:
            annotations = repo.load_all()
        except PersistenceError as exc:
            print(f"Load failed: {exc}")
            return 1
        count = write_export(out, annotations, cfg.display.annotation_window_s)
        print(f"Exported {count} turn(s) to {out}")
        return 0

    if args.command == "clear":
        if not args.yes:
            answer = input(f"Delete all annotations in {cfg.annotations_dir}? [y/N] ")
            if answer.strip().lower() != "y":
                return 0
        removed = repo.clear_all()
        print(f"Removed {removed} annotation(s).")
        return 0

    if args.command == "vocab":
        vocabulary = load_vocabulary(cfg.intents_path, cfg.slot_keys_path)
        print(f"Intents ({len(vocabulary.intents)}): {', '.join(vocabulary.intents)}")
        print(f"Slot keys ({len(vocabulary.slot_keys)}): {', '.join(vocabulary.slot_keys)}")
        return 0

    if args.command == "config":
        if os.path.exists(args.config):
            print(f"{args.config} already exists.")
            return 1
        save_config(args.config, cfg)
        print(f"Wrote {args.config}")
        return 0

    parser.print_help()
    print(f"Log: {log_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
