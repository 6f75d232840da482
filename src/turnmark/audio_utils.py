"""Audio helpers."""

from __future__ import annotations

import logging
import os
import wave
from typing import List, Tuple

import numpy as np
import soundfile as sf

from .storage import AUDIO_FILENAME, find_raw_audio

logger = logging.getLogger("turnmark")


def read_pcm16(path: str) -> Tuple[np.ndarray, int]:
    """Return ``(frames, rate)`` with frames shaped ``(n, channels)``."""
    with wave.open(path, "rb") as handle:
        channels = handle.getnchannels()
        if handle.getsampwidth() != 2:
            raise ValueError(f"{path}: only 16-bit PCM can be converted.")
        rate = handle.getframerate()
        raw = handle.readframes(handle.getnframes())
    return np.frombuffer(raw, dtype=np.int16).reshape(-1, channels), rate


def write_pcm16(path: str, frames: np.ndarray, rate: int) -> None:
    if frames.ndim == 1:
        frames = frames.reshape(-1, 1)
    with wave.open(path, "wb") as out:
        out.setnchannels(frames.shape[1])
        out.setsampwidth(2)
        out.setframerate(rate)
        out.writeframes(np.ascontiguousarray(frames, dtype=np.int16).tobytes())


def convert_to_mono(input_path: str, output_path: str, channel: int = 0) -> int:
    """Keep one channel of a recording; returns the number of frames written.

    Call recordings put one speaker per channel, and only the first one is
    annotated.
    """
    frames, rate = read_pcm16(input_path)
    if not 0 <= channel < frames.shape[1]:
        raise ValueError(f"{input_path} has no channel {channel}.")
    write_pcm16(output_path, frames[:, channel], rate)
    return frames.shape[0]


def convert_directory_to_mono(data_dir: str) -> List[str]:
    written = []
    for raw_path in find_raw_audio(data_dir):
        output_path = os.path.join(os.path.dirname(raw_path), AUDIO_FILENAME)
        logger.info("Converting %s", raw_path)
        convert_to_mono(raw_path, output_path)
        written.append(output_path)
    return written


def get_duration(audio_path: str) -> float:
    info = sf.info(audio_path)
    return float(info.frames) / float(info.samplerate)
