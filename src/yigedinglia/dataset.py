from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, Mapping

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
)

from .chain import IdiomEntry

__all__ = [
    "DEFAULT_DATASET_URL",
    "DATASET_ENV_VAR",
    "DatasetError",
    "parse_idioms",
    "load_idioms",
    "fetch_idioms",
    "resolve_dataset_source",
    "load_dataset",
]

DEFAULT_DATASET_URL = "https://cdn.jsdelivr.net/gh/pwxcoo/chinese-xinhua/data/idiom.json"
DATASET_ENV_VAR = "YIGEDINGLIA_DATA"


class DatasetError(RuntimeError):
    """Raised when the idiom dataset cannot be read or downloaded."""


def parse_idioms(payload: object) -> list[IdiomEntry]:
    if not isinstance(payload, list):
        raise DatasetError("Idiom dataset must be a JSON array of objects.")
    return list(_iter_entries(payload))


def _iter_entries(items: Iterable[object]) -> Iterable[IdiomEntry]:
    for item in items:
        if not isinstance(item, Mapping):
            continue
        word = item.get("word")
        if not isinstance(word, str):
            word = ""
        pinyin = item.get("pinyin")
        if not isinstance(pinyin, str):
            pinyin = ""
        extras = {key: value for key, value in item.items() if key not in {"word", "pinyin"}}
        yield IdiomEntry(word=word, pinyin=pinyin, extras=extras)


def load_idioms(path: Path) -> list[IdiomEntry]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DatasetError(f"Idiom dataset not found: {path}") from exc
    except UnicodeDecodeError as exc:
        raise DatasetError(f"Idiom dataset {path} is not UTF-8: {exc}") from exc
    except OSError as exc:
        raise DatasetError(f"Cannot read idiom dataset {path}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DatasetError(f"Invalid JSON in idiom dataset {path}: {exc}") from exc
    return parse_idioms(payload)


def fetch_idioms(url: str = DEFAULT_DATASET_URL, *, timeout: float = 60.0) -> list[IdiomEntry]:
    try:
        response = requests.get(url, stream=True, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise DatasetError(f"Failed to download idiom dataset: {exc}") from exc

    total = response.headers.get("Content-Length")
    total_bytes = int(total) if total and total.isdigit() else None
    progress = Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TimeRemainingColumn(),
        transient=True,
    )
    chunks: list[bytes] = []
    try:
        with progress:
            task = progress.add_task("Downloading idiom dataset", total=total_bytes)
            for chunk in response.iter_content(chunk_size=256 * 1024):
                if not chunk:
                    continue
                chunks.append(chunk)
                progress.advance(task, len(chunk))
    except requests.RequestException as exc:
        raise DatasetError(f"Failed to download idiom dataset: {exc}") from exc

    try:
        payload = json.loads(b"".join(chunks).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DatasetError(f"Invalid JSON from {url}: {exc}") from exc
    return parse_idioms(payload)


def resolve_dataset_source(explicit: str | None = None) -> str:
    if explicit:
        return explicit
    env_source = os.environ.get(DATASET_ENV_VAR)
    if env_source:
        return env_source
    return DEFAULT_DATASET_URL


def load_dataset(source: str | None = None) -> list[IdiomEntry]:
    """Load idioms from a URL or a local JSON file."""
    resolved = resolve_dataset_source(source)
    if resolved.startswith(("http://", "https://")):
        return fetch_idioms(resolved)
    return load_idioms(Path(resolved).expanduser())
