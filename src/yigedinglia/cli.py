from __future__ import annotations

import argparse
import json
import random
import socket
import sys
from importlib import metadata
from pathlib import Path
from typing import Sequence

import tomllib
import uvicorn
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .chain import (
    IDIOM_LENGTH,
    TARGET_WORD,
    ChainIndex,
    IdiomEntry,
    build_chain_index,
    resolve_chain,
    set_debug_logging,
)
from .dataset import DATASET_ENV_VAR, DatasetError, load_dataset
from .logging_utils import build_uvicorn_log_config
from .web import WebConfig, create_app


def _read_local_version() -> str | None:
    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    except IndexError:  # pragma: no cover - defensive
        return None
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("yigedinglia")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"yigedinglia {__version__}",
    )


def _add_data_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-d",
        "--data",
        help=(
            "Idiom dataset: a local JSON file or an http(s) URL "
            f"(default: ${DATASET_ENV_VAR}, then the chinese-xinhua idiom.json)."
        ),
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description=f"Chain four-character idioms to “{TARGET_WORD}”. "
        "Use `yigedinglia stats` or `yigedinglia web` for the other commands.",
    )
    _add_version_flag(ap)
    ap.add_argument("words", nargs="+", help="One or more four-character idioms to start from.")
    _add_data_flag(ap)
    ap.add_argument(
        "--seed",
        type=int,
        help="Seed for picking among equally short continuations (default: random).",
    )
    ap.add_argument(
        "--json",
        action="store_true",
        help="Print chains as JSON instead of one idiom per line.",
    )
    ap.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging while levelling the index.",
    )
    return ap


def build_stats_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Show how many idioms sit at each distance from the target.")
    _add_version_flag(ap)
    _add_data_flag(ap)
    return ap


def build_web_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description=f"Serve the “{TARGET_WORD}” chaining page.")
    _add_version_flag(ap)
    _add_data_flag(ap)
    ap.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host interface for the web server (default: 0.0.0.0).",
    )
    ap.add_argument(
        "--port",
        type=int,
        default=2046,
        help="Port for the web server (default: 2046).",
    )
    ap.add_argument(
        "--seed",
        type=int,
        help="Seed for the server's continuation picker (default: random).",
    )
    return ap


def _load_entries(source: str | None) -> list[IdiomEntry]:
    try:
        return load_dataset(source)
    except DatasetError as exc:
        raise SystemExit(str(exc)) from exc


def _build_index(entries: Sequence[IdiomEntry], console: Console) -> ChainIndex:
    total = sum(1 for entry in entries if len(entry.word) == IDIOM_LENGTH)
    if not console.is_terminal or total == 0:
        return build_chain_index(entries)
    progress = Progress(
        TextColumn("{task.description}", justify="left"),
        BarColumn(bar_width=None),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    with progress:
        task = progress.add_task("Levelling idioms", total=total)

        def _on_level(level: int, assigned: int) -> None:
            progress.update(task, advance=assigned, description=f"Levelling idioms (level {level})")

        return build_chain_index(entries, on_level=_on_level)


def _explain_missing(index: ChainIndex, word: str) -> str:
    if len(word) != IDIOM_LENGTH or index.lookup(word) is None:
        return f"{word}: not a four-character idiom in the dataset"
    return f"{word}: cannot chain to {TARGET_WORD}"


def _run_chain(args: argparse.Namespace) -> int:
    set_debug_logging(bool(args.debug))
    err_console = Console(stderr=True)
    index = _build_index(_load_entries(args.data), err_console)
    rng = random.Random(args.seed)

    results: list[dict[str, object]] = []
    exit_code = 0
    for raw_word in args.words:
        word = raw_word.strip()
        chain = resolve_chain(word, index, rng=rng)
        results.append({"word": word, "chain": [link.to_dict() for link in chain]})
        if not chain:
            exit_code = 1
            err_console.print(f"[red]{_explain_missing(index, word)}[/red]")

    if args.json:
        print(json.dumps(results, ensure_ascii=False, indent=2))
        return exit_code

    console = Console()
    first = True
    for result in results:
        links = result["chain"]
        if not links:
            continue
        if not first:
            console.print()
        first = False
        for position, link in enumerate(links, start=1):
            console.print(f"{position:>2}. {link['word']}（{link['pinyin']}）", highlight=False)
    return exit_code


def _run_stats(args: argparse.Namespace) -> int:
    err_console = Console(stderr=True)
    index = _build_index(_load_entries(args.data), err_console)
    counts = index.level_counts()
    unreachable = counts.pop(None, 0)

    table = Table(title=f"Distance to {TARGET_WORD}")
    table.add_column("Level", justify="right")
    table.add_column("Idioms", justify="right")
    for level in sorted(counts):
        table.add_row(str(level), str(counts[level]))
    table.add_section()
    table.add_row("unreachable", str(unreachable))
    table.add_row("skipped", str(index.skipped))
    Console().print(table)
    return 0


def _resolve_local_ip(host: str) -> str:
    if host not in {"", "0.0.0.0"}:
        return host
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            return sock.getsockname()[0]
    except OSError:
        return "127.0.0.1"


def _run_web(args: argparse.Namespace) -> None:
    config = WebConfig(source=args.data, seed=args.seed)
    entries = _load_entries(args.data)
    app = create_app(config, entries=entries)
    url = f"http://{_resolve_local_ip(args.host)}:{args.port}/"
    print(f"Indexed {len(app.state.index)} idioms")
    print(f"Web URL: {url}")
    print("Press Ctrl+C to stop.\n")
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="info",
        log_config=build_uvicorn_log_config(),
    )


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] == "web":
        web_args = build_web_parser().parse_args(argv[1:])
        _run_web(web_args)
        return 0
    if argv and argv[0] == "stats":
        stats_args = build_stats_parser().parse_args(argv[1:])
        return _run_stats(stats_args)

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    return _run_chain(parser.parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())
