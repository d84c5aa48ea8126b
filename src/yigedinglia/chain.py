from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Mapping

from .pinyin import correct_pinyin, syllable_keys

__all__ = [
    "TARGET_WORD",
    "TARGET_PINYIN",
    "TARGET_LINK",
    "IDIOM_LENGTH",
    "ChainIndexError",
    "IdiomEntry",
    "ChainedIdiom",
    "ChainLink",
    "ChainIndex",
    "build_chain_index",
    "resolve_chain",
    "set_debug_logging",
]

TARGET_WORD = "一个顶俩"
TARGET_PINYIN = "yī gè dǐng liǎ"
IDIOM_LENGTH = 4

_DEBUG_LOG = False


def set_debug_logging(enabled: bool) -> None:
    global _DEBUG_LOG
    _DEBUG_LOG = enabled


def _debug_log(message: str) -> None:
    if _DEBUG_LOG:
        print(f"[yigedinglia debug] {message}")


class ChainIndexError(RuntimeError):
    """Raised when a levelled idiom has no lower-level successor."""


@dataclass(frozen=True, slots=True)
class IdiomEntry:
    word: str
    pinyin: str
    extras: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChainLink:
    word: str
    pinyin: str

    def to_dict(self) -> dict[str, str]:
        return {"word": self.word, "pinyin": self.pinyin}


TARGET_LINK = ChainLink(word=TARGET_WORD, pinyin=TARGET_PINYIN)


@dataclass(frozen=True, slots=True)
class ChainedIdiom:
    """
    An indexed idiom with its syllable keys and distance to 一个顶俩.

    ``level`` is the minimum number of hops needed to reach the target;
    ``None`` marks an idiom that can never chain to it.
    """

    entry: IdiomEntry
    first_key: str
    last_key: str
    level: int | None = None

    @property
    def word(self) -> str:
        return self.entry.word

    @property
    def pinyin(self) -> str:
        return self.entry.pinyin

    @property
    def reachable(self) -> bool:
        return self.level is not None

    def to_link(self) -> ChainLink:
        return ChainLink(word=self.entry.word, pinyin=self.entry.pinyin)


@dataclass
class ChainIndex:
    by_first_syllable: dict[str, list[ChainedIdiom]] = field(default_factory=dict)
    by_last_syllable: dict[str, list[ChainedIdiom]] = field(default_factory=dict)
    by_word: dict[str, ChainedIdiom] = field(default_factory=dict)
    skipped: int = 0

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self.by_first_syllable.values())

    def lookup(self, word: str) -> ChainedIdiom | None:
        return self.by_word.get(word)

    def level_counts(self) -> dict[int | None, int]:
        counts: dict[int | None, int] = {}
        for bucket in self.by_first_syllable.values():
            for idiom in bucket:
                counts[idiom.level] = counts.get(idiom.level, 0) + 1
        return counts


def build_chain_index(
    entries: Iterable[IdiomEntry],
    *,
    on_level: Callable[[int, int], None] | None = None,
) -> ChainIndex:
    """
    Index four-character idioms by syllable and level them against 一个顶俩.

    Levels come from a breadth-first pass over a graph whose nodes are
    syllable keys and whose edges are idioms (first key -> last key),
    walked backwards from the target's first syllable. ``on_level`` is called
    with ``(level, assigned)`` for every level that assigned at least one
    idiom.
    """
    kept: list[IdiomEntry] = []
    keys: list[tuple[str, str]] = []
    skipped = 0
    for entry in entries:
        corrected = correct_pinyin(entry.word, entry.pinyin)
        if corrected != entry.pinyin:
            entry = replace(entry, pinyin=corrected)
        if len(entry.word) != IDIOM_LENGTH:
            skipped += 1
            continue
        kept.append(entry)
        keys.append(syllable_keys(corrected))

    by_last: dict[str, list[int]] = {}
    for position, (_, last) in enumerate(keys):
        by_last.setdefault(last, []).append(position)

    levels: list[int | None] = [None] * len(kept)
    frontier = {syllable_keys(TARGET_PINYIN)[0]}
    level = 1
    while frontier:
        next_frontier: set[str] = set()
        assigned = 0
        for key in frontier:
            for position in by_last.get(key, ()):
                if levels[position] is None:
                    levels[position] = level
                    assigned += 1
                    next_frontier.add(keys[position][0])
        _debug_log(f"Level {level}: {assigned} idioms, {len(next_frontier)} new syllables")
        if assigned and on_level is not None:
            on_level(level, assigned)
        frontier = next_frontier
        level += 1

    index = ChainIndex(skipped=skipped)
    for entry, (first, last), entry_level in zip(kept, keys, levels):
        idiom = ChainedIdiom(entry=entry, first_key=first, last_key=last, level=entry_level)
        index.by_first_syllable.setdefault(first, []).append(idiom)
        index.by_last_syllable.setdefault(last, []).append(idiom)
        index.by_word[entry.word] = idiom
    _debug_log(f"Indexed {len(kept)} idioms, skipped {skipped}")
    return index


def resolve_chain(
    word: str,
    index: ChainIndex,
    *,
    rng: random.Random | None = None,
) -> list[ChainLink]:
    """
    Walk from ``word`` to 一个顶俩, picking a random lower-level idiom each hop.

    Returns an empty list when the word is unknown or cannot reach the
    target. The result otherwise has ``level + 1`` links and ends with
    ``TARGET_LINK``.
    """
    chooser = rng if rng is not None else random
    current = index.by_word.get(word)
    if current is None or current.level is None:
        return []
    chain: list[ChainLink] = []
    while True:
        chain.append(current.to_link())
        level = current.level
        if level is None:
            raise ChainIndexError(f"Unlevelled idiom {current.word} reached mid-chain")
        if level == 1:
            chain.append(TARGET_LINK)
            return chain
        candidates = [
            idiom
            for idiom in index.by_first_syllable.get(current.last_key, ())
            if idiom.level is not None and idiom.level < level
        ]
        if not candidates:
            raise ChainIndexError(
                f"No idiom below level {level} starts with '{current.last_key}' "
                f"(after {current.word})"
            )
        current = chooser.choice(candidates)
