from __future__ import annotations

import random

import pytest

from yigedinglia.chain import (
    TARGET_LINK,
    ChainedIdiom,
    ChainIndex,
    ChainIndexError,
    ChainLink,
    IdiomEntry,
    build_chain_index,
    resolve_chain,
)

from conftest import make_entries


def _levels(index: ChainIndex) -> dict[str, int | None]:
    return {word: idiom.level for word, idiom in index.by_word.items()}


def _synthetic_entries() -> list[IdiomEntry]:
    # A denser graph with several idioms per syllable and a few dead ends.
    syllables = ["yī", "sān", "jiē", "yíng", "yǒu", "gāo", "shuǐ", "mǎ", "dào"]
    entries: list[IdiomEntry] = []
    counter = 0
    for first in syllables:
        for last in syllables:
            if (syllables.index(first) * 7 + syllables.index(last) * 3) % 4 != 0:
                continue
            counter += 1
            word = f"{chr(0x4E00 + counter)}甲乙{chr(0x4E00 + 200 + counter)}"
            entries.append(IdiomEntry(word, f"{first} jiǎ yǐ {last}"))
    return entries


def test_build_chain_index_levels(entries: list[IdiomEntry]) -> None:
    index = build_chain_index(entries)

    assert _levels(index) == {
        "有求必应": 4,
        "迎刃而解": 3,
        "接二连三": 2,
        "三心二意": 1,
        "一心一意": 1,
        "高山流水": None,
        "味同嚼蜡": None,
    }
    assert index.skipped == 2
    assert len(index) == 7


def test_build_chain_index_buckets_follow_input_order(entries: list[IdiomEntry]) -> None:
    index = build_chain_index(entries)

    assert [idiom.word for idiom in index.by_last_syllable["yi"]] == ["三心二意", "一心一意"]
    assert [idiom.word for idiom in index.by_first_syllable["yi"]] == ["一心一意"]
    assert "一丝不苟的" not in index.by_word
    assert "好" not in index.by_word
    for bucket in (index.by_first_syllable, index.by_last_syllable):
        assert sum(len(values) for values in bucket.values()) == len(index)


def test_build_chain_index_applies_corrections_before_bucketing(entries: list[IdiomEntry]) -> None:
    index = build_chain_index(entries)

    tasteless = index.lookup("味同嚼蜡")
    assert tasteless is not None
    assert tasteless.pinyin == "wèi tóng jiáo là"
    assert tasteless.last_key == "la"
    assert tasteless in index.by_last_syllable["la"]
    assert "cu" not in index.by_last_syllable
    assert tasteless in index.by_first_syllable["wei"]


def test_build_chain_index_contracts_yi_before_e_in_keys() -> None:
    index = build_chain_index(
        [
            IdiomEntry("金枝玉叶", "jīn zhī yù yiè"),
            IdiomEntry("叶公好龙", "yiě gōng hào lóng"),
        ]
    )

    leaf = index.lookup("金枝玉叶")
    assert leaf is not None
    assert leaf.pinyin == "jīn zhī yù yè"
    assert leaf.last_key == "ye"
    assert [item.word for item in index.by_last_syllable["ye"]] == ["金枝玉叶"]
    assert [item.word for item in index.by_first_syllable["ye"]] == ["叶公好龙"]
    assert "yie" not in index.by_last_syllable
    assert "yie" not in index.by_first_syllable


def test_build_chain_index_corrects_trailing_lia() -> None:
    index = build_chain_index([IdiomEntry("半斤八俩", "bàn jīn bā liǎng")])

    idiom = index.lookup("半斤八俩")
    assert idiom is not None
    assert idiom.pinyin == "bàn jīn bā liǎ"
    assert [item.word for item in index.by_last_syllable["lia"]] == ["半斤八俩"]
    assert "liang" not in index.by_last_syllable


def test_build_chain_index_keeps_extras_opaque(entries: list[IdiomEntry]) -> None:
    index = build_chain_index(entries)

    idiom = index.lookup("有求必应")
    assert idiom is not None
    assert idiom.entry.extras == {"explanation": "只要有人请求就一定答应。"}


def test_build_chain_index_duplicate_word_last_wins() -> None:
    index = build_chain_index(
        [
            IdiomEntry("一心一意", "yī xīn yī yì", {"source": "first"}),
            IdiomEntry("一心一意", "yī xīn yī yì", {"source": "second"}),
        ]
    )

    idiom = index.lookup("一心一意")
    assert idiom is not None
    assert idiom.entry.extras == {"source": "second"}
    assert len(index.by_last_syllable["yi"]) == 2
    assert len(index.by_word) == 1


def test_build_chain_index_reports_levels(entries: list[IdiomEntry]) -> None:
    reported: list[tuple[int, int]] = []

    build_chain_index(entries, on_level=lambda level, count: reported.append((level, count)))

    assert reported == [(1, 2), (2, 1), (3, 1), (4, 1)]


def test_build_chain_index_empty_pinyin_is_tolerated() -> None:
    index = build_chain_index([IdiomEntry("无字天书", ""), IdiomEntry("一心一意", "yī xīn yī yì")])

    blank = index.lookup("无字天书")
    assert blank is not None
    assert (blank.first_key, blank.last_key) == ("", "")
    assert blank.level is None
    assert resolve_chain("无字天书", index) == []


def test_level_one_idioms_end_on_target_syllable() -> None:
    index = build_chain_index(_synthetic_entries())

    level_one = [idiom for idiom in index.by_word.values() if idiom.level == 1]
    assert level_one
    assert all(idiom.last_key == "yi" for idiom in level_one)


def test_every_level_has_a_lower_successor() -> None:
    index = build_chain_index(_synthetic_entries())

    for idiom in index.by_word.values():
        if idiom.level is None or idiom.level == 1:
            continue
        successors = index.by_first_syllable.get(idiom.last_key, [])
        assert any(other.level == idiom.level - 1 for other in successors)


def test_levels_do_not_depend_on_input_order() -> None:
    forward = build_chain_index(_synthetic_entries())
    again = build_chain_index(_synthetic_entries())
    backward = build_chain_index(list(reversed(_synthetic_entries())))

    assert _levels(forward) == _levels(again)
    assert _levels(forward) == _levels(backward)
    assert any(level is not None and level > 1 for level in _levels(forward).values())


def test_level_counts(entries: list[IdiomEntry]) -> None:
    index = build_chain_index(entries)

    assert index.level_counts() == {1: 2, 2: 1, 3: 1, 4: 1, None: 2}


def test_resolve_chain_walks_to_target(entries: list[IdiomEntry]) -> None:
    index = build_chain_index(entries)

    chain = resolve_chain("有求必应", index, rng=random.Random(0))

    assert [link.word for link in chain] == ["有求必应", "迎刃而解", "接二连三", "三心二意", "一个顶俩"]
    assert chain[-1] == TARGET_LINK
    assert chain[0] == ChainLink("有求必应", "yǒu qiú bì yìng")


def test_resolve_chain_level_one_returns_pair(entries: list[IdiomEntry]) -> None:
    index = build_chain_index(entries)

    chain = resolve_chain("一心一意", index)

    assert chain == [ChainLink("一心一意", "yī xīn yī yì"), ChainLink("一个顶俩", "yī gè dǐng liǎ")]


def test_resolve_chain_unknown_or_unreachable_is_empty(entries: list[IdiomEntry]) -> None:
    index = build_chain_index(entries)

    assert resolve_chain("不存在的", index) == []
    assert resolve_chain("高山流水", index) == []
    assert resolve_chain("味同嚼蜡", index) == []
    assert resolve_chain("一丝不苟的", index) == []


def test_resolve_chain_length_matches_level() -> None:
    index = build_chain_index(_synthetic_entries())
    rng = random.Random(7)

    for word, idiom in index.by_word.items():
        chain = resolve_chain(word, index, rng=rng)
        if idiom.level is None:
            assert chain == []
            continue
        assert len(chain) == idiom.level + 1
        assert chain[-1] == TARGET_LINK


def test_resolve_chain_seeded_choice_is_reproducible() -> None:
    entries = make_entries() + [IdiomEntry("三甲乙意", "sān jiǎ yǐ yì")]
    index = build_chain_index(entries)

    first = resolve_chain("接二连三", index, rng=random.Random(42))
    second = resolve_chain("接二连三", index, rng=random.Random(42))
    assert first == second

    picks = {resolve_chain("接二连三", index, rng=random.Random(seed))[1].word for seed in range(64)}
    assert picks == {"三心二意", "三甲乙意"}


def test_resolve_chain_raises_on_broken_index() -> None:
    stranded = ChainedIdiom(
        entry=IdiomEntry("接二连三", "jiē èr lián sān"),
        first_key="jie",
        last_key="san",
        level=2,
    )
    index = ChainIndex(
        by_first_syllable={"jie": [stranded]},
        by_last_syllable={"san": [stranded]},
        by_word={"接二连三": stranded},
    )

    with pytest.raises(ChainIndexError):
        resolve_chain("接二连三", index)
