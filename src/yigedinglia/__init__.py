from .chain import (
    TARGET_LINK,
    TARGET_PINYIN,
    TARGET_WORD,
    ChainedIdiom,
    ChainIndex,
    ChainIndexError,
    ChainLink,
    IdiomEntry,
    build_chain_index,
    resolve_chain,
)
from .dataset import DatasetError, load_dataset
from .pinyin import correct_pinyin, syllable_keys

__all__ = [
    "TARGET_WORD",
    "TARGET_PINYIN",
    "TARGET_LINK",
    "IdiomEntry",
    "ChainedIdiom",
    "ChainLink",
    "ChainIndex",
    "ChainIndexError",
    "build_chain_index",
    "resolve_chain",
    "DatasetError",
    "load_dataset",
    "correct_pinyin",
    "syllable_keys",
]
