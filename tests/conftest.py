from __future__ import annotations

import pytest

from yigedinglia.chain import IdiomEntry


def make_entries() -> list[IdiomEntry]:
    return [
        IdiomEntry("有求必应", "yǒu qiú bì yìng", {"explanation": "只要有人请求就一定答应。"}),
        IdiomEntry("迎刃而解", "yíng rèn ér jiě"),
        IdiomEntry("接二连三", "jiē èr lián sān"),
        IdiomEntry("三心二意", "sān xīn èr yì"),
        IdiomEntry("一心一意", "yī xīn yī yì"),
        IdiomEntry("高山流水", "gāo shān liú shuǐ"),
        IdiomEntry("味同嚼蜡", "wèi tóng jiáo cù"),
        IdiomEntry("一丝不苟的", "yī sī bù gǒu de"),
        IdiomEntry("好", "hǎo"),
    ]


@pytest.fixture
def entries() -> list[IdiomEntry]:
    return make_entries()
