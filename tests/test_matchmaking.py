import pytest

from groupbot.marriage import FREE_LOVE, NTR, MarriageRegistry
from groupbot.matchmaking import (
    SKILL_DIVORCE,
    SKILL_PROPOSE,
    Refusal,
    check_divorce,
    check_matchmaking,
    check_mistress,
    check_single,
)

GROUP = 100


@pytest.fixture
def registry(tmp_path):
    reg = MarriageRegistry(str(tmp_path / "wife.db"))
    yield reg
    reg.close()


@pytest.fixture
def opened(registry):
    registry.open_for_day(GROUP)
    return registry


def refusal_of(func, *args):
    with pytest.raises(Refusal) as info:
        func(*args)
    return info.value.message


def test_single_allowed_on_fresh_group(registry):
    assert check_single(registry, GROUP, 1, 2) is True


def test_single_refused_during_cooldown(opened):
    opened.write_cd(GROUP, 1, SKILL_PROPOSE)
    assert refusal_of(check_single, opened, GROUP, 1, 2) == "你的技能还在CD中..."


def test_single_refused_when_free_love_forbidden(opened):
    opened.set_mode(GROUP, FREE_LOVE, False)
    assert refusal_of(check_single, opened, GROUP, 1, 2) == "你群包分配,别在娶妻上面下功夫，好好水群"


def test_single_refused_when_already_married(opened):
    opened.register(GROUP, 1, 2, "a", "b")
    assert refusal_of(check_single, opened, GROUP, 1, 3) == "笨蛋~你家里还有个吃白饭的w"
    assert refusal_of(check_single, opened, GROUP, 1, 2) == "笨蛋！你们已经在一起了！"
    assert refusal_of(check_single, opened, GROUP, 2, 3) == "该是0就是0，当0有什么不好"


def test_single_refused_when_target_taken(opened):
    opened.register(GROUP, 1, 2, "a", "b")
    assert refusal_of(check_single, opened, GROUP, 3, 1) == "他有别的女人了，你该放下了"
    assert refusal_of(check_single, opened, GROUP, 4, 2) == "ta被别人娶了，你来晚力"


def test_single_allowed_for_two_singles(opened):
    opened.register(GROUP, 1, 2, "a", "b")
    assert check_single(opened, GROUP, 3, 4) is True


def test_single_refused_for_noble(opened):
    opened.register(GROUP, 5, 0, "", "")
    assert refusal_of(check_single, opened, GROUP, 5, 6) == "今天的你是单身贵族噢"
    assert refusal_of(check_single, opened, GROUP, 6, 5) == "今天的ta是单身贵族噢"


def test_mistress_refused_on_new_day(registry):
    assert refusal_of(check_mistress, registry, GROUP, 3, 2) == "ta现在还是单身哦，快向ta表白吧！"


def test_mistress_refused_when_forbidden(opened):
    opened.set_mode(GROUP, NTR, False)
    assert refusal_of(check_mistress, opened, GROUP, 3, 2) == "你群发布了牛头人禁止令，放弃吧"


def test_mistress_allowed_against_married_target(opened):
    opened.register(GROUP, 1, 2, "a", "b")
    assert check_mistress(opened, GROUP, 3, 2) is True
    assert check_mistress(opened, GROUP, 3, 3) is True


def test_mistress_refused_for_single_target_and_married_user(opened):
    opened.register(GROUP, 1, 2, "a", "b")
    assert refusal_of(check_mistress, opened, GROUP, 4, 3) == "ta现在还是单身哦，快向ta表白吧！"
    opened.register(GROUP, 7, 8, "c", "d")
    assert refusal_of(check_mistress, opened, GROUP, 7, 2) == "打灭，不给纳小妾！"


def test_divorce(opened):
    assert refusal_of(check_divorce, opened, GROUP, 1) == "今天你还没结婚哦"
    opened.register(GROUP, 1, 2, "a", "b")
    assert check_divorce(opened, GROUP, 2) is True
    opened.write_cd(GROUP, 2, SKILL_DIVORCE)
    assert refusal_of(check_divorce, opened, GROUP, 2) == "你的技能还在CD中..."


def test_matchmaking_self_and_same(opened):
    assert refusal_of(check_matchmaking, opened, GROUP, 9, 9, 1) == "禁止自己给自己做媒!"
    assert refusal_of(check_matchmaking, opened, GROUP, 9, 1, 1) == "你这个媒人XP很怪咧，不能这样噢"


def test_matchmaking_allowed_for_singles(opened):
    assert check_matchmaking(opened, GROUP, 9, 1, 2) is True


def test_matchmaking_refused_for_couples(opened):
    opened.register(GROUP, 1, 2, "a", "b")
    assert refusal_of(check_matchmaking, opened, GROUP, 9, 1, 2) == "笨蛋！ta们已经在一起了！"
    assert refusal_of(check_matchmaking, opened, GROUP, 9, 1, 3) == "攻方不是单身,不允许给这种人做媒!"
    assert refusal_of(check_matchmaking, opened, GROUP, 9, 3, 2) == "受方不是单身,不允许给这种人做媒!"


def test_matchmaking_refused_for_noble(opened):
    opened.register(GROUP, 5, 0, "", "")
    assert refusal_of(check_matchmaking, opened, GROUP, 9, 5, 6) == "今天的攻方是单身贵族噢"