"""Checks run before marriage skills are used, refusing with a reason."""

from __future__ import annotations

from groupbot.marriage import MarriageRegistry, Status

SKILL_PROPOSE = 1
"""Proposing to a chosen member."""
SKILL_MISTRESS = 2
"""Stealing someone else's partner."""
SKILL_MATCHMAKE = 3
"""An admin pairing two members."""
SKILL_DIVORCE = 4
"""Asking for a divorce."""


class Refusal(Exception):
    """A skill may not be used now; ``message`` says why."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _check_cooldown(registry: MarriageRegistry, group_id: int, user_id: int, skill: int) -> None:
    hours = registry.cd_hours(group_id)
    if not registry.cd_expired(group_id, user_id, skill, hours):
        raise Refusal("你的技能还在CD中...")


def _is_alone(couple) -> bool:
    return couple is not None and (couple.target == 0 or couple.user == 0)


def _paired_with(couple, status: Status, other: int) -> bool:
    return (status is Status.HUSBAND and couple.target == other) or (
        status is Status.WIFE and couple.user == other
    )


def check_single(registry: MarriageRegistry, group_id: int, user_id: int, target: int) -> bool:
    """Check that ``user_id`` may propose to ``target``.

    Returns True when allowed, raises Refusal otherwise.
    """
    _check_cooldown(registry, group_id, user_id, SKILL_PROPOSE)
    can_match, _ = registry.modes(group_id)
    if not can_match:
        raise Refusal("你群包分配,别在娶妻上面下功夫，好好水群")
    if registry.open_for_day(group_id):
        return True

    couple, status = registry.lookup(group_id, user_id)
    if status is not Status.SINGLE:
        if _is_alone(couple):
            raise Refusal("今天的你是单身贵族噢")
        if _paired_with(couple, status, target):
            raise Refusal("笨蛋！你们已经在一起了！")
        if status is Status.HUSBAND:
            raise Refusal("笨蛋~你家里还有个吃白饭的w")
        raise Refusal("该是0就是0，当0有什么不好")

    couple, status = registry.lookup(group_id, target)
    if status is Status.SINGLE:
        return True
    if _is_alone(couple):
        raise Refusal("今天的ta是单身贵族噢")
    if status is Status.HUSBAND:
        raise Refusal("他有别的女人了，你该放下了")
    raise Refusal("ta被别人娶了，你来晚力")


def check_mistress(registry: MarriageRegistry, group_id: int, user_id: int, target: int) -> bool:
    """Check that ``user_id`` may try to steal ``target`` from their partner.

    Returns True when allowed, raises Refusal otherwise.
    """
    _check_cooldown(registry, group_id, user_id, SKILL_MISTRESS)
    _, can_ntr = registry.modes(group_id)
    if not can_ntr:
        raise Refusal("你群发布了牛头人禁止令，放弃吧")
    if registry.open_for_day(group_id):
        raise Refusal("ta现在还是单身哦，快向ta表白吧！")

    couple, status = registry.lookup(group_id, target)
    if status is Status.SINGLE:
        if target == user_id:
            return True
        raise Refusal("ta现在还是单身哦，快向ta表白吧！")
    if _is_alone(couple):
        raise Refusal("今天的ta是单身贵族噢")
    if _paired_with(couple, status, target):
        raise Refusal("笨蛋！你们已经在一起了！")

    couple, status = registry.lookup(group_id, user_id)
    if status is Status.SINGLE:
        return True
    if _is_alone(couple):
        raise Refusal("今天的你是单身贵族噢")
    if status is Status.HUSBAND:
        raise Refusal("打灭，不给纳小妾！")
    raise Refusal("该是0就是0，当0有什么不好")


def check_divorce(registry: MarriageRegistry, group_id: int, user_id: int) -> bool:
    """Check that ``user_id`` may ask for a divorce.

    Returns True when allowed, raises Refusal otherwise.
    """
    _check_cooldown(registry, group_id, user_id, SKILL_DIVORCE)
    _, status = registry.lookup(group_id, user_id)
    if status is Status.SINGLE:
        raise Refusal("今天你还没结婚哦")
    return True


def check_matchmaking(
    registry: MarriageRegistry, group_id: int, user_id: int, one: int, zero: int
) -> bool:
    """Check that ``user_id`` may pair ``one`` (husband) with ``zero`` (wife).

    Returns True when allowed, raises Refusal otherwise.
    """
    _check_cooldown(registry, group_id, user_id, SKILL_MATCHMAKE)
    if user_id in (one, zero):
        raise Refusal("禁止自己给自己做媒!")
    if one == zero:
        raise Refusal("你这个媒人XP很怪咧，不能这样噢")
    if registry.open_for_day(group_id):
        return True

    couple, status = registry.lookup(group_id, one)
    if status is not Status.SINGLE:
        if _is_alone(couple):
            raise Refusal("今天的攻方是单身贵族噢")
        if _paired_with(couple, status, zero):
            raise Refusal("笨蛋！ta们已经在一起了！")
        raise Refusal("攻方不是单身,不允许给这种人做媒!")

    couple, status = registry.lookup(group_id, zero)
    if status is Status.SINGLE:
        return True
    if _is_alone(couple):
        raise Refusal("今天的你是单身贵族噢")
    raise Refusal("受方不是单身,不允许给这种人做媒!")