"""Voice synthesis links for Japanese, Korean and Chinese speakers."""

from __future__ import annotations

from urllib.parse import quote_plus

JAPANESE_API = "https://moegoe.azurewebsites.net/api/speak?text={text}&id={id}"
KOREAN_API = "https://moegoe.azurewebsites.net/api/speakkr?text={text}&id={id}"
CHINESE_API = "https://genshin.azurewebsites.net/api/speak?format=mp3&text={text}&id={id}"

JAPANESE_SPEAKERS = ("宁宁", "爱瑠", "芳乃", "茉子", "丛雨", "小春", "七海")
KOREAN_SPEAKERS = ("Sua", "Mimiru", "Arin", "Yeonhwa", "Yuhwa", "Seonbae")
CHINESE_SPEAKERS = (
    "派蒙", "凯亚", "安柏", "丽莎", "琴", "香菱", "枫原万叶", "迪卢克", "温迪", "可莉",
    "早柚", "托马", "芭芭拉", "优菈", "云堇", "钟离", "魈", "凝光", "雷电将军", "北斗",
    "甘雨", "七七", "刻晴", "神里绫华", "戴因斯雷布", "雷泽", "神里绫人", "罗莎莉亚",
    "阿贝多", "八重神子", "宵宫", "荒泷一斗", "九条裟罗", "夜兰", "珊瑚宫心海", "五郎",
    "散兵", "女士", "达达利亚", "莫娜", "班尼特", "申鹤", "行秋", "烟绯", "久岐忍",
    "辛焱", "砂糖", "胡桃", "重云", "菲谢尔", "诺艾尔", "迪奥娜", "鹿野院平藏",
)

_VOICES = (
    (JAPANESE_SPEAKERS, JAPANESE_API),
    (KOREAN_SPEAKERS, KOREAN_API),
    (CHINESE_SPEAKERS, CHINESE_API),
)

SPEAKERS = {name: index for names, _ in _VOICES for index, name in enumerate(names)}


def _voice(name: str) -> tuple[int, str]:
    for names, api in _VOICES:
        if name in names:
            return names.index(name), api
    raise ValueError(f"unknown speaker: {name!r}")


def speaker_id(name: str) -> int:
    """Return the model id of speaker ``name``; ValueError if unknown."""
    return _voice(name)[0]


def moegoe_url(speaker: str, text: str) -> str:
    """Return the URL of ``speaker`` saying ``text`` in their language."""
    index, api = _voice(speaker)
    return api.format(text=quote_plus(text), id=index)