"""Shared constants for parsing recognized artifact text.

Maintainer notes
-----------------
* ``STAT_NAMES`` maps the in-game (zh-CN) stat label to its GOOD key.  Flat
  and percentage variants share a label and are told apart by a ``%`` in the
  value, see ``PERCENT_VARIANTS``.
* ``PIECE_NAMES`` maps each piece name to ``(set_key, slot_key)``.  Unknown
  names are tolerated: the record keeps its raw name and exporters skip it.
* Colours are BGR, as sampled from ``mss`` frames.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

STAT_NAMES: dict[str, str] = {
    "生命值": "hp",
    "攻击力": "atk",
    "防御力": "def",
    "元素精通": "eleMas",
    "元素充能效率": "enerRech_",
    "暴击率": "critRate_",
    "暴击伤害": "critDMG_",
    "治疗加成": "heal_",
    "火元素伤害加成": "pyro_dmg_",
    "水元素伤害加成": "hydro_dmg_",
    "雷元素伤害加成": "electro_dmg_",
    "冰元素伤害加成": "cryo_dmg_",
    "风元素伤害加成": "anemo_dmg_",
    "岩元素伤害加成": "geo_dmg_",
    "草元素伤害加成": "dendro_dmg_",
    "物理伤害加成": "physical_dmg_",
}
"""In-game stat label -> GOOD stat key."""

PERCENT_VARIANTS: dict[str, str] = {
    "hp": "hp_",
    "atk": "atk_",
    "def": "def_",
}
"""Flat stat key -> percentage key, used when the value carries ``%``."""

PERCENT_KEYS: frozenset[str] = frozenset(key for key in (
    *PERCENT_VARIANTS.values(),
    *(value for value in STAT_NAMES.values() if value.endswith("_")),
))

MONA_STAT_NAMES: dict[str, str] = {
    "hp": "lifeStatic",
    "hp_": "lifePercentage",
    "atk": "attackStatic",
    "atk_": "attackPercentage",
    "def": "defendStatic",
    "def_": "defendPercentage",
    "eleMas": "elementalMastery",
    "enerRech_": "recharge",
    "critRate_": "critical",
    "critDMG_": "criticalDamage",
    "heal_": "cureEffect",
    "pyro_dmg_": "fireBonus",
    "hydro_dmg_": "waterBonus",
    "electro_dmg_": "thunderBonus",
    "cryo_dmg_": "iceBonus",
    "anemo_dmg_": "windBonus",
    "geo_dmg_": "rockBonus",
    "dendro_dmg_": "dendroBonus",
    "physical_dmg_": "physicalBonus",
}
"""GOOD stat key -> mona-uranai tag name."""

# ---------------------------------------------------------------------------
# Slots / pieces
# ---------------------------------------------------------------------------

SLOT_KEYS: tuple[str, ...] = ("flower", "plume", "sands", "goblet", "circlet")

MONA_SLOT_NAMES: dict[str, str] = {
    "flower": "flower",
    "plume": "feather",
    "sands": "sand",
    "goblet": "cup",
    "circlet": "head",
}

_SET_PIECES: dict[str, tuple[str, str, str, str, str]] = {
    "GladiatorsFinale": ("角斗士的留恋", "角斗士的归宿", "角斗士的希冀", "角斗士的酣醉", "角斗士的凯旋"),
    "WanderersTroupe": ("乐团的晨光", "琴师的箭羽", "终幕的时计", "吟游者之壶", "指挥的礼帽"),
    "CrimsonWitchOfFlames": ("魔女的炎之花", "魔女常燃之羽", "魔女破灭之时", "魔女的心之火", "焦灼的魔女帽"),
    "NoblesseOblige": ("宗室之花", "宗室之翎", "宗室时计", "宗室银瓮", "宗室面具"),
    "EmblemOfSeveredFate": ("明威之镡", "切落之羽", "雷云之笼", "绯花之壶", "华饰之兜"),
    "ViridescentVenerer": ("野花记忆的绿野", "猎人青翠的箭羽", "翠绿猎人的笃定", "翠绿猎人的容器", "翠绿的猎人之冠"),
    "BlizzardStrayer": ("历经风雪的思念", "摧冰而行的执望", "冰雪故园的终期", "遍结寒霜的傲骨", "破冰踏雪的回音"),
    "HeartOfDepth": ("饰金胸花", "追忆之风", "坚铜罗盘", "沉波之盏", "酒渍船帽"),
    "ThunderingFury": ("雷鸟的怜悯", "雷灾的孑遗", "雷霆的时计", "降雷的凶兆", "唤雷的头冠"),
    "ShimenawasReminiscence": ("羁缠之花", "思忆之矢", "朝露之时", "祈望之心", "无常之面"),
    "TenacityOfTheMillelith": ("勋绩之花", "昭武之翎", "金铜时晷", "盟誓金爵", "将帅兜鍪"),
    "PaleFlame": ("无垢之花", "贤医之羽", "停摆之刻", "超越之盏", "嗤笑之面"),
}

PIECE_NAMES: dict[str, tuple[str, str]] = {
    piece: (set_key, SLOT_KEYS[index])
    for set_key, pieces in _SET_PIECES.items()
    for index, piece in enumerate(pieces)
}
"""Piece name -> ``(set_key, slot_key)``."""

CHARACTER_KEYS: dict[str, str] = {
    "旅行者": "Traveler",
    "胡桃": "HuTao",
    "雷电将军": "RaidenShogun",
    "神里绫华": "KamisatoAyaka",
    "甘雨": "Ganyu",
    "钟离": "Zhongli",
    "温迪": "Venti",
    "行秋": "Xingqiu",
    "香菱": "Xiangling",
    "班尼特": "Bennett",
    "枫原万叶": "KaedeharaKazuha",
    "夜兰": "Yelan",
}
"""Displayed character name -> GOOD location key."""

EQUIP_SUFFIX = "已装备"
ITEM_COUNT_PREFIX = "圣遗物"

# ---------------------------------------------------------------------------
# Colours (BGR)
# ---------------------------------------------------------------------------

RARITY_COLORS: dict[int, tuple[int, int, int]] = {
    5: (50, 105, 188),
    4: (224, 86, 161),
    3: (203, 127, 81),
    2: (114, 143, 42),
    1: (138, 119, 114),
}
"""Rarity -> reference colour of the panel header at the star sample point."""

LOCK_BRIGHTNESS_THRESHOLD = 200
"""Mean channel value below which the lock icon is considered set (dark icon)."""
