"""
Stop Tables

Configuration data for the concept extractor. Kept apart from the
extraction logic so the tables can be tuned or localized without
touching the algorithm.
"""

from typing import Final

ENGLISH_STOPWORDS: Final[frozenset[str]] = frozenset(
    """
    a about above after again against all also am an and any are aren as at
    be because been before being below between both but by
    can cannot could couldn did didn do does doesn doing don down during
    each either else ever every few for from further
    get gets got had hadn has hasn have haven having he her here hers herself
    him himself his how however
    i if in into is isn it its itself just
    let like made make makes many may me might more most much must my myself
    neither no nor not now of off on once one only or other ought our ours
    ourselves out over own
    quite rather really same say says shall she should shouldn since so some
    still such than that the their theirs them themselves then there these
    they this those though through thus to too
    under until up upon us very was wasn we well were weren what when where
    whether which while who whom whose why will with within without won would
    wouldn yet you your yours yourself yourselves
    """.split()
)

# Function characters: any n-gram containing one is rejected outright.
# U+7684 (de) is handled separately, only at n-gram boundaries.
CJK_STOP_CHARS: Final[frozenset[str]] = frozenset(
    "了是在和与及或而且也就都还又着过把被让给对从向往于以为因所这那其此"
    "之乎者兮哉吗呢吧啊呀嘛么个我你他她它们您咱"
)

CJK_STOP_PHRASES: Final[frozenset[str]] = frozenset(
    {
        "一个",
        "一些",
        "一种",
        "什么",
        "怎么",
        "如何",
        "可以",
        "已经",
        "没有",
        "不是",
        "就是",
        "但是",
        "因此",
        "所以",
        "如果",
        "然后",
        "虽然",
        "自己",
        "非常",
        "时候",
        "事情",
        "东西",
        "大家",
        "觉得",
        "认为",
        "知道",
        "需要",
        "应该",
        "可能",
        "这样",
        "那样",
        "这种",
        "那种",
        "其实",
        "不过",
        "只是",
        "更加",
        "一样",
        "还是",
        "或者",
        "以及",
        "通过",
        "进行",
    }
)

# The single most frequent function character; an n-gram may contain it
# but may not begin or end with it.
CJK_EDGE_CHAR: Final[str] = "的"
