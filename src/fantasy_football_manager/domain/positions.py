from enum import StrEnum


class Position(StrEnum):
    QB = "QB"
    RB = "RB"
    WR = "WR"
    TE = "TE"
    K = "K"
    DEF = "DEF"
    FLEX = "FLEX"
    OTHER = "OTHER"
    NONE = ""


class PositionFilter(StrEnum):
    ALL = "ALL"
    QB = "QB"
    RB = "RB"
    WR = "WR"
    TE = "TE"
    K = "K"
    DEF = "DEF"

    def matches(self, position: Position) -> bool:
        return self is PositionFilter.ALL or self.value == position.value


_DEFENSE_ALIASES = frozenset({"DEF", "DST", "D/ST", "D-ST", "DEFENSE", "D"})

_FLEX_ALIASES = frozenset({"FLEX", "SUPER_FLEX", "SUPERFLEX", "REC_FLEX", "WRRB_FLEX", "OP"})

_PRIORITY: dict[Position, int] = {
    Position.QB: 1,
    Position.RB: 2,
    Position.WR: 3,
    Position.TE: 4,
    Position.FLEX: 5,
    Position.DEF: 6,
    Position.K: 7,
}


def normalize_position(raw: str | None) -> Position:
    """Map a platform position string onto the closed ``Position`` set.

    Defense synonyms collapse to ``DEF``; flex slot names collapse to ``FLEX``;
    blank input is ``NONE`` and anything unrecognized is ``OTHER``.
    """
    if raw is None:
        return Position.NONE
    code = raw.strip().upper()
    if not code:
        return Position.NONE
    if code in _DEFENSE_ALIASES:
        return Position.DEF
    if code in _FLEX_ALIASES:
        return Position.FLEX
    if code == "PK":
        return Position.K
    try:
        return Position(code)
    except ValueError:
        return Position.OTHER


def position_priority(position: Position) -> int:
    return _PRIORITY.get(position, 8)
