"""The 25 fixed outcome categories ("grupos") and their 2-digit groups."""

from __future__ import annotations

CATEGORY_COUNT = 25

CATEGORY_LABELS: dict[int, str] = {
    1: "AVESTRUZ",
    2: "ÁGUIA",
    3: "BURRO",
    4: "BORBOLETA",
    5: "CACHORRO",
    6: "CABRA",
    7: "CARNEIRO",
    8: "CAMELO",
    9: "COBRA",
    10: "COELHO",
    11: "CAVALO",
    12: "ELEFANTE",
    13: "GALO",
    14: "GATO",
    15: "JACARÉ",
    16: "LEÃO",
    17: "MACACO",
    18: "PORCO",
    19: "PAVÃO",
    20: "PERU",
    21: "TOURO",
    22: "TIGRE",
    23: "URSO",
    24: "VEADO",
    25: "VACA",
}


def is_valid_category(value: int | None) -> bool:
    return value is not None and 1 <= int(value) <= CATEGORY_COUNT


def category_label(category: int) -> str:
    return CATEGORY_LABELS.get(int(category), "")


def category_for_dezena(dezena: str) -> int | None:
    """Category owning a 2-digit ending: ``01..04`` -> 1, ..., ``97..99, 00`` -> 25."""

    digits = str(dezena or "")
    if len(digits) != 2 or not digits.isdigit():
        return None
    n = int(digits)
    if n == 0:
        return CATEGORY_COUNT
    return (n - 1) // 4 + 1
