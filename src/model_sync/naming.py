"""Model-name to table-name inference.

Pure logic -- no I/O, no database connections.

Resolution order:
1. An explicit table name is returned unchanged.
2. A frozen model name is returned unchanged.
3. Otherwise the model name is pluralized: irregular and uncountable
   forms first (matched on the last word of a compound name), then the
   regular English suffix rules.

Usage:
    from model_sync.naming import resolve_table_name

    resolve_table_name("Person")                        # 'People'
    resolve_table_name("Category")                      # 'Categories'
    resolve_table_name("Person", freeze_table_name=True)  # 'Person'
    resolve_table_name("Person", table_name="humans")   # 'humans'
"""

import logging

logger = logging.getLogger(__name__)


IRREGULAR_PLURALS: dict[str, str] = {
    "person": "people",
    "man": "men",
    "woman": "women",
    "child": "children",
    "mouse": "mice",
    "louse": "lice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "ox": "oxen",
    "leaf": "leaves",
    "life": "lives",
    "knife": "knives",
    "wife": "wives",
    "half": "halves",
    "wolf": "wolves",
    "calf": "calves",
    "shelf": "shelves",
    "thief": "thieves",
    "cactus": "cacti",
    "fungus": "fungi",
    "nucleus": "nuclei",
    "radius": "radii",
    "alumnus": "alumni",
    "analysis": "analyses",
    "crisis": "crises",
    "thesis": "theses",
    "axis": "axes",
    "basis": "bases",
    "diagnosis": "diagnoses",
    "criterion": "criteria",
    "phenomenon": "phenomena",
    "datum": "data",
    "medium": "media",
    "matrix": "matrices",
    "index": "indices",
    "vertex": "vertices",
    "quiz": "quizzes",
    "hero": "heroes",
    "potato": "potatoes",
    "tomato": "tomatoes",
    "echo": "echoes",
}

# Words whose plural is the word itself
UNCOUNTABLE: frozenset[str] = frozenset({
    "sheep",
    "fish",
    "deer",
    "moose",
    "bison",
    "salmon",
    "trout",
    "swine",
    "series",
    "species",
    "aircraft",
    "equipment",
    "information",
    "metadata",
    "money",
    "news",
    "rice",
    "software",
    "feedback",
    "staff",
    "police",
})

# Plural forms produced by the irregular table; pluralizing them again is a no-op
_KNOWN_PLURALS: frozenset[str] = frozenset(IRREGULAR_PLURALS.values())

_SIBILANT_SUFFIXES = ("s", "x", "z", "ch", "sh")
_VOWELS = frozenset("aeiou")
_WORD_SEPARATORS = frozenset("_- ")


def _split_last_word(name: str) -> tuple[str, str]:
    """Split a compound name into (prefix, last word).

    Word boundaries are separators (``_``, ``-``, space) and lower-to-upper
    camel-case transitions: ``"SalesPerson"`` -> ``("Sales", "Person")``,
    ``"line_item"`` -> ``("line_", "item")``.
    """
    for i in range(len(name) - 1, 0, -1):
        prev = name[i - 1]
        if prev in _WORD_SEPARATORS:
            return name[:i], name[i:]
        if name[i].isupper() and not prev.isupper():
            return name[:i], name[i:]
    return "", name


def _match_case(template: str, word: str) -> str:
    """Apply the capitalization of *template* to lowercase *word*."""
    if len(template) > 1 and template.isupper():
        return word.upper()
    if template[:1].isupper():
        return word[:1].upper() + word[1:]
    return word


def _regular_plural(name: str) -> str:
    lower = name.lower()
    upper = name[-1].isupper()

    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in _VOWELS:
        suffix = "IES" if upper else "ies"
        return name[:-1] + suffix
    if lower.endswith(_SIBILANT_SUFFIXES):
        return name + ("ES" if upper else "es")
    return name + ("S" if upper else "s")


def pluralize(name: str) -> str:
    """Pluralize an English noun, preserving its capitalization.

    Irregular and uncountable words are looked up on the last word of a
    compound name, so ``"SalesPerson"`` becomes ``"SalesPeople"``.  A word
    that is already an irregular plural (``"People"``) or uncountable
    (``"Sheep"``) is returned unchanged, which makes the function
    idempotent over the irregular table.

    Examples:
        >>> pluralize("Person")
        'People'
        >>> pluralize("People")
        'People'
        >>> pluralize("Category")
        'Categories'
        >>> pluralize("Box")
        'Boxes'
    """
    if not name:
        return name

    prefix, word = _split_last_word(name)
    key = word.lower()

    if key in UNCOUNTABLE or key in _KNOWN_PLURALS:
        return name
    if key in IRREGULAR_PLURALS:
        return prefix + _match_case(word, IRREGULAR_PLURALS[key])

    return _regular_plural(name)


def resolve_table_name(
    model_name: str,
    table_name: str | None = None,
    freeze_table_name: bool = False,
) -> str:
    """Resolve the physical table name for a model.

    Args:
        model_name: Logical model name (e.g. ``"Person"``).
        table_name: Explicit override; returned unchanged when set.
        freeze_table_name: When True, the model name is used as-is.

    Returns:
        The table name.  Never raises: unknown words fall through to the
        regular suffix rules.
    """
    if table_name:
        resolved = table_name
    elif freeze_table_name:
        resolved = model_name
    else:
        resolved = pluralize(model_name)

    logger.debug("Resolved model %r to table %r", model_name, resolved)
    return resolved
