"""
English pluralization for mined entity names.

Handles uncountable nouns, a table of irregular forms and the usual
suffix rules. Used to turn `user`/`users` style names into consistent
singular/plural pairs for CRUD templates.
"""

import re
from typing import Dict, Tuple

MAX_WORD_LENGTH = 100

UNCOUNTABLE_WORDS = frozenset({
    # abstract
    "advice", "information", "knowledge", "wisdom", "intelligence", "evidence",
    "research", "progress", "happiness", "sadness", "luck", "fun",
    # substances
    "water", "air", "oil", "milk", "rice", "bread", "sugar", "salt", "flour",
    "gold", "silver", "iron", "wood", "paper", "glass", "plastic", "cotton", "wool",
    # software
    "software", "hardware", "firmware", "malware", "freeware", "shareware",
    "middleware", "feedback", "bandwidth", "traffic", "spam", "code",
    # collective
    "equipment", "furniture", "luggage", "baggage", "clothing", "weather", "news",
    "homework", "housework", "money", "cash", "music", "art", "poetry",
    "literature", "electricity", "heat", "light", "darkness", "space", "time",
    "work", "travel", "accommodation", "scenery", "machinery", "jewelry",
    "rubbish", "garbage", "trash", "stuff",
    # same singular and plural
    "sheep", "fish", "deer", "moose", "swine", "buffalo", "shrimp", "trout",
    "salmon", "squid", "aircraft", "spacecraft", "hovercraft", "series",
    "species", "means", "offspring", "chassis", "corps", "swiss",
})

IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "tooth": "teeth",
    "foot": "feet",
    "mouse": "mice",
    "goose": "geese",
    "ox": "oxen",
    "leaf": "leaves",
    "life": "lives",
    "knife": "knives",
    "wife": "wives",
    "half": "halves",
    "shelf": "shelves",
    "self": "selves",
    "calf": "calves",
    "loaf": "loaves",
    "potato": "potatoes",
    "tomato": "tomatoes",
    "hero": "heroes",
    "echo": "echoes",
    "embargo": "embargoes",
    "veto": "vetoes",
    "cargo": "cargoes",
    "analysis": "analyses",
    "basis": "bases",
    "crisis": "crises",
    "diagnosis": "diagnoses",
    "hypothesis": "hypotheses",
    "oasis": "oases",
    "parenthesis": "parentheses",
    "synopsis": "synopses",
    "thesis": "theses",
    "criterion": "criteria",
    "phenomenon": "phenomena",
    "datum": "data",
    "medium": "media",
    "curriculum": "curricula",
    "memorandum": "memoranda",
    "stimulus": "stimuli",
    "syllabus": "syllabi",
    "focus": "foci",
    "fungus": "fungi",
    "cactus": "cacti",
    "appendix": "appendices",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "status": "statuses",
    "quiz": "quizzes",
    "bus": "buses",
    "gas": "gases",
    "lens": "lenses",
    "atlas": "atlases",
    "iris": "irises",
    "plus": "pluses",
    "minus": "minuses",
    "bonus": "bonuses",
    "campus": "campuses",
    "caucus": "caucuses",
    "census": "censuses",
    "citrus": "citruses",
    "circus": "circuses",
    "corpus": "corpora",
    "genus": "genera",
    "radius": "radii",
    "nexus": "nexuses",
    "sinus": "sinuses",
    "surplus": "surpluses",
    "virus": "viruses",
}

IRREGULAR_SINGULARS: Dict[str, str] = {plural: singular for singular, plural in IRREGULAR_PLURALS.items()}

_CONSONANT_Y = re.compile(r"[^aeiou]y$")
_CONSONANT_O = re.compile(r"[^aeiou]o$")
_SIBILANT = re.compile(r"(?:s|x|z|ch|sh)$")


def is_uncountable(word: str) -> bool:
    return word.lower() in UNCOUNTABLE_WORDS


def _apply_case(original: str, result: str) -> str:
    """Carry UPPER or Title case from the input over to the result."""
    if original.isupper():
        return result.upper()
    if original[:1].isupper() and original[1:] == original[1:].lower():
        return result[:1].upper() + result[1:]
    return result


def pluralize(word: str, preserve_case: bool = False) -> str:
    """Plural form of a singular noun."""
    if not word:
        return ""
    if len(word) > MAX_WORD_LENGTH:
        return word

    lower = word.lower()
    result = _pluralize_lower(lower)
    return _apply_case(word, result) if preserve_case else result


def _pluralize_lower(lower: str) -> str:
    if lower in UNCOUNTABLE_WORDS:
        return lower
    if lower in IRREGULAR_PLURALS:
        return IRREGULAR_PLURALS[lower]
    if lower in IRREGULAR_SINGULARS:
        return lower
    # Already plural
    if lower.endswith("s") and not lower.endswith("ss"):
        return lower
    if _CONSONANT_Y.search(lower):
        return lower[:-1] + "ies"
    if _SIBILANT.search(lower):
        return lower + "es"
    if lower.endswith("f") and not lower.endswith(("ff", "ief", "oof", "eef")):
        return lower[:-1] + "ves"
    if lower.endswith("fe"):
        return lower[:-2] + "ves"
    if _CONSONANT_O.search(lower):
        return lower + "es"
    return lower + "s"


def singularize(word: str, preserve_case: bool = False) -> str:
    """Singular form of a plural noun."""
    if not word:
        return ""
    if len(word) > MAX_WORD_LENGTH:
        return word

    lower = word.lower()
    result = _singularize_lower(lower)
    return _apply_case(word, result) if preserve_case else result


def _singularize_lower(lower: str) -> str:
    if lower in UNCOUNTABLE_WORDS:
        return lower
    if lower in IRREGULAR_SINGULARS:
        return IRREGULAR_SINGULARS[lower]
    if lower in IRREGULAR_PLURALS:
        return lower

    if lower.endswith("ies") and len(lower) > 3:
        return lower[:-3] + "y"

    if lower.endswith("ves"):
        stem = lower[:-3]
        if stem.endswith(("l", "r", "n", "a", "o")):
            return stem + "f"
        return stem + "fe"

    if lower.endswith("zzes"):
        return lower[:-2]

    if lower.endswith("es"):
        stem = lower[:-2]
        if stem.endswith(("ss", "x", "z", "ch", "sh", "o")):
            return stem
        if stem.endswith("s") and not stem.endswith("ss"):
            return stem

    if lower.endswith("s") and not lower.endswith("ss"):
        return lower[:-1]

    return lower


def get_singular_plural(word: str) -> Tuple[str, str]:
    """Return (singular, plural) for a word in either form."""
    singular = singularize(word)
    return singular, pluralize(singular)
