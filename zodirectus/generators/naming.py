"""Naming conventions for generated identifiers and file names.

Collection names are plural snake_case (``blog_posts``); generated
identifiers are singular PascalCase with a fixed prefix: ``Drx`` for Zod
schemas and ``Drs`` for TypeScript types.
"""

from __future__ import annotations

import json
import re

SCHEMA_PREFIX = "Drx"
TYPE_PREFIX = "Drs"

_IRREGULAR_PLURALS: dict[str, str] = {
    "children": "child",
    "people": "person",
    "men": "man",
    "women": "woman",
    "feet": "foot",
    "teeth": "tooth",
    "mice": "mouse",
    "geese": "goose",
    "oxen": "ox",
    "data": "datum",
    "media": "medium",
    "criteria": "criterion",
    "phenomena": "phenomenon",
    "indices": "index",
    "vertices": "vertex",
    "matrices": "matrix",
    "analyses": "analysis",
    "bases": "base",
    "diagnoses": "diagnosis",
    "theses": "thesis",
    "crises": "crisis",
    "oases": "oasis",
}

_UNCOUNTABLE = {"news", "series", "species", "information", "equipment", "metadata"}

_F_WORDS = {"leaf", "wolf", "shelf", "calf", "half", "self", "knife", "life", "wife"}

_IE_WORDS = {"movie", "cookie", "zombie", "rookie", "calorie", "selfie", "smoothie", "goalie", "prairie"}

# Stems (after dropping a trailing "s") that belong to singular words.
_SINGULAR_S_STEMS = ("glas", "clas", "mas", "pas", "gras", "ga", "bu")

_JS_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def to_pascal_case(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word[:1].upper() + word[1:].lower() for word in parts if word)


def to_kebab_case(value: str) -> str:
    """Convert ``someThing`` or ``some_thing`` to ``some-thing``."""
    s1 = re.sub(r"([a-z])([A-Z])", r"\1-\2", value)
    return re.sub(r"[\s_]+", "-", s1).lower()


def to_singular(word: str) -> str:
    """Convert a plural English word to its singular form.

    Irregular plurals are looked up first, then the regular ``-ies``,
    ``-ves``, ``-es`` and ``-s`` rules apply. The casing pattern of *word*
    (ALL CAPS, Capitalised, lower) is kept.

    Examples::

        to_singular("categories") -> "category"
        to_singular("Boxes")      -> "Box"
        to_singular("class")      -> "class"
    """
    if not word or len(word) <= 1:
        return word

    lower = word.lower()

    if lower in _UNCOUNTABLE:
        return word

    if lower in _IRREGULAR_PLURALS:
        return _match_case(_IRREGULAR_PLURALS[lower], word)

    if lower.endswith("ies") and lower[:-1] in _IE_WORDS:
        return _match_case(lower[:-1], word)

    if lower.endswith("ies") and len(lower) > 4:
        return _match_case(lower[:-3] + "y", word)

    if lower.endswith("ves") and len(lower) > 4:
        stem = lower[:-3]
        if stem + "f" in _F_WORDS:
            return _match_case(stem + "f", word)
        if stem + "fe" in _F_WORDS:
            return _match_case(stem + "fe", word)

    if lower.endswith("es") and len(lower) > 3 and not lower.endswith(("ies", "ves")):
        stem = lower[:-2]
        if stem.endswith(("s", "x", "z", "ch", "sh")):
            return _match_case(stem, word)

    if lower.endswith("s") and len(lower) > 2:
        if lower.endswith(("ss", "us", "is")):
            return word
        stem = lower[:-1]
        if stem.endswith(_SINGULAR_S_STEMS):
            return word
        return _match_case(stem, word)

    return word


def _match_case(singular: str, original: str) -> str:
    """Apply the casing pattern of *original* to *singular*."""
    if original.isupper():
        return singular.upper()
    if original[0].isupper():
        return singular[:1].upper() + singular[1:]
    return singular


def entity_name(collection: str) -> str:
    """Return the singular PascalCase entity name for *collection*.

    Only the last word is singularised so multi-word names keep their
    shape: ``blog_posts`` -> ``BlogPost``, ``directus_users`` ->
    ``DirectusUser``.
    """
    words = [w for w in re.split(r"[-_\s]+", collection) if w]
    if not words:
        return ""
    words[-1] = to_singular(words[-1].lower())
    return "".join(to_pascal_case(w) for w in words)


def schema_name(entity: str, variant: str = "") -> str:
    """``schema_name("Post", "Create")`` -> ``DrxPostCreateSchema``."""
    return f"{SCHEMA_PREFIX}{entity}{variant}Schema"


def type_name(entity: str, variant: str = "") -> str:
    """``type_name("Post", "Create")`` -> ``DrsPostCreate``."""
    return f"{TYPE_PREFIX}{entity}{variant}"


def ts_string(value: str) -> str:
    """Render *value* as a single-quoted TypeScript string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def ts_literal(value: object) -> str:
    """Render a choice value as a TypeScript literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    return ts_string(str(value))


def property_key(name: str) -> str:
    """Return *name* usable as an object key, quoting it when needed."""
    if _JS_IDENTIFIER.match(name):
        return name
    return ts_string(name)
