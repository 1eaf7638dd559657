"""
String utility functions for Rivet.

Inflection helpers used to derive table names, foreign keys and related
type names from class and relationship names.
"""

from __future__ import annotations

import re

# Irregular plurals that don't follow standard rules
_IRREGULAR_PLURALS = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "foot": "feet",
    "tooth": "teeth",
    "goose": "geese",
    "mouse": "mice",
    "ox": "oxen",
    "datum": "data",
    "medium": "media",
    "criterion": "criteria",
    "phenomenon": "phenomena",
    "index": "indices",
    "appendix": "appendices",
    "matrix": "matrices",
    "vertex": "vertices",
    # Common domain-specific terms
    "status": "statuses",
    "address": "addresses",
    "quiz": "quizzes",
}

_IRREGULAR_SINGULARS = {plural: singular for singular, plural in _IRREGULAR_PLURALS.items()}

# Singulars ending in -s, which pluralize to -ses (bus -> buses, not buse)
_S_SINGULARS = {
    "alias", "atlas", "bias", "bonus", "bus", "campus", "canvas", "census",
    "corpus", "focus", "gas", "iris", "lens", "plus", "virus",
}

# Words that are the same in both forms
_UNCOUNTABLE = {"news", "series", "species", "sheep", "fish", "equipment", "information"}


def _match_case(word: str, replacement: str) -> str:
    """Carry the capitalization of ``word`` over to ``replacement``."""
    if word[0].isupper():
        return replacement.capitalize()
    return replacement


def pluralize(word: str) -> str:
    """
    Convert a singular English word to its plural form.

    Handles common English pluralization rules including:
    - Words ending in -y (category -> categories, but key -> keys)
    - Words ending in -s, -x, -z, -ch, -sh (bus -> buses)
    - Words ending in -f/-fe (leaf -> leaves)
    - Irregular plurals (person -> people)

    Examples:
        >>> pluralize("User")
        'Users'
        >>> pluralize("Category")
        'Categories'
        >>> pluralize("BlogPost")
        'BlogPosts'
    """
    if not word:
        return word

    lower_word = word.lower()

    if lower_word in _UNCOUNTABLE:
        return word

    if lower_word in _IRREGULAR_PLURALS:
        return _match_case(word, _IRREGULAR_PLURALS[lower_word])

    # Handle CamelCase - pluralize the last word only (BlogPost -> BlogPosts)
    camel_match = re.match(r"^(.+)([A-Z][a-z]+)$", word)
    if camel_match:
        prefix, last_word = camel_match.groups()
        if prefix and last_word != word:
            return prefix + pluralize(last_word)

    if lower_word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    elif lower_word.endswith("y"):
        if len(word) > 1 and lower_word[-2] in "aeiou":
            return word + "s"
        return word[:-1] + "ies"
    elif lower_word.endswith("f"):
        if lower_word.endswith(("elf", "alf", "olf", "eaf", "oaf", "arf")):
            return word[:-1] + "ves"
        return word + "s"
    elif lower_word.endswith("fe"):
        return word[:-2] + "ves"
    elif lower_word.endswith("o"):
        if lower_word.endswith(("hero", "potato", "tomato", "echo", "veto")):
            return word + "es"
        return word + "s"
    else:
        return word + "s"


def singularize(word: str) -> str:
    """
    Convert a plural English word to its singular form.

    Inverse of :func:`pluralize` for the rules it implements. Words that
    are already singular come back unchanged.

    Examples:
        >>> singularize("posts")
        'post'
        >>> singularize("categories")
        'category'
        >>> singularize("people")
        'person'
        >>> singularize("user")
        'user'
    """
    if not word:
        return word

    lower_word = word.lower()

    if lower_word in _UNCOUNTABLE:
        return word

    if lower_word in _IRREGULAR_SINGULARS:
        return _match_case(word, _IRREGULAR_SINGULARS[lower_word])

    # Irregular singulars stay as they are (status, address)
    if lower_word in _IRREGULAR_PLURALS:
        return word

    if lower_word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if lower_word.endswith(("knives", "wives", "lives")):
        return word[:-3] + "fe"
    if lower_word.endswith("ves") and lower_word[:-3].endswith(("el", "al", "ol", "ea", "oa", "ar")):
        return word[:-3] + "f"
    if lower_word.endswith(("sses", "xes", "zzes", "ches", "shes")):
        return word[:-2]
    if lower_word.endswith("zes") and len(word) > 4:
        # waltzes -> waltz, but sizes -> size
        return word[:-1] if lower_word[-4] in "aeiou" else word[:-2]
    if lower_word.endswith("ses") and lower_word[:-2].rsplit("_", 1)[-1] in _S_SINGULARS:
        return word[:-2]
    if lower_word.endswith("oes") and lower_word[:-2].endswith(("hero", "potato", "tomato", "echo", "veto")):
        return word[:-2]
    if lower_word.endswith(("ss", "us", "is")):
        return word
    if lower_word.endswith("s"):
        return word[:-1]
    return word


def to_class_name(name: str) -> str:
    """
    Convert a relationship or column style name to a class name.

    Examples:
        >>> to_class_name("author")
        'Author'
        >>> to_class_name("blog_post")
        'BlogPost'
    """
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def to_table_name(class_name: str) -> str:
    """
    Derive the conventional table name for a record class.

    Examples:
        >>> to_table_name("User")
        'users'
        >>> to_table_name("Category")
        'categories'
        >>> to_table_name("Person")
        'people'
    """
    return pluralize(class_name).lower()
