"""Naming — singular/plural resource names derived from model class names.

Invariants:
    - model_name() is snake_case of the class name: Post -> post, BlogPost -> blog_post
    - pluralize() only touches the last word: blog_post -> blog_posts
    - Case of the input is preserved

Design Decisions:
    - Small rule table instead of an inflection engine: resource names are
      developer-chosen nouns, the common English rules cover them
"""

import re

_IRREGULAR_PLURALS = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "datum": "data",
    "medium": "media",
    "criterion": "criteria",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "status": "statuses",
    "address": "addresses",
}

_UNCOUNTABLE = {"data", "information", "equipment", "news", "series", "species"}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_LAST_WORD = re.compile(r"^(.*?)([A-Za-z]+)$")


def to_snake_case(name: str) -> str:
    """Convert a CamelCase class name into snake_case."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def model_name(model: type) -> str:
    """Resource name used as envelope key and request-body key."""
    return to_snake_case(model.__name__)


def pluralize(word: str) -> str:
    """Convert a singular English noun (or compound ending in one) to plural.

    >>> pluralize("post")
    'posts'
    >>> pluralize("blog_category")
    'blog_categories'
    >>> pluralize("person")
    'people'
    """
    if not word:
        return word

    match = _LAST_WORD.match(word)
    if not match:
        return word
    prefix, last = match.groups()
    return prefix + _pluralize_word(last)


def _pluralize_word(word: str) -> str:
    lower = word.lower()

    if lower in _UNCOUNTABLE:
        return word

    if lower in _IRREGULAR_PLURALS:
        plural = _IRREGULAR_PLURALS[lower]
        return plural.capitalize() if word[0].isupper() else plural

    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"

    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"

    if lower.endswith("fe"):
        return word[:-2] + "ves"
    if lower.endswith("f") and not lower.endswith(("ff", "of", "ief")):
        return word[:-1] + "ves"

    return word + "s"
