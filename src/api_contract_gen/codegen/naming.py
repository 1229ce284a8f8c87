"""Identifier case conversion shared by the template helpers and the backends."""

import re

_WORD = re.compile(r"[A-Z]+(?=[A-Z][a-z0-9])|[A-Z]?[a-z0-9]+|[A-Z]+|\d+")


def words(text: str) -> list[str]:
    """'getUserByID', 'get-user_by id' -> ['get', 'user', 'by', 'id']."""
    return [w.lower() for w in _WORD.findall(str(text))]


def to_camel(text: str) -> str:
    parts = words(text)
    if not parts:
        return ""
    return parts[0] + "".join(p.capitalize() for p in parts[1:])


def to_pascal(text: str) -> str:
    return "".join(p.capitalize() for p in words(text))


def to_snake(text: str) -> str:
    return "_".join(words(text))


def to_kebab(text: str) -> str:
    return "-".join(words(text))


def to_upper_snake(text: str) -> str:
    return to_snake(text).upper()


def identifier(text: str, convention: str = "camelCase") -> str:
    """Apply a naming convention; leading digits get an underscore prefix."""
    converters = {
        "camelCase": to_camel,
        "PascalCase": to_pascal,
        "snake_case": to_snake,
        "kebab-case": to_kebab,
        "UPPER_SNAKE_CASE": to_upper_snake,
    }
    name = converters[convention](text)
    if name and name[0].isdigit():
        name = "_" + name
    return name or "_"


def sanitize_name(text: str) -> str:
    """Keep ASCII letters and digits only, case preserved: 'Pet Store API' -> 'PetStoreAPI'."""
    return re.sub(r"[^A-Za-z0-9]", "", str(text))
