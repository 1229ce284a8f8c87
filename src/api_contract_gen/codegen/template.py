"""Minimal mustache-style template engine.

Supported syntax, evaluated in this order:

1. ``{{#each path}}...{{/each}}`` iterates a list. Inside the block
   ``{{this}}``, ``{{this.prop}}``, bare item properties, ``{{@index}}``
   and helper calls on item values are substituted.
2. ``{{#if path}}...{{/if}}`` keeps the block when path is truthy.
3. ``{{dotted.path}}`` interpolation.
4. ``{{helper arg}}`` calls a context function or a built-in helper.

Substituted values are parked in slots until the last pass, so data that
happens to contain ``{{`` is never read as template syntax. Unresolved
placeholders are left verbatim and reported by render_with_warnings.
"""

import json
import re
from typing import Any, Callable

from pydantic import BaseModel

from .naming import to_camel, to_kebab, to_pascal, to_snake

EACH = re.compile(r"\{\{#each\s+([\w.@]+)\s*\}\}(.*?)\{\{/each\}\}", re.DOTALL)
IF = re.compile(r"\{\{#if\s+([\w.@]+)\s*\}\}(.*?)\{\{/if\}\}", re.DOTALL)
VAR = re.compile(r"\{\{\s*([\w.@]+)\s*\}\}")
HELPER = re.compile(r"""\{\{\s*(\w+)\s+("[^"]*"|'[^']*'|[\w.@]+)\s*\}\}""")
SLOT = re.compile("\x00(\\d+)\x00")

BUILTIN_HELPERS: dict[str, Callable[[Any], Any]] = {
    "camel": to_camel,
    "pascal": to_pascal,
    "snake": to_snake,
    "kebab": to_kebab,
    "upper": lambda v: str(v).upper(),
    "lower": lambda v: str(v).lower(),
    "json": lambda v: json.dumps(v, indent=2),
}

_MISSING = object()


class RenderResult(BaseModel):
    text: str
    unresolved: list[str] = []


class _Slots:
    """Rendered values held out of the text until every pass has run."""

    def __init__(self):
        self.values: list[str] = []

    def park(self, text: str) -> str:
        self.values.append(text)
        return f"\x00{len(self.values) - 1}\x00"

    def restore(self, text: str) -> str:
        return SLOT.sub(lambda m: self.values[int(m.group(1))], text)


class TemplateEngine:
    """Renders templates against a dict context. Pure: no I/O, no state."""

    def __init__(self, helpers: dict[str, Callable[[Any], Any]] | None = None):
        self.helpers = {**BUILTIN_HELPERS, **(helpers or {})}

    def render(self, template: str, context: dict) -> str:
        return self.render_with_warnings(template, context).text

    def render_with_warnings(self, template: str, context: dict) -> RenderResult:
        if "{{" not in template:
            return RenderResult(text=template)

        unresolved: list[str] = []
        slots = _Slots()
        text = EACH.sub(lambda m: self._each(m, context, slots), template)
        text = IF.sub(lambda m: m.group(2) if _truthy(resolve(context, m.group(1))) else "", text)
        text = VAR.sub(lambda m: self._var(m, context, unresolved, slots), text)
        text = HELPER.sub(lambda m: self._helper(m, context, unresolved, slots), text)
        return RenderResult(text=slots.restore(text), unresolved=unresolved)

    # -- passes ---------------------------------------------------------------

    def _each(self, match: re.Match, context: dict, slots: _Slots) -> str:
        items = resolve(context, match.group(1))
        if not isinstance(items, (list, tuple)):
            return ""
        body = match.group(2)
        return "".join(self._each_item(body, item, index, slots) for index, item in enumerate(items))

    def _each_item(self, body: str, item: Any, index: int, slots: _Slots) -> str:
        def lookup(path: str) -> Any:
            if path == "@index":
                return index
            if path == "this":
                return item
            if path.startswith("this."):
                return resolve(item, path[5:])
            if isinstance(item, dict) and path.split(".")[0] in item:
                return resolve(item, path)
            return _MISSING

        def var(m: re.Match) -> str:
            value = lookup(m.group(1))
            return m.group(0) if value is _MISSING else slots.park(format_value(value))

        def helper(m: re.Match) -> str:
            name, arg = m.group(1), m.group(2)
            if arg[0] in "\"'":
                return m.group(0)
            value = lookup(arg)
            fn = self.helpers.get(name)
            if value is _MISSING or fn is None:
                return m.group(0)
            return slots.park(format_value(fn(value)))

        body = HELPER.sub(helper, body)
        return VAR.sub(var, body)

    def _var(self, match: re.Match, context: dict, unresolved: list[str], slots: _Slots) -> str:
        path = match.group(1)
        value = resolve(context, path)
        if value is _MISSING:
            unresolved.append(path)
            return match.group(0)
        return slots.park(format_value(value))

    def _helper(self, match: re.Match, context: dict, unresolved: list[str], slots: _Slots) -> str:
        name, arg = match.group(1), match.group(2)
        fn = context.get(name) if callable(context.get(name)) else self.helpers.get(name)
        if fn is None:
            unresolved.append(f"{name} {arg}")
            return match.group(0)
        if arg[0] in "\"'":
            value = arg[1:-1]
        else:
            value = resolve(context, arg)
            if value is _MISSING:
                unresolved.append(f"{name} {arg}")
                return match.group(0)
        return slots.park(format_value(fn(value)))


def resolve(context: Any, path: str) -> Any:
    """Walk a dotted path through dicts, lists and attributes."""
    current = context
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return _MISSING
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit():
            idx = int(part)
            if idx >= len(current):
                return _MISSING
            current = current[idx]
        elif current is not None and hasattr(current, part):
            current = getattr(current, part)
        else:
            return _MISSING
    return current


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return str(value)


def _truthy(value: Any) -> bool:
    return value is not _MISSING and bool(value)
