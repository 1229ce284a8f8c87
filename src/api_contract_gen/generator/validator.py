"""Validates generated files for syntax and structural correctness."""

import ast
import json
import xml.etree.ElementTree as ET

import yaml

BRACKET_EXTENSIONS = (".js", ".ts", ".java", ".cs", ".go", ".gradle")
PAIRS = {")": "(", "]": "[", "}": "{"}


def validate_python(files: dict[str, str]) -> dict[str, str]:
    """Check Python files for syntax errors.

    Returns dict of {filename: error_message} for files with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(".py"):
            continue
        if not content.strip():
            continue
        try:
            ast.parse(content, filename=filename)
        except SyntaxError as e:
            errors[filename] = f"SyntaxError: {e.msg} (line {e.lineno})"
    return errors


def validate_yaml(files: dict[str, str]) -> dict[str, str]:
    """Check YAML files for format errors.

    Returns dict of {filename: error_message} for files with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not filename.endswith((".yaml", ".yml")):
            continue
        try:
            yaml.safe_load(content)
        except yaml.YAMLError as e:
            errors[filename] = f"YAMLError: {e}"
    return errors


def validate_json(files: dict[str, str]) -> dict[str, str]:
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(".json"):
            continue
        try:
            json.loads(content)
        except json.JSONDecodeError as e:
            errors[filename] = f"JSONDecodeError: {e.msg} (line {e.lineno})"
    return errors


def validate_xml(files: dict[str, str]) -> dict[str, str]:
    """Well-formedness check for pom.xml, .csproj and logback files."""
    errors = {}
    for filename, content in files.items():
        if not filename.endswith((".xml", ".csproj")):
            continue
        try:
            ET.fromstring(content)
        except ET.ParseError as e:
            errors[filename] = f"ParseError: {e}"
    return errors


def validate_brackets(files: dict[str, str]) -> dict[str, str]:
    """Check (), [] and {} balance in C-family sources, ignoring strings and comments."""
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(BRACKET_EXTENSIONS):
            continue
        problem = _bracket_problem(content)
        if problem:
            errors[filename] = problem
    return errors


def _bracket_problem(source: str) -> str | None:
    stack: list[tuple[str, int]] = []
    line = 1
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        nxt = source[i + 1] if i + 1 < n else ""
        if ch == "\n":
            line += 1
        elif ch == "/" and nxt == "/":
            end = source.find("\n", i)
            i = n if end == -1 else end
            continue
        elif ch == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            if end == -1:
                return f"Unterminated block comment (line {line})"
            line += source.count("\n", i, end)
            i = end + 2
            continue
        elif ch in "\"'`":
            end = _string_end(source, i, ch)
            if end == -1:
                return f"Unterminated string literal (line {line})"
            line += source.count("\n", i, end)
            i = end + 1
            continue
        elif ch in "([{":
            stack.append((ch, line))
        elif ch in ")]}":
            if not stack or stack[-1][0] != PAIRS[ch]:
                return f"Unbalanced '{ch}' (line {line})"
            stack.pop()
        i += 1

    if stack:
        opener, opened = stack[-1]
        return f"Unclosed '{opener}' (line {opened})"
    return None


def _string_end(source: str, start: int, quote: str) -> int:
    """Index of the closing quote, or -1.

    Triple double quotes (Java text blocks) and backticks may span lines;
    other literals stop at a newline.
    """
    if quote == '"' and source.startswith('"""', start):
        end = source.find('"""', start + 3)
        return -1 if end == -1 else end + 2
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == "\\" and quote != "`":
            i += 2
            continue
        if ch == quote:
            return i
        if ch == "\n" and quote != "`":
            return -1
        i += 1
    return -1


def validate_files(files: dict[str, str]) -> dict[str, str]:
    """Run all validations on generated files.

    Returns dict of {filename: error_message} for all files with errors.
    """
    errors = {}
    errors.update(validate_python(files))
    errors.update(validate_yaml(files))
    errors.update(validate_json(files))
    errors.update(validate_xml(files))
    errors.update(validate_brackets(files))
    return errors
