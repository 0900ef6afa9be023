"""Path template compilation.

Turns a route template such as ``/users/{id:int}/posts/{slug}`` into an
anchored regular expression with one named group per placeholder::

    >>> pattern_to_regex("/users/{id:int}")
    '^/users/(?P<id>\\\\d+)$'

Compilation is pure: the same template and options always produce the
same expression, so results are memoised.
"""

import functools
import re

from gora.errors import InvalidPatternError

# Placeholder type -> regular expression fragment
PARAM_TYPES: dict[str, str] = {
    "int": r"\d+",
    "str": r"\w+",
    "float": r"\d+\.\d+",
    "bool": r"true|false",
    "date": r"\d{4}-\d{2}-\d{2}",
    "datetime": r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}",
}

DEFAULT_PARAM_TYPE = "str"


def parse_placeholder(segment: str) -> tuple[str, str] | None:
    """Split ``{name}`` / ``{name:type}`` into ``(name, type)``.

    Returns ``None`` for literal segments.

    Raises:
        InvalidPatternError: If the segment mixes braces with literal
            text or the name is not an identifier.
    """
    if "{" not in segment and "}" not in segment:
        return None
    if not (segment.startswith("{") and segment.endswith("}")) or segment.count("{") != 1:
        msg = f"invalid placeholder segment: {segment!r}"
        raise InvalidPatternError(msg)

    name, _, param_type = segment[1:-1].partition(":")
    if not name.isidentifier():
        msg = f"invalid parameter name: {name!r}"
        raise InvalidPatternError(msg)
    return name, param_type or DEFAULT_PARAM_TYPE


@functools.lru_cache(maxsize=1024)
def pattern_to_regex(template: str, *, strict_slash: bool = False) -> str:
    """Translate a path template into an anchored regular expression string.

    Literal segments are escaped, so ``/v1.0/items`` matches a literal
    dot. With *strict_slash*, a trailing ``/`` is required unless the
    template is the root.

    Raises:
        InvalidPatternError: On an unknown placeholder type, a malformed
            placeholder, or a duplicated parameter name.
    """
    segments = template.split("/")
    regex = "^/"
    seen: set[str] = set()

    last = len(segments) - 1
    for index, segment in enumerate(segments):
        placeholder = parse_placeholder(segment)
        if placeholder is None:
            regex += re.escape(segment)
        else:
            name, param_type = placeholder
            fragment = PARAM_TYPES.get(param_type)
            if fragment is None:
                msg = f"invalid parameter type: {param_type}"
                raise InvalidPatternError(msg)
            if name in seen:
                msg = f"duplicate parameter name {name!r} in {template!r}"
                raise InvalidPatternError(msg)
            seen.add(name)
            regex += f"(?P<{name}>{fragment})"

        if index < last and segment:
            regex += "/"

    if strict_slash and len(regex) > 2 and not regex.endswith("/"):
        regex += "/"

    return regex + "$"


@functools.lru_cache(maxsize=1024)
def compile_pattern(template: str, *, strict_slash: bool = False) -> re.Pattern[str]:
    """Compile a path template. See ``pattern_to_regex``.

    Character classes are ASCII-only, so ``\\d`` does not accept other
    scripts' digits. Routes apply the result with ``fullmatch``.
    """
    return re.compile(pattern_to_regex(template, strict_slash=strict_slash), re.ASCII)
