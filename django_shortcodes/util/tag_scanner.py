"""
Scanner for shortcodes. It splits text into literal runs and shortcode occurrences.

Given

```
Hello [user id=3 /]! [quote author="Ann"]Be kind[/quote] [[user]]
```

the scanner returns:

```py
[
    TextSegment(text="Hello ", start_index=0),
    TagOccurrence(name="user", arguments={"id": "3"}, content=None, is_self_closing=True, ...),
    TextSegment(text="! ", start_index=19),
    TagOccurrence(name="quote", arguments={"author": "Ann"}, content="Be kind", ...),
    TextSegment(text=" ", start_index=56),
    TagOccurrence(name="user", arguments={}, content=None, escaped=True, ...),
]
```

The scanner does NOT know which shortcodes are registered. It reports every tag
that is well-formed, and it's up to the caller to decide what to do with it.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from django_shortcodes.util.argument_parser import parse_arguments
from django_shortcodes.util.misc import span_overlaps

# Argument key, e.g. `title` in `title="My photos"`
_ARG_KEY = r"""[^\s,'"=\[\]/]+"""
# Argument value, e.g. `"My photos"`, `'My photos'` or `large`.
# Unquoted values cannot end with `/`, because `/]` ends a self-closing tag.
# Unquoted values are never empty, so `key= b` can only be read as `key="b"`.
_ARG_VALUE = r"""(?: "[^"]*" | '[^']*' | (?:[^\s,'"\[\]/]|/(?!\]))+ )"""
# Value of `key=` that is followed by a comma or by the end of the tag, e.g. `[tag key=, other=1]`
_ARG_EMPTY_VALUE = r"""(?=,|/?\])"""

TAG_RE = re.compile(
    r"""
    \[(?P<oesc>\[?)                                 # Opening bracket, optionally doubled (escape)
    (?:
        /(?P<close>\w+)\]                           # Closing tag, e.g. `[/quote]`
      |
        (?P<open>\w+)                               # Tag name, e.g. `quote`
        (?P<attrs>(?:[\s,]+"""
    + _ARG_KEY
    + r"""(?:\s*=\s*(?:"""
    + _ARG_VALUE
    + "|"
    + _ARG_EMPTY_VALUE
    + r"""))?)*)                                     # Arguments, separated by whitespace or comma
        [\s,]*(?P<selfclosing>/)?\]                 # End of tag, optionally self-closing
    )
    (?P<cesc>\]?)                                   # Optional doubled closing bracket (escape)
    """,
    re.VERBOSE,
)


@dataclass
class TextSegment:
    """Literal run of text that is passed to the output as it is."""

    text: str
    start_index: int
    """Start index in the original text"""


@dataclass
class TagOccurrence:
    """
    Single shortcode found in the text, e.g. `[quote author="Ann"]Be kind[/quote]`.

    Paired tags are represented by a single `TagOccurrence`, where the text between
    the tags is the `content`.
    """

    name: str
    arguments: Dict[str, str]
    content: Optional[str]
    """Text between the opening and closing tags. `None` if the tag has no closing tag."""
    is_self_closing: bool
    """Whether the tag was written as `[name /]`"""
    escaped: bool
    """
    Whether the tag was escaped as `[[name]]`. Escaped tags are not rendered,
    but instead written out with a single pair of brackets.
    """
    start_index: int
    """Start index of the shortcode in the original text (inclusive)"""
    end_index: int
    """End index of the shortcode in the original text (exclusive)"""
    text: str
    """The original text of the shortcode"""

    @property
    def unescaped_text(self) -> str:
        """
        Text of an escaped shortcode, with one level of brackets removed, e.g.
        `[[quote]Hi[/quote]]` -> `[quote]Hi[/quote]`.
        """
        if not self.escaped:
            return self.text
        return self.text[1:-1]


@dataclass(frozen=True)
class MarkerSegment:
    """
    Placeholder for the rendered output of the shortcode with the given ID.
    Used when the output was moved away from the shortcode's position.
    """

    tag_id: int


Segment = Union[TextSegment, TagOccurrence, MarkerSegment]


@dataclass
class _RawTag:
    """Single opening or closing tag, before the tags are paired."""

    match: "re.Match[str]"

    @property
    def name(self) -> str:
        return self.match.group("close") or self.match.group("open")

    @property
    def is_close(self) -> bool:
        return self.match.group("close") is not None

    @property
    def is_self_closing(self) -> bool:
        return bool(self.match.group("selfclosing"))

    @property
    def open_escape(self) -> bool:
        return bool(self.match.group("oesc"))

    @property
    def close_escape(self) -> bool:
        return bool(self.match.group("cesc"))

    @property
    def is_escaped(self) -> bool:
        return self.open_escape and self.close_escape

    # NOTE: Unless the tag is escaped, the doubled brackets are NOT part of the tag.
    @property
    def start_index(self) -> int:
        return self.match.start() + (1 if self.open_escape else 0)

    @property
    def end_index(self) -> int:
        return self.match.end() - (1 if self.close_escape else 0)

    @property
    def arguments(self) -> Dict[str, str]:
        return parse_arguments(self.match.group("attrs") or "")


def scan(
    text: str,
    start: int = 0,
    end: Optional[int] = None,
    opaque_spans: Sequence[Tuple[int, int]] = (),
) -> List[Segment]:
    """
    Split the text into a list of `TextSegment` and `TagOccurrence`, in the order
    in which they appear in the text.

    Args:
        text (str): The text to scan.
        start (int, optional): Index at which to start scanning.
        end (int, optional): Index at which to stop scanning (exclusive). Defaults to the end of the text.
        opaque_spans (Sequence[Tuple[int, int]], optional): Sorted, non-overlapping `(start, end)` ranges\
            that no shortcode may overlap, e.g. HTML tags.

    Rules:
    - Tags are `[name args]`, `[name args /]` or `[name args]content[/name]`
    - Closing tag pairs with the most recent unpaired opening tag of the same name.
      Everything in between, including other shortcodes, is the content.
    - Opening tag without a closing tag has no content.
    - Closing tag without an opening tag is left as text.
    - `[[name]]` and `[[name]content[/name]]` are escaped.
    - Doubled bracket that does not form an escape is left as text.
    """
    end = len(text) if end is None else end

    # Pair the opening and closing tags.
    # Each entry is an opening tag and, if found, its closing tag.
    entries: List[Tuple[_RawTag, Optional[_RawTag]]] = []
    for raw_tag in _iter_raw_tags(text, start, end, opaque_spans):
        if not raw_tag.is_close:
            entries.append((raw_tag, None))
            continue

        open_index = _find_opening_tag(entries, raw_tag.name)
        # Stray closing tag, e.g. `[/quote]`, is left as text.
        if open_index is None:
            continue

        # Tags between the opening and closing tags become part of the content
        opening, _ = entries[open_index]
        del entries[open_index:]
        entries.append((opening, raw_tag))

    segments: List[Segment] = []
    index = start
    for opening, closing in entries:
        occurrence = _make_occurrence(text, opening, closing)
        if occurrence.start_index > index:
            segments.append(TextSegment(text=text[index : occurrence.start_index], start_index=index))  # noqa: E203
        segments.append(occurrence)
        index = occurrence.end_index

    if index < end:
        segments.append(TextSegment(text=text[index:end], start_index=index))

    return segments


def _iter_raw_tags(
    text: str,
    start: int,
    end: int,
    opaque_spans: Sequence[Tuple[int, int]],
) -> Iterator[_RawTag]:
    opaque_starts = [span_start for span_start, _ in opaque_spans]

    index = start
    while index < end:
        match = TAG_RE.search(text, index, end)
        if match is None:
            return

        # Shortcodes cannot cross HTML tags, e.g. `[tag title="<b>"]`.
        # Try again from the next character.
        if opaque_spans and span_overlaps(opaque_spans, opaque_starts, match.start(), match.end()):
            index = match.start() + 1
            continue

        yield _RawTag(match)
        index = match.end()


def _find_opening_tag(entries: List[Tuple[_RawTag, Optional[_RawTag]]], name: str) -> Optional[int]:
    for index in range(len(entries) - 1, -1, -1):
        opening, closing = entries[index]
        if closing is not None or opening.name != name:
            continue
        # `[name /]` and `[[name]]` never have content
        if opening.is_self_closing or opening.is_escaped:
            continue
        return index
    return None


def _make_occurrence(text: str, opening: _RawTag, closing: Optional[_RawTag]) -> TagOccurrence:
    if closing is None:
        escaped = opening.is_escaped
        start_index = opening.match.start() if escaped else opening.start_index
        end_index = opening.match.end() if escaped else opening.end_index
        content = None
    else:
        escaped = opening.open_escape and closing.close_escape
        start_index = opening.match.start() if escaped else opening.start_index
        end_index = closing.match.end() if escaped else closing.end_index
        content = text[opening.end_index : closing.start_index]  # noqa: E203

    return TagOccurrence(
        name=opening.name,
        arguments=opening.arguments,
        content=content,
        is_self_closing=opening.is_self_closing,
        escaped=escaped,
        start_index=start_index,
        end_index=end_index,
        text=text[start_index:end_index],
    )
