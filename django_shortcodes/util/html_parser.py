"""
Lightweight HTML lexer. It does NOT build a DOM. Instead, it records where the HTML
elements start and end, so that shortcodes can be placed relative to them.

The entrypoint is the `parse_html_structure()` function, which is given an HTML and returns
a read-only `HTMLStructure` index that answers positional queries like
"which element encloses index 120?" or "is index 45 inside an attribute value?".

Shortcode content is written by people, so the lexer is lenient. Instead of raising on
malformed HTML, it does what browsers do, more or less:

- `<` that does not start a tag (e.g. `a < b`) is text
- Unterminated tags (e.g. `<div class="foo`) are text
- End tags close any unclosed elements nested within them
- Stray end tags are ignored
- Elements that are never closed end at the end of the text
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

from django_shortcodes.util.misc import span_overlaps

COMMENT_START = "<!--"
COMMENT_END = "-->"
CDATA_START = "<![CDATA["
CDATA_END = "]]>"
DOCTYPE_START = "<!"
PROCESSING_INSTRUCTION_START = "<?"
START_TAG_START = "<"
END_TAG_START = "</"
TAG_END = ">"
TAG_END_SELF_CLOSING = "/>"

TAG_WHITESPACE = (" ", "\t", "\n", "\r", "\f")
TAG_NAME_DELIIMITERS = (*TAG_WHITESPACE, TAG_END, TAG_END_SELF_CLOSING)
ATTR_QUOTES = ('"', "'")

# See https://developer.mozilla.org/en-US/docs/Glossary/Void_element
VOID_ELEMENTS = (
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "param",
    "source",
    "track",
    "wbr",
)

# Content of these elements is NOT HTML, e.g. `<script>if (a < b) {}</script>`.
# The content ends at the first matching end tag.
RAW_TEXT_ELEMENTS = ("script", "style")
# End tag of a raw text element, e.g. `</script>` or `</SCRIPT >`, but not `</scripts>`.
# Matched case-insensitively, but only for ASCII letters, same as the tag names.
RAW_TEXT_END_RES = {
    name: re.compile(r"</" + name + r"(?=[ \t\n\r\f>/]|\Z)", re.IGNORECASE | re.ASCII) for name in RAW_TEXT_ELEMENTS
}


@dataclass
class HTMLTagAttr:
    """E.g. `class="foo bar"` in `<div class="foo bar">...</div>`"""

    key: str
    value: Optional[str]
    start_index: int
    """Start index of the attribute (include both key and value) in the parsed text."""
    value_start_index: Optional[int]
    """Start index of the attribute value (without quotes). `None` if the attribute has no value."""
    value_end_index: Optional[int]
    """End index of the attribute value (without quotes, exclusive). `None` if the attribute has no value."""
    quoted: bool
    """Whether the value is quoted (either with single or double quotes)"""


@dataclass(eq=False)
class HTMLElement:
    """
    E.g. `<div class="foo bar">...</div>`

    All indices are relative to the text given to `parse_html_structure()`.
    For void and self-closing elements, the closing tag has zero length and is
    placed right after the opening tag.
    """

    name: str
    open_tag_start_index: int
    open_tag_end_index: int
    close_tag_start_index: int
    close_tag_end_index: int
    attrs: List[HTMLTagAttr]
    parent: Optional["HTMLElement"]

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def contains(self, index: int) -> bool:
        """Whether the index is within the element's content (between the opening and closing tags)."""
        return self.open_tag_end_index <= index < self.close_tag_start_index

    def get_attr(self, key: str) -> Optional[HTMLTagAttr]:
        """
        Get an attribute from the tag.

        Given `<div data-id="123">...</div>`

        ```python
        get_attr("data-id")  # HTMLTagAttr(key="data-id", value="123", ...)
        get_attr("title")  # None
        ```
        """
        for attr in self.attrs:
            if attr.key == key:
                return attr
        return None

    def has_attr(self, key: str) -> bool:
        return self.get_attr(key) is not None

    def ancestors(self) -> Iterator["HTMLElement"]:
        """Iterate over the element itself and its parents, from the innermost to the root."""
        element: Optional[HTMLElement] = self
        while element is not None:
            yield element
            element = element.parent


@dataclass(frozen=True)
class HTMLNode:
    """
    Position of a piece of text content, e.g. of a shortcode, within the HTML.

    Given `<p>Hello [user]</p>`, the node of `[user]` spans indices 9-15,
    and its parent is the `<p>` element.
    """

    start_index: int
    end_index: int
    parent: Optional[HTMLElement]


@dataclass
class HTMLStructure:
    """
    Read-only index of the HTML elements in a text.

    NOTE: The index is built once per parse, and describes the ORIGINAL text.
    It's not updated when the text is rewritten.
    """

    text: str
    elements: List[HTMLElement]
    """All elements, in the order of their opening tags."""
    markup_spans: List[Tuple[int, int]]
    """
    Sorted `(start, end)` ranges of everything that is NOT text content. That is,
    start tags (including their attributes), end tags, comments, CDATA, doctypes
    and processing instructions.
    """
    attr_spans: List[Tuple[int, int]]
    """Sorted `(start, end)` ranges of attribute values."""
    span_attrs: List[HTMLTagAttr]
    """Attributes that correspond to `attr_spans`, in the same order."""

    _open_tag_ends: List[int] = field(init=False, repr=False)
    _markup_starts: List[int] = field(init=False, repr=False)
    _attr_starts: List[int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._open_tag_ends = [elem.open_tag_end_index for elem in self.elements]
        self._markup_starts = [start for start, _ in self.markup_spans]
        self._attr_starts = [start for start, _ in self.attr_spans]

    def element_at(self, index: int) -> Optional[HTMLElement]:
        """
        Get the innermost element whose content contains the given index.
        Returns `None` if the index is at the top level.
        """
        # Elements are sorted by their opening tags. So the last element that was opened
        # before the index is either the one we're looking for, or one of its descendants.
        # In the latter case, we walk up the parents until we find the one that contains the index.
        elem_index = bisect_right(self._open_tag_ends, index) - 1
        if elem_index < 0:
            return None

        for element in self.elements[elem_index].ancestors():
            if element.contains(index):
                return element
        return None

    def block_at(self, index: int, block_elements: Sequence[str]) -> Optional[HTMLElement]:
        """Get the nearest element that encloses the index AND is one of `block_elements`."""
        element = self.element_at(index)
        if element is None:
            return None

        block_names = {name.lower() for name in block_elements}
        for ancestor in element.ancestors():
            if ancestor.name.lower() in block_names:
                return ancestor
        return None

    def attribute_at(self, index: int) -> Optional[HTMLTagAttr]:
        """Get the attribute whose value contains the given index."""
        span_index = bisect_right(self._attr_starts, index) - 1
        if span_index < 0:
            return None

        start, end = self.attr_spans[span_index]
        if start <= index < end:
            return self.span_attrs[span_index]
        return None

    def is_verbatim(self, index: int) -> bool:
        """Whether the index is inside the content of `<script>` or `<style>`."""
        element = self.element_at(index)
        return element is not None and element.name.lower() in RAW_TEXT_ELEMENTS

    def overlaps_markup(self, start: int, end: int) -> bool:
        """Whether the range `[start, end)` overlaps any HTML tag, comment, etc."""
        return span_overlaps(self.markup_spans, self._markup_starts, start, end)


# States:
# 1. Text (can enter tag, end tag, comment, CDATA, doctype, processing instruction)
# 2. Comment, CDATA, doctype, processing instruction - we jump to their end, as they are opaque
# 3. Start tag (can enter attribute, will end at `>` or `/>`)
#    - If either `/>` reached, or the tag is a void element, then the element ends immediately
#    - If the tag is `<script>` or `<style>`, we jump to the matching end tag
#    - Otherwise, at `>`, we enter the tag's content (the "text" state)
# 4. Attribute (will end at `"` or `'`, or whitespace / `>` if unquoted)
# 5. End tag (will end at `>`), closes the matching element and all unclosed elements within it
def parse_html_structure(text: str) -> HTMLStructure:
    """
    Index the HTML elements in the given text.

    Example:
        >>> structure = parse_html_structure('<div><p class="a">Hello</p></div>')
        >>> structure.element_at(19).name
        'p'
        >>> structure.element_at(19).parent.name
        'div'
        >>> structure.attribute_at(15).key
        'class'
    """
    total_len = len(text)
    index = 0

    elements: List[HTMLElement] = []
    markup_spans: List[Tuple[int, int]] = []
    attr_spans: List[Tuple[int, int]] = []
    span_attrs: List[HTMLTagAttr] = []
    tag_stack: List[HTMLElement] = []

    def find_or_end(token: str, start: int) -> int:
        """Index right after the next occurrence of token, or the end of the text."""
        pos = text.find(token, start)
        return total_len if pos == -1 else pos + len(token)

    def close_element(element: HTMLElement, close_start: int, close_end: int) -> None:
        element.close_tag_start_index = close_start
        element.close_tag_end_index = close_end

    while index < total_len:
        next_tag = text.find(START_TAG_START, index)
        if next_tag == -1:
            break
        index = next_tag

        # Comments, CDATA, doctype and processing instructions are all opaque.
        # We take the content until the end token.
        if text.startswith(COMMENT_START, index):
            end = find_or_end(COMMENT_END, index + len(COMMENT_START))
            markup_spans.append((index, end))
            index = end
            continue
        elif text.startswith(CDATA_START, index):
            end = find_or_end(CDATA_END, index + len(CDATA_START))
            markup_spans.append((index, end))
            index = end
            continue
        elif text.startswith(DOCTYPE_START, index) or text.startswith(PROCESSING_INSTRUCTION_START, index):
            end = find_or_end(TAG_END, index + 2)
            markup_spans.append((index, end))
            index = end
            continue

        # EndTag, e.g. `</div>`
        elif text.startswith(END_TAG_START, index) and _is_tag_name_start(text, index + len(END_TAG_START)):
            tag_end = text.find(TAG_END, index)
            # Unterminated end tag is treated as text
            if tag_end == -1:
                index += 1
                continue

            close_start = index
            close_end = tag_end + len(TAG_END)
            tag_name = _take_tag_name(text, index + len(END_TAG_START))
            markup_spans.append((close_start, close_end))
            index = close_end

            # Find the matching element. Elements that are NOT closed until their parent
            # is closed, are implicitly closed right before the parent's end tag.
            # If there's no matching element, this is a stray end tag, and we ignore it.
            match_index = _find_last_index(tag_stack, tag_name)
            if match_index is None:
                continue

            for unclosed in tag_stack[match_index + 1 :]:  # noqa: E203
                close_element(unclosed, close_start, close_start)
            close_element(tag_stack[match_index], close_start, close_end)
            del tag_stack[match_index:]
            continue

        # StartTag, e.g. `<div class="foo">`
        elif _is_tag_name_start(text, index + len(START_TAG_START)):
            parsed = _parse_start_tag(text, index)
            # Unterminated start tag is treated as text
            if parsed is None:
                index += 1
                continue

            tag_name, attrs, open_end, is_self_closing = parsed
            element = HTMLElement(
                name=tag_name,
                open_tag_start_index=index,
                open_tag_end_index=open_end,
                close_tag_start_index=open_end,
                close_tag_end_index=open_end,
                attrs=attrs,
                parent=tag_stack[-1] if tag_stack else None,
            )
            elements.append(element)
            markup_spans.append((index, open_end))
            for attr in attrs:
                if attr.value_start_index is not None and attr.value_end_index is not None:
                    attr_spans.append((attr.value_start_index, attr.value_end_index))
                    span_attrs.append(attr)
            index = open_end

            tag_name_lower = tag_name.lower()

            # Case: Self-closing tag (e.g. `<div />`) or void element (e.g. `<input>`)
            # NOTE: If the tag is a void element, then it doesn't have a closing tag.
            #       See https://developer.mozilla.org/en-US/docs/Glossary/Void_element
            if is_self_closing or tag_name_lower in VOID_ELEMENTS:
                continue

            # NOTE: Inside a <script> tag, there may be nested tags as comments or strings
            # e.g.
            # ```html
            # <script>
            #  // <div></div>
            # </script>
            # ```
            # So we jump straight to the end tag, same as the browsers do.
            if tag_name_lower in RAW_TEXT_ELEMENTS:
                close_start = _find_raw_text_end(text, index, tag_name_lower)
                if close_start == total_len:
                    close_element(element, total_len, total_len)
                else:
                    close_end = find_or_end(TAG_END, close_start)
                    close_element(element, close_start, close_end)
                    markup_spans.append((close_start, close_end))
                index = element.close_tag_end_index
                continue

            tag_stack.append(element)
            continue

        # `<` that does not start a tag, e.g. `a < b`
        else:
            index += 1
            continue

    # Elements that were never closed end at the end of the text
    for unclosed in tag_stack:
        close_element(unclosed, total_len, total_len)

    return HTMLStructure(
        text=text,
        elements=elements,
        markup_spans=markup_spans,
        attr_spans=attr_spans,
        span_attrs=span_attrs,
    )


def _is_tag_name_start(text: str, index: int) -> bool:
    return index < len(text) and text[index].isascii() and text[index].isalpha()


def _take_tag_name(text: str, index: int) -> str:
    start = index
    while index < len(text) and not text.startswith(TAG_NAME_DELIIMITERS, index):
        index += 1
    return text[start:index]


def _find_last_index(tag_stack: List[HTMLElement], tag_name: str) -> Optional[int]:
    tag_name_lower = tag_name.lower()
    for r_idx, elem in enumerate(reversed(tag_stack)):
        if elem.name.lower() == tag_name_lower:
            return len(tag_stack) - 1 - r_idx
    return None


def _find_raw_text_end(text: str, index: int, tag_name: str) -> int:
    """Find the start of `</script` (case-insensitive) that ends the raw text, or the end of the text."""
    match = RAW_TEXT_END_RES[tag_name].search(text, index)
    return match.start() if match else len(text)


def _parse_start_tag(text: str, start: int) -> Optional[Tuple[str, List[HTMLTagAttr], int, bool]]:
    """
    Parse a start tag like `<div class="foo bar" hidden>`, starting at the `<`.

    Returns the tag name, the attributes, the index right after the tag and whether
    the tag is self-closing. Returns `None` if the tag is not terminated.
    """
    total_len = len(text)
    index = start + len(START_TAG_START)

    def take_until(tokens: Sequence[str]) -> str:
        nonlocal index
        token_start = index
        while index < total_len and not text.startswith(tuple(tokens), index):
            index += 1
        return text[token_start:index]

    def take_while(tokens: Sequence[str]) -> str:
        nonlocal index
        token_start = index
        while index < total_len and text[index] in tokens:
            index += 1
        return text[token_start:index]

    tag_name = take_until(TAG_NAME_DELIIMITERS)

    # Start attribute parsing
    attrs: List[HTMLTagAttr] = []
    while True:
        take_while(TAG_WHITESPACE)
        if index >= total_len:
            return None

        # End of attributes
        if text.startswith(TAG_END, index):
            return tag_name, attrs, index + len(TAG_END), False
        if text.startswith(TAG_END_SELF_CLOSING, index):
            return tag_name, attrs, index + len(TAG_END_SELF_CLOSING), True

        attr_start_index = index
        key = take_until(["=", *TAG_WHITESPACE, TAG_END, TAG_END_SELF_CLOSING])

        # Whitespace is allowed around `=`, e.g. `<a href = "/">`
        before_assign = index
        take_while(TAG_WHITESPACE)

        value: Optional[str] = None
        value_start: Optional[int] = None
        value_end: Optional[int] = None
        quoted = False

        # Has value
        if text.startswith("=", index):
            index += 1
            take_while(TAG_WHITESPACE)
            # E.g. `height="20"`
            if index < total_len and text[index] in ATTR_QUOTES:
                quote_char = text[index]
                value_start = index + 1
                value_end = text.find(quote_char, value_start)
                if value_end == -1:
                    return None
                value = text[value_start:value_end]
                quoted = True
                index = value_end + 1
            # E.g. `height=20`
            else:
                value_start = index
                value = take_until([*TAG_WHITESPACE, TAG_END])
                value_end = index
        else:
            index = before_assign

        attrs.append(
            HTMLTagAttr(
                key=key,
                value=value,
                start_index=attr_start_index,
                value_start_index=value_start,
                value_end_index=value_end,
                quoted=quoted,
            )
        )
