"""
Rewriter replaces the shortcodes in the text with the output of their handlers.

The text is processed in these steps:

1. Check if there are any shortcodes to process at all. If not, the text is returned as is,
   and the HTML is NOT analysed.
2. Index the HTML elements in the text (see `parse_html_structure()`).
3. Find the shortcodes in the text content and, separately, in each attribute value.
   Shortcodes cannot cross HTML tags.
4. Render each shortcode with its handler.
5. Assemble the final text in a single pass. Output that's relocated before / after
   the enclosing block element is inserted at its new position.
"""

from bisect import bisect_right
from typing import TYPE_CHECKING, Any, Dict, List, Literal, NamedTuple, Optional, Tuple

from django_shortcodes.app_settings import ErrorBehavior, app_settings
from django_shortcodes.types import Location, ShortcodeContext, ShortcodeResult
from django_shortcodes.util.exception import shortcode_error_message
from django_shortcodes.util.html_parser import HTMLNode, HTMLStructure, HTMLTagAttr, parse_html_structure
from django_shortcodes.util.logger import trace_shortcode_msg
from django_shortcodes.util.misc import span_overlaps
from django_shortcodes.util.tag_scanner import TAG_RE, MarkerSegment, Segment, TagOccurrence, TextSegment, scan

if TYPE_CHECKING:
    from django_shortcodes.shortcode_registry import ShortcodeRegistry


ContextType = Literal["body", "attribute", "verbatim"]
"""
Where a shortcode was found:

- `body` - In the text content, e.g. `<p>[user]</p>`
- `attribute` - Inside an HTML attribute value, e.g. `<a href="[link id=3]">`
- `verbatim` - Inside `<script>` or `<style>`, e.g. `<script>var id = [user_id];</script>`
"""

# `class` values of a shortcode that imply where its output should be placed,
# e.g. `[image class="left"]` floats the image before the paragraph.
CLASS_LOCATIONS: Dict[str, Location] = {
    "left": Location.BEFORE,
    "right": Location.BEFORE,
    "center": Location.SPLIT,
    "leftAlone": Location.SPLIT,
}


class _FoundShortcode(NamedTuple):
    tag: TagOccurrence
    context: ContextType
    attribute: Optional[HTMLTagAttr]


def rewrite(
    text: str,
    registry: "ShortcodeRegistry",
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Replace all shortcodes in the text with the output of the handlers registered
    in the given registry.

    Args:
        text (str): The text to process.
        registry (ShortcodeRegistry): Registry with the shortcode handlers.
        extra (Dict[str, Any], optional): Extra data passed to each handler in the `extra` argument.

    Returns:
        str: The text with shortcodes replaced.

    NOTE: All state is kept local to this function, so handlers may call `registry.parse()`
    recursively.
    """
    error_behavior = app_settings.ERROR_BEHAVIOR

    if not _needs_rewrite(text, registry, error_behavior):
        return text

    structure = parse_html_structure(text)
    found = _find_shortcodes(text, structure)

    # Render each shortcode. Output is either left in place, or moved before / after
    # the enclosing block element.
    rendered: Dict[int, str] = {}
    replacements: List[Tuple[int, int, Optional[int]]] = []  # (start, end, tag_id or None if moved)
    insertions: List[Tuple[int, int]] = []  # (anchor, tag_id)

    span_starts = [entry.tag.start_index for entry in found]
    span_ends = [entry.tag.end_index for entry in found]

    for tag_id, entry in enumerate(found):
        tag = entry.tag
        result = _render_shortcode(entry, registry, structure, error_behavior, extra)
        rendered[tag_id] = result.content

        anchor = _get_anchor(entry, result.location, structure, span_starts, span_ends)
        if anchor is None:
            replacements.append((tag.start_index, tag.end_index, tag_id))
        else:
            trace_shortcode_msg("MOVE", tag.name, tag.start_index, tag.end_index, extra=f"TO {anchor}")
            replacements.append((tag.start_index, tag.end_index, None))
            insertions.append((anchor, tag_id))

    segments = _assemble(text, replacements, insertions, rendered)

    return "".join(
        rendered[segment.tag_id] if isinstance(segment, MarkerSegment) else segment.text  # type: ignore[union-attr]
        for segment in segments
    )


def _needs_rewrite(text: str, registry: "ShortcodeRegistry", error_behavior: ErrorBehavior) -> bool:
    """
    Check whether there is at least one shortcode that would change the text.

    With `LEAVE` error behavior, unregistered shortcodes are left as they are, so we're looking
    only for registered or escaped shortcodes. Otherwise, any well-formed shortcode counts.

    NOTE: We search for matches starting at every `[`, so we find also shortcodes that
    would be missed by a plain left-to-right scan, e.g. shortcodes inside the arguments
    of a tag that turns out to cross an HTML tag.
    """
    index = 0
    while True:
        match = TAG_RE.search(text, index)
        if match is None:
            return False

        if error_behavior != ErrorBehavior.LEAVE:
            return True
        if match.group("oesc") or match.group("cesc"):
            return True
        name = match.group("open") or match.group("close")
        if registry.has(name):
            return True

        index = match.start() + 1


def _find_shortcodes(text: str, structure: HTMLStructure) -> List[_FoundShortcode]:
    found: List[_FoundShortcode] = []

    # Shortcodes in the text content. HTML tags (and so also their attributes) are skipped.
    for segment in scan(text, opaque_spans=structure.markup_spans):
        if not isinstance(segment, TagOccurrence):
            continue
        context: ContextType = "verbatim" if structure.is_verbatim(segment.start_index) else "body"
        found.append(_FoundShortcode(segment, context, None))

    body_spans = [(entry.tag.start_index, entry.tag.end_index) for entry in found]
    body_starts = [start for start, _ in body_spans]

    # Shortcodes inside attribute values, e.g. `<img class="[align]">`.
    # Each attribute is scanned separately, so a shortcode cannot cross the attribute's boundaries.
    for (start, end), attr in zip(structure.attr_spans, structure.span_attrs):
        if start == end:
            continue
        # Attribute is part of the content of another shortcode, e.g. `[box]<img alt="[x]">[/box]`
        if span_overlaps(body_spans, body_starts, start, end):
            continue
        for segment in scan(text, start, end):
            if isinstance(segment, TagOccurrence):
                found.append(_FoundShortcode(segment, "attribute", attr))

    found.sort(key=lambda entry: entry.tag.start_index)
    return found


def _render_shortcode(
    entry: _FoundShortcode,
    registry: "ShortcodeRegistry",
    structure: HTMLStructure,
    error_behavior: ErrorBehavior,
    caller_extra: Optional[Dict[str, Any]],
) -> ShortcodeResult:
    tag, context, attribute = entry

    # E.g. `[[user]]` -> `[user]`
    if tag.escaped:
        trace_shortcode_msg("SKIP", tag.name, tag.start_index, tag.end_index, context, extra="(escaped)")
        return ShortcodeResult(tag.unescaped_text)

    if not registry.has(tag.name):
        trace_shortcode_msg("SKIP", tag.name, tag.start_index, tag.end_index, context, extra="(not registered)")
        return ShortcodeResult(_render_unregistered(tag, context, error_behavior))

    trace_shortcode_msg("RENDER", tag.name, tag.start_index, tag.end_index, context)

    extra = _get_extra(tag, context, attribute, structure, caller_extra)
    with shortcode_error_message(tag.name):
        output = registry.call(tag.name, dict(tag.arguments), tag.content, extra)

    if isinstance(output, ShortcodeResult):
        content = str(output.content) if output.content is not None else ""
        location = Location(output.location)
    else:
        content = str(output) if output is not None else ""
        location = _get_location_from_class(tag.arguments)

    # Output inside attributes and `<script>` tags is always placed inline
    if context != "body":
        location = Location.INLINE

    return ShortcodeResult(content, location)


def _render_unregistered(tag: TagOccurrence, context: ContextType, error_behavior: ErrorBehavior) -> str:
    if error_behavior == ErrorBehavior.STRIP:
        return ""
    # We can't insert HTML into attribute values or `<script>` tags. So there we leave the text as it is.
    if error_behavior == ErrorBehavior.WARN and context == "body":
        return app_settings.WARNING_TEMPLATE.replace("{tag}", tag.text)
    return tag.text


def _get_extra(
    tag: TagOccurrence,
    context: ContextType,
    attribute: Optional[HTMLTagAttr],
    structure: HTMLStructure,
    caller_extra: Optional[Dict[str, Any]],
) -> ShortcodeContext:
    extra: ShortcodeContext = {
        **(caller_extra or {}),
        "context": context,
        "structure": structure,
        "node": None,
        "element": None,
        "block": None,
    }

    # NOTE: Shortcodes in attributes or in `<script>` are NOT given the enclosing element,
    # as their output cannot be relocated.
    if context == "body":
        element = structure.element_at(tag.start_index)
        extra["node"] = HTMLNode(start_index=tag.start_index, end_index=tag.end_index, parent=element)
        extra["element"] = element
        extra["block"] = structure.block_at(tag.start_index, app_settings.BLOCK_ELEMENTS)
    elif context == "attribute":
        extra["attribute"] = attribute

    return extra


def _get_location_from_class(arguments: Dict[str, str]) -> Location:
    for class_name in arguments.get("class", "").split():
        if class_name in CLASS_LOCATIONS:
            return CLASS_LOCATIONS[class_name]
    return Location.INLINE


def _get_anchor(
    entry: _FoundShortcode,
    location: Location,
    structure: HTMLStructure,
    span_starts: List[int],
    span_ends: List[int],
) -> Optional[int]:
    """
    Get the index at which the relocated output should be inserted.
    Returns `None` if the output should stay inline.
    """
    tag = entry.tag

    if location == Location.INLINE:
        return None

    # NOTE: Splitting the enclosing block in two is not supported. The output is left inline.
    if location == Location.SPLIT:
        trace_shortcode_msg("SKIP", tag.name, tag.start_index, tag.end_index, extra="(split not supported)")
        return None

    block = structure.block_at(tag.start_index, app_settings.BLOCK_ELEMENTS)
    if block is None:
        return None

    anchor = block.open_tag_start_index if location == Location.BEFORE else block.close_tag_end_index

    # The anchor may end up inside another shortcode, e.g. if the block was opened
    # inside the content of a paired shortcode. Then we can't move the output there.
    span_index = bisect_right(span_starts, anchor) - 1
    if span_index >= 0 and span_starts[span_index] < anchor < span_ends[span_index]:
        return None

    return anchor


def _assemble(
    text: str,
    replacements: List[Tuple[int, int, Optional[int]]],
    insertions: List[Tuple[int, int]],
    rendered: Dict[int, str],
) -> List[Segment]:
    """
    Build the final list of segments in a single pass over the text.

    Replacements are sorted and do not overlap. Insertions are sorted by their anchor,
    and insertions at the same anchor keep the document order of their shortcodes.
    An insertion is placed BEFORE a replacement that starts at the same index.
    """
    segments: List[Segment] = []
    insertions = sorted(insertions, key=lambda item: item[0])
    index = 0
    insert_index = 0

    def flush_insertions(until: int) -> None:
        nonlocal index
        nonlocal insert_index
        while insert_index < len(insertions) and insertions[insert_index][0] <= until:
            anchor, tag_id = insertions[insert_index]
            if anchor > index:
                segments.append(TextSegment(text=text[index:anchor], start_index=index))
                index = anchor
            segments.append(MarkerSegment(tag_id=tag_id))
            insert_index += 1

    for start, end, tag_id in replacements:
        flush_insertions(start)
        if start > index:
            segments.append(TextSegment(text=text[index:start], start_index=index))
        if tag_id is not None:
            segments.append(TextSegment(text=rendered[tag_id], start_index=start))
        index = end

    flush_insertions(len(text))
    if index < len(text):
        segments.append(TextSegment(text=text[index:], start_index=index))

    return segments
