"""Types shared by shortcode handlers and the rewriter."""

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, NamedTuple, Optional, Union

if TYPE_CHECKING:
    from django_shortcodes.shortcode_registry import ShortcodeRegistry


class Location(str, Enum):
    """
    Where the output of a shortcode should be placed, relative to the nearest
    block element (e.g. `<div>` or `<p>`) that encloses the shortcode.
    """

    INLINE = "inline"
    """Output is placed exactly where the shortcode was."""

    BEFORE = "before"
    """Output is moved right before the opening tag of the enclosing block."""

    AFTER = "after"
    """Output is moved right after the closing tag of the enclosing block."""

    SPLIT = "split"
    """
    Output should split the enclosing block in two, and be placed between them.

    NOTE: Splitting is NOT supported. Output is placed inline instead.
    """


class ShortcodeResult(NamedTuple):
    """
    Return this from a handler to move the output away from the shortcode's position.

    ```python
    def figure(arguments, content, registry, tag_name, extra):
        return ShortcodeResult(f"<figure>{content}</figure>", Location.BEFORE)
    ```

    Location is ignored for shortcodes that are inside HTML attributes or `<script>` tags.
    """

    content: str
    location: Location = Location.INLINE


ShortcodeContext = Dict[str, Any]

HandlerResult = Optional[Union[str, ShortcodeResult]]

ShortcodeHandler = Callable[
    [Dict[str, str], Optional[str], "ShortcodeRegistry", str, ShortcodeContext],
    HandlerResult,
]
"""
Signature of shortcode handlers:

```python
def handler(
    arguments: Dict[str, str],
    content: Optional[str],
    registry: ShortcodeRegistry,
    tag_name: str,
    extra: Dict[str, Any],
) -> Union[str, ShortcodeResult, None]:
    ...
```
"""
