"""
Parser for the arguments of a shortcode.

The parser reads the part of a shortcode after the tag name
(without the `[` `]` and without the trailing `/`):

```
[gallery, id=3 title="My photos" size='large']
```

and returns an ordered dictionary:

```py
{"id": "3", "title": "My photos", "size": "large"}
```

See `parse_arguments()` for details.
"""

from typing import Dict, Tuple

ARG_WHITESPACE = (" ", "\t", "\n", "\r", "\f")
ARG_SEPARATORS = (*ARG_WHITESPACE, ",")
ARG_QUOTES = ('"', "'")
ARG_ASSIGN = "="


def parse_arguments(text: str) -> Dict[str, str]:
    """
    Parse the arguments of a shortcode, like this:

    ```
    foo = "bar",bar='foo', baz=buz123 flag
    ```

    into a dictionary:

    ```py
    {"foo": "bar", "bar": "foo", "baz": "buz123", "flag": ""}
    ```

    Supported syntax:
    - Separators: Whitespace or comma, possibly mixed and repeated: `a=1, b=2,c=3 d=4`
    - Unquoted values: `key=val`. The value ends at the next separator
    - Quoted values: `key="val two"`, `key='val, two'`. The value ends at the matching quote
    - Whitespace around the `=`: `key = "val"`
    - Bare keys: `key`, `key=`. The value is an empty string

    Values are NEVER coerced, e.g. `id=2` gives `{"id": "2"}`.

    If a key is defined multiple times, the last occurrence wins.

    Malformed input never raises. An unterminated quote runs until the end of the text.
    """
    index = 0
    arguments: Dict[str, str] = {}

    def is_at_end(offset: int = 0) -> bool:
        return index + offset >= len(text)

    def take_until(tokens: Tuple[str, ...]) -> str:
        nonlocal index
        start = index
        while not is_at_end() and text[index] not in tokens:
            index += 1
        return text[start:index]

    def take_while(tokens: Tuple[str, ...]) -> str:
        nonlocal index
        start = index
        while not is_at_end() and text[index] in tokens:
            index += 1
        return text[start:index]

    def peek() -> str:
        return text[index] if not is_at_end() else ""

    def take_value() -> str:
        nonlocal index

        # E.g. `title="My photos"`
        quote_char = peek()
        if quote_char in ARG_QUOTES:
            index += 1
            value = take_until((quote_char,))
            # Skip the closing quote (if the quote was not terminated, we're at the end)
            index += 1
            return value

        # E.g. `id=3`
        return take_until(ARG_SEPARATORS)

    while True:
        take_while(ARG_SEPARATORS)
        if is_at_end():
            break

        key = take_until((*ARG_SEPARATORS, ARG_ASSIGN, *ARG_QUOTES))

        # Stray quote or `=` without a key, e.g. `="foo"`. Consume the value and move on.
        if not key:
            if peek() == ARG_ASSIGN:
                index += 1
                take_while(ARG_WHITESPACE)
            take_value()
            continue

        # Whitespace is allowed around the `=`, but a comma ends the argument.
        # So `key , val` is two bare keys, while `key = val` is a single argument.
        before_assign = index
        take_while(ARG_WHITESPACE)

        if peek() == ARG_ASSIGN:
            index += 1
            take_while(ARG_WHITESPACE)
            # E.g. `key=` at the end of the text, or `key=, other=1`
            if is_at_end() or peek() == ",":
                value = ""
            else:
                value = take_value()
        else:
            # Bare key, e.g. `flag`
            index = before_assign
            value = ""

        arguments[key] = value

    return arguments
