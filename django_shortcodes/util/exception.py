from contextlib import contextmanager
from typing import Generator


class NotRegistered(Exception):
    """
    Raised when you try to access a shortcode handler, but it's NOT registered
    with given [ShortcodeRegistry](../api#django_shortcodes.ShortcodeRegistry).
    """

    pass


@contextmanager
def shortcode_error_message(tag_name: str) -> Generator[None, None, None]:
    """
    If a handler raises within the context, format the error message to include
    the path of shortcodes that were being rendered. E.g.
    ```
    KeyError: "An error occured while rendering shortcodes [gallery] > [image]:
    'src'"
    ```

    Handlers may parse their content, so the shortcodes nest. Each level
    of nesting prepends its own tag to the path.
    """
    try:
        yield
    except Exception as err:
        if not hasattr(err, "_shortcodes"):
            err._shortcodes = []  # type: ignore[attr-defined]

        shortcodes = getattr(err, "_shortcodes", [])
        shortcodes = err._shortcodes = [f"[{tag_name}]", *shortcodes]  # type: ignore[attr-defined]

        # Access the exception's message, see https://stackoverflow.com/a/75549200/9788634
        if len(err.args) and err.args[0] is not None:
            if len(shortcodes) == 1:
                orig_msg = str(err.args[0])
            else:
                orig_msg = str(err.args[0]).split("\n", 1)[-1]
        else:
            orig_msg = str(err)

        # Format shortcode path as "[gallery] > [image]"
        shortcode_path = " > ".join(shortcodes)
        prefix = f"An error occured while rendering shortcodes {shortcode_path}:\n"

        err.args = (prefix + orig_msg,)  # tuple of one

        # `from None` should still raise the original error, but without showing this
        # line in the traceback.
        raise err from None
