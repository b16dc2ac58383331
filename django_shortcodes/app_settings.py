from enum import Enum
from typing import List, Literal, NamedTuple, Optional, Sequence, Union, cast

from django.conf import settings

from django_shortcodes.util.misc import default

ErrorBehaviorType = Literal["strip", "warn", "leave"]


class ErrorBehavior(str, Enum):
    """
    Configure what happens with shortcodes that are syntactically valid,
    but whose name has no handler in the registry.

    This applies ONLY to well-formed tags like `[not_registered foo="bar"]`.
    Text that merely contains a `[` is always left as it is.

    **Options:**

    - `strip`: Remove the whole tag, including its content and closing tag.
    - `warn`: Wrap the original tag in a visible warning.
    - `leave`: Leave the original tag as it is.
    """

    STRIP = "strip"
    """
    Remove the unknown shortcode from the output.

    ```py
    registry.parse('<img class="[not_registered]">')
    # <img class="">
    ```
    """

    WARN = "warn"
    """
    Wrap the original shortcode text with
    [`SHORTCODES.warning_template`](../settings#django_shortcodes.app_settings.ShortcodesSettings.warning_template).

    ```py
    registry.parse("[not_registered]")
    # <strong class="warning">[not_registered]</strong>
    ```

    HTML cannot be inserted inside HTML attributes or `<script>` tags. There,
    the shortcode is left as it is.
    """

    LEAVE = "leave"
    """
    Leave the original shortcode text byte-for-byte, including its content
    and its closing tag.

    ```py
    registry.parse("[not_registered]a[/not_registered]")
    # [not_registered]a[/not_registered]
    ```
    """


# This is the source of truth for the settings that are available. If the documentation
# or the defaults do NOT match this, they should be updated.
class ShortcodesSettings(NamedTuple):
    """
    Settings available for django_shortcodes.

    **Example:**

    ```python
    SHORTCODES = ShortcodesSettings(
        error_behavior="strip",
        libraries=["mysite.shortcodes"],
    )
    ```
    """

    error_behavior: Optional[Union[ErrorBehaviorType, ErrorBehavior]] = None
    """
    What to do with shortcodes that have no registered handler.

    Defaults to `"leave"`.

    See [`ErrorBehavior`](../api#django_shortcodes.ErrorBehavior).

    ```python
    SHORTCODES = ShortcodesSettings(
        error_behavior="warn",
    )
    ```
    """

    warning_template: Optional[str] = None
    """
    Template used with the `"warn"` error behavior. The `{tag}` placeholder
    is replaced with the original shortcode text.

    Defaults to `'<strong class="warning">{tag}</strong>'`.
    """

    block_elements: Optional[Sequence[str]] = None
    """
    Names of HTML elements that are considered blocks. Shortcodes that relocate
    their output are moved before or after the nearest block element around them.

    ```python
    SHORTCODES = ShortcodesSettings(
        block_elements=["div", "p", "section"],
    )
    ```
    """

    libraries: Optional[List[str]] = None
    """
    Configure extra python modules that should be loaded.

    This may be useful if you define shortcode handlers in modules that are
    not imported anywhere else. The modules are imported when the Django app is ready,
    so their `@register` calls run.

    ```python
    SHORTCODES = ShortcodesSettings(
        libraries=[
            "mysite.shortcodes.media",
            "mysite.shortcodes.links",
        ],
    )
    ```
    """

    active_registry: Optional[str] = None
    """
    Name of the registry that is returned by
    [`get_active_registry()`](../api#django_shortcodes.get_active_registry).

    Defaults to `"default"`.
    """


# This is the source of truth for the settings defaults. If the documentation
# does NOT match it, the documentation should be updated.
#
# fmt: off
# --snippet:defaults--
defaults = ShortcodesSettings(
    error_behavior=ErrorBehavior.LEAVE.value,  # "strip" | "warn" | "leave"
    warning_template='<strong class="warning">{tag}</strong>',
    block_elements=[
        "address", "article", "aside", "audio", "blockquote", "canvas",
        "dd", "div", "dl", "fieldset", "figcaption", "figure", "footer",
        "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hgroup",
        "ol", "output", "p", "pre", "section", "table", "ul",
    ],
    libraries=[],  # E.g. ["mysite.shortcodes", ...]
    active_registry="default",
)
# --endsnippet:defaults--
# fmt: on


class InternalSettings:
    @property
    def _settings(self) -> ShortcodesSettings:
        # Shortcodes may be parsed also outside of a Django project, e.g. in scripts.
        # In that case we fall back to the defaults.
        if not settings.configured:
            return ShortcodesSettings()
        data = getattr(settings, "SHORTCODES", {})
        return ShortcodesSettings(**data) if not isinstance(data, ShortcodesSettings) else data

    @property
    def ERROR_BEHAVIOR(self) -> ErrorBehavior:
        raw_value = cast(str, default(self._settings.error_behavior, defaults.error_behavior))
        return self._validate_error_behavior(raw_value)

    def _validate_error_behavior(self, raw_value: Union[ErrorBehavior, str]) -> ErrorBehavior:
        try:
            return ErrorBehavior(raw_value)
        except ValueError:
            valid_values = [behavior.value for behavior in ErrorBehavior]
            raise ValueError(f"Invalid error behavior: {raw_value}. Valid options are {valid_values}")

    @property
    def WARNING_TEMPLATE(self) -> str:
        template = default(self._settings.warning_template, cast(str, defaults.warning_template))
        if "{tag}" not in template:
            raise ValueError(f"Invalid warning template: {template!r}. The template MUST contain '{{tag}}'")
        return template

    @property
    def BLOCK_ELEMENTS(self) -> Sequence[str]:
        return default(self._settings.block_elements, cast(List[str], defaults.block_elements))

    @property
    def LIBRARIES(self) -> List[str]:
        return default(self._settings.libraries, cast(List[str], defaults.libraries))

    @property
    def ACTIVE_REGISTRY(self) -> str:
        return default(self._settings.active_registry, cast(str, defaults.active_registry))


app_settings = InternalSettings()
