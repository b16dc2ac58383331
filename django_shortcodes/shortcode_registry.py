import re
from typing import Any, Callable, Dict, Optional

from django.utils.safestring import SafeString, mark_safe

from django_shortcodes.app_settings import ErrorBehavior, app_settings
from django_shortcodes.types import HandlerResult, ShortcodeHandler
from django_shortcodes.util.exception import NotRegistered
from django_shortcodes.util.logger import logger

TAG_NAME_RE = re.compile(r"^\w+$")


class ShortcodeRegistry:
    """
    Manages shortcode handlers and makes them available when parsing text.

    ```python
    registry = ShortcodeRegistry("blog")

    def user(arguments, content, registry, tag_name, extra):
        return f"<a href='/users/{arguments['id']}'>{content}</a>"

    registry.register("user", user)

    registry.parse('Written by [user id=3]Ann[/user]')
    # Written by <a href='/users/3'>Ann</a>
    ```

    To share handlers across the project, use the named registries returned by
    [`get_registry()`](../api#django_shortcodes.get_registry). A registry created directly
    is isolated, and it's NOT returned by `get_registry()`.

    **Notes:**

    - The default registry is available as [`django_shortcodes.registry`](../api#django_shortcodes.registry).
    - The default registry is used when registering handlers with [`@register`](../api#django_shortcodes.register)
    decorator.
    - Registries are NOT thread-safe. Register and unregister handlers outside of
      running `parse()` calls, e.g. at app startup.

    Args:
        name (str, optional): Name of the registry. Defaults to `"default"`.
    """

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._handlers: Dict[str, ShortcodeHandler] = {}  # tag name -> handler mapping

    def __repr__(self) -> str:
        return f"<ShortcodeRegistry '{self.name}'>"

    def register(self, tag_name: str, handler: ShortcodeHandler) -> None:
        """
        Register a handler with this registry under the given tag name.

        If a handler was already registered under the same name, it is replaced.

        Args:
            tag_name (str): The name of the shortcode, e.g. `"user"` for `[user]`. Only letters,\
                digits and underscores are allowed. Required.
            handler (ShortcodeHandler): The function that renders the shortcode. Required.

        **Raises:**

        - `ValueError` if the tag name is not valid.
        - `TypeError` if the handler is not callable.

        **Example:**

        ```python
        registry.register("user", user_handler)
        ```
        """
        if not isinstance(tag_name, str) or not TAG_NAME_RE.match(tag_name):
            raise ValueError(
                f"Invalid shortcode name {tag_name!r}. Shortcode names may contain only letters, digits "
                "and underscores."
            )
        if not callable(handler):
            raise TypeError(f"Handler for shortcode '{tag_name}' must be callable, got {type(handler).__name__}")

        if tag_name in self._handlers:
            logger.debug(f"Replacing handler of shortcode '{tag_name}' in registry '{self.name}'")

        self._handlers[tag_name] = handler

    def unregister(self, tag_name: str) -> None:
        """
        Unregister the handler that was registered under the given tag name.

        Once a handler is unregistered, the shortcode is treated as unknown, see
        [`SHORTCODES.error_behavior`](../settings#django_shortcodes.app_settings.ShortcodesSettings.error_behavior).

        Args:
            tag_name (str): The name under which the handler is registered. Required.

        **Raises:**

        - [`NotRegistered`](../exceptions#django_shortcodes.NotRegistered)
        if the given name is not registered.
        """
        # Validate
        self.get(tag_name)

        del self._handlers[tag_name]

    def get(self, tag_name: str) -> ShortcodeHandler:
        """
        Retrieve a handler registered under the given tag name.

        **Raises:**

        - [`NotRegistered`](../exceptions#django_shortcodes.NotRegistered)
          if the given name is not registered.
        """
        if tag_name not in self._handlers:
            raise NotRegistered(f'The shortcode "{tag_name}" is not registered in registry "{self.name}"')

        return self._handlers[tag_name]

    def has(self, tag_name: str) -> bool:
        """Check whether a handler is registered under the given tag name."""
        return tag_name in self._handlers

    def all(self) -> Dict[str, ShortcodeHandler]:
        """
        Retrieve all registered handlers.

        Returns:
            Dict[str, ShortcodeHandler]: A dictionary of tag names to handlers
        """
        return dict(self._handlers)

    def clear(self) -> None:
        """Clears the registry, unregistering all handlers."""
        self._handlers = {}

    def call(
        self,
        tag_name: str,
        arguments: Dict[str, str],
        content: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> HandlerResult:
        """
        Call the handler registered under the given tag name directly, without parsing any text.

        ```python
        registry.call("user", {"id": "3"}, "Ann")
        # <a href='/users/3'>Ann</a>
        ```

        **Raises:**

        - [`NotRegistered`](../exceptions#django_shortcodes.NotRegistered)
          if the given name is not registered.
        """
        handler = self.get(tag_name)
        return handler(arguments, content, self, tag_name, extra if extra is not None else {})

    def parse(self, text: str, extra: Optional[Dict[str, Any]] = None) -> str:
        """
        Replace the shortcodes in the text with the output of their handlers.

        Args:
            text (str): The text to parse. May be plain text or HTML.
            extra (Dict[str, Any], optional): Extra data that's passed to all handlers\
                in their `extra` argument.

        Returns:
            str: The text with the shortcodes replaced. If the given text was marked as safe,\
                so is the output.

        Errors raised by the handlers are propagated.

        **Example:**

        ```python
        registry.parse('<p>[user id=3]Ann[/user]</p>')
        # <p><a href='/users/3'>Ann</a></p>
        ```
        """
        # If no content, or no shortcode tag, don't try and parse it
        if not text or not text.strip() or "[" not in text:
            return text
        # If no shortcodes defined and unknown tags are left as they are, only escaped tags change the text
        if not self._handlers and "[[" not in text and app_settings.ERROR_BEHAVIOR == ErrorBehavior.LEAVE:
            return text

        # Lazily import to avoid circular dependencies
        from django_shortcodes.rewriter import rewrite

        is_safestring = isinstance(text, SafeString)
        result = rewrite(text, self, extra)
        return mark_safe(result) if is_safestring else result


# We keep track of the named registries, so that the same name always gives the same registry.
registries: Dict[str, ShortcodeRegistry] = {}


def get_registry(name: str = "default") -> ShortcodeRegistry:
    """
    Get the registry with the given name. The registry is created when it's first requested,
    and it lives for the rest of the process.

    Use named registries to isolate sets of handlers, e.g. one for blog posts and one for emails.

    ```python
    blog = get_registry("blog")
    blog.register("user", user_handler)

    get_registry("blog") is blog
    # True
    ```

    **Raises:**

    - `ValueError` if the name is empty or not a string.
    """
    if not isinstance(name, str) or not name:
        raise ValueError(f"Registry name must be a non-empty string, got {name!r}")

    if name not in registries:
        registries[name] = ShortcodeRegistry(name)
    return registries[name]


def get_active_registry() -> ShortcodeRegistry:
    """
    Get the registry set in
    [`SHORTCODES.active_registry`](../settings#django_shortcodes.app_settings.ShortcodesSettings.active_registry).
    """
    return get_registry(app_settings.ACTIVE_REGISTRY)


# This variable represents the global shortcode registry
registry: ShortcodeRegistry = get_registry("default")
"""
The default and global shortcode registry.
Use this instance to directly register or remove handlers:

```python
# Register handlers
registry.register("user", user_handler)
registry.register("image", image_handler)

# Get single
registry.get("user")

# Get all
registry.all()

# Unregister single
registry.unregister("user")

# Unregister all
registry.clear()
```
"""

# NOTE: Aliased so that the arg to `@register` can also be called `registry`
_the_registry = registry


def register(
    tag_name: str,
    registry: Optional[ShortcodeRegistry] = None,
) -> Callable[[ShortcodeHandler], ShortcodeHandler]:
    """
    Function decorator for registering a shortcode handler to a registry.

    Args:
        tag_name (str): Name of the shortcode, e.g. `"user"` for `[user]`. Required.
        registry (ShortcodeRegistry, optional): Specify the registry to which to register\
            the handler. If omitted, the handler is registered to the default registry.

    **Examples**:

    ```python
    from django_shortcodes import register

    @register("user")
    def user(arguments, content, registry, tag_name, extra):
        ...
    ```

    Specifing the registry the handler should be registered to by setting the `registry` kwarg:

    ```python
    from django_shortcodes import get_registry, register

    @register("user", registry=get_registry("emails"))
    def user(arguments, content, registry, tag_name, extra):
        ...
    ```
    """
    if registry is None:
        registry = _the_registry

    def decorator(handler: ShortcodeHandler) -> ShortcodeHandler:
        registry.register(tag_name, handler)
        return handler

    return decorator
