import importlib
from typing import Callable, List, Optional

from django_shortcodes.util.logger import logger


def import_libraries(
    map_module: Optional[Callable[[str], str]] = None,
) -> List[str]:
    """
    Import modules set in
    [`SHORTCODES.libraries`](../settings#django_shortcodes.app_settings.ShortcodesSettings.libraries)
    setting.

    Modules usually register shortcode handlers with [`@register`](../api#django_shortcodes.register)
    when they are imported.

    Args:
        map_module (Callable[[str], str], optional): Map the module paths with `map_module` function.\
        This serves as an escape hatch for when you need to use this function in tests.

    Returns:
        List[str]: A list of module paths of imported files.

    **Examples:**

    Normal usage - load libraries after Django has loaded
    ```python
    from django_shortcodes import import_libraries

    class MyAppConfig(AppConfig):
        def ready(self):
            import_libraries()
    ```

    Potential usage in tests
    ```python
    from django_shortcodes import import_libraries

    import_libraries(lambda path: path.replace("tests.", "myapp."))
    ```
    """
    from django_shortcodes.app_settings import app_settings

    return _import_modules(app_settings.LIBRARIES, map_module)


def _import_modules(
    modules: List[str],
    map_module: Optional[Callable[[str], str]] = None,
) -> List[str]:
    imported_modules: List[str] = []
    for module_name in modules:
        if map_module:
            module_name = map_module(module_name)

        # This imports the file and runs it's code. So if the file defines any
        # shortcode handlers, they will be registered.
        logger.debug(f'Importing module "{module_name}"')
        importlib.import_module(module_name)
        imported_modules.append(module_name)
    return imported_modules
