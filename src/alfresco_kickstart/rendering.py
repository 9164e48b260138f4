"""
Template rendering for the generated XML documents.

Templates are small XML files shipped in the package `templates/` directory.
Placeholders are named (`${form_key}`), and rendering requires exactly the
template's fields: a missing or unexpected value is an error instead of a
silently shifted argument.

Values are inserted verbatim. Callers pass already-generated fragments
(lists of types, fields) as plain strings and escape user text themselves.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from string import Template

from .errors import TemplateError, TemplateNotFoundError

logger = logging.getLogger(__name__)

TEMPLATE_PACKAGE = "alfresco_kickstart"
TEMPLATE_DIR = "templates"

# Template names (resource file stem)
TASK_MODEL = "task-model"
TASK_MODEL_TYPE = "task-model-type"
TASK_MODEL_PROPERTY = "task-model-property"
FORM_CONFIG = "form-config"
FORM_CONFIG_EVALUATOR = "form-config-evaluator"
FORM_CONFIG_FIELD = "form-config-field"
FORM_CONFIG_FIELD_VISIBILITY = "form-config-field-visibility"

TEMPLATE_NAMES = (
    TASK_MODEL,
    TASK_MODEL_TYPE,
    TASK_MODEL_PROPERTY,
    FORM_CONFIG,
    FORM_CONFIG_EVALUATOR,
    FORM_CONFIG_FIELD,
    FORM_CONFIG_FIELD_VISIBILITY,
)


@dataclass(frozen=True)
class XmlTemplate:
    """A named XML template with `${field}` placeholders."""

    name: str
    source: str

    @property
    def fields(self) -> set[str]:
        """Placeholder names used in the template."""
        return set(Template(self.source).get_identifiers())

    def render(self, /, **values: object) -> str:
        """
        Substitute all placeholders.

        Args:
            **values: One value per placeholder; converted with str()

        Returns:
            Rendered text

        Raises:
            TemplateError: If values are missing or not used by the template
        """
        fields = self.fields
        supplied = set(values)
        if fields != supplied:
            raise TemplateError(self.name, missing=fields - supplied, unexpected=supplied - fields)
        return Template(self.source).substitute({key: _to_text(value) for key, value in values.items()})


def _to_text(value: object) -> str:
    # Content model XML expects lower-case booleans
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@lru_cache(maxsize=None)
def load_template(name: str) -> XmlTemplate:
    """
    Load a template resource, once per process.

    Raises:
        TemplateNotFoundError: If the resource doesn't exist
    """
    resource = resources.files(TEMPLATE_PACKAGE).joinpath(TEMPLATE_DIR, f"{name}.xml")
    logger.debug(f"Reading template '{name}'")
    try:
        source = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError) as e:
        logger.error(f"Could not read template '{name}': {e}")
        raise TemplateNotFoundError(name) from e
    return XmlTemplate(name=name, source=source)


def render(template_name: str, /, **values: object) -> str:
    """Load template `template_name` and render it with `values`."""
    return load_template(template_name).render(**values)
