"""
Centralized constants for Alfresco Kickstart.

File suffixes, repository type ids and form mappings live here so that the
code creating artifacts and the code removing them agree on every name.
"""

# Artifact file suffixes
BPMN_SUFFIX = ".bpmn20.xml"
DIAGRAM_SUFFIX = ".png"
LEGACY_DIAGRAM_SUFFIX = "_image.png"
JSON_SUFFIX = ".json"
TASK_MODEL_SUFFIX = "-task-model.xml"
FORM_CONFIG_SUFFIX = "-form-config.xml"

# Share module id prefix for generated form configuration
FORM_CONFIG_MODULE_PREFIX = "kickstart_form_"

# Namespace token for generated content model names and form keys
KICKSTART_PREFIX = "ks:"

# Form property type -> Alfresco content model data type
FORM_PROPERTY_TYPES = {
    "text": "d:text",
    "date": "d:date",
    "number": "d:long",
}

# Content types
XML_CONTENT_TYPE = "application/xml"
JSON_CONTENT_TYPE = "application/json"
PNG_CONTENT_TYPE = "image/png"

# CMIS object types and properties
DICTIONARY_MODEL_TYPE = "D:cm:dictionaryModel"
WORKFLOW_DEFINITION_TYPE = "D:bpm:workflowDefinition"
TITLED_ASPECT = "P:cm:titled"

# Process engine that picks up uploaded definitions
ENGINE_ID = "activiti"


class MetadataKeys:
    """Keys of the metadata map passed along with a deployment."""

    WORKFLOW_JSON_SOURCE = "workflow_json_source"
