"""
Alfresco Kickstart (aks) - Deploy Kickstart workflows to Alfresco

Takes a workflow drawn in the Kickstart editor and manages it in Alfresco:
- Task content model and Share form configuration generated from task forms
- Process diagram, JSON source and BPMN 2.0 XML uploaded to the Data Dictionary
- Listing and inspection of deployed workflows
- Safe removal: running instances are drained before definitions are deleted
"""

__version__ = "0.1.0"
__package_name__ = "alfresco-kickstart"
__short_name__ = "aks"
