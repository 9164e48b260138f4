"""
BPMN 2.0 marshalling - Process XML for the Activiti engine in Alfresco.

Produces a single process: start event, the tasks in order, end event, all
connected by sequence flows. User tasks carry the Activiti assignee and form
key extensions. The diagram layout is embedded as BPMN DI.
"""

import xml.etree.ElementTree as ET

from .diagram import END_EVENT_ID, START_EVENT_ID, DiagramLayout, element_ids
from .naming import base_name
from .workflow import UserTask, WorkflowDefinition

BPMN_NS = "http://www.omg.org/spec/BPMN/20100524/MODEL"
BPMNDI_NS = "http://www.omg.org/spec/BPMN/20100524/DI"
DC_NS = "http://www.omg.org/spec/DD/20100524/DC"
DI_NS = "http://www.omg.org/spec/DD/20100524/DI"
ACTIVITI_NS = "http://activiti.org/bpmn"
TARGET_NS = "http://activiti.org/bpmn20"

# Uploaded as UTF-8
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

ET.register_namespace("", BPMN_NS)
ET.register_namespace("bpmndi", BPMNDI_NS)
ET.register_namespace("omgdc", DC_NS)
ET.register_namespace("omgdi", DI_NS)
ET.register_namespace("activiti", ACTIVITI_NS)


def _q(ns: str, tag: str) -> str:
    return f"{{{ns}}}{tag}"


def marshall_workflow(workflow: WorkflowDefinition, layout: DiagramLayout) -> str:
    """
    Serialize a workflow as BPMN 2.0 XML.

    Args:
        workflow: Workflow with id and form keys already assigned
        layout: Diagram layout of the same workflow

    Returns:
        BPMN 2.0 XML document
    """
    process_id = workflow.id or base_name(workflow.name)

    definitions = ET.Element(_q(BPMN_NS, "definitions"), {"targetNamespace": TARGET_NS})
    process = ET.SubElement(definitions, _q(BPMN_NS, "process"), {"id": process_id, "name": workflow.name})
    if workflow.description:
        ET.SubElement(process, _q(BPMN_NS, "documentation")).text = workflow.description

    ET.SubElement(process, _q(BPMN_NS, "startEvent"), {"id": START_EVENT_ID, "name": "Start"})
    ids = element_ids(workflow)
    for element_id, task in zip(ids[1:-1], workflow.tasks):
        _task_element(process, element_id, task)
    ET.SubElement(process, _q(BPMN_NS, "endEvent"), {"id": END_EVENT_ID, "name": "End"})

    flows = []
    for i, (source, target) in enumerate(zip(ids, ids[1:]), start=1):
        flow_id = f"flow{i}"
        flows.append((flow_id, source, target))
        ET.SubElement(
            process, _q(BPMN_NS, "sequenceFlow"), {"id": flow_id, "sourceRef": source, "targetRef": target}
        )

    _diagram_element(definitions, process_id, layout, flows)

    ET.indent(definitions, space="  ")
    return XML_DECLARATION + ET.tostring(definitions, encoding="unicode")


def _task_element(process: ET.Element, element_id: str, task) -> ET.Element:
    if not isinstance(task, UserTask):
        # Pass-through step for the engine
        return ET.SubElement(process, _q(BPMN_NS, "manualTask"), {"id": element_id, "name": task.name})

    attributes = {"id": element_id, "name": task.name}
    if task.assignee:
        attributes[_q(ACTIVITI_NS, "assignee")] = task.assignee
    if task.form is not None and task.form.form_key:
        attributes[_q(ACTIVITI_NS, "formKey")] = task.form.form_key
    return ET.SubElement(process, _q(BPMN_NS, "userTask"), attributes)


def _diagram_element(
    definitions: ET.Element, process_id: str, layout: DiagramLayout, flows: list[tuple[str, str, str]]
) -> None:
    diagram = ET.SubElement(definitions, _q(BPMNDI_NS, "BPMNDiagram"), {"id": f"BPMNDiagram_{process_id}"})
    plane = ET.SubElement(
        diagram, _q(BPMNDI_NS, "BPMNPlane"), {"id": f"BPMNPlane_{process_id}", "bpmnElement": process_id}
    )

    for element_id, bounds in layout.shapes.items():
        shape = ET.SubElement(
            plane, _q(BPMNDI_NS, "BPMNShape"), {"id": f"BPMNShape_{element_id}", "bpmnElement": element_id}
        )
        ET.SubElement(
            shape,
            _q(DC_NS, "Bounds"),
            {"x": str(bounds.x), "y": str(bounds.y), "width": str(bounds.width), "height": str(bounds.height)},
        )

    for flow_id, source, target in flows:
        edge = ET.SubElement(plane, _q(BPMNDI_NS, "BPMNEdge"), {"id": f"BPMNEdge_{flow_id}", "bpmnElement": flow_id})
        for x, y in layout.waypoints(source, target):
            ET.SubElement(edge, _q(DI_NS, "waypoint"), {"x": str(x), "y": str(y)})
