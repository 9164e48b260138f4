"""
Process diagram - Layout and PNG rendering of a workflow.

The layout is a single left-to-right row: start event, tasks in order,
end event. The same layout is embedded in the process XML as BPMN DI, so
the image and the engine's view of the diagram agree.
"""

import struct
import zlib
from dataclasses import dataclass, field

from .workflow import WorkflowDefinition

START_EVENT_ID = "startevent"
END_EVENT_ID = "endevent"

EVENT_SIZE = 30
TASK_WIDTH = 105
TASK_HEIGHT = 55
GAP = 50
MARGIN = 20

WHITE = 255
BLACK = 0


def task_element_id(index: int) -> str:
    """Process element id of the task at `index` (0-based)."""
    return f"task{index + 1}"


def element_ids(workflow: WorkflowDefinition) -> list[str]:
    """Ids of all flow nodes, in flow order."""
    return [START_EVENT_ID, *(task_element_id(i) for i in range(len(workflow.tasks))), END_EVENT_ID]


@dataclass
class Bounds:
    x: int
    y: int
    width: int
    height: int

    @property
    def center_y(self) -> int:
        return self.y + self.height // 2

    @property
    def right(self) -> int:
        return self.x + self.width


@dataclass
class DiagramLayout:
    """Position of every flow node, keyed by element id."""

    shapes: dict[str, Bounds] = field(default_factory=dict)
    width: int = 0
    height: int = 0

    def edges(self) -> list[tuple[str, str]]:
        """Sequence flows as (source, target) pairs, in flow order."""
        ids = list(self.shapes)
        return list(zip(ids, ids[1:]))

    def waypoints(self, source: str, target: str) -> list[tuple[int, int]]:
        """Straight line from the right side of source to the left side of target."""
        src = self.shapes[source]
        dst = self.shapes[target]
        return [(src.right, src.center_y), (dst.x, dst.center_y)]


@dataclass
class ProcessDiagram:
    layout: DiagramLayout
    image: bytes


def layout_workflow(workflow: WorkflowDefinition) -> DiagramLayout:
    """Place start event, tasks and end event on one row."""
    layout = DiagramLayout()
    center_y = MARGIN + TASK_HEIGHT // 2
    x = MARGIN

    for element_id in element_ids(workflow):
        if element_id in (START_EVENT_ID, END_EVENT_ID):
            bounds = Bounds(x, center_y - EVENT_SIZE // 2, EVENT_SIZE, EVENT_SIZE)
        else:
            bounds = Bounds(x, MARGIN, TASK_WIDTH, TASK_HEIGHT)
        layout.shapes[element_id] = bounds
        x = bounds.right + GAP

    layout.width = x - GAP + MARGIN
    layout.height = TASK_HEIGHT + 2 * MARGIN
    return layout


def render_png(layout: DiagramLayout) -> bytes:
    """Draw shape outlines and flows as a grayscale PNG."""
    width, height = layout.width, layout.height
    pixels = [bytearray([WHITE] * width) for _ in range(height)]

    for bounds in layout.shapes.values():
        _draw_rect(pixels, bounds)
    for source, target in layout.edges():
        (x1, y), (x2, _) = layout.waypoints(source, target)
        _draw_hline(pixels, x1, x2, y)

    return encode_png(width, height, pixels)


def generate_diagram(workflow: WorkflowDefinition) -> ProcessDiagram:
    """Lay out a workflow and render its image."""
    layout = layout_workflow(workflow)
    return ProcessDiagram(layout=layout, image=render_png(layout))


def encode_png(width: int, height: int, rows: list[bytearray]) -> bytes:
    """Encode 8-bit grayscale rows as PNG."""
    raw = b"".join(b"\x00" + bytes(row) for row in rows)  # filter type 0 per row
    return b"".join(
        [
            b"\x89PNG\r\n\x1a\n",
            _chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 0, 0, 0, 0)),
            _chunk(b"IDAT", zlib.compress(raw, 9)),
            _chunk(b"IEND", b""),
        ]
    )


def _chunk(kind: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(kind + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)


def _draw_hline(pixels: list[bytearray], x1: int, x2: int, y: int) -> None:
    row = pixels[y]
    for x in range(max(x1, 0), min(x2, len(row) - 1) + 1):
        row[x] = BLACK


def _draw_rect(pixels: list[bytearray], bounds: Bounds) -> None:
    bottom = bounds.y + bounds.height - 1
    right = bounds.right - 1
    _draw_hline(pixels, bounds.x, right, bounds.y)
    _draw_hline(pixels, bounds.x, right, bottom)
    for y in range(bounds.y, bottom + 1):
        pixels[y][bounds.x] = BLACK
        pixels[y][right] = BLACK
