from html import escape
from typing import Dict, Optional

from app.renderer.canvas import (
    LABEL_HEIGHT,
    LABEL_WIDTH,
    canvas_bounds,
    connection_paths,
    node_boxes,
)
from app.renderer.viewport import Viewport
from app.tree.model import DecisionTree
from app.tree.types import WorkUnit

EDGE_COLOR = "#1E88E5"
NODE_FILL = "#E3F2FD"
NODE_STROKE = "#1E88E5"
WORK_UNIT_STROKE = "#E53935"
SELECTED_STROKE = "#0D47A1"


def render_tree_svg(
    tree: DecisionTree,
    viewport: Optional[Viewport] = None,
    work_units: Optional[Dict[str, WorkUnit]] = None,
    selected_id: Optional[str] = None,
) -> str:
    viewport = viewport or Viewport()
    boxes = node_boxes(tree, work_units)
    w, h = canvas_bounds(boxes)
    sw, sh = viewport.to_screen(w, h)

    svg = [
        f'<svg width="{max(sw, 1):g}" height="{max(sh, 1):g}" xmlns="http://www.w3.org/2000/svg">',
        f'<g transform="{viewport.transform()}">',
    ]

    # Draw edges first
    for path in connection_paths(tree):
        sx, sy = path.start
        ex, ey = path.end
        mx, my = path.midpoint
        svg.append(
            f'<path d="{path.to_svg_path()}" stroke="{EDGE_COLOR}" '
            f'stroke-width="1" fill="none" '
            f'data-source="{escape(path.source_id)}" data-target="{escape(path.target_id)}"/>'
        )
        svg.append(f'<circle cx="{sx:g}" cy="{sy:g}" r="2" fill="{EDGE_COLOR}"/>')
        svg.append(f'<circle cx="{ex:g}" cy="{ey:g}" r="2" fill="{EDGE_COLOR}"/>')
        svg.append(
            f'<text x="{mx:g}" y="{my:g}" text-anchor="middle" '
            f'dominant-baseline="middle" font-family="Arial" font-size="10" '
            f'textLength="{LABEL_WIDTH}" lengthAdjust="spacingAndGlyphs" '
            f'data-height="{LABEL_HEIGHT}">{escape(path.label)}</text>'
        )

    # Draw nodes
    for box in boxes:
        node = box.node
        if node.id == selected_id:
            stroke = SELECTED_STROKE
        elif box.badges:
            stroke = WORK_UNIT_STROKE
        else:
            stroke = NODE_STROKE

        svg.append(f'<g data-node-id="{escape(node.id)}" data-kind="{node.kind.value}">')
        svg.append(
            f'<rect x="{box.x:g}" y="{box.y:g}" '
            f'width="{box.width:g}" height="{box.height:g}" '
            f'rx="6" ry="6" fill="{NODE_FILL}" stroke="{stroke}"/>'
        )
        label = node.content or ("Decision" if node.is_decision else "Leaf")
        svg.append(
            f'<text x="{box.x + box.width / 2:g}" y="{box.y + 12:g}" '
            f'text-anchor="middle" dominant-baseline="middle" '
            f'font-family="Arial" font-size="11">{escape(label)}</text>'
        )

        for i, badge in enumerate(box.badges):
            svg.append(
                f'<text x="{box.x + box.width / 2:g}" y="{box.y + 26 + i * 12:g}" '
                f'text-anchor="middle" font-family="Arial" font-size="9" fill="{WORK_UNIT_STROKE}">'
                f'{escape(badge.answer_text)}: {badge.work_unit.hours}h</text>'
            )
        if len(box.badges) > 1:
            svg.append(
                f'<text x="{box.x + box.width / 2:g}" y="{box.y + box.height - 4:g}" '
                f'text-anchor="middle" font-family="Arial" font-size="9" font-weight="bold" '
                f'fill="{WORK_UNIT_STROKE}">Total: {box.total_hours}h</text>'
            )
        svg.append("</g>")

    svg.append("</g>")
    svg.append("</svg>")
    return "\n".join(svg)
