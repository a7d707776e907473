"""
Two-phase template write.

Node ids coming from the editor are temporary. The builder first inserts one
row per node and flushes to learn the store-assigned ids, then inserts the
answers with their targets rewritten through the temp-id -> real-id map,
and finally snapshots the catalog work units each answer references.

The builder never commits; the caller owns the transaction.
"""

import logging
from typing import Dict, List, Mapping

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.db.models import NodeOptionRow, NodeWorkUnitRow, TemplateNodeRow, TemplateRow, WorkUnitRow
from app.errors import TreeValidationError
from app.tree.types import TreeNode

logger = logging.getLogger(__name__)


class TemplateSaveBuilder:
    def __init__(self, session: Session, template: TemplateRow, catalog: Mapping[str, WorkUnitRow]):
        self.session = session
        self.template = template
        self.catalog = catalog
        self.id_map: Dict[str, str] = {}

    def clear_existing(self) -> None:
        """Delete every node, answer and work-unit snapshot of the template."""
        node_ids = select(TemplateNodeRow.id).where(TemplateNodeRow.template_id == self.template.id)
        self.session.execute(delete(NodeWorkUnitRow).where(NodeWorkUnitRow.node_id.in_(node_ids)))
        self.session.execute(delete(NodeOptionRow).where(NodeOptionRow.node_id.in_(node_ids)))
        self.session.execute(delete(TemplateNodeRow).where(TemplateNodeRow.template_id == self.template.id))
        self.session.expire(self.template, ["nodes"])

    def insert_nodes(self, nodes: List[TreeNode]) -> Dict[str, str]:
        rows = []
        for order, node in enumerate(nodes):
            row = TemplateNodeRow(
                template_id=self.template.id,
                node_type=node.kind.value,
                content=node.content,
                position={"x": node.position.x, "y": node.position.y} if node.position else None,
                display_order=order,
            )
            self.session.add(row)
            rows.append((node.id, row))

        self.session.flush()
        self.id_map = {temp_id: row.id for temp_id, row in rows}
        return self.id_map

    def insert_answers(self, nodes: List[TreeNode]) -> None:
        if len(self.id_map) != len(nodes):
            raise RuntimeError("insert_nodes must run before insert_answers")

        snapshots = []
        for node in nodes:
            real_id = self.id_map[node.id]
            for order, answer in enumerate(node.answers):
                next_id = None
                if answer.target_id is not None:
                    next_id = self.id_map.get(answer.target_id)
                    if next_id is None:
                        raise TreeValidationError(
                            [f"answer {order} of node '{node.id}' targets unknown node '{answer.target_id}'"]
                        )
                option = NodeOptionRow(
                    node_id=real_id,
                    text=answer.text,
                    next_node_id=next_id,
                    display_order=order,
                    work_unit_id=answer.work_unit_id,
                )
                self.session.add(option)
                if answer.work_unit_id:
                    snapshots.append((real_id, option, answer.work_unit_id))

        self.session.flush()

        for node_id, option, work_unit_id in snapshots:
            unit = self.catalog.get(work_unit_id)
            if unit is None:
                raise TreeValidationError([f"unknown work unit '{work_unit_id}'"])
            self.session.add(NodeWorkUnitRow(
                node_id=node_id,
                option_id=option.id,
                source_work_unit_id=unit.id,
                team_id=unit.team_id,
                name=unit.name,
                hours=unit.hours,
            ))

        self.session.flush()

    def build(self, nodes: List[TreeNode], replace: bool = False) -> Dict[str, str]:
        if replace:
            self.clear_existing()
        self.insert_nodes(nodes)
        self.insert_answers(nodes)
        logger.debug("Wrote %d node(s) for template %s", len(nodes), self.template.id)
        return self.id_map
