"""Shape a parsed call tree into plain JSON-ready dictionaries."""

from __future__ import annotations

from typing import Any

from apexlog_analyzer.records import BlockGroup, ParseResult, Record

BLOCK_KIND = "BLOCK"

_RECORD_FIELDS = (
    "kind",
    "timestamp",
    "exit_timestamp",
    "duration",
    "self_time",
    "text",
    "line_number",
    "row_count",
    "namespace",
    "group",
    "category",
    "value"
)


def _record_to_dict(record: Record) -> dict:
    node = {name: getattr(record, name) for name in _RECORD_FIELDS}
    node["children"] = [_child_to_dict(child) for child in record.children]
    return node


def _child_to_dict(child: BlockGroup | Record) -> dict:
    if isinstance(child, BlockGroup):
        return {
            "kind": BLOCK_KIND,
            "children": [_record_to_dict(record) for record in child.records]
        }
    return _record_to_dict(child)


class _Shaper:
    """Drops empty fields and numbers every node after its children; one per shaping call."""

    def __init__(self):
        self.next_id = 0

    def trim(self, value: Any) -> Any:
        if isinstance(value, list):
            return [self.trim(item) for item in value]
        if isinstance(value, dict):
            shaped = {}
            for key, item in value.items():
                if key == "id" or not item:
                    continue
                shaped[key] = self.trim(item)
            shaped["id"] = self.next_id
            self.next_id += 1
            return shaped
        return value


def shape_tree(tree: Record | dict) -> dict:
    """
    Convert a call tree to pruned dictionaries with ordinal ids.

    Accepts either a built tree or an already shaped one; reshaping only
    renumbers ids, in the same traversal order.
    """
    if isinstance(tree, Record):
        tree = _record_to_dict(tree)
    return _Shaper().trim(tree)


def shape_result(result: ParseResult) -> dict:
    return {
        "root": shape_tree(result.root),
        "truncated": [event.to_dict() for event in result.truncations],
        "cpu_peak_ns": result.cpu_peak,
        "settings": [[key, value] for key, value in result.settings]
    }


def count_nodes(tree: Record) -> tuple[int, int]:
    """Return (frames, leaf records) below and including the given frame."""
    frames, leaves = 1, 0
    for child in tree.children:
        if isinstance(child, BlockGroup):
            leaves += len(child.records)
        else:
            child_frames, child_leaves = count_nodes(child)
            frames += child_frames
            leaves += child_leaves
    return frames, leaves
