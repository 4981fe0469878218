"""Propagate type overwrites across foreign-key-equivalent columns."""

import logging
from dataclasses import replace
from typing import Iterable, Optional

from .base.models import Table, TypeMapping, TypeOverwrite
from .base.names import ColumnRef
from .base.types import ColumnType, DomainType, ReferenceType, ValueClass, unwrap_domain
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class _DisjointSet:
    """Union-find over column references."""

    def __init__(self):
        self._parent: dict[ColumnRef, ColumnRef] = {}

    def find(self, item: ColumnRef) -> ColumnRef:
        self._parent.setdefault(item, item)
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a: ColumnRef, b: ColumnRef) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            # Smallest reference becomes the root so groups come out in a stable order.
            low, high = sorted((root_a, root_b))
            self._parent[high] = low

    def groups(self) -> list[frozenset[ColumnRef]]:
        members: dict[ColumnRef, set[ColumnRef]] = {}
        for item in list(self._parent):
            members.setdefault(self.find(item), set()).add(item)
        return [frozenset(members[root]) for root in sorted(members)]


def get_column_type_groups(tables: Iterable[Table]) -> list[frozenset[ColumnRef]]:
    """Connected components of columns linked by foreign-key column pairs.

    Only columns that take part in at least one foreign key appear.
    """
    disjoint_set = _DisjointSet()
    for table in tables:
        for foreign_key in table.foreign_keys:
            for pair in foreign_key.references:
                disjoint_set.union(
                    ColumnRef(table=table.name, name=pair.source_column),
                    ColumnRef(table=foreign_key.target_table, name=pair.target_column),
                )
    return disjoint_set.groups()


def merge_type_overwrites(
    overwrites: Iterable[TypeOverwrite],
    groups: list[frozenset[ColumnRef]],
) -> dict[ColumnRef, ValueClass]:
    """Extend each overwrite to its whole column group.

    A group reached by two different value classes is ambiguous and rejected.
    """
    group_of = {column: group for group in groups for column in group}
    classes: dict[ColumnRef, set[ValueClass]] = {}
    for overwrite in overwrites:
        group = group_of.get(overwrite.sql_column, frozenset([overwrite.sql_column]))
        for column in group:
            classes.setdefault(column, set()).add(overwrite.value_class)

    merged: dict[ColumnRef, ValueClass] = {}
    for column in sorted(classes):
        value_classes = classes[column]
        if len(value_classes) != 1:
            group = group_of.get(column, frozenset([column]))
            raise ConfigurationError(
                f"multiple type overwrites for {sorted(str(c) for c in group)}: "
                f"{sorted(v.name for v in value_classes)}"
            )
        merged[column] = next(iter(value_classes))
    logger.debug(f"Merged type overwrites cover {len(merged)} columns")
    return merged


def apply_type_overwrites(table: Table, merged: dict[ColumnRef, ValueClass]) -> Table:
    """Retype overwritten columns as references to their value class."""
    columns = []
    for column in table.columns:
        value_class = merged.get(table.column_ref(column))
        if value_class is None or isinstance(column.type, ReferenceType):
            columns.append(column)
            continue
        new_type = ReferenceType(value_class=value_class, original_type=unwrap_domain(column.type))
        columns.append(replace(column, type=new_type))
    return table.with_columns(tuple(columns))


def resolve_value_class(
    column_type: ColumnType,
    type_mappings: Iterable[TypeMapping],
) -> Optional[ValueClass]:
    """External value class a column type maps to, or None for built-in handling."""
    if isinstance(column_type, ReferenceType):
        return column_type.value_class
    if isinstance(column_type, DomainType):
        for mapping in type_mappings:
            if mapping.sql_type == column_type.name:
                return mapping.value_class
    return None
