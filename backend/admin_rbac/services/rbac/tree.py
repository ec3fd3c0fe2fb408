"""
资源树构建

- 第一遍建立 id -> 节点索引，第二遍挂接父子关系
- parent_id 为空，或父级不在本次输入集合中的资源作为根节点（支持部分目录视图）
- 同级按 sort_order 升序，其次按创建时间、id 排序，与输入顺序无关
- 输出中每个输入资源恰好出现一次；父子成环的输入会在成环处断开并提升为根节点
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from admin_rbac.core.logging import logger
from admin_rbac.services.rbac.errors import InvalidInputError
from admin_rbac.utils.time_utils import Datetime


@dataclass
class ResourceTreeNode:
    """资源树节点，只持有子节点（无父级反向引用）"""

    resource: Any
    children: list["ResourceTreeNode"] = field(default_factory=list)
    level: int = 0

    @property
    def id(self) -> Any:
        return self.resource.id

    @property
    def key(self) -> str:
        return node_key(self.resource.id)


def node_key(value: Any) -> str:
    return str(value)


def _parent_key(resource: Any) -> str | None:
    parent_id = getattr(resource, "parent_id", None)
    if parent_id in (None, ""):
        return None
    return node_key(parent_id)


def sibling_sort_key(resource: Any) -> tuple[int, float, str]:
    created_at = getattr(resource, "created_at", None)
    created = Datetime.to_timestamp(created_at) if isinstance(created_at, datetime) else 0.0
    return (getattr(resource, "sort_order", 0) or 0, created, node_key(resource.id))


def build_resource_tree(resources: Iterable[Any]) -> list[ResourceTreeNode]:
    """将扁平资源列表组装为森林"""
    index: dict[str, ResourceTreeNode] = {}
    for resource in resources:
        key = node_key(resource.id)
        if key in index:
            raise InvalidInputError(f"Duplicate resource id in catalog: {key}")
        index[key] = ResourceTreeNode(resource=resource)

    roots: list[ResourceTreeNode] = []
    for key, node in index.items():
        parent_key = _parent_key(node.resource)
        parent = index.get(parent_key) if parent_key is not None and parent_key != key else None
        if parent is None:
            if parent_key is not None and parent_key != key:
                logger.debug("resource_parent_absent", extra={"resource_id": key, "parent_id": parent_key})
            roots.append(node)
        else:
            parent.children.append(node)

    reached = _collect_keys(roots)
    if len(reached) < len(index):
        roots.extend(_break_cycles(index, reached))

    _sort_and_level(roots)
    return roots


def _collect_keys(roots: Iterable[ResourceTreeNode]) -> set[str]:
    return {node.key for node in _iter_preorder(roots)}


def _break_cycles(index: dict[str, ResourceTreeNode], reached: set[str]) -> list[ResourceTreeNode]:
    """不可达的节点必然挂在某个父子环上：在环的入口断开并提升为根"""
    promoted: list[ResourceTreeNode] = []
    for key in index:
        if key in reached:
            continue
        # 沿父链向上走，第一个重复出现的节点就在环上
        seen: set[str] = set()
        current = key
        while current not in seen:
            seen.add(current)
            current = _parent_key(index[current].resource)
        entry = index[current]
        parent = index[_parent_key(entry.resource)]
        parent.children = [c for c in parent.children if c is not entry]
        promoted.append(entry)
        reached.update(_collect_keys([entry]))
        logger.warning(
            "resource_tree_cycle_broken",
            extra={"resource_id": current, "parent_id": parent.key},
        )
    return promoted


def _sort_and_level(roots: list[ResourceTreeNode]) -> None:
    roots.sort(key=lambda n: sibling_sort_key(n.resource))
    stack = [(node, 0) for node in roots]
    while stack:
        node, level = stack.pop()
        node.level = level
        node.children.sort(key=lambda n: sibling_sort_key(n.resource))
        stack.extend((child, level + 1) for child in node.children)


def _iter_preorder(roots: Iterable[ResourceTreeNode]) -> Iterator[ResourceTreeNode]:
    stack = list(reversed(list(roots)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def flatten(forest: Iterable[ResourceTreeNode]) -> list[ResourceTreeNode]:
    """先序遍历展开为列表"""
    return list(_iter_preorder(forest))


def count_nodes(forest: Iterable[ResourceTreeNode]) -> int:
    return sum(1 for _ in _iter_preorder(forest))


def find_node(forest: Iterable[ResourceTreeNode], resource_id: Any) -> ResourceTreeNode | None:
    target = node_key(resource_id)
    for node in _iter_preorder(forest):
        if node.key == target:
            return node
    return None


def subtree(forest: Iterable[ResourceTreeNode], resource_id: Any) -> list[ResourceTreeNode]:
    """以 resource_id 为根的子树（先序），不存在时返回空列表"""
    node = find_node(forest, resource_id)
    return flatten([node]) if node is not None else []


def ancestor_path(resources: Iterable[Any], resource_id: Any) -> list[Any]:
    """
    返回从根到目标资源的记录链（面包屑）。
    目标不存在时返回空列表；父级缺失或成环时在该处截断。
    """
    index = {node_key(r.id): r for r in resources}
    current = index.get(node_key(resource_id))
    chain: list[Any] = []
    seen: set[str] = set()
    while current is not None and node_key(current.id) not in seen:
        seen.add(node_key(current.id))
        chain.append(current)
        parent_key = _parent_key(current)
        current = index.get(parent_key) if parent_key is not None else None
    chain.reverse()
    return chain


def descendant_ids(resources: Iterable[Any], resource_id: Any) -> list[Any]:
    """基于 whole_id 前缀匹配查找全部后代（不做树遍历）"""
    records = list(resources)
    target = next((r for r in records if node_key(r.id) == node_key(resource_id)), None)
    if target is None or not getattr(target, "whole_id", None):
        return []
    prefix = f"{target.whole_id}."
    return [r.id for r in records if (getattr(r, "whole_id", None) or "").startswith(prefix)]
