"""
资源树结构校验

在写路径（创建 / 移动 / 删除）提交前调用，不在读路径上执行。检查顺序：
1. res_code 全局唯一
2. 非根节点 whole_id == parent.whole_id + "." + id，根节点 whole_id == id
3. 无环：沿父链向上走，自身 id 不得再次出现，步数不得超过目录规模
4. sort_order 为非负整数
5. （严格模式）parent_id 必须指向目录中存在的资源
6. res_code 格式合法且前缀与 type 一致
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from admin_rbac.services.rbac.errors import StructuralViolationError, UnknownResourceTypeError
from admin_rbac.services.rbac.res_code import coerce_resource_type, extract_type, validate_res_code
from admin_rbac.services.rbac.tree import ResourceTreeNode, build_resource_tree, flatten, node_key


class ViolationKind(str, Enum):
    DUPLICATE_RES_CODE = "duplicate_res_code"
    WHOLE_ID_MISMATCH = "whole_id_mismatch"
    CYCLE = "cycle"
    INVALID_SORT_ORDER = "invalid_sort_order"
    DANGLING_PARENT = "dangling_parent"
    INVALID_RES_CODE = "invalid_res_code"
    ORPHANED_CHILDREN = "orphaned_children"


@dataclass(frozen=True)
class TreeViolation:
    kind: ViolationKind
    resource_id: str
    message: str


class TreeValidator:
    """
    strict=True 时把父级缺失视为错误（写路径）；
    strict=False 时允许部分目录（读路径视图）中的悬空父级。
    """

    def __init__(self, strict: bool = True):
        self.strict = strict

    def validate(self, forest: Iterable[ResourceTreeNode]) -> list[TreeViolation]:
        records = [node.resource for node in flatten(forest)]
        return self.validate_records(records)

    def validate_catalog(self, resources: Iterable[Any]) -> list[TreeViolation]:
        return self.validate(build_resource_tree(resources))

    def assert_valid(self, forest: Iterable[ResourceTreeNode]) -> None:
        violations = self.validate(forest)
        if violations:
            raise StructuralViolationError(violations)

    def validate_records(self, records: list[Any]) -> list[TreeViolation]:
        index = {node_key(r.id): r for r in records}
        violations: list[TreeViolation] = []
        violations.extend(_check_unique_codes(records))
        violations.extend(_check_whole_ids(records, index))
        violations.extend(_check_cycles(records, index))
        violations.extend(_check_sort_orders(records))
        if self.strict:
            violations.extend(_check_dangling_parents(records, index))
        violations.extend(_check_code_formats(records))
        return violations


def _parent_key(record: Any) -> str | None:
    parent_id = getattr(record, "parent_id", None)
    return None if parent_id in (None, "") else node_key(parent_id)


def _check_unique_codes(records: list[Any]) -> list[TreeViolation]:
    seen: dict[str, str] = {}
    out: list[TreeViolation] = []
    for record in records:
        code = getattr(record, "res_code", None)
        if not code:
            continue
        rid = node_key(record.id)
        if code in seen:
            out.append(TreeViolation(
                ViolationKind.DUPLICATE_RES_CODE,
                rid,
                f"res_code {code} of resource {rid} duplicates resource {seen[code]}",
            ))
        else:
            seen[code] = rid
    return out


def _check_whole_ids(records: list[Any], index: dict[str, Any]) -> list[TreeViolation]:
    out: list[TreeViolation] = []
    for record in records:
        rid = node_key(record.id)
        parent_key = _parent_key(record)
        if parent_key is None:
            expected = rid
        elif parent_key in index:
            expected = f"{getattr(index[parent_key], 'whole_id', None)}.{rid}"
        else:
            # 父级缺失由悬空检查负责
            continue
        actual = getattr(record, "whole_id", None)
        if actual != expected:
            out.append(TreeViolation(
                ViolationKind.WHOLE_ID_MISMATCH,
                rid,
                f"whole_id of resource {rid} is {actual!r}, expected {expected!r}",
            ))
    return out


def _check_cycles(records: list[Any], index: dict[str, Any]) -> list[TreeViolation]:
    out: list[TreeViolation] = []
    bound = len(index)
    for record in records:
        rid = node_key(record.id)
        visited: set[str] = set()
        current = _parent_key(record)
        steps = 0
        while current is not None and current in index:
            steps += 1
            if current == rid or steps > bound:
                out.append(TreeViolation(
                    ViolationKind.CYCLE,
                    rid,
                    f"resource {rid} is its own ancestor",
                ))
                break
            if current in visited:
                # 进入了不包含自身的环，由环上的节点各自报告
                break
            visited.add(current)
            current = _parent_key(index[current])
    return out


def _check_sort_orders(records: list[Any]) -> list[TreeViolation]:
    out: list[TreeViolation] = []
    for record in records:
        value = getattr(record, "sort_order", None)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            rid = node_key(record.id)
            out.append(TreeViolation(
                ViolationKind.INVALID_SORT_ORDER,
                rid,
                f"sort_order of resource {rid} must be a non-negative integer, got {value!r}",
            ))
    return out


def _check_dangling_parents(records: list[Any], index: dict[str, Any]) -> list[TreeViolation]:
    out: list[TreeViolation] = []
    for record in records:
        parent_key = _parent_key(record)
        if parent_key is not None and parent_key not in index:
            rid = node_key(record.id)
            out.append(TreeViolation(
                ViolationKind.DANGLING_PARENT,
                rid,
                f"parent {parent_key} of resource {rid} does not exist",
            ))
    return out


def _check_code_formats(records: list[Any]) -> list[TreeViolation]:
    out: list[TreeViolation] = []
    for record in records:
        rid = node_key(record.id)
        code = getattr(record, "res_code", None)
        if not validate_res_code(code):
            out.append(TreeViolation(
                ViolationKind.INVALID_RES_CODE,
                rid,
                f"res_code {code!r} of resource {rid} is malformed",
            ))
            continue
        try:
            declared = coerce_resource_type(getattr(record, "type", None))
        except UnknownResourceTypeError:
            declared = None
        if extract_type(code) != declared:
            out.append(TreeViolation(
                ViolationKind.INVALID_RES_CODE,
                rid,
                f"res_code {code} of resource {rid} does not match its type",
            ))
    return out


def would_create_cycle(resources: Iterable[Any], resource_id: Any, new_parent_id: Any) -> bool:
    """把 resource_id 挂到 new_parent_id 下是否会成环（目标父级是自身或自身的后代）"""
    if new_parent_id in (None, ""):
        return False
    index = {node_key(r.id): r for r in resources}
    target = node_key(resource_id)
    current: str | None = node_key(new_parent_id)
    steps = 0
    while current is not None and steps <= len(index):
        if current == target:
            return True
        record = index.get(current)
        if record is None:
            return False
        current = _parent_key(record)
        steps += 1
    return steps > len(index)
