"""
资源树结构校验测试
"""
import pytest

from admin_rbac.services.rbac.errors import StructuralViolationError
from admin_rbac.services.rbac.stores import ResourceRecord
from admin_rbac.services.rbac.tree import build_resource_tree
from admin_rbac.services.rbac.validator import TreeValidator, ViolationKind, would_create_cycle


def rec(rid, parent=None, whole_id=None, code=None, rtype=1, sort_order=0):
    return ResourceRecord(
        id=rid,
        name=f"res-{rid}",
        type=rtype,
        res_code=code or f"MENU_r{rid}",
        whole_id=whole_id if whole_id is not None else rid,
        parent_id=parent,
        sort_order=sort_order,
    )


@pytest.fixture
def valid_catalog():
    return [
        rec("1", whole_id="1"),
        rec("2", parent="1", whole_id="1.2", code="API_users_id", rtype=3),
        rec("3", parent="2", whole_id="1.2.3", code="MODULE_user_export", rtype=4),
        rec("4", whole_id="4", code="PAGE_dashboard", rtype=2),
    ]


def kinds(violations):
    return {v.kind for v in violations}


def test_valid_catalog_has_no_violations(valid_catalog):
    validator = TreeValidator()
    assert validator.validate(build_resource_tree(valid_catalog)) == []
    validator.assert_valid(build_resource_tree(valid_catalog))


def test_duplicate_res_code(valid_catalog):
    valid_catalog.append(rec("5", whole_id="5", code="MENU_r1"))
    violations = TreeValidator().validate_catalog(valid_catalog)
    assert kinds(violations) == {ViolationKind.DUPLICATE_RES_CODE}
    assert violations[0].resource_id == "5"


def test_broken_whole_id_chain(valid_catalog):
    valid_catalog[2] = rec("3", parent="2", whole_id="2.3", code="MODULE_user_export", rtype=4)
    violations = TreeValidator().validate_catalog(valid_catalog)
    assert kinds(violations) == {ViolationKind.WHOLE_ID_MISMATCH}


def test_root_whole_id_must_equal_id():
    violations = TreeValidator().validate_catalog([rec("1", whole_id="0.1")])
    assert kinds(violations) == {ViolationKind.WHOLE_ID_MISMATCH}


def test_induced_cycle_is_reported():
    records = [
        rec("1", parent="2", whole_id="2.1"),
        rec("2", parent="1", whole_id="1.2"),
    ]
    violations = TreeValidator().validate_catalog(records)
    cycles = [v for v in violations if v.kind is ViolationKind.CYCLE]
    assert {v.resource_id for v in cycles} == {"1", "2"}


def test_self_parent_is_a_cycle():
    violations = TreeValidator().validate_catalog([rec("1", parent="1", whole_id="1.1")])
    assert ViolationKind.CYCLE in kinds(violations)


def test_negative_sort_order():
    violations = TreeValidator().validate_catalog([rec("1", sort_order=-1)])
    assert kinds(violations) == {ViolationKind.INVALID_SORT_ORDER}


def test_dangling_parent_only_in_strict_mode():
    records = [rec("1", parent="ghost", whole_id="ghost.1")]
    assert kinds(TreeValidator(strict=True).validate_catalog(records)) == {ViolationKind.DANGLING_PARENT}
    assert TreeValidator(strict=False).validate_catalog(records) == []


def test_code_must_match_type():
    records = [rec("1", code="API_system", rtype=1)]
    assert kinds(TreeValidator().validate_catalog(records)) == {ViolationKind.INVALID_RES_CODE}


def test_malformed_code():
    records = [rec("1", code="MENU_bad-code")]
    assert kinds(TreeValidator().validate_catalog(records)) == {ViolationKind.INVALID_RES_CODE}


def test_assert_valid_raises_with_violation_list(valid_catalog):
    valid_catalog.append(rec("5", whole_id="5", code="MENU_r1"))
    with pytest.raises(StructuralViolationError) as exc_info:
        TreeValidator().assert_valid(build_resource_tree(valid_catalog))
    assert [v.kind for v in exc_info.value.violations] == [ViolationKind.DUPLICATE_RES_CODE]


def test_would_create_cycle(valid_catalog):
    assert would_create_cycle(valid_catalog, "1", "3") is True
    assert would_create_cycle(valid_catalog, "1", "1") is True
    assert would_create_cycle(valid_catalog, "3", "4") is False
    assert would_create_cycle(valid_catalog, "3", None) is False
