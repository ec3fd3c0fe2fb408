"""
资源码生成与校验

资源码规则：
- MENU：MENU_{路径}，去掉首个 "/"，其余 "/" 转为 "_"
- PAGE：PAGE_{路径}，规则同 MENU
- API：API_{路径}，去掉开头的 "/api/"，":id" 参数转为 "id"，"/" 转为 "_"
- MODULE：MODULE_{自定义码}，由管理员手动配置，不做路径转换

所有函数均为纯函数，不依赖任何外部状态。
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from admin_rbac.constants.resources import RESOURCE_TYPE_LABELS, ResourceType
from admin_rbac.services.rbac.errors import InvalidInputError, UnknownResourceTypeError

RES_CODE_PATTERN = re.compile(r"^(MENU|PAGE|API|MODULE)_[A-Za-z0-9_]+$")

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
_PATH_PARAM_PATTERN = re.compile(r":([A-Za-z0-9_]+)")
_BRACE_PARAM_PATTERN = re.compile(r"\{([A-Za-z0-9_]+)\}")
_API_PREFIX = "/api/"


def coerce_resource_type(value: Any) -> ResourceType:
    """将 int / 名称字符串 / ResourceType 统一转换为 ResourceType"""
    if isinstance(value, ResourceType):
        return value
    if isinstance(value, bool):
        raise UnknownResourceTypeError(value)
    if isinstance(value, int):
        try:
            return ResourceType(value)
        except ValueError:
            raise UnknownResourceTypeError(value) from None
    if isinstance(value, str):
        name = value.strip().upper()
        if name in ResourceType.__members__:
            return ResourceType[name]
        if name.isdigit():
            return coerce_resource_type(int(name))
    raise UnknownResourceTypeError(value)


def _join_segments(path: str) -> str:
    # 连续 / 首尾 "/" 产生的空段直接丢弃
    segments = [seg for seg in path.split("/") if seg]
    return "_".join(segments).replace("-", "_")


def _normalize_route_path(path: str | None) -> str:
    if path is None:
        raise InvalidInputError("path is required for menu/page resources")
    return _join_segments(_strip_param_markers(path.strip()))


def _normalize_api_path(path: str | None) -> str:
    if path is None:
        raise InvalidInputError("path is required for api resources")
    cleaned = path.strip()
    if cleaned.startswith(_API_PREFIX):
        cleaned = cleaned[len(_API_PREFIX):]
    return _join_segments(_strip_param_markers(cleaned))


def _strip_param_markers(path: str) -> str:
    path = _PATH_PARAM_PATTERN.sub(r"\1", path)
    return _BRACE_PARAM_PATTERN.sub(r"\1", path)


def _ensure_identifier(identifier: str, source: str | None) -> str:
    if not identifier:
        raise InvalidInputError(f"Path {source!r} normalizes to an empty identifier")
    if not _IDENTIFIER_PATTERN.match(identifier):
        raise InvalidInputError(
            f"Path {source!r} contains characters not allowed in a resource code"
        )
    return identifier


def generate_res_code(
    resource_type: ResourceType | int | str,
    path: str | None = None,
    custom_suffix: str | None = None,
) -> str:
    """根据资源类型和路径（或 MODULE 的自定义码）生成资源码"""
    rtype = coerce_resource_type(resource_type)

    match rtype:
        case ResourceType.MENU | ResourceType.PAGE:
            identifier = _ensure_identifier(_normalize_route_path(path), path)
        case ResourceType.API:
            identifier = _ensure_identifier(_normalize_api_path(path), path)
        case ResourceType.MODULE:
            suffix = (custom_suffix or "").strip()
            if not suffix:
                raise InvalidInputError("Module resources require a custom suffix")
            identifier = _ensure_identifier(suffix, custom_suffix)

    return f"{rtype.prefix}_{identifier}"


def validate_res_code(res_code: str) -> bool:
    """校验资源码格式：^(MENU|PAGE|API|MODULE)_[A-Za-z0-9_]+$"""
    return isinstance(res_code, str) and RES_CODE_PATTERN.match(res_code) is not None


def extract_type(res_code: str) -> ResourceType | None:
    """从资源码中提取类型，无法识别时返回 None"""
    for rtype in ResourceType:
        if res_code.startswith(f"{rtype.prefix}_"):
            return rtype
    return None


def extract_suffix(res_code: str) -> str:
    """去掉类型前缀后的标识（第一个下划线之后的全部内容）"""
    _, sep, rest = res_code.partition("_")
    return rest if sep else res_code


def derive_whole_id(ancestor_ids: Iterable[Any], self_id: Any) -> str:
    """生成层级 ID：parent.child.grandchild.current（过滤空的祖先项）"""
    parts = [str(a) for a in ancestor_ids if a not in (None, "")]
    parts.append(str(self_id))
    return ".".join(parts)


def resource_type_name(resource_type: ResourceType | int | str) -> str:
    """资源类型显示名称"""
    return RESOURCE_TYPE_LABELS[coerce_resource_type(resource_type)]


def batch_generate(
    resources: Iterable[Any],
    custom_suffixes: Mapping[Any, str] | None = None,
) -> dict[Any, str]:
    """
    批量生成资源码，返回 {resource_id: res_code}

    resources 中每项需带 id / type / path 属性（或同名 key）；
    MODULE 类型的自定义码从 custom_suffixes[id] 读取，缺省时回退到资源自身的 custom_suffix。
    """
    custom_suffixes = custom_suffixes or {}
    codes: dict[Any, str] = {}
    for resource in resources:
        rid = _field(resource, "id")
        suffix = custom_suffixes.get(rid) or _field(resource, "custom_suffix")
        codes[rid] = generate_res_code(_field(resource, "type"), _field(resource, "path"), suffix)
    return codes


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)
