"""
资源管理 API 路由 (/api/v1/admin/resources)

端点:
- POST /admin/resources - 创建资源（服务端生成 res_code）
- GET /admin/resources - 资源列表（分页、筛选）
- GET /admin/resources/tree - 资源树
- GET /admin/resources/validate - 资源树结构校验
- GET /admin/resources/enums/types - 资源类型枚举
- POST /admin/resources/res-code - 资源码预览
- GET /admin/resources/{resource_id} - 资源详情
- GET /admin/resources/{resource_id}/path - 面包屑
- PATCH /admin/resources/{resource_id} - 更新资源元数据
- POST /admin/resources/{resource_id}/move - 调整父级
- DELETE /admin/resources/{resource_id} - 删除资源（cascade 删除子树）

路由只做入参校验与依赖注入，业务逻辑在 Service 层。
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi_pagination import Page, Params

from admin_rbac.constants.resources import ResourceType
from admin_rbac.core.config import settings
from admin_rbac.core.singleflight import SingleFlightCache
from admin_rbac.deps.rbac import get_rbac_cache, get_resource_service
from admin_rbac.schemas.base import MessageResponse
from admin_rbac.schemas.resource import (
    ResCodeRequest,
    ResCodeResponse,
    ResourceCreate,
    ResourceMove,
    ResourceRead,
    ResourceTreeRead,
    ResourceTypeOptionRead,
    ResourceUpdate,
    TreeValidationResponse,
)
from admin_rbac.services.rbac import ResourceService
from admin_rbac.services.rbac.enums import resource_type_options

router = APIRouter(prefix="/admin", tags=["Admin - Resources"])


@router.post("/resources", response_model=ResourceRead, status_code=status.HTTP_201_CREATED)
async def create_resource(
    data: ResourceCreate,
    service: ResourceService = Depends(get_resource_service),
) -> ResourceRead:
    resource = await service.create(data)
    return ResourceRead.model_validate(resource)


@router.get("/resources", response_model=Page[ResourceRead])
async def list_resources(
    params: Params = Depends(),
    type: ResourceType | None = Query(None, description="资源类型"),
    name: str | None = Query(None, description="名称筛选（模糊）"),
    parent_id: UUID | None = Query(None, description="父级资源 ID"),
    service: ResourceService = Depends(get_resource_service),
) -> Page[ResourceRead]:
    return await service.list_page(
        params,
        resource_type=int(type) if type is not None else None,
        name=name,
        parent_id=parent_id,
    )


@router.get("/resources/tree", response_model=list[ResourceTreeRead])
async def get_resource_tree(
    service: ResourceService = Depends(get_resource_service),
) -> list[ResourceTreeRead]:
    return await service.tree()


@router.get("/resources/validate", response_model=TreeValidationResponse)
async def validate_resource_tree(
    service: ResourceService = Depends(get_resource_service),
) -> TreeValidationResponse:
    return await service.validate_tree()


@router.get("/resources/enums/types", response_model=list[ResourceTypeOptionRead])
async def list_resource_types(
    rbac_cache: SingleFlightCache = Depends(get_rbac_cache),
) -> list[ResourceTypeOptionRead]:
    options = await resource_type_options(rbac_cache, ttl=settings.RBAC_ENUM_TTL)
    return [ResourceTypeOptionRead.model_validate(o) for o in options]


@router.post("/resources/res-code", response_model=ResCodeResponse)
async def generate_resource_code(request: ResCodeRequest) -> ResCodeResponse:
    return ResourceService.preview_res_code(request)


@router.get("/resources/{resource_id}", response_model=ResourceRead)
async def get_resource(
    resource_id: UUID,
    service: ResourceService = Depends(get_resource_service),
) -> ResourceRead:
    return ResourceRead.model_validate(await service.get(resource_id))


@router.get("/resources/{resource_id}/path", response_model=list[ResourceRead])
async def get_resource_path(
    resource_id: UUID,
    service: ResourceService = Depends(get_resource_service),
) -> list[ResourceRead]:
    return await service.resource_path(resource_id)


@router.patch("/resources/{resource_id}", response_model=ResourceRead)
async def update_resource(
    resource_id: UUID,
    data: ResourceUpdate,
    service: ResourceService = Depends(get_resource_service),
) -> ResourceRead:
    return ResourceRead.model_validate(await service.update(resource_id, data))


@router.post("/resources/{resource_id}/move", response_model=ResourceRead)
async def move_resource(
    resource_id: UUID,
    data: ResourceMove,
    service: ResourceService = Depends(get_resource_service),
) -> ResourceRead:
    return ResourceRead.model_validate(await service.move(resource_id, data.new_parent_id))


@router.delete("/resources/{resource_id}", response_model=MessageResponse)
async def delete_resource(
    resource_id: UUID,
    cascade: bool = Query(False, description="是否级联删除子树"),
    service: ResourceService = Depends(get_resource_service),
) -> MessageResponse:
    deleted = await service.delete(resource_id, cascade=cascade)
    return MessageResponse(message=f"Deleted {len(deleted)} resource(s)")
