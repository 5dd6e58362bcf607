from typing import List, Optional

from fastapi import APIRouter, Depends

from nimbus_admin.api.deps import get_current_user, get_registry
from nimbus_admin.api.schemas import ConnectionOut, Success
from nimbus_admin.core.errors import ValidationError
from nimbus_admin.domain.registry import ConnectionRegistry, ConnectionUpsert

router = APIRouter(prefix="/connections", tags=["connections"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=List[ConnectionOut])
def list_connections(registry: ConnectionRegistry = Depends(get_registry)):
    return [ConnectionOut.model_validate(p, from_attributes=True) for p in registry.list()]


@router.post("", response_model=Success)
def save_connection(body: ConnectionUpsert, registry: ConnectionRegistry = Depends(get_registry)):
    registry.upsert(body)
    return Success()


@router.delete("", response_model=Success)
def delete_connection(id: Optional[str] = None, registry: ConnectionRegistry = Depends(get_registry)):
    if not id:
        raise ValidationError("Missing id")
    registry.delete(id)
    return Success()
