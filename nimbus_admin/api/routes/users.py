from typing import List, Optional

from fastapi import APIRouter, Depends

from nimbus_admin.api.deps import get_credential_store, get_current_user
from nimbus_admin.api.schemas import Success, UserCreate, UserOut, UserUpdate
from nimbus_admin.core.errors import ValidationError
from nimbus_admin.domain.credentials import CredentialStore

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=List[UserOut])
def list_users(store: CredentialStore = Depends(get_credential_store)):
    return [UserOut(**u.model_dump()) for u in store.list_users()]


@router.post("", response_model=Success)
def create_user(body: UserCreate, store: CredentialStore = Depends(get_credential_store)):
    store.create_user(body.username, body.password)
    return Success()


@router.put("", response_model=Success)
def update_user(body: UserUpdate, store: CredentialStore = Depends(get_credential_store)):
    store.update_user(body.id, body.username, body.password or None)
    return Success()


@router.delete("", response_model=Success)
def delete_user(
    id: Optional[int] = None,
    store: CredentialStore = Depends(get_credential_store),
):
    if id is None:
        raise ValidationError("Missing id")
    store.delete_user(id)
    return Success()
