from typing import Optional

from fastapi import APIRouter, Depends

from nimbus_admin.api.deps import get_authenticator, get_current_user, oauth2_scheme
from nimbus_admin.api.schemas import LoginRequest, LoginResponse, Success, UserOut
from nimbus_admin.domain.credentials import UserRead
from nimbus_admin.domain.sessions import SessionAuthenticator

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, authenticator: SessionAuthenticator = Depends(get_authenticator)):
    result = authenticator.login(body.username, body.password)
    return LoginResponse(token=result.token, user=UserOut(**result.user.model_dump()))


@router.post("/logout", response_model=Success)
def logout(
    token: Optional[str] = Depends(oauth2_scheme),
    current_user: UserRead = Depends(get_current_user),
    authenticator: SessionAuthenticator = Depends(get_authenticator),
):
    authenticator.logout(token)
    return Success()


@router.get("/me", response_model=UserOut)
def read_users_me(current_user: UserRead = Depends(get_current_user)):
    return UserOut(**current_user.model_dump())
