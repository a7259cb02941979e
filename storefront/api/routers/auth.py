# storefront/api/routers/auth.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_session_service
from storefront.domain.schemas import LoginRequest, SessionOut
from storefront.services.session_service import SessionService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=SessionOut)
def login(payload: LoginRequest, svc: SessionService = Depends(get_session_service)):
    return svc.login(payload)


@router.post("/logout", response_model=SessionOut)
def logout(svc: SessionService = Depends(get_session_service)):
    svc.logout()
    return svc.current()


@router.get("/session", response_model=SessionOut)
def session(svc: SessionService = Depends(get_session_service)):
    return svc.current()
