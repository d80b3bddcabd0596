from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from flashsync.models.practice import SyncStatus
from flashsync.runtime import Runtime, get_runtime

router = APIRouter()


class SignInRequest(BaseModel):
    user_id: str

    @field_validator("user_id")
    @classmethod
    def _required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("user_id is required")
        return v


class SyncResult(BaseModel):
    ok: bool
    status: SyncStatus


@router.post("/sign-in", response_model=SyncStatus)
async def sign_in(body: SignInRequest, rt: Runtime = Depends(get_runtime)):
    """Start a session for an already-authenticated user; pulls their data.

    Signing in as someone else first signs the current user out.
    """
    await rt.sync.sign_in(body.user_id)
    return rt.sync.status()


@router.post("/sign-out", response_model=SyncResult)
async def sign_out(rt: Runtime = Depends(get_runtime)):
    ok = await rt.sync.sign_out()
    return SyncResult(ok=ok, status=rt.sync.status())


@router.get("/status", response_model=SyncStatus)
async def sync_status(rt: Runtime = Depends(get_runtime)):
    return rt.sync.status()


@router.post("/pull", response_model=SyncResult)
async def pull(rt: Runtime = Depends(get_runtime)):
    ok = await rt.sync.pull()
    return SyncResult(ok=ok, status=rt.sync.status())


@router.post("/push", response_model=SyncResult)
async def push(rt: Runtime = Depends(get_runtime)):
    ok = await rt.sync.push()
    return SyncResult(ok=ok, status=rt.sync.status())
