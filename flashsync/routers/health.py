from fastapi import APIRouter, Depends

from flashsync.runtime import Runtime, get_runtime

router = APIRouter()


@router.get("/health")
async def health(rt: Runtime = Depends(get_runtime)) -> dict:
    return {"status": "ok", "cache_ready": rt.store.is_ready()}
