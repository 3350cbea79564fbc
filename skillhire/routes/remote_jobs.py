# ========================================
# skillhire/routes/remote_jobs.py
# ========================================

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from skillhire.services.remote_jobs import CACHE_CONTROL, RemoteJobsFeed, get_remote_jobs_feed

router = APIRouter(prefix="/api/remote-jobs", tags=["Remote Jobs"])


# ✅ 1. REMOTE JOBS FEED (public)
@router.get("")
async def remote_jobs(feed: RemoteJobsFeed = Depends(get_remote_jobs_feed)):
    data = await feed.fetch()
    return JSONResponse(content=data, headers={"Cache-Control": CACHE_CONTROL})
