from fastapi import APIRouter, Depends

from linkmeta.api import favicon, metadata, summarize
from linkmeta.api.deps import rate_limit

api_router = APIRouter(prefix="/api", dependencies=[Depends(rate_limit)])

api_router.include_router(metadata.router, tags=["Metadata"])
api_router.include_router(favicon.router, tags=["Favicon"])
api_router.include_router(summarize.router, tags=["Summaries"])
