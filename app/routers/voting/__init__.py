from fastapi import APIRouter

from app.routers.voting import proposal, vote


router = APIRouter()

# 모든 서브 라우터를 메인 라우터에 포함
router.include_router(proposal.router)
router.include_router(vote.router)
