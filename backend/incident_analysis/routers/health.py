from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """健康检查"""
    return {"status": "ok"}
