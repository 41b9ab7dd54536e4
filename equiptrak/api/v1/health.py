from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/test")
def api_test():
    return {"message": "API is working!"}


@router.get("/health")
def health():
    return {"status": "OK"}
