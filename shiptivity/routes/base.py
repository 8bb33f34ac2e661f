from fastapi import APIRouter

from .. import __version__

router = APIRouter()

@router.get("/")
def root():
    return {"message": "SHIPTIVITY API. Read documentation to see API docs"}

@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/version")
def version():
    return {"app": "shiptivity-api", "version": __version__}
