from fastapi import APIRouter, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.utils.uploads import save_upload

router = APIRouter(prefix="/api", tags=["Upload"])


class UploadOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    filename: str
    original_name: str
    size: int


@router.post("/upload", response_model=UploadOut)
async def upload_file(file: UploadFile = File(...)):
    stored = await run_in_threadpool(save_upload, file)
    return UploadOut(
        url=stored.url,
        filename=stored.filename,
        original_name=stored.original_name,
        size=stored.size,
    )
