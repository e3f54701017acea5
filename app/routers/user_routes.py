from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.token import get_current_user
from app.core.errors import NotFoundError
from app.database import get_db
from app.models.user import User
from app.schemas.link_schema import LinkOut
from app.schemas.user_schema import ProfileUpdate, PublicProfileOut, UserOut, ViewOut
from app.services import leveling, store

router = APIRouter(prefix="/api", tags=["User"])


@router.patch("/user", response_model=UserOut)
def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return store.update_user(db, user.id, payload.to_changes())


@router.get("/u/{username}", response_model=PublicProfileOut)
def get_public_profile(username: str, db: Session = Depends(get_db)):
    user = store.get_user_by_username(db, username)
    if not user:
        raise NotFoundError("User not found")

    links = [LinkOut.model_validate(link) for link in store.get_links_by_user_id(db, user.id)]
    return PublicProfileOut.model_validate(user).model_copy(update={"links": links})


@router.post("/u/{username}/view", response_model=ViewOut)
def add_view(username: str, db: Session = Depends(get_db)):
    progress = leveling.record_view(db, username)
    return {"views": progress.views}
