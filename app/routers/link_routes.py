from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.auth.token import get_current_user
from app.core.errors import ForbiddenError
from app.database import get_db
from app.models.user import User
from app.schemas.link_schema import LinkCreate, LinkOut
from app.services import store

router = APIRouter(prefix="/api/links", tags=["Links"])


@router.post("", response_model=LinkOut, status_code=status.HTTP_201_CREATED)
def create_link(
    payload: LinkCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return store.create_link(db, user.id, **payload.model_dump())


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_link(
    link_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # Only the owner's own links are deletable
    owned = {link.id for link in store.get_links_by_user_id(db, user.id)}
    if link_id not in owned:
        raise ForbiddenError()

    store.delete_link(db, link_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
