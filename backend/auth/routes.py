import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.auth.auth import create_access_token, hash_password, verify_password
from backend.auth.dependencies import get_current_user
from backend.database import models, repository, schema
from backend.database.db import get_db

logger = logging.getLogger("chatapi.auth")

router = APIRouter()


def _auth_response(user: models.User) -> schema.AuthResponse:
    token = create_access_token(data={"sub": str(user.id)})
    return schema.AuthResponse(token=token, user=schema.UserOut.model_validate(user))


@router.post('/api/auth/register', response_model=schema.AuthResponse, status_code=status.HTTP_201_CREATED)
@router.post('/api/profile/create', response_model=schema.AuthResponse, status_code=status.HTTP_201_CREATED)
def register_user(user_in: schema.UserCreate, db: Session = Depends(get_db)):
    name = user_in.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Name is required')
    email = str(user_in.email) if user_in.email else None

    if repository.find_conflicting_user(db, name, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='User already exists')
    try:
        user = repository.create_user(db, name=name, email=email, password_hash=hash_password(user_in.password))
    except IntegrityError:
        # lost a race with a concurrent registration of the same name
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='User already exists')

    logger.info("Registered user id=%s", user.id)
    return _auth_response(user)


@router.post('/api/auth/login', response_model=schema.AuthResponse)
@router.post('/api/profile/login', response_model=schema.AuthResponse)
def login_user(user_in: schema.UserLogin, db: Session = Depends(get_db)):
    if user_in.email:
        user = repository.get_user_by_email(db, str(user_in.email))
    elif user_in.name:
        user = repository.get_user_by_name(db, user_in.name.strip())
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Name or email is required')

    if not user or user.is_guest or not verify_password(user_in.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='invalid credentials'
        )
    return _auth_response(user)


@router.get('/api/auth/me', response_model=schema.UserOut)
def read_me(current_user: models.User = Depends(get_current_user)):
    return current_user


@router.delete('/api/auth/me', status_code=status.HTTP_204_NO_CONTENT)
def delete_me(current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    user_id = current_user.id
    repository.delete_user(db, current_user)
    logger.info("Deleted user id=%s", user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
