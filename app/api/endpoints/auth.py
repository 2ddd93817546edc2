# app/api/endpoints/auth.py
import logging
from typing import Annotated
from fastapi import APIRouter, HTTPException, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core import schemas, models
from app.core.database import get_db
from app.core.security import (
    create_access_token,
    get_current_user,
    hash_password,
    verify_password,
)

router = APIRouter(prefix="/profile", tags=["Profile"])

db_dep = Annotated[AsyncSession, Depends(get_db)]


@router.post(
    "/register",
    response_model=schemas.UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(payload: schemas.UserCreate, db: db_dep):
    email = payload.email.lower()
    existing = await db.execute(select(models.User).where(models.User.email == email))
    if existing.scalars().first():
        raise HTTPException(status.HTTP_409_CONFLICT, "Email already registered")

    try:
        user = models.User(
            email=email,
            username=payload.username,
            password=hash_password(payload.password),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to register user: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to register user"
        )


@router.post("/login", response_model=schemas.Token)
async def login(payload: schemas.UserLogin, db: db_dep):
    query = select(models.User).where(models.User.email == payload.email.lower())
    result = await db.execute(query)
    user = result.scalars().first()
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User does not exists")
    if not verify_password(payload.password, user.password):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Incorrect password")
    return schemas.Token(access_token=create_access_token(user.id))


@router.get("/me", response_model=schemas.UserResponse)
async def me(current_user: Annotated[models.User, Depends(get_current_user)]):
    return current_user
