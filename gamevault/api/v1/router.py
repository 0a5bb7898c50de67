"""API v1 router aggregation"""
from fastapi import APIRouter

from gamevault.api.v1 import auth, database, users

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(database.router)
