"""
Top-level API router for the submission workflow and plagiarism reviews.
"""
from fastapi import APIRouter

from api.reviews import router as reviews_router
from api.submissions import router as submissions_router

api_router = APIRouter()

api_router.include_router(submissions_router)
api_router.include_router(reviews_router)
