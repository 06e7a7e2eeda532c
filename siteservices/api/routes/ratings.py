from __future__ import annotations

from fastapi import APIRouter

from siteservices.dependencies.auth import CurrentUser
from siteservices.dependencies.services import RatingServiceDep
from siteservices.schemas import CamelModel, RatingModel, RatingRequest

router = APIRouter(prefix="/api/ratings", tags=["ratings"])


class RatingEnvelope(CamelModel):
    rating: RatingModel


class RatingListEnvelope(CamelModel):
    ratings: list[RatingModel]


@router.get("", response_model=RatingListEnvelope, summary="Ratings submitted by the caller")
async def list_ratings(user: CurrentUser, service: RatingServiceDep) -> RatingListEnvelope:
    ratings = await service.list_ratings(user)
    return RatingListEnvelope(ratings=[RatingModel.model_validate(item) for item in ratings])


@router.post("", response_model=RatingEnvelope, summary="Create or revise a rating")
async def save_rating(payload: RatingRequest, user: CurrentUser, service: RatingServiceDep) -> RatingEnvelope:
    rating = await service.save_rating(
        user,
        ticket_id=payload.ticket_id,
        stars=payload.stars,
        note=payload.note,
    )
    return RatingEnvelope(rating=RatingModel.model_validate(rating))
