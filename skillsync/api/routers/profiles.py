"""
Profiles API Endpoints
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...marketplace import (
    find_freelancers,
    get_profile,
    profile_completion,
    profile_completion_tips,
    reputation,
    request_verification,
    update_profile,
    view_profile,
)
from ...notifications.bus import NotificationBus
from ...pipeline import SessionContext
from ..auth import get_session_context
from ..deps import get_bus, get_db
from ..schemas import ProfileResponse

router = APIRouter()


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    hourly_rate: Optional[float] = None
    experience_years: Optional[int] = None
    portfolio_url: Optional[str] = None
    avatar_url: Optional[str] = None
    skills: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    certifications: Optional[List[str]] = None
    availability_status: Optional[str] = None


class MyProfileResponse(BaseModel):
    profile: ProfileResponse
    completion: int
    tips: List[str]


class PublicProfileResponse(BaseModel):
    profile: ProfileResponse
    reputation: dict


@router.get("/me", response_model=MyProfileResponse)
async def my_profile(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Own profile with completion percentage and tips"""
    profile = get_profile(db, ctx.user_id)
    return MyProfileResponse(
        profile=ProfileResponse.model_validate(profile),
        completion=profile_completion(profile),
        tips=profile_completion_tips(profile),
    )


@router.patch("/me", response_model=ProfileResponse)
async def edit_my_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    changes = data.model_dump(exclude_unset=True)
    return ProfileResponse.model_validate(update_profile(db, ctx, ctx.user_id, **changes))


@router.post("/me/verification", response_model=ProfileResponse)
async def ask_for_verification(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return ProfileResponse.model_validate(request_verification(db, ctx))


@router.get("", response_model=List[ProfileResponse])
async def freelancer_directory(
    skill: Optional[str] = None,
    available_only: bool = False,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Find freelancers by skill / availability / name"""
    profiles = find_freelancers(db, skill=skill, available_only=available_only, search=search)
    return [ProfileResponse.model_validate(p) for p in profiles]


@router.get("/{profile_id}", response_model=PublicProfileResponse)
async def public_profile(
    profile_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
    bus: NotificationBus = Depends(get_bus),
):
    """Someone else's profile; the owner gets a profile_view notification"""
    profile = view_profile(db, ctx, profile_id, bus=bus)
    return PublicProfileResponse(
        profile=ProfileResponse.model_validate(profile),
        reputation=reputation(db, profile_id),
    )
