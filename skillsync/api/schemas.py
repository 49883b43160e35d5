"""Response schemas shared by the routers."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ProfileSummary(BaseModel):
    id: str
    full_name: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: str
    user_role: str
    bio: Optional[str] = None
    location: Optional[str] = None
    hourly_rate: Optional[float] = None
    experience_years: Optional[int] = None
    portfolio_url: Optional[str] = None
    avatar_url: Optional[str] = None
    skills: Optional[list[str]] = None
    languages: Optional[list[str]] = None
    certifications: Optional[list[str]] = None
    availability_status: str
    verification_status: str
    created_at: datetime

    class Config:
        from_attributes = True


class ProjectResponse(BaseModel):
    id: str
    client_id: str
    freelancer_id: Optional[str] = None
    title: str
    description: str
    category: str
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    deadline: Optional[datetime] = None
    duration: Optional[str] = None
    required_skills: Optional[list[str]] = None
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BidResponse(BaseModel):
    id: str
    project_id: str
    freelancer_id: str
    amount: float
    delivery_days: int
    proposal: str
    status: str
    created_at: datetime
    freelancer: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True


class ShortlistResponse(BaseModel):
    id: str
    client_id: str
    freelancer_id: str
    project_id: str
    notes: Optional[str] = None
    status: str
    created_at: datetime
    freelancer: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True


class InterviewResponse(BaseModel):
    id: str
    project_id: str
    freelancer_id: str
    shortlist_id: Optional[str] = None
    scheduled_at: datetime
    duration_minutes: int
    meeting_link: Optional[str] = None
    notes: Optional[str] = None
    status: str
    freelancer: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    data: Optional[dict] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    project_id: Optional[str] = None
    content: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ReviewResponse(BaseModel):
    id: str
    project_id: str
    reviewer_id: str
    reviewee_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    reviewer: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True


class TicketResponse(BaseModel):
    id: str
    user_id: str
    subject: str
    description: str
    category: str
    priority: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True
