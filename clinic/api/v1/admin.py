from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...api.deps import get_admin_user, pagination_params
from ...models.user import User
from ...services.directory_service import DirectoryService
from ...services.feedback_service import FeedbackService
from ...services.pagination import PageParams
from ...services.user_service import UserService
from ...schemas.common import Page
from ...schemas.feedback import (
    FeedbackResponse, ModerateFeedback, SpamReportCreate, SpamReportResolve,
    SpamReportResponse,
)
from ...schemas.stats import AdminDashboard
from ...schemas.user import AdminUserResponse

router = APIRouter(prefix="/admin", tags=["Admin"])

@router.get("/dashboard", response_model=AdminDashboard)
async def get_dashboard(
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    return DirectoryService(db).admin_dashboard()

@router.get("/feedback", response_model=Page[FeedbackResponse])
async def list_feedback(
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """Feedback feed without items under a pending or upheld spam report."""
    return FeedbackService(db).list_admin_feed(params)

@router.patch("/feedback/{feedback_id}/moderate", response_model=FeedbackResponse)
async def moderate_feedback(
    feedback_id: int,
    payload: ModerateFeedback,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    feedback = FeedbackService(db).moderate_feedback(feedback_id, payload.is_moderated)
    return FeedbackResponse.from_feedback(feedback)

@router.post("/spam-feedback", response_model=SpamReportResponse, status_code=status.HTTP_201_CREATED)
async def report_spam(
    payload: SpamReportCreate,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    report = FeedbackService(db).report_spam(current_user, payload)
    return SpamReportResponse.from_report(report)

@router.get("/spam-feedback", response_model=Page[SpamReportResponse])
async def list_spam_reports(
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    return FeedbackService(db).list_reports(params)

@router.patch("/spam-feedback/{report_id}/resolve", response_model=SpamReportResponse)
async def resolve_spam_report(
    report_id: int,
    payload: SpamReportResolve,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    report = FeedbackService(db).resolve_report(report_id, payload)
    return SpamReportResponse.from_report(report)

@router.get("/users", response_model=Page[AdminUserResponse])
async def list_users(
    role: Optional[str] = None,
    params: PageParams = Depends(pagination_params),
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """Active non-admin users, optionally of a single role."""
    return UserService(db).list_users(params, role=role)

@router.patch("/users/{user_id}/ban", response_model=AdminUserResponse)
async def ban_user(
    user_id: int,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    return AdminUserResponse.model_validate(UserService(db).set_banned(user_id, True))

@router.patch("/users/{user_id}/activate", response_model=AdminUserResponse)
async def activate_user(
    user_id: int,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    return AdminUserResponse.model_validate(UserService(db).set_banned(user_id, False))
