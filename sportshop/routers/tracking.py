from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sportshop.dependencies import get_behavior_tracker
from sportshop.models.user import User, get_db
from sportshop.schemas.tracking import TrackingEventIn, TrackingEventOut
from sportshop.services.tracking import BehaviorTracker
from sportshop.utils.security import get_current_user

router = APIRouter()


@router.post("/", response_model=TrackingEventOut, status_code=201)
def track_user_behavior(
    payload: TrackingEventIn,
    db: Session = Depends(get_db),
    tracker: BehaviorTracker = Depends(get_behavior_tracker),
    user: User = Depends(get_current_user),
):
    event = tracker.track(db, user.id, payload.productId, payload.productName, payload.behavior)
    return TrackingEventOut(message="User behavior tracked successfully", sessionId=event.session_id)
