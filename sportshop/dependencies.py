from fastapi import Depends, Request
from sqlalchemy.orm import Session

from sportshop.models.user import get_db
from sportshop.services.notifications import EmailNotifier
from sportshop.services.order_service import OrderService
from sportshop.services.payment_gateway import MomoGateway
from sportshop.services.tracking import BehaviorTracker


def get_notifier() -> EmailNotifier:
    return EmailNotifier()


def get_payment_gateway(request: Request) -> MomoGateway:
    # created once in the app lifespan so the HTTP connection pool is shared
    return request.app.state.payment_gateway


def get_behavior_tracker(request: Request) -> BehaviorTracker:
    return request.app.state.behavior_tracker


def get_order_service(
    db: Session = Depends(get_db),
    notifier: EmailNotifier = Depends(get_notifier),
    gateway: MomoGateway = Depends(get_payment_gateway),
) -> OrderService:
    return OrderService(db, notifier=notifier, gateway=gateway)
