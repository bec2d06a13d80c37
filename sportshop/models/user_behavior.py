from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sportshop.models.user import Base
from sportshop.utils.timeutils import utcnow


class UserBehavior(Base):
    __tablename__ = "user_behaviors"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    behavior = Column(String(20), nullable=False)  # view, like, dislike, checkout, cart, purchase
    event_time = Column(DateTime, nullable=False, default=utcnow)
