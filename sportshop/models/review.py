from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sportshop.models.user import Base
from sportshop.utils.timeutils import utcnow


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_review_user_product"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    rating = Column(Integer, nullable=False)  # 1..5
    comment = Column(String(2000), nullable=False)
    created_at = Column(DateTime, default=utcnow)
