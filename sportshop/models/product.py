from sqlalchemy import Column, Integer, String, Numeric
from sportshop.models.user import Base


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), index=True)
    brand = Column(String(100))
    price = Column(Numeric(12, 2), nullable=False)
    # Only ever changed through relative UPDATEs (stock = stock + delta)
    stock = Column(Integer, nullable=False, default=0)
    image = Column(String(500))
