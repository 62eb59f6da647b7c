from sqlalchemy import Column, Integer, String

from database import Base


class User(Base):
    """Users are provisioned out-of-band; documents only reference them."""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    username = Column(String, unique=True, nullable=False)
    display_name = Column(String, nullable=False)
    initials = Column(String, nullable=False)
    company = Column(String, nullable=True)
