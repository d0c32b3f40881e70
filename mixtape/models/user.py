"""User model for database"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from mixtape.database.db import Base


class User(Base):
    """Owner of uploaded tracks"""
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False, unique=True, index=True)
    display_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
