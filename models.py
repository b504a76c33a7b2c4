from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserDB(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True)
    # Nur der passlib-Hash wird gespeichert
    password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    avatar = Column(String(500))


class BoardDB(Base):
    __tablename__ = "boards"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000))
    color = Column(String(7), nullable=False, default="#0073EA")
    status = Column(String(50), nullable=False, default="active")
    created_by = Column(Integer, nullable=False)
